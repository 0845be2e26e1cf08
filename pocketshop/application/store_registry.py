import asyncio
import logging
from typing import Dict

from pocketshop.application.order_store import OrderStore
from pocketshop.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)


class OrderStoreRegistry:
    """One initialized OrderStore (and one realtime subscription) per vendor."""

    def __init__(self, repository: IOrderRepository):
        self.repository = repository
        self._stores: Dict[str, OrderStore] = {}
        self._lock = asyncio.Lock()

    async def get(self, vendor_id: str) -> OrderStore:
        store = self._stores.get(vendor_id)
        if store is not None:
            return store

        async with self._lock:
            store = self._stores.get(vendor_id)
            if store is None:
                store = OrderStore(self.repository, vendor_id)
                await store.initialize()
                self._stores[vendor_id] = store
        return store

    def __contains__(self, vendor_id: str) -> bool:
        return vendor_id in self._stores

    def shutdown(self) -> None:
        for vendor_id, store in self._stores.items():
            store.shutdown()
            logger.info(f"🛑 Order store for vendor {vendor_id} shut down")
        self._stores.clear()
