from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Optional

from pocketshop.domain.models import ItemStock, MenuItem, Order, OrderStatus

OrderBatchCallback = Callable[[List[Order]], None]
Unsubscribe = Callable[[], None]


class IOrderRepository(ABC):
    """
    Data contract between the order store and whatever serves order data
    (in-memory demo, Postgres, ...).

    Optional capabilities return None when the source does not support them.
    """

    @abstractmethod
    async def fetch_orders(self, vendor_id: str) -> List[Order]:
        """Latest canonical list of the vendor's orders."""

    @abstractmethod
    async def change_order_status(self, vendor_id: str, order_id: str, new_status: OrderStatus) -> Order:
        """Persist a status change and return the backend's post-mutation order."""

    async def fetch_menu_items(self, vendor_id: str) -> Optional[List[MenuItem]]:
        return None

    async def fetch_item_stock(self, vendor_id: str) -> Optional[Dict[str, ItemStock]]:
        return None

    def subscribe_to_orders(self, vendor_id: str, callback: OrderBatchCallback) -> Optional[Unsubscribe]:
        """
        Push fresh order rows to `callback` whenever the backend changes.
        Delivery is at-least-once. Returns an unsubscribe function.
        """
        return None

    async def toggle_item_stock(self, item_id: str, in_stock: bool, until: Optional[datetime] = None) -> None:
        raise NotImplementedError(f"{type(self).__name__} does not manage stock")

    async def create_order(
        self,
        vendor_id: str,
        items: List[Dict],
        total: float,
        idempotency_key: Optional[str] = None,
    ) -> Order:
        """Create an order (POS / testing). Idempotent when a key is given."""
        raise NotImplementedError(f"{type(self).__name__} cannot create orders")
