"""
In-memory order repository.

Serves the seed data in demo_data.py and behaves like the live backend where
it matters to the store: every change bumps the order version and pushes the
vendor's rows through the realtime feed.
"""
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pocketshop.core.config import settings
from pocketshop.domain.errors import OrderNotFoundError
from pocketshop.domain.models import ItemStock, MenuItem, Order, OrderStatus, utcnow
from pocketshop.infrastructure.realtime import OrderFeed
from pocketshop.infrastructure.repositories.demo_data import DEMO_MENU_ITEMS, DEMO_ORDERS
from pocketshop.infrastructure.repositories.line_items import resolve_line_items
from pocketshop.interfaces.IOrderRepository import IOrderRepository, OrderBatchCallback, Unsubscribe

logger = logging.getLogger(__name__)


class DemoOrderRepository(IOrderRepository):

    def __init__(self, feed: Optional[OrderFeed] = None, latency: Optional[float] = None, seed: bool = True):
        self.feed = feed or OrderFeed()
        self.latency = settings.DEMO_LATENCY_SECONDS if latency is None else latency

        self._orders: Dict[str, Order] = {}
        self._menu: Dict[str, MenuItem] = {}
        self._stock: Dict[str, ItemStock] = {}
        self._idempotency: Dict[str, str] = {}

        if seed:
            for row in DEMO_ORDERS:
                order = Order.model_validate(row)
                self._orders[order.id] = order
            for row in DEMO_MENU_ITEMS:
                item = MenuItem.model_validate(row)
                self._menu[item.id] = item
                self._stock[item.id] = ItemStock(item_id=item.id, in_stock=True)

    async def fetch_orders(self, vendor_id: str) -> List[Order]:
        await self._simulate_latency()
        return self._vendor_orders(vendor_id)

    async def fetch_menu_items(self, vendor_id: str) -> List[MenuItem]:
        await self._simulate_latency()
        return [item.model_copy(deep=True) for item in self._menu.values() if item.vendor_id == vendor_id]

    async def fetch_item_stock(self, vendor_id: str) -> Dict[str, ItemStock]:
        await self._simulate_latency()
        return {
            item_id: stock.model_copy(deep=True)
            for item_id, stock in self._stock.items()
            if self._menu.get(item_id) and self._menu[item_id].vendor_id == vendor_id
        }

    async def change_order_status(self, vendor_id: str, order_id: str, new_status: OrderStatus) -> Order:
        await self._simulate_latency()

        current = self._orders.get(order_id)
        if current is None or current.vendor_id != vendor_id:
            raise OrderNotFoundError(order_id)

        updated = current.model_copy(update={
            "status": OrderStatus(new_status),
            "version": current.version + 1,
            "updated_at": utcnow(),
        }, deep=True)
        self._orders[order_id] = updated
        logger.info(f"📝 Demo order {order_id}: {current.status.value} -> {updated.status.value} (v{updated.version})")

        await self.feed.publish(vendor_id, self._vendor_orders(vendor_id))
        return updated.model_copy(deep=True)

    def subscribe_to_orders(self, vendor_id: str, callback: OrderBatchCallback) -> Unsubscribe:
        return self.feed.subscribe(vendor_id, callback)

    async def toggle_item_stock(self, item_id: str, in_stock: bool, until: Optional[datetime] = None) -> None:
        await self._simulate_latency()
        if item_id not in self._menu:
            raise LookupError(f"Menu item not found: {item_id}")
        self._stock[item_id] = ItemStock(
            item_id=item_id,
            in_stock=in_stock,
            out_of_stock_until=None if in_stock else until,
            updated_at=utcnow(),
        )

    async def create_order(
        self,
        vendor_id: str,
        items: List[Dict],
        total: float,
        idempotency_key: Optional[str] = None,
    ) -> Order:
        await self._simulate_latency()

        if idempotency_key and idempotency_key in self._idempotency:
            return self._orders[self._idempotency[idempotency_key]].model_copy(deep=True)

        now = utcnow()
        order = Order(
            id=f"order-{uuid.uuid4().hex[:8]}",
            vendor_id=vendor_id,
            status=OrderStatus.NEW,
            version=1,
            total=total,
            items=resolve_line_items(items, self._menu),
            created_at=now,
            updated_at=now,
            order_number=self._next_order_number(),
        )
        self._orders[order.id] = order
        if idempotency_key:
            self._idempotency[idempotency_key] = order.id

        await self.feed.publish(vendor_id, self._vendor_orders(vendor_id))
        return order.model_copy(deep=True)

    # -------------------- helpers --------------------

    def _vendor_orders(self, vendor_id: str) -> List[Order]:
        return [o.model_copy(deep=True) for o in self._orders.values() if o.vendor_id == vendor_id]

    def _next_order_number(self) -> str:
        numbers = [int(o.order_number) for o in self._orders.values() if o.order_number and o.order_number.isdigit()]
        return str(max(numbers, default=230) + 1)

    async def _simulate_latency(self):
        if self.latency > 0:
            await asyncio.sleep(self.latency)
