import asyncio
from datetime import datetime
from typing import Dict, List, Optional

import pytest
import pytz

from pocketshop.domain.errors import OrderNotFoundError
from pocketshop.domain.models import Order, OrderItem, OrderStatus, utcnow
from pocketshop.interfaces.IOrderRepository import IOrderRepository

CREATED_AT = datetime(2025, 1, 10, 13, 42, tzinfo=pytz.utc)


def build_order(order_id: str = "o1", status: str = "NEW", version: int = 3, **overrides) -> Order:
    fields = {
        "id": order_id,
        "vendor_id": "vendor-demo",
        "status": status,
        "payment_status": "PAID",
        "version": version,
        "total": 120.0,
        "items": [
            OrderItem(item_id="menu-1", name="Maggi", qty=2, price=50),
            OrderItem(item_id="menu-2", name="Chai", qty=1, price=20),
        ],
        "created_at": CREATED_AT,
        "updated_at": CREATED_AT,
        "customer_name": "Aman",
        "order_number": "231",
    }
    fields.update(overrides)
    return Order(**fields)


class FakeRepository(IOrderRepository):
    """Scriptable repository: failures, held responses and captured push callbacks."""

    def __init__(self, orders: Optional[List[Order]] = None):
        self.orders: Dict[str, Order] = {o.id: o for o in orders or []}
        self.calls: List[tuple] = []
        self.fetch_error: Optional[Exception] = None
        self.change_error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.response: Optional[Order] = None
        # Per-call scripted results, consumed in call order: Exception, Order or None (default behaviour)
        self.outcomes: List = []
        self.callback = None
        self.subscriptions = 0
        self.unsubscriptions = 0

    async def fetch_orders(self, vendor_id: str) -> List[Order]:
        self.calls.append(("fetch_orders", vendor_id))
        if self.fetch_error:
            raise self.fetch_error
        return [o.model_copy(deep=True) for o in self.orders.values() if o.vendor_id == vendor_id]

    async def change_order_status(self, vendor_id: str, order_id: str, new_status: OrderStatus) -> Order:
        self.calls.append(("change_order_status", vendor_id, order_id, new_status))
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, Order):
            return outcome
        if self.change_error:
            raise self.change_error
        if self.response is not None:
            return self.response
        if order_id not in self.orders:
            raise OrderNotFoundError(order_id)
        current = self.orders[order_id]
        updated = current.model_copy(update={
            "status": OrderStatus(new_status),
            "version": current.version + 1,
            "updated_at": utcnow(),
        })
        self.orders[order_id] = updated
        return updated.model_copy(deep=True)

    def subscribe_to_orders(self, vendor_id, callback):
        self.callback = callback
        self.subscriptions += 1

        def unsubscribe():
            self.unsubscriptions += 1

        return unsubscribe

    def push(self, rows: List[Order]) -> None:
        self.callback([row.model_copy(deep=True) for row in rows])


@pytest.fixture
def make_order():
    return build_order


@pytest.fixture
def make_repo():
    return FakeRepository


@pytest.fixture
def fake_repo():
    return FakeRepository([build_order("o1", "NEW", 3), build_order("o2", "READY", 7)])
