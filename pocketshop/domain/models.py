from datetime import datetime
from enum import Enum
from typing import List, Optional

import pytz
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(pytz.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps (some drivers drop the offset)."""
    if value is None or value.tzinfo is not None:
        return value
    return pytz.utc.localize(value)


class OrderStatus(str, Enum):
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class OrderType(str, Enum):
    DINE_IN = "DINE_IN"
    TAKEAWAY = "TAKEAWAY"
    DELIVERY = "DELIVERY"


class PaymentMethod(str, Enum):
    GOOGLE_PAY = "GOOGLE_PAY"
    PAYTM = "PAYTM"
    PHONEPE = "PHONEPE"
    CASH = "CASH"
    CARD = "CARD"


class MenuItemStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


# Orders travel as camelCase JSON (backend rows, realtime payloads) but are
# handled as snake_case attributes in Python.
class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class OrderItem(_CamelModel):
    item_id: str
    name: Optional[str] = None
    qty: int
    price: float  # per unit


class Order(_CamelModel):
    """
    Order aggregate as seen by the vendor dashboard.

    Only `status`, `version` and `updated_at` ever change on the client side;
    everything else is trusted as delivered by the backend.
    """

    id: str
    vendor_id: str
    status: OrderStatus
    payment_status: PaymentStatus = PaymentStatus.PENDING
    version: int = Field(default=0, ge=0)
    total: float
    items: List[OrderItem] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    # Display-only, denormalized
    customer_name: Optional[str] = None
    order_type: Optional[OrderType] = None
    order_number: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None

    @property
    def items_count(self) -> int:
        return sum(item.qty for item in self.items)

    @property
    def is_closed(self) -> bool:
        return self.status in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


class MenuItem(_CamelModel):
    id: str
    vendor_id: str
    name: str
    description: Optional[str] = None
    price: float
    status: MenuItemStatus = MenuItemStatus.ACTIVE
    needs_photo: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ItemStock(_CamelModel):
    item_id: str
    in_stock: bool
    qty: Optional[int] = None
    out_of_stock_until: Optional[datetime] = None
    updated_at: Optional[datetime] = None
