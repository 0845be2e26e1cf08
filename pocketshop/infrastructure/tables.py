from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String
from sqlalchemy.sql import func

from pocketshop.infrastructure.database import Base

class OrderRow(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True)
    vendor_id = Column(String, index=True, nullable=False)

    # Backend vocabulary: pending, confirmed, preparing, ready, completed, cancelled
    status = Column(String, default="pending", index=True)
    payment_status = Column(String, default="unpaid")  # unpaid, paid, failed, refunded
    payment_method = Column(String, nullable=True)

    # Line items as JSON: [{"item_id": ..., "name": ..., "qty": 2, "price": 25.5}]
    items = Column(JSON, nullable=False)
    total_amount = Column(Float, nullable=False)

    # Bumped on every update; used for version-checked writes
    version = Column(Integer, nullable=False, default=1)

    customer_name = Column(String, nullable=True)
    order_type = Column(String, nullable=True)
    order_number = Column(String, nullable=True)
    idempotency_key = Column(String, unique=True, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


class MenuItemRow(Base):
    __tablename__ = "menu_items"

    id = Column(String, primary_key=True)
    vendor_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    price = Column(Float, nullable=False)
    status = Column(String, default="ACTIVE")
    needs_photo = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


class ItemStockRow(Base):
    __tablename__ = "item_stock"

    item_id = Column(String, primary_key=True)
    in_stock = Column(Boolean, nullable=False, default=True)
    qty = Column(Integer, nullable=True)
    out_of_stock_until = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
