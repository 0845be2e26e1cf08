import asyncio
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from pocketshop.domain.errors import (
    OrderConflictError,
    OrderFetchError,
    OrderMutationError,
    OrderNotFoundError,
    PocketShopError,
)
from pocketshop.domain.models import (
    ItemStock,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
    as_utc,
    utcnow,
)
from pocketshop.infrastructure.database import SessionLocal
from pocketshop.infrastructure.realtime import OrderFeed
from pocketshop.infrastructure.repositories.line_items import resolve_line_items
from pocketshop.infrastructure.tables import ItemStockRow, MenuItemRow, OrderRow
from pocketshop.interfaces.IOrderRepository import IOrderRepository, OrderBatchCallback, Unsubscribe

logger = logging.getLogger(__name__)

# Backend status vocabulary <-> domain enums
STATUS_TO_DB = {
    OrderStatus.NEW: "pending",
    OrderStatus.IN_PROGRESS: "preparing",
    OrderStatus.READY: "ready",
    OrderStatus.COMPLETED: "completed",
    OrderStatus.CANCELLED: "cancelled",
}
STATUS_FROM_DB = {value: key for key, value in STATUS_TO_DB.items()}
STATUS_FROM_DB["confirmed"] = OrderStatus.NEW  # accepted, not yet started

PAYMENT_TO_DB = {
    PaymentStatus.PENDING: "unpaid",
    PaymentStatus.PAID: "paid",
    PaymentStatus.FAILED: "failed",
    PaymentStatus.REFUNDED: "refunded",
}
PAYMENT_FROM_DB = {value: key for key, value in PAYMENT_TO_DB.items()}


def _enum_or_none(enum_cls, value):
    if not value:
        return None
    try:
        return enum_cls(value.upper())
    except ValueError:
        return None


def row_to_order(row: OrderRow) -> Order:
    items = [
        OrderItem(
            item_id=item.get("item_id") or item.get("product_id"),
            name=item.get("name"),
            qty=item.get("qty", item.get("quantity", 1)),
            price=item.get("price", 0),
        )
        for item in (row.items or [])
    ]
    return Order(
        id=row.id,
        vendor_id=row.vendor_id,
        status=STATUS_FROM_DB.get(row.status, OrderStatus.NEW),
        payment_status=PAYMENT_FROM_DB.get(row.payment_status, PaymentStatus.PENDING),
        version=row.version,
        total=row.total_amount,
        items=items,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at or row.created_at),
        customer_name=row.customer_name,
        order_type=_enum_or_none(OrderType, row.order_type),
        order_number=row.order_number,
        payment_method=_enum_or_none(PaymentMethod, row.payment_method),
    )


def row_to_menu_item(row: MenuItemRow) -> MenuItem:
    return MenuItem(
        id=row.id,
        vendor_id=row.vendor_id,
        name=row.name,
        description=row.description,
        price=row.price,
        status=row.status or "ACTIVE",
        needs_photo=bool(row.needs_photo),
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


class PostgresOrderRepository(IOrderRepository):
    """
    Live repository over the orders / menu_items / item_stock tables.

    Sessions are synchronous; every public method runs its DB work in a worker
    thread so the event loop is never blocked.
    """

    def __init__(self, session_factory=SessionLocal, feed: Optional[OrderFeed] = None):
        self.session_factory = session_factory
        self.feed = feed

    # -------------------- reads --------------------

    async def fetch_orders(self, vendor_id: str) -> List[Order]:
        return await asyncio.to_thread(self._fetch_orders, vendor_id)

    def _fetch_orders(self, vendor_id: str) -> List[Order]:
        """Newest first."""
        session = self.session_factory()
        try:
            rows = (
                session.query(OrderRow)
                .filter(OrderRow.vendor_id == vendor_id)
                .order_by(desc(OrderRow.created_at))
                .all()
            )
            return [row_to_order(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"❌ DB Read Error: {e}")
            raise OrderFetchError(f"Failed to load orders: {e}") from e
        finally:
            session.close()

    async def fetch_menu_items(self, vendor_id: str) -> List[MenuItem]:
        return await asyncio.to_thread(self._fetch_menu_items, vendor_id)

    def _fetch_menu_items(self, vendor_id: str) -> List[MenuItem]:
        session = self.session_factory()
        try:
            rows = session.query(MenuItemRow).filter(MenuItemRow.vendor_id == vendor_id).all()
            return [row_to_menu_item(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"❌ DB Read Error: {e}")
            raise OrderFetchError(f"Failed to load menu items: {e}") from e
        finally:
            session.close()

    async def fetch_item_stock(self, vendor_id: str) -> Dict[str, ItemStock]:
        return await asyncio.to_thread(self._fetch_item_stock, vendor_id)

    def _fetch_item_stock(self, vendor_id: str) -> Dict[str, ItemStock]:
        session = self.session_factory()
        try:
            rows = (
                session.query(ItemStockRow)
                .join(MenuItemRow, MenuItemRow.id == ItemStockRow.item_id)
                .filter(MenuItemRow.vendor_id == vendor_id)
                .all()
            )
            return {
                row.item_id: ItemStock(
                    item_id=row.item_id,
                    in_stock=row.in_stock,
                    qty=row.qty,
                    out_of_stock_until=as_utc(row.out_of_stock_until),
                    updated_at=as_utc(row.updated_at),
                )
                for row in rows
            }
        except SQLAlchemyError as e:
            logger.error(f"❌ DB Read Error: {e}")
            raise OrderFetchError(f"Failed to load stock: {e}") from e
        finally:
            session.close()

    # -------------------- writes --------------------

    async def change_order_status(self, vendor_id: str, order_id: str, new_status: OrderStatus) -> Order:
        order = await asyncio.to_thread(self._change_order_status, vendor_id, order_id, OrderStatus(new_status))
        await self._publish(vendor_id)
        return order

    def _change_order_status(self, vendor_id: str, order_id: str, new_status: OrderStatus) -> Order:
        """Version-checked update: fails with a conflict if the row moved underneath us."""
        session = self.session_factory()
        try:
            row = session.query(OrderRow).filter_by(id=order_id, vendor_id=vendor_id).one_or_none()
            if row is None:
                raise OrderNotFoundError(order_id)

            seen_version = row.version
            updated = (
                session.query(OrderRow)
                .filter(OrderRow.id == order_id, OrderRow.version == seen_version)
                .update(
                    {
                        OrderRow.status: STATUS_TO_DB[new_status],
                        OrderRow.version: OrderRow.version + 1,
                        OrderRow.updated_at: utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                session.rollback()
                raise OrderConflictError(order_id, seen_version)

            session.commit()
            session.refresh(row)
            logger.info(f"📝 Order {order_id} -> {row.status} (v{row.version})")
            return row_to_order(row)
        except SQLAlchemyError as e:
            logger.error(f"❌ DB Error: {e}")
            session.rollback()
            raise OrderMutationError(f"Failed to change status: {e}") from e
        finally:
            session.close()

    async def toggle_item_stock(self, item_id: str, in_stock: bool, until: Optional[datetime] = None) -> None:
        await asyncio.to_thread(self._toggle_item_stock, item_id, in_stock, until)

    def _toggle_item_stock(self, item_id: str, in_stock: bool, until: Optional[datetime]) -> None:
        session = self.session_factory()
        try:
            if session.get(MenuItemRow, item_id) is None:
                raise LookupError(f"Menu item not found: {item_id}")
            session.merge(ItemStockRow(
                item_id=item_id,
                in_stock=in_stock,
                out_of_stock_until=None if in_stock else until,
                updated_at=utcnow(),
            ))
            session.commit()
        except SQLAlchemyError as e:
            logger.error(f"❌ DB Error: {e}")
            session.rollback()
            raise OrderMutationError(f"Failed to update stock: {e}") from e
        finally:
            session.close()

    async def create_order(
        self,
        vendor_id: str,
        items: List[Dict],
        total: float,
        idempotency_key: Optional[str] = None,
    ) -> Order:
        menu = {item.id: item for item in await self.fetch_menu_items(vendor_id)}
        line_items = resolve_line_items(items, menu)
        order = await asyncio.to_thread(self._create_order, vendor_id, line_items, total, idempotency_key)
        await self._publish(vendor_id)
        return order

    def _create_order(
        self,
        vendor_id: str,
        line_items: List[OrderItem],
        total: float,
        idempotency_key: Optional[str],
    ) -> Order:
        session = self.session_factory()
        try:
            if idempotency_key:
                existing = session.query(OrderRow).filter_by(idempotency_key=idempotency_key).one_or_none()
                if existing is not None:
                    return row_to_order(existing)

            now = utcnow()
            count = session.query(OrderRow).filter(OrderRow.vendor_id == vendor_id).count()
            row = OrderRow(
                id=str(uuid.uuid4()),
                vendor_id=vendor_id,
                status="pending",
                payment_status="unpaid",
                items=[item.model_dump() for item in line_items],
                total_amount=total,
                version=1,
                order_number=str(count + 1),
                idempotency_key=idempotency_key,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            return row_to_order(row)
        except IntegrityError as e:
            # Lost a race on the idempotency key: the other insert is the answer
            session.rollback()
            existing = None
            if idempotency_key:
                existing = session.query(OrderRow).filter_by(idempotency_key=idempotency_key).one_or_none()
            if existing is None:
                raise OrderMutationError(f"Failed to create order: {e}") from e
            return row_to_order(existing)
        except SQLAlchemyError as e:
            logger.error(f"❌ DB Error: {e}")
            session.rollback()
            raise OrderMutationError(f"Failed to create order: {e}") from e
        finally:
            session.close()

    # -------------------- realtime --------------------

    def subscribe_to_orders(self, vendor_id: str, callback: OrderBatchCallback) -> Optional[Unsubscribe]:
        if self.feed is None:
            return None
        return self.feed.subscribe(vendor_id, callback)

    async def _publish(self, vendor_id: str) -> None:
        """Push the vendor's rows after a write. The write itself already succeeded."""
        if self.feed is None:
            return
        try:
            await self.feed.publish(vendor_id, await self.fetch_orders(vendor_id))
        except PocketShopError as e:
            logger.warning(f"⚠️ Order push skipped for vendor {vendor_id}: {e}")
