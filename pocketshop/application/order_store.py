"""
OrderStore: single source of truth for one vendor's orders on the client side.

- loads orders / menu items / stock from an injected IOrderRepository
- applies status changes optimistically and rolls the whole collection back
  when the backend rejects them
- merges realtime pushes through reconcile_order so concurrent views of the
  same order collapse into one entry
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pocketshop.core.config import settings
from pocketshop.domain.errors import OrderNotFoundError
from pocketshop.domain.models import ItemStock, MenuItem, Order, OrderStatus, utcnow
from pocketshop.domain.reconciliation import extract_error_message, reconcile_order
from pocketshop.interfaces.IOrderRepository import IOrderRepository, Unsubscribe

logger = logging.getLogger(__name__)


class OrderStore:

    def __init__(
        self,
        repository: IOrderRepository,
        vendor_id: Optional[str] = None,
        serialize_status_changes: Optional[bool] = None,
        transient_fields: Iterable[str] = (),
    ):
        self.repository = repository
        self.vendor_id = vendor_id or settings.DEFAULT_VENDOR_ID
        self.serialize_status_changes = (
            settings.SERIALIZE_STATUS_CHANGES if serialize_status_changes is None else serialize_status_changes
        )
        self.transient_fields = tuple(transient_fields)

        self._orders: List[Order] = []
        self.menu_items: List[MenuItem] = []
        self.stock: Optional[Dict[str, ItemStock]] = None
        self.loading: bool = False
        self.last_error: Optional[BaseException] = None
        self.selected_order_id: Optional[str] = None

        self._unsubscribe: Optional[Unsubscribe] = None
        self._active = True
        self._order_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    # -------------------- read side --------------------

    @property
    def orders(self) -> List[Order]:
        return list(self._orders)

    @property
    def selected_order(self) -> Optional[Order]:
        if self.selected_order_id is None:
            return None
        return self.get_order(self.selected_order_id)

    @property
    def error_message(self) -> Optional[str]:
        if self.last_error is None:
            return None
        return extract_error_message(self.last_error)

    def get_order(self, order_id: str) -> Optional[Order]:
        index = self._index_of(order_id)
        return None if index is None else self._orders[index]

    def status(self) -> Dict[str, Any]:
        """Serializable snapshot for dashboard consumers."""
        selected = self.selected_order
        return {
            "vendorId": self.vendor_id,
            "orders": [order.to_json_dict() for order in self._orders],
            "loading": self.loading,
            "error": self.error_message,
            "selectedOrder": selected.to_json_dict() if selected else None,
        }

    # -------------------- lifecycle --------------------

    async def initialize(self, vendor_id: Optional[str] = None) -> None:
        """
        Load everything for the vendor and start listening for pushes.

        A failed load keeps whatever was displayed before and records the
        error; it is not raised.
        """
        if vendor_id and vendor_id != self.vendor_id:
            self._switch_vendor(vendor_id)
        self._active = True

        self.loading = True
        self.last_error = None
        try:
            orders, menu_items, stock = await asyncio.gather(
                self.repository.fetch_orders(self.vendor_id),
                self.repository.fetch_menu_items(self.vendor_id),
                self.repository.fetch_item_stock(self.vendor_id),
            )
        except Exception as e:
            self.last_error = e
            logger.error(f"❌ Failed to load orders for vendor {self.vendor_id}: {e}")
        else:
            self._orders = list(orders)
            self.menu_items = list(menu_items or [])
            self.stock = stock
            self.last_error = None
            logger.info(f"✅ Loaded {len(self._orders)} orders for vendor {self.vendor_id}")
        finally:
            self.loading = False

        self._ensure_subscription()

    async def refresh(self, vendor_id: Optional[str] = None) -> None:
        """
        Wholesale reload, no reconciliation. Failures keep the stale list.

        Another vendor goes through initialize so the store never mixes vendors.
        """
        if vendor_id and vendor_id != self.vendor_id:
            await self.initialize(vendor_id)
            return

        self.loading = True
        self.last_error = None
        try:
            rows = await self.repository.fetch_orders(self.vendor_id)
        except Exception as e:
            self.last_error = e
            logger.error(f"❌ Failed to refresh orders for vendor {self.vendor_id}: {e}")
        else:
            self._orders = list(rows)
        finally:
            self.loading = False

    def shutdown(self) -> None:
        """Stop merging pushes and release the realtime subscription."""
        self._active = False
        self._teardown_subscription()

    # -------------------- mutations --------------------

    async def change_order_status(self, order_id: str, new_status: OrderStatus) -> Order:
        """
        Optimistically set the status, persist it, and reconcile with the
        backend's answer. On failure the whole collection is restored and the
        error is both recorded and raised.
        """
        if self._index_of(order_id) is None:
            error = OrderNotFoundError(order_id)
            self.last_error = error
            raise error
        try:
            new_status = OrderStatus(new_status)
        except ValueError as e:
            self.last_error = e
            raise

        if not self.serialize_status_changes:
            return await self._apply_status_change(order_id, new_status)

        # Locks live only while a change on that order is running or queued
        lock = self._order_locks.setdefault(order_id, asyncio.Lock())
        self._lock_users[order_id] = self._lock_users.get(order_id, 0) + 1
        try:
            async with lock:
                return await self._apply_status_change(order_id, new_status)
        finally:
            self._lock_users[order_id] -= 1
            if self._lock_users[order_id] == 0:
                del self._lock_users[order_id]
                del self._order_locks[order_id]

    async def _apply_status_change(self, order_id: str, new_status: OrderStatus) -> Order:
        index = self._index_of(order_id)
        if index is None:
            # Only reachable when queued behind another change and a refresh dropped the order
            error = OrderNotFoundError(order_id)
            self.last_error = error
            raise error

        # 1. Snapshot for rollback (per call: changes to different orders may overlap)
        snapshot = [order.model_copy(deep=True) for order in self._orders]

        # 2. Optimistic apply
        previous = self._orders[index]
        optimistic = previous.model_copy(update={
            "status": new_status,
            "version": previous.version + 1,
            "updated_at": utcnow(),
        }, deep=True)
        self._orders[index] = optimistic
        self.last_error = None

        # 3. Persist
        try:
            updated = await self.repository.change_order_status(self.vendor_id, order_id, new_status)
        except (Exception, asyncio.CancelledError) as e:
            self._orders = snapshot
            self.last_error = e
            logger.warning(f"⚠️ Status change of {order_id} to {new_status.value} rolled back: {e}")
            raise
        else:
            return self._apply_remote(updated, append_missing=False) or updated

    def merge_remote_batch(self, remote_rows: Iterable[Any]) -> None:
        """
        Merge a pushed batch of current rows: known ids are reconciled, unknown
        ids are appended, local-only entries are kept.
        """
        if not self._active:
            return

        merged = 0
        for row in remote_rows:
            remote = row if isinstance(row, Order) else Order.model_validate(row)
            self._apply_remote(remote)
            merged += 1
        logger.debug(f"🔄 Merged {merged} pushed orders for vendor {self.vendor_id}")

    def select_order(self, order_id: Optional[str]) -> Optional[Order]:
        if not order_id:
            self.selected_order_id = None
            return None

        order = self.get_order(order_id)
        self.selected_order_id = order.id if order else None
        return order

    async def toggle_item_stock(self, item_id: str, in_stock: bool, until: Optional[datetime] = None) -> None:
        """Change availability, then reload stock wholesale."""
        try:
            await self.repository.toggle_item_stock(item_id, in_stock, until)
            self.stock = await self.repository.fetch_item_stock(self.vendor_id)
        except Exception as e:
            self.last_error = e
            raise

    # -------------------- internals --------------------

    def _index_of(self, order_id: str) -> Optional[int]:
        for index, order in enumerate(self._orders):
            if order.id == order_id:
                return index
        return None

    def _apply_remote(self, remote: Order, append_missing: bool = True) -> Optional[Order]:
        """Reconcile one remote record into the collection and return the resulting entry."""
        index = self._index_of(remote.id)
        if index is None:
            if not append_missing:
                return None
            self._orders.append(remote)
            return remote

        local = self._orders[index]
        if remote.version < local.version:
            # Stale echo (e.g. a slow mutation response after a newer push); versions never go backwards
            return local

        resolved = reconcile_order(local, remote, self.transient_fields)
        self._orders[index] = resolved
        return resolved

    def _switch_vendor(self, vendor_id: str) -> None:
        self._teardown_subscription()
        self.vendor_id = vendor_id
        self._orders = []
        self.menu_items = []
        self.stock = None
        self.selected_order_id = None

    def _ensure_subscription(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.repository.subscribe_to_orders(self.vendor_id, self.merge_remote_batch)
        if self._unsubscribe is not None:
            logger.info(f"📡 Realtime subscription open for vendor {self.vendor_id}")

    def _teardown_subscription(self) -> None:
        if self._unsubscribe is None:
            return
        self._unsubscribe()
        self._unsubscribe = None
        logger.info(f"🔌 Realtime subscription closed for vendor {self.vendor_id}")
