"""
OrderFeed: per-vendor realtime channel for order rows.

Every publish carries the vendor's current order rows (not a diff), so a
subscriber can merge any single message on its own.

- Primary transport: Redis Pub/Sub (channel "<prefix>:<vendor_id>")
- Fallback: in-process fan-out, used when Redis is not configured or fails
"""
import asyncio
import json
import logging
from typing import Dict, List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from pocketshop.core.config import settings
from pocketshop.domain.models import Order
from pocketshop.interfaces.IOrderRepository import OrderBatchCallback, Unsubscribe

logger = logging.getLogger(__name__)


class OrderFeed:
    def __init__(self, redis_url: Optional[str] = None, channel_prefix: Optional[str] = None):
        self.channel_prefix = channel_prefix or settings.REALTIME_CHANNEL_PREFIX
        self.redis: Optional[aioredis.Redis] = None
        self.redis_available = False

        # 1. Primary transport (Redis)
        if redis_url:
            self.redis = aioredis.from_url(redis_url, decode_responses=True, socket_connect_timeout=1)
            self.redis_available = True

        # 2. Fallback transport (RAM)
        self._local_listeners: Dict[str, List[OrderBatchCallback]] = {}
        self._tasks: List[asyncio.Task] = []

    def channel(self, vendor_id: str) -> str:
        return f"{self.channel_prefix}:{vendor_id}"

    async def publish(self, vendor_id: str, orders: List[Order]) -> None:
        """Broadcast the vendor's current rows."""
        if self.redis_available:
            payload = json.dumps([order.to_json_dict() for order in orders])
            try:
                await self.redis.publish(self.channel(vendor_id), payload)
                return
            except RedisError as e:
                self._handle_redis_error(e)

        self._dispatch_local(vendor_id, orders)

    def subscribe(self, vendor_id: str, callback: OrderBatchCallback) -> Unsubscribe:
        listeners = self._local_listeners.setdefault(vendor_id, [])
        listeners.append(callback)

        task: Optional[asyncio.Task] = None
        if self.redis_available:
            task = asyncio.get_running_loop().create_task(
                self._listen(vendor_id, callback), name=f"order-feed-{vendor_id}"
            )
            self._tasks.append(task)

        def unsubscribe() -> None:
            if callback in listeners:
                listeners.remove(callback)
            if task is not None:
                task.cancel()
                if task in self._tasks:
                    self._tasks.remove(task)

        return unsubscribe

    def listener_count(self, vendor_id: str) -> int:
        return len(self._local_listeners.get(vendor_id, []))

    async def close(self) -> None:
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()
        self._local_listeners.clear()
        if self.redis is not None:
            await self.redis.aclose()

    # -------------------- internals --------------------

    def _dispatch_local(self, vendor_id: str, orders: List[Order]) -> None:
        # Copy: a callback may unsubscribe while we iterate
        for callback in list(self._local_listeners.get(vendor_id, [])):
            try:
                callback([order.model_copy(deep=True) for order in orders])
            except Exception:
                logger.exception(f"❌ Order feed callback failed for vendor {vendor_id}")

    async def _listen(self, vendor_id: str, callback: OrderBatchCallback) -> None:
        """Relay Redis messages for one vendor until cancelled."""
        channel = self.channel(vendor_id)
        pubsub = self.redis.pubsub()
        try:
            await pubsub.subscribe(channel)
            logger.info(f"📡 Subscribed to {channel}")
            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message and message["type"] == "message":
                    try:
                        rows = json.loads(message["data"])
                        callback([Order.model_validate(row) for row in rows])
                    except Exception:
                        logger.exception(f"❌ Failed to process order push on {channel}")
                else:
                    await asyncio.sleep(0.1)
        except RedisError as e:
            self._handle_redis_error(e)
        finally:
            try:
                await pubsub.unsubscribe(channel)
                await pubsub.aclose()
            except RedisError as e:
                logger.warning(f"⚠️ Could not close subscription to {channel}: {e}")

    def _handle_redis_error(self, e: Exception) -> None:
        """Log error and switch to RAM mode."""
        logger.error(f"❌ Redis Error: {e}. Switching order feed to RAM mode.")
        self.redis_available = False
