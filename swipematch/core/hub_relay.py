"""
Cross-process fan-out for the notification hub.

Each API process only knows the sessions it holds. With ``hub_relay_enabled``
every event is published on a Redis channel instead of being routed locally;
every process subscribes to that channel and hands each event to its own
``NotificationHub.send_to``. The process that holds the recipient's session
delivers it, the others drop it. Delivery stays best effort: nothing is stored
and an event published while no process holds the session is lost.
"""

from __future__ import annotations
from typing import Awaitable, Callable, Optional
from uuid import UUID
import asyncio
import json
import logging

from fastapi.encoders import jsonable_encoder
from redis.asyncio import Redis

from swipematch.core.cache import get_redis
from swipematch.core.config import settings
from swipematch.core.hub import NotificationHub, notification_hub

logger = logging.getLogger(__name__)

RECONNECT_DELAY_SECONDS = 1.0


class HubRelay:
    """Redis pub/sub bridge between API processes."""

    def __init__(
        self,
        hub: NotificationHub,
        channel: Optional[str] = None,
        redis_factory: Callable[[], Awaitable[Redis]] = get_redis,
    ):
        self.hub = hub
        self.channel = channel or settings.hub_relay_channel
        self._redis_factory = redis_factory
        self._listener: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._listener is not None and not self._listener.done()

    async def publish(self, user_id: UUID, event: dict) -> None:
        """Publish an event for ``user_id`` to every subscribed process."""
        r = await self._redis_factory()
        message = json.dumps({"user_id": str(user_id), "event": jsonable_encoder(event)})
        await r.publish(self.channel, message)

    def handle_message(self, data) -> bool:
        """Route one relayed message to the local hub."""
        try:
            message = json.loads(data)
            return self.hub.send_to(message["user_id"], message["event"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"[HubRelay] Dropping malformed relay message: {e}")
            return False

    async def start(self) -> None:
        if self.running:
            return
        self._listener = asyncio.create_task(self._listen())
        logger.info(f"[HubRelay] Listening on channel {self.channel}")

    async def stop(self) -> None:
        if self._listener is None:
            return
        self._listener.cancel()
        try:
            await self._listener
        except asyncio.CancelledError:
            pass
        self._listener = None
        logger.info("[HubRelay] Listener stopped")

    async def _listen(self) -> None:
        while True:
            pubsub = None
            try:
                r = await self._redis_factory()
                pubsub = r.pubsub()
                await pubsub.subscribe(self.channel)
                async for message in pubsub.listen():
                    if message.get("type") == "message":
                        self.handle_message(message["data"])
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[HubRelay] Subscription error, reconnecting: {e}", exc_info=True)
                await asyncio.sleep(RECONNECT_DELAY_SECONDS)
            finally:
                if pubsub is not None:
                    try:
                        await pubsub.aclose()
                    except Exception:
                        logger.debug("[HubRelay] pubsub close failed", exc_info=True)


hub_relay = HubRelay(notification_hub)
