"""
Per-connection WebSocket session.

A ``ConnectionSession`` binds one accepted WebSocket to one authenticated user
and runs two duty loops over it:

- the inbound loop receives frames, decodes ``{type, payload}`` envelopes and
  hands them to an externally supplied handler
- the outbound loop drains the session's bounded queue (fed by
  ``NotificationHub.send_to``) to the socket and sends periodic pings

Whichever loop stops first triggers the shared teardown: deregister from the
hub exactly once, cancel the sibling loop, close the socket.
"""

from __future__ import annotations
from typing import Awaitable, Callable, Optional
from uuid import UUID
import asyncio
import json

import structlog
from fastapi import status
from fastapi.encoders import jsonable_encoder
from starlette.websockets import WebSocket, WebSocketState

from swipematch.core.config import settings
from swipematch.core.hub import NotificationHub
from swipematch.schemas.websocket import ControlType, InboundEnvelope, decode_envelope, make_event

logger = structlog.get_logger(__name__)

MessageHandler = Callable[["ConnectionSession", InboundEnvelope], Awaitable[None]]


def encode_event(event: dict) -> str:
    return json.dumps(jsonable_encoder(event))


class ConnectionSession:
    """
    Live duplex channel plus the identity bound to it at handshake time.

    Tuning values default to the ``ws_*`` settings and can be overridden per
    session (tests use sub-second timeouts).
    """

    def __init__(
        self,
        websocket: WebSocket,
        user_id: UUID,
        role: str,
        hub: NotificationHub,
        *,
        read_timeout: Optional[float] = None,
        ping_interval: Optional[float] = None,
        write_timeout: Optional[float] = None,
        max_message_size: Optional[int] = None,
        queue_size: Optional[int] = None,
        coalesce: Optional[bool] = None,
    ):
        self.websocket = websocket
        self.user_id = user_id
        self.role = role
        self.hub = hub

        self.read_timeout = read_timeout if read_timeout is not None else settings.ws_read_timeout
        self.ping_interval = ping_interval if ping_interval is not None else settings.ws_ping_interval
        self.write_timeout = write_timeout if write_timeout is not None else settings.ws_write_timeout
        self.max_message_size = max_message_size if max_message_size is not None else settings.ws_max_message_size
        self.coalesce = coalesce if coalesce is not None else settings.ws_coalesce_frames

        self.outbound: asyncio.Queue = asyncio.Queue(
            maxsize=queue_size if queue_size is not None else settings.ws_send_queue_size
        )
        self.closed = False
        self.close_reason: Optional[str] = None
        self.close_code: int = status.WS_1000_NORMAL_CLOSURE
        self._tasks: list[asyncio.Task] = []
        self._log = logger.bind(user_id=str(user_id), role=role)

    # ── Hub-facing API ────────────────────────────────────────────────────────

    def enqueue(self, event: dict) -> bool:
        """Queue ``event`` for the outbound loop; False if closed or full."""
        if self.closed:
            return False
        try:
            self.outbound.put_nowait(event)
            return True
        except asyncio.QueueFull:
            return False

    def abort(self, reason: str) -> None:
        """Tear the session down without waiting; the loops exit on cancellation."""
        self._teardown(reason, code=status.WS_1011_INTERNAL_ERROR)
        for task in self._tasks:
            task.cancel()

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def _teardown(self, reason: str, code: Optional[int] = None) -> bool:
        if self.closed:
            return False
        self.closed = True
        self.close_reason = reason
        if code is not None:
            self.close_code = code
        self.hub.deregister(self.user_id, self)
        self._log.info("session teardown", reason=reason)
        return True

    async def run(self, handler: MessageHandler) -> None:
        """Run both duty loops until either one stops, then close the channel."""
        self._tasks = [
            asyncio.create_task(self.read_loop(handler)),
            asyncio.create_task(self.write_loop()),
        ]
        if self.closed:
            for task in self._tasks:
                task.cancel()

        try:
            await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            self._teardown("session ended")
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
            await self._close_transport()

    async def _close_transport(self) -> None:
        if self.websocket.application_state == WebSocketState.DISCONNECTED:
            return
        try:
            await asyncio.wait_for(self.websocket.close(code=self.close_code), timeout=self.write_timeout)
        except Exception as e:
            self._log.debug("socket close failed", error=str(e))

    # ── Inbound ───────────────────────────────────────────────────────────────

    async def read_loop(self, handler: MessageHandler) -> None:
        while not self.closed:
            try:
                message = await asyncio.wait_for(self.websocket.receive(), timeout=self.read_timeout)
            except asyncio.TimeoutError:
                self._teardown("read timeout", code=status.WS_1001_GOING_AWAY)
                return
            except Exception as e:
                self._log.warning("read failed", error=str(e))
                self._teardown("read error", code=status.WS_1011_INTERNAL_ERROR)
                return

            if message["type"] == "websocket.disconnect":
                self._teardown("client disconnected")
                return

            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")

            if len(raw.encode("utf-8")) > self.max_message_size:
                self._log.warning("frame too large", size=len(raw), limit=self.max_message_size)
                self._teardown("frame too large", code=status.WS_1009_MESSAGE_TOO_BIG)
                return

            envelope = decode_envelope(raw)
            if envelope is None:
                self._log.warning("malformed frame skipped")
                self.enqueue({
                    "type": ControlType.ERROR.value,
                    "code": "INVALID_MESSAGE_FORMAT",
                    "message": "Message must be a JSON object with a string 'type'",
                })
                continue

            try:
                await handler(self, envelope)
            except Exception as e:
                self._log.error("message handler failed", message_type=envelope.type, error=str(e), exc_info=True)

    # ── Outbound ──────────────────────────────────────────────────────────────

    async def write_loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_ping = loop.time() + self.ping_interval

        while not self.closed:
            try:
                event = await asyncio.wait_for(
                    self.outbound.get(),
                    timeout=max(0.0, next_ping - loop.time()),
                )
            except asyncio.TimeoutError:
                if not await self._write(encode_event(make_event(ControlType.PING))):
                    return
                next_ping = loop.time() + self.ping_interval
                continue

            batch = [event]
            if self.coalesce:
                # Everything queued while the previous write was in flight
                while True:
                    try:
                        batch.append(self.outbound.get_nowait())
                    except asyncio.QueueEmpty:
                        break

            if not await self._write("\n".join(encode_event(e) for e in batch)):
                return

    async def _write(self, frame: str) -> bool:
        try:
            await asyncio.wait_for(self.websocket.send_text(frame), timeout=self.write_timeout)
            return True
        except Exception as e:
            self._log.warning("write failed", error=str(e))
            self._teardown("write error", code=status.WS_1011_INTERNAL_ERROR)
            return False
