"""
Notification hub for real-time delivery.

This module keeps the process-wide registry of live WebSocket sessions, keyed
by user id, and routes typed event envelopes to them.

Delivery is best effort and never blocks the producer:
- no live session for the user → the event is dropped (clients recover state
  through the polling endpoints, never through replay)
- the session's outbound queue is full → the session is considered stalled,
  deregistered and aborted; other users are unaffected
"""

from __future__ import annotations
from typing import Dict, Iterable, Optional, Protocol, Union
from uuid import UUID
import threading

import structlog

logger = structlog.get_logger(__name__)

UserKey = Union[UUID, str]


class HubSession(Protocol):
    """What the hub needs from a registered session."""

    user_id: UUID

    def enqueue(self, event: dict) -> bool:
        ...

    def abort(self, reason: str) -> None:
        ...


def _key(user_id: UserKey) -> UUID:
    return user_id if isinstance(user_id, UUID) else UUID(str(user_id))


class NotificationHub:
    """
    Registry of at most one live session per user.

    The map below is the only shared mutable state of the real-time subsystem.
    Every access holds ``_lock`` for a single dict operation, so lookups for
    delivery never wait behind anything but another O(1) map operation.
    Enqueueing and teardown happen outside the lock.
    """

    def __init__(self):
        # user_id → live session (last connection wins)
        self._sessions: Dict[UUID, HubSession] = {}
        self._lock = threading.Lock()

    def register(self, user_id: UserKey, session: HubSession) -> None:
        """
        Register ``session`` as the live session for ``user_id``.

        A previous session for the same user is displaced but not closed; it
        stops receiving routed events and is torn down by its own loops.
        """
        key = _key(user_id)
        with self._lock:
            previous = self._sessions.get(key)
            self._sessions[key] = session
            online = len(self._sessions)

        if previous is not None and previous is not session:
            logger.info("hub session displaced", user_id=str(key))
        logger.info("hub session registered", user_id=str(key), online_users=online)

    def deregister(self, user_id: UserKey, session: HubSession) -> bool:
        """
        Remove the mapping for ``user_id`` only if it still points at ``session``.

        Returns:
            True if the mapping was removed, False if it belonged to another
            (newer) session or did not exist.
        """
        key = _key(user_id)
        with self._lock:
            if self._sessions.get(key) is not session:
                return False
            del self._sessions[key]
            online = len(self._sessions)

        logger.info("hub session deregistered", user_id=str(key), online_users=online)
        return True

    def send_to(self, user_id: UserKey, event: dict) -> bool:
        """
        Route ``event`` to the user's live session without blocking.

        Args:
            user_id: Recipient user id
            event: Envelope ``{"type": ..., "payload": ...}``

        Returns:
            True if the event was queued for delivery, False if it was dropped.
            Never raises.
        """
        try:
            key = _key(user_id)
            with self._lock:
                session = self._sessions.get(key)

            if session is None:
                logger.debug("recipient offline, event dropped", user_id=str(key), event_type=event.get("type"))
                return False

            if session.enqueue(event):
                return True

            logger.warning(
                "outbound queue full, tearing down session",
                user_id=str(key),
                event_type=event.get("type"),
            )
            self.deregister(key, session)
            session.abort("outbound queue full")
            return False
        except Exception as e:
            logger.error("hub delivery failed", user_id=str(user_id), error=str(e), exc_info=True)
            return False

    def send_to_users(self, user_ids: Iterable[UserKey], event: dict) -> int:
        """Route ``event`` to several users; returns how many queued it."""
        return sum(1 for user_id in user_ids if self.send_to(user_id, event))

    def is_online(self, user_id: UserKey) -> bool:
        key = _key(user_id)
        with self._lock:
            return key in self._sessions

    def get_session(self, user_id: UserKey) -> Optional[HubSession]:
        key = _key(user_id)
        with self._lock:
            return self._sessions.get(key)

    def get_connection_count(self) -> dict:
        """Get statistics about registered sessions."""
        with self._lock:
            online = len(self._sessions)
        return {"online_users": online}


# Process-wide instance used by the upgrade endpoint and the services
notification_hub = NotificationHub()
