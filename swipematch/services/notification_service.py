"""
Notification service: the single seam business code uses to push real-time events.

Events are routed through the local ``NotificationHub`` or, when the hub relay
is enabled, published to every API process over Redis. Delivery failures are
logged here and never surface to the operation that produced the event.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
import logging

from swipematch.core.config import settings
from swipematch.core.hub import NotificationHub, notification_hub
from swipematch.core.hub_relay import HubRelay, hub_relay
from swipematch.models.job import Job
from swipematch.models.match import Match
from swipematch.models.user import User
from swipematch.schemas.websocket import EventType, make_event

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Service for dispatching typed events to users.

    This service builds the event envelopes for:
    - New matches
    - Match status changes (unmatch, application status)
    - Chat messages and typing indicators
    """

    def __init__(
        self,
        hub: Optional[NotificationHub] = None,
        relay: Optional[HubRelay] = None,
        use_relay: Optional[bool] = None
    ):
        """
        Initialize service with its delivery backends.

        Args:
            hub: Local NotificationHub (process-wide instance if None)
            relay: HubRelay used when relaying is enabled
            use_relay: Override ``settings.hub_relay_enabled``
        """
        self.hub = hub or notification_hub
        self.relay = relay or hub_relay
        self.use_relay = settings.hub_relay_enabled if use_relay is None else use_relay

    async def notify(self, user_id: UUID, event_type: str, payload: Optional[dict] = None) -> bool:
        """
        Send one event to a user, best effort.

        Returns:
            True if the event was queued locally or published to the relay,
            False if it was dropped. Never raises.
        """
        event = make_event(event_type, payload)
        try:
            if self.use_relay:
                await self.relay.publish(user_id, event)
                return True
            return self.hub.send_to(user_id, event)
        except Exception as e:
            logger.warning(f"Failed to deliver {event['type']} event to user {user_id}: {e}")
            return False

    async def notify_match(self, match: Match, recipient_id: UUID, job: Job, counterpart: Optional[User]) -> bool:
        """Tell ``recipient_id`` that a new match with ``counterpart`` was formed."""
        payload = {
            "match_id": str(match.id),
            "job_id": str(job.id),
            "job_title": job.title,
            "company_name": job.company_name,
            "counterpart_id": str(counterpart.id) if counterpart else None,
            "counterpart_name": counterpart.full_name if counterpart else None,
            "matched_at": match.matched_at.isoformat() if match.matched_at else None,
        }
        logger.info(f"Dispatching match {match.id} to user {recipient_id}")
        return await self.notify(recipient_id, EventType.MATCH, payload)

    async def notify_status_update(
        self,
        match: Match,
        recipient_id: UUID,
        application_status: Optional[str] = None
    ) -> bool:
        payload = {
            "match_id": str(match.id),
            "status": match.status,
            "application_status": application_status or match.application_status,
        }
        return await self.notify(recipient_id, EventType.STATUS_UPDATE, payload)

    async def notify_message(self, recipient_id: UUID, message_payload: dict) -> bool:
        return await self.notify(recipient_id, EventType.MESSAGE, message_payload)

    async def notify_typing(self, recipient_id: UUID, match_id: UUID, sender_id: UUID, is_typing: bool) -> bool:
        payload = {"match_id": str(match_id), "user_id": str(sender_id), "is_typing": is_typing}
        return await self.notify(recipient_id, EventType.TYPING, payload)
