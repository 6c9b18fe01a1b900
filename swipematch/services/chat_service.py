"""
Chat service for conversations between matched parties.

Messages can only be exchanged on a ``matched`` pair. Sending a message bumps
the recipient's own unread counter on the match row and pushes a ``message``
event to them; typing indicators are relayed without touching storage.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
from datetime import datetime, timezone
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from swipematch.models.match import Match, MatchStatus
from swipematch.models.message import Message, MessageType
from swipematch.repositories.match_repository import MatchRepository
from swipematch.repositories.message_repository import MessageRepository
from swipematch.services.match_service import storage_unavailable
from swipematch.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class ChatService:
    """
    Service for chat messages, read receipts and typing indicators.
    """

    def __init__(
        self,
        match_repo: Optional[MatchRepository] = None,
        message_repo: Optional[MessageRepository] = None,
        notification_service: Optional[NotificationService] = None
    ):
        self.match_repo = match_repo or MatchRepository()
        self.message_repo = message_repo or MessageRepository()
        self.notification_service = notification_service or NotificationService()

    async def _get_matched(self, db: AsyncSession, match_id: UUID, user_id: UUID) -> Match:
        match = await self.match_repo.get_for_participant(db, match_id, user_id)
        if not match:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Match {match_id} not found"
            )
        if match.status != MatchStatus.MATCHED.value:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Chat is only available on an active match"
            )
        return match

    async def send_message(
        self,
        db: AsyncSession,
        match_id: UUID,
        sender_id: UUID,
        content: str
    ) -> Message:
        """
        Store a text message and push it to the other participant.

        Raises:
            HTTPException: 404 unknown match, 409 match not active, 503 storage fault
        """
        try:
            match = await self._get_matched(db, match_id, sender_id)
            recipient_id = match.counterpart_of(sender_id)
            now = datetime.now(timezone.utc)

            message = await self.message_repo.create(db, {
                "match_id": match_id,
                "sender_id": sender_id,
                "type": MessageType.TEXT.value,
                "content": content,
                "created_at": now,
            })
            await self.match_repo.record_message_activity(
                db, match_id, recipient_is_job_seeker=recipient_id == match.job_seeker_id, at=now
            )
            await db.commit()

        except HTTPException:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Storage error sending message on match {match_id}: {e}")
            await db.rollback()
            raise storage_unavailable()

        await self.notification_service.notify_message(recipient_id, {
            "id": str(message.id),
            "match_id": str(match_id),
            "sender_id": str(sender_id),
            "type": message.type,
            "content": message.content,
            "created_at": message.created_at.isoformat(),
        })
        return message

    async def list_messages(
        self,
        db: AsyncSession,
        match_id: UUID,
        user_id: UUID,
        page: int = 1,
        limit: int = 50
    ) -> dict:
        """
        Get a page of the conversation, oldest first.

        Unmatched conversations stay readable by their participants.
        """
        try:
            match = await self.match_repo.get_for_participant(db, match_id, user_id)
            if not match:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Match {match_id} not found"
                )
            skip = (page - 1) * limit
            messages, total = await self.message_repo.get_match_messages(db, match_id, skip=skip, limit=limit)
        except HTTPException:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Storage error listing messages of match {match_id}: {e}")
            raise storage_unavailable()

        return {"items": messages, "total": total, "has_more": skip + len(messages) < total}

    async def list_conversations(self, db: AsyncSession, user_id: UUID) -> dict:
        """
        Get the user's matched conversations, newest activity first.

        Each entry carries the counterpart, the job, the user's own unread
        counter and the latest message, if any.
        """
        try:
            rows = await self.match_repo.list_conversations(db, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Storage error listing conversations of user {user_id}: {e}")
            raise storage_unavailable()

        items = []
        for match, last_message in rows:
            viewer_is_seeker = user_id == match.job_seeker_id
            counterpart = match.recruiter if viewer_is_seeker else match.job_seeker
            items.append({
                "match_id": match.id,
                "job_id": match.job_id,
                "job_title": match.job.title if match.job else None,
                "company_name": match.job.company_name if match.job else None,
                "counterpart_id": match.counterpart_of(user_id),
                "counterpart_name": counterpart.full_name if counterpart else None,
                "application_status": match.application_status,
                "unread_count": (
                    match.job_seeker_unread_count if viewer_is_seeker else match.recruiter_unread_count
                ),
                "last_message": last_message,
                "last_activity_at": match.last_activity_at or match.matched_at,
            })
        return {"items": items, "total": len(items)}

    async def mark_read(self, db: AsyncSession, match_id: UUID, reader_id: UUID) -> int:
        """Mark the other side's messages read and zero the reader's unread counter."""
        try:
            match = await self.match_repo.get_for_participant(db, match_id, reader_id)
            if not match:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Match {match_id} not found"
                )
            count = await self.message_repo.mark_read(db, match_id, reader_id)
            await self.match_repo.reset_unread(
                db, match_id, reader_is_job_seeker=reader_id == match.job_seeker_id
            )
            await db.commit()
            return count
        except HTTPException:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Storage error marking match {match_id} read: {e}")
            await db.rollback()
            raise storage_unavailable()

    async def relay_typing(
        self,
        db: AsyncSession,
        match_id: UUID,
        sender_id: UUID,
        is_typing: bool
    ) -> bool:
        """
        Forward a typing indicator to the other participant of a matched pair.

        Returns:
            True if the indicator was dispatched, False if the match is unknown
            to the sender or not active
        """
        match = await self.match_repo.get_for_participant(db, match_id, sender_id)
        if not match or match.status != MatchStatus.MATCHED.value:
            logger.debug(f"Typing indicator on match {match_id} from {sender_id} ignored")
            return False
        return await self.notification_service.notify_typing(
            match.counterpart_of(sender_id), match_id, sender_id, is_typing
        )
