"""
Message repository for chat between matched parties.
"""

from __future__ import annotations
from uuid import UUID
from datetime import datetime, timezone
from sqlalchemy import select, func, and_, update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from swipematch.models.message import Message
from .base import BaseRepository

logger = logging.getLogger(__name__)


class MessageRepository(BaseRepository[Message]):
    """
    Repository for Message model.

    Provides methods for:
    - Paginated chat history per match
    - Marking the counterpart's messages as read
    """

    def __init__(self):
        """Initialize with Message model."""
        super().__init__(Message)

    async def get_match_messages(
        self,
        db: AsyncSession,
        match_id: UUID,
        skip: int = 0,
        limit: int = 50
    ) -> tuple[list[Message], int]:
        """
        Get paginated messages of a match, oldest first.

        Args:
            db: Active database session
            match_id: UUID of the match
            skip: Number of records to skip (offset)
            limit: Maximum number of records to return

        Returns:
            Tuple of (list of messages, total count)

        Example:
            messages, total = await repo.get_match_messages(db, match_id, skip=0, limit=50)
        """
        try:
            query = (
                select(Message)
                .where(Message.match_id == match_id)
                .order_by(Message.created_at, Message.id)
                .offset(skip)
                .limit(limit)
            )
            result = await db.execute(query)
            messages = list(result.scalars().all())

            count_query = select(func.count()).select_from(Message).where(Message.match_id == match_id)
            total = (await db.execute(count_query)).scalar_one()

            return messages, total

        except SQLAlchemyError as e:
            logger.error(f"Error fetching messages for match {match_id}: {e}")
            raise

    async def mark_read(
        self,
        db: AsyncSession,
        match_id: UUID,
        reader_id: UUID
    ) -> int:
        """
        Mark every unread message sent to ``reader_id`` in a match as read.

        Returns:
            Number of messages updated
        """
        try:
            stmt = (
                sql_update(Message)
                .where(
                    and_(
                        Message.match_id == match_id,
                        Message.sender_id != reader_id,
                        Message.is_read == False  # noqa: E712
                    )
                )
                .values(is_read=True, read_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(stmt)
            return result.rowcount

        except SQLAlchemyError as e:
            logger.error(f"Error marking messages of match {match_id} read for user {reader_id}: {e}")
            raise
