"""
Match repository: the match row and its atomic state transitions.

Every mutation of a match row is a single conditional statement so that two
requests racing on the same (job, job seeker) pair, possibly on different
processes, can never both observe the same transition:

- pending upserts never regress a matched or unmatched row
- the matched transition is an upsert guarded by ``status = 'pending'``; the
  writer that gets a row back is the one that performed it
- unmatch is an update guarded by ``status IN ('pending', 'matched')``
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID, uuid4
from datetime import datetime, timezone
from sqlalchemy import select, update, func, and_, or_, desc, case
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import SQLAlchemyError
import logging

from swipematch.core.database import upsert_statement
from swipematch.models.job import Job
from swipematch.models.match import Match, MatchStatus
from swipematch.models.message import Message
from swipematch.models.user import User
from .base import BaseRepository

logger = logging.getLogger(__name__)

LIVE_STATUSES = (MatchStatus.PENDING.value, MatchStatus.MATCHED.value)


def _participant(user_id: UUID):
    return or_(Match.job_seeker_id == user_id, Match.recruiter_id == user_id)


class MatchRepository(BaseRepository[Match]):
    """
    Repository for the Match model.

    Provides methods for:
    - Pair and participant lookups with job/user relationships loaded
    - Pending upserts and the exactly-once matched transition
    - Unmatch and application status updates
    - Aggregate counters and per-side unread bookkeeping
    - Conversation listing with the latest message per match
    """

    def __init__(self):
        """Initialize with Match model."""
        super().__init__(Match)

    async def get_by_pair(
        self,
        db: AsyncSession,
        job_id: UUID,
        job_seeker_id: UUID
    ) -> Optional[Match]:
        """Get the match row for a (job, job seeker) pair, if any."""
        try:
            stmt = (
                select(Match)
                .where(and_(Match.job_id == job_id, Match.job_seeker_id == job_seeker_id))
                .execution_options(populate_existing=True)
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(f"Error fetching match for job {job_id} / seeker {job_seeker_id}: {e}")
            raise

    async def get_for_participant(
        self,
        db: AsyncSession,
        match_id: UUID,
        user_id: UUID
    ) -> Optional[Match]:
        """
        Get a match by ID if ``user_id`` is one of its two participants.

        Loads the job and both users for response building and notifications.
        """
        try:
            stmt = (
                select(Match)
                .where(and_(Match.id == match_id, _participant(user_id)))
                .options(
                    selectinload(Match.job),
                    selectinload(Match.job_seeker),
                    selectinload(Match.recruiter),
                )
                .execution_options(populate_existing=True)
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(f"Error fetching match {match_id} for user {user_id}: {e}")
            raise

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: UUID,
        skip: int = 0,
        limit: int = 20,
        status_filter: Optional[str] = MatchStatus.MATCHED.value
    ) -> tuple[list[Match], int]:
        """
        Get a user's matches, most recent activity first.

        Args:
            db: Active database session
            user_id: UUID of either participant
            skip: Number of records to skip
            limit: Maximum number of records to return
            status_filter: Match status to keep (None for every status)

        Returns:
            Tuple of (matches with job and users loaded, total count)
        """
        try:
            criteria = [_participant(user_id)]
            if status_filter:
                criteria.append(Match.status == status_filter)

            query = (
                select(Match)
                .where(and_(*criteria))
                .options(
                    selectinload(Match.job),
                    selectinload(Match.job_seeker),
                    selectinload(Match.recruiter),
                )
                .order_by(
                    desc(func.coalesce(Match.last_activity_at, Match.matched_at, Match.created_at)),
                    desc(Match.id),
                )
                .offset(skip)
                .limit(limit)
            )
            result = await db.execute(query)
            matches = list(result.scalars().all())

            count_query = select(func.count()).select_from(Match).where(and_(*criteria))
            total = (await db.execute(count_query)).scalar_one()

            return matches, total

        except SQLAlchemyError as e:
            logger.error(f"Error listing matches for user {user_id}: {e}")
            raise

    async def list_conversations(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> list[tuple[Match, Optional[str]]]:
        """
        Get the user's matched conversations, newest activity first.

        Returns:
            List of (match with job and users loaded, latest message content or None)
        """
        try:
            last_message = (
                select(Message.content)
                .where(Message.match_id == Match.id)
                .order_by(desc(Message.created_at))
                .limit(1)
                .correlate(Match)
                .scalar_subquery()
            )
            query = (
                select(Match, last_message.label("last_message"))
                .where(and_(_participant(user_id), Match.status == MatchStatus.MATCHED.value))
                .options(
                    selectinload(Match.job),
                    selectinload(Match.job_seeker),
                    selectinload(Match.recruiter),
                )
                .order_by(
                    desc(func.coalesce(Match.last_activity_at, Match.matched_at)),
                    desc(Match.id),
                )
                .execution_options(populate_existing=True)
            )
            result = await db.execute(query)
            return [(row[0], row[1]) for row in result.all()]

        except SQLAlchemyError as e:
            logger.error(f"Error listing conversations for user {user_id}: {e}")
            raise

    async def count_unread_for_user(self, db: AsyncSession, user_id: UUID) -> int:
        """Sum of the user's own inbound unread counters over matched pairs."""
        try:
            own_counter = case(
                (Match.job_seeker_id == user_id, Match.job_seeker_unread_count),
                else_=Match.recruiter_unread_count,
            )
            query = select(func.coalesce(func.sum(own_counter), 0)).where(
                and_(_participant(user_id), Match.status == MatchStatus.MATCHED.value)
            )
            return (await db.execute(query)).scalar_one()

        except SQLAlchemyError as e:
            logger.error(f"Error counting unread messages for user {user_id}: {e}")
            raise

    async def upsert_pending(
        self,
        db: AsyncSession,
        job_id: UUID,
        job_seeker_id: UUID,
        recruiter_id: UUID,
        job_seeker_swiped_at: Optional[datetime] = None,
        recruiter_swiped_at: Optional[datetime] = None
    ) -> None:
        """
        Record one side's qualifying swipe on a pair without a reciprocal.

        Creates the pending row, or refreshes that side's swipe stamp on an
        existing pending row. Matched and unmatched rows are left untouched.
        """
        now = datetime.now(timezone.utc)
        try:
            insert = upsert_statement(db, Match)
            stmt = insert.values(
                id=uuid4(),
                job_id=job_id,
                job_seeker_id=job_seeker_id,
                recruiter_id=recruiter_id,
                status=MatchStatus.PENDING.value,
                job_seeker_swiped_at=job_seeker_swiped_at,
                recruiter_swiped_at=recruiter_swiped_at,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[Match.job_id, Match.job_seeker_id],
                set_={
                    "job_seeker_swiped_at": func.coalesce(
                        stmt.excluded.job_seeker_swiped_at, Match.job_seeker_swiped_at
                    ),
                    "recruiter_swiped_at": func.coalesce(
                        stmt.excluded.recruiter_swiped_at, Match.recruiter_swiped_at
                    ),
                    "updated_at": stmt.excluded.updated_at,
                },
                where=(Match.status == MatchStatus.PENDING.value),
            )
            await db.execute(stmt)

        except SQLAlchemyError as e:
            logger.error(f"Error upserting pending match for job {job_id} / seeker {job_seeker_id}: {e}")
            await db.rollback()
            raise

    async def transition_to_matched(
        self,
        db: AsyncSession,
        job_id: UUID,
        job_seeker_id: UUID,
        recruiter_id: UUID,
        job_seeker_swiped_at: datetime,
        recruiter_swiped_at: datetime,
        matched_at: Optional[datetime] = None
    ) -> Optional[Match]:
        """
        Move the pair to ``matched`` in one conditional upsert.

        Inserts the row directly as matched when the pair has no row yet, or
        updates a pending row. A matched or unmatched row does not satisfy the
        conflict guard, so nothing is returned for it.

        Returns:
            The matched row if this call performed the transition, None otherwise
        """
        matched_at = matched_at or datetime.now(timezone.utc)
        try:
            insert = upsert_statement(db, Match)
            stmt = insert.values(
                id=uuid4(),
                job_id=job_id,
                job_seeker_id=job_seeker_id,
                recruiter_id=recruiter_id,
                status=MatchStatus.MATCHED.value,
                job_seeker_swiped_at=job_seeker_swiped_at,
                recruiter_swiped_at=recruiter_swiped_at,
                matched_at=matched_at,
                last_activity_at=matched_at,
                created_at=matched_at,
                updated_at=matched_at,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[Match.job_id, Match.job_seeker_id],
                set_={
                    "status": MatchStatus.MATCHED.value,
                    "job_seeker_swiped_at": stmt.excluded.job_seeker_swiped_at,
                    "recruiter_swiped_at": stmt.excluded.recruiter_swiped_at,
                    "matched_at": stmt.excluded.matched_at,
                    "last_activity_at": stmt.excluded.last_activity_at,
                    "updated_at": stmt.excluded.updated_at,
                },
                where=(Match.status == MatchStatus.PENDING.value),
            ).returning(Match)

            result = await db.execute(stmt, execution_options={"populate_existing": True})
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(f"Error matching job {job_id} / seeker {job_seeker_id}: {e}")
            await db.rollback()
            raise

    async def increment_match_counters(
        self,
        db: AsyncSession,
        job_id: UUID,
        user_ids: list[UUID]
    ) -> None:
        """Bump ``total_matches`` of both participants and the job's ``match_count``."""
        try:
            await db.execute(
                update(User)
                .where(User.id.in_(user_ids))
                .values(total_matches=User.total_matches + 1)
                .execution_options(synchronize_session=False)
            )
            await db.execute(
                update(Job)
                .where(Job.id == job_id)
                .values(match_count=Job.match_count + 1)
                .execution_options(synchronize_session=False)
            )

        except SQLAlchemyError as e:
            logger.error(f"Error incrementing match counters for job {job_id}: {e}")
            await db.rollback()
            raise

    async def unmatch(
        self,
        db: AsyncSession,
        match_id: UUID,
        requester_id: UUID
    ) -> Optional[Match]:
        """
        Move a live match to the terminal ``unmatched`` state.

        Returns:
            The updated row, or None if the match does not exist, the requester
            is not a participant, or it was already unmatched
        """
        try:
            stmt = (
                update(Match)
                .where(
                    and_(
                        Match.id == match_id,
                        _participant(requester_id),
                        Match.status.in_(LIVE_STATUSES),
                    )
                )
                .values(status=MatchStatus.UNMATCHED.value, updated_at=datetime.now(timezone.utc))
                .returning(Match)
            )
            result = await db.execute(
                stmt,
                execution_options={"synchronize_session": False, "populate_existing": True},
            )
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(f"Error unmatching match {match_id} for user {requester_id}: {e}")
            await db.rollback()
            raise

    async def update_application_status(
        self,
        db: AsyncSession,
        match_id: UUID,
        recruiter_id: UUID,
        application_status: str
    ) -> Optional[Match]:
        """Set the application status of a matched pair owned by ``recruiter_id``."""
        now = datetime.now(timezone.utc)
        try:
            stmt = (
                update(Match)
                .where(
                    and_(
                        Match.id == match_id,
                        Match.recruiter_id == recruiter_id,
                        Match.status == MatchStatus.MATCHED.value,
                    )
                )
                .values(application_status=application_status, last_activity_at=now, updated_at=now)
                .returning(Match)
            )
            result = await db.execute(
                stmt,
                execution_options={"synchronize_session": False, "populate_existing": True},
            )
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(f"Error updating application status of match {match_id}: {e}")
            await db.rollback()
            raise

    async def record_message_activity(
        self,
        db: AsyncSession,
        match_id: UUID,
        recipient_is_job_seeker: bool,
        at: datetime
    ) -> None:
        """Increment the recipient's unread counter and stamp last activity."""
        counter = Match.job_seeker_unread_count if recipient_is_job_seeker else Match.recruiter_unread_count
        try:
            await db.execute(
                update(Match)
                .where(Match.id == match_id)
                .values({counter: counter + 1, Match.last_activity_at: at, Match.updated_at: at})
                .execution_options(synchronize_session=False)
            )

        except SQLAlchemyError as e:
            logger.error(f"Error recording activity on match {match_id}: {e}")
            await db.rollback()
            raise

    async def reset_unread(
        self,
        db: AsyncSession,
        match_id: UUID,
        reader_is_job_seeker: bool
    ) -> None:
        """Zero the reader's own inbound unread counter."""
        counter = Match.job_seeker_unread_count if reader_is_job_seeker else Match.recruiter_unread_count
        try:
            await db.execute(
                update(Match)
                .where(Match.id == match_id)
                .values({counter: 0})
                .execution_options(synchronize_session=False)
            )

        except SQLAlchemyError as e:
            logger.error(f"Error resetting unread count on match {match_id}: {e}")
            await db.rollback()
            raise
