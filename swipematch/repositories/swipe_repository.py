"""
Swipe ledger.

Records one-directional interest signals (swiper → target, with a direction)
and answers "has this side already expressed interest" for the match engine.
Every write is a single upsert keyed on (swiper, target, category), so
re-swiping overwrites the direction instead of adding a row.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID, uuid4
from datetime import datetime, timezone
from sqlalchemy import select, update, and_, or_, desc, case
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from swipematch.core.database import upsert_statement
from swipematch.models.job import Job
from swipematch.models.match import Match, MatchStatus
from swipematch.models.swipe import Swipe, SwipeCategory, SwipeDirection, QUALIFYING_DIRECTIONS
from swipematch.models.user import User
from .base import BaseRepository

logger = logging.getLogger(__name__)


class SwipeRepository(BaseRepository[Swipe]):
    """
    Repository for the Swipe model.

    Provides methods for:
    - Idempotent swipe recording
    - Qualifying-swipe lookups on a (swiper, target, category) triple
    - Finding a job seeker's latest qualifying swipe on a recruiter's jobs
    - Swipe history
    """

    def __init__(self):
        """Initialize with Swipe model."""
        super().__init__(Swipe)

    async def record_swipe(
        self,
        db: AsyncSession,
        swiper_id: UUID,
        target_id: UUID,
        category: SwipeCategory,
        direction: SwipeDirection,
        swiped_at: Optional[datetime] = None
    ) -> Swipe:
        """
        Insert or overwrite the swipe on (swiper, target, category).

        Args:
            db: Active database session
            swiper_id: UUID of the swiping user
            target_id: Job ID (category=job) or profile ID (category=profile)
            category: What kind of card was swiped
            direction: reject, interested or super_interested
            swiped_at: Swipe time (defaults to now)

        Returns:
            The stored swipe with its current direction

        Example:
            swipe = await repo.record_swipe(db, user_id, job_id, SwipeCategory.JOB, SwipeDirection.INTERESTED)
            await db.commit()
        """
        swiped_at = swiped_at or datetime.now(timezone.utc)
        try:
            insert = upsert_statement(db, Swipe)
            stmt = insert.values(
                id=uuid4(),
                swiper_id=swiper_id,
                target_id=target_id,
                category=SwipeCategory(category).value,
                direction=SwipeDirection(direction).value,
                created_at=swiped_at,
                updated_at=swiped_at,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[Swipe.swiper_id, Swipe.target_id, Swipe.category],
                set_={
                    "direction": stmt.excluded.direction,
                    "updated_at": stmt.excluded.updated_at,
                },
            ).returning(Swipe)

            result = await db.execute(stmt, execution_options={"populate_existing": True})
            return result.scalar_one()

        except SQLAlchemyError as e:
            logger.error(f"Error recording swipe {swiper_id} -> {target_id} ({category}): {e}")
            await db.rollback()
            raise

    async def increment_swipe_count(self, db: AsyncSession, user_id: UUID) -> None:
        try:
            await db.execute(
                update(User)
                .where(User.id == user_id)
                .values(total_swipes=User.total_swipes + 1)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error(f"Error incrementing swipe count for user {user_id}: {e}")
            await db.rollback()
            raise

    async def get_qualifying_swipe(
        self,
        db: AsyncSession,
        swiper_id: UUID,
        target_id: UUID,
        category: SwipeCategory
    ) -> Optional[Swipe]:
        """
        Get the swipe on a triple if its direction signals interest.

        Args:
            db: Active database session
            swiper_id: UUID of the swiping user
            target_id: UUID of the swiped job or profile
            category: Swipe category

        Returns:
            The swipe if it is interested or super_interested, None otherwise
        """
        try:
            stmt = select(Swipe).where(
                and_(
                    Swipe.swiper_id == swiper_id,
                    Swipe.target_id == target_id,
                    Swipe.category == SwipeCategory(category).value,
                    Swipe.direction.in_(QUALIFYING_DIRECTIONS),
                )
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(f"Error fetching swipe {swiper_id} -> {target_id} ({category}): {e}")
            raise

    async def has_qualifying_swipe(
        self,
        db: AsyncSession,
        swiper_id: UUID,
        target_id: UUID,
        category: SwipeCategory
    ) -> bool:
        """True iff the stored swipe on the triple is interested or super_interested."""
        return await self.get_qualifying_swipe(db, swiper_id, target_id, category) is not None

    async def find_qualifying_job_swipe(
        self,
        db: AsyncSession,
        job_seeker_id: UUID,
        recruiter_id: UUID
    ) -> Optional[tuple[Swipe, Job]]:
        """
        Find the job seeker's latest qualifying swipe on one of the recruiter's open jobs.

        Used when a recruiter swipes a profile without naming a job. Pairs that
        were unmatched are skipped, and pairs that are not matched yet are
        preferred over already matched ones.

        Args:
            db: Active database session
            job_seeker_id: UUID of the job seeker (profile owner)
            recruiter_id: UUID of the swiping recruiter

        Returns:
            Tuple of (swipe, job) if found, None otherwise
        """
        try:
            stmt = (
                select(Swipe, Job)
                .join(Job, Job.id == Swipe.target_id)
                .outerjoin(
                    Match,
                    and_(Match.job_id == Job.id, Match.job_seeker_id == job_seeker_id),
                )
                .where(
                    and_(
                        Swipe.swiper_id == job_seeker_id,
                        Swipe.category == SwipeCategory.JOB.value,
                        Swipe.direction.in_(QUALIFYING_DIRECTIONS),
                        Job.recruiter_id == recruiter_id,
                        Job.is_active == True,  # noqa: E712
                        or_(Match.id.is_(None), Match.status != MatchStatus.UNMATCHED.value),
                    )
                )
                .order_by(
                    case((Match.status == MatchStatus.MATCHED.value, 1), else_=0),
                    desc(Swipe.updated_at),
                )
                .limit(1)
            )
            result = await db.execute(stmt)
            row = result.first()
            return (row[0], row[1]) if row else None

        except SQLAlchemyError as e:
            logger.error(f"Error finding job swipes of {job_seeker_id} on recruiter {recruiter_id}: {e}")
            raise

    async def list_swipes(
        self,
        db: AsyncSession,
        swiper_id: UUID,
        limit: int = 100
    ) -> list[Swipe]:
        """
        Get a user's swipe history, most recent first.

        Args:
            db: Active database session
            swiper_id: UUID of the swiping user
            limit: Maximum number of swipes to return
        """
        try:
            stmt = (
                select(Swipe)
                .where(Swipe.swiper_id == swiper_id)
                .order_by(desc(Swipe.updated_at))
                .limit(limit)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching swipe history for user {swiper_id}: {e}")
            raise
