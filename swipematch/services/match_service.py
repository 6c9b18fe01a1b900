"""
Match service: swipe evaluation and the match lifecycle.

A match exists per (job, job seeker) pair and moves through
``pending → matched``, with ``unmatched`` reachable from either state and
terminal. Job seekers swipe jobs and recruiters swipe profiles, so every swipe
is first translated to its pair through the job and profile directories.

The ledger write is committed on its own before the counterpart lookup. Two
sides swiping each other at the same instant therefore cannot both miss the
other's swipe; at worst both see it, and the conditional upsert in
``MatchRepository.transition_to_matched`` lets exactly one of them perform the
transition, bump the counters and notify.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
from datetime import datetime, timezone
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
import math

from swipematch.models.job import Job
from swipematch.models.match import Match, MatchStatus, ApplicationStatus
from swipematch.models.message import MessageType
from swipematch.models.swipe import Swipe, SwipeCategory, SwipeDirection
from swipematch.models.user import User, UserRole
from swipematch.repositories.directory_repository import DirectoryRepository
from swipematch.repositories.match_repository import MatchRepository
from swipematch.repositories.message_repository import MessageRepository
from swipematch.repositories.swipe_repository import SwipeRepository
from swipematch.schemas.match import MatchSummary
from swipematch.schemas.swipe import SwipeResult
from swipematch.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

ROLE_CATEGORY = {
    UserRole.JOB_SEEKER: SwipeCategory.JOB,
    UserRole.RECRUITER: SwipeCategory.PROFILE,
}

RETRY_AFTER_SECONDS = "1"


def storage_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Storage temporarily unavailable, please retry",
        headers={"Retry-After": RETRY_AFTER_SECONDS},
    )


def build_match_summary(
    match: Match,
    viewer_id: UUID,
    job: Optional[Job] = None,
    counterpart: Optional[User] = None
) -> MatchSummary:
    """
    Describe ``match`` from the point of view of ``viewer_id``.

    ``job`` and ``counterpart`` default to the match's loaded relationships.
    """
    is_job_seeker = viewer_id == match.job_seeker_id
    job = job or match.job
    if counterpart is None:
        counterpart = match.recruiter if is_job_seeker else match.job_seeker

    return MatchSummary(
        id=match.id,
        job_id=match.job_id,
        job_title=job.title if job else None,
        company_name=job.company_name if job else None,
        job_seeker_id=match.job_seeker_id,
        recruiter_id=match.recruiter_id,
        counterpart_id=match.recruiter_id if is_job_seeker else match.job_seeker_id,
        counterpart_name=counterpart.full_name if counterpart else None,
        status=match.status,
        application_status=match.application_status,
        matched_at=match.matched_at,
        last_activity_at=match.last_activity_at,
        unread_count=(match.job_seeker_unread_count if is_job_seeker else match.recruiter_unread_count) or 0,
        created_at=match.created_at,
    )


class MatchService:
    """
    Service for swipes and matches.

    This service coordinates the swipe ledger, the match table and the
    directories, and implements:
    - Swipe validation and counterpart resolution
    - The exactly-once pending → matched transition
    - Unmatching and recruiter application status updates
    - Match reads for polling clients
    """

    def __init__(
        self,
        swipe_repo: Optional[SwipeRepository] = None,
        match_repo: Optional[MatchRepository] = None,
        directory_repo: Optional[DirectoryRepository] = None,
        message_repo: Optional[MessageRepository] = None,
        notification_service: Optional[NotificationService] = None
    ):
        """
        Initialize service with repositories.

        Args:
            swipe_repo: SwipeRepository instance (creates new if None)
            match_repo: MatchRepository instance (creates new if None)
            directory_repo: DirectoryRepository instance (creates new if None)
            message_repo: MessageRepository instance (creates new if None)
            notification_service: NotificationService instance (creates new if None)
        """
        self.swipe_repo = swipe_repo or SwipeRepository()
        self.match_repo = match_repo or MatchRepository()
        self.directory_repo = directory_repo or DirectoryRepository()
        self.message_repo = message_repo or MessageRepository()
        self.notification_service = notification_service or NotificationService()

    # ── Validation ───────────────────────────────────────────────────────────

    def _parse_swipe(
        self,
        swiper: User,
        category: Optional[str],
        direction: str
    ) -> tuple[SwipeCategory, SwipeDirection]:
        role = UserRole(swiper.role)
        expected = ROLE_CATEGORY[role]

        try:
            parsed_direction = SwipeDirection(direction)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid direction '{direction}'. Must be one of: reject, interested, super_interested"
            )

        if category is None:
            return expected, parsed_direction

        try:
            parsed_category = SwipeCategory(category)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid category '{category}'. Must be 'job' or 'profile'"
            )

        if parsed_category is not expected:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"A {role.value} can only swipe on '{expected.value}' cards"
            )
        return parsed_category, parsed_direction

    async def _get_active_job(self, db: AsyncSession, job_id: UUID) -> Job:
        job = await self.directory_repo.get_active_job(db, job_id)
        if not job:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Job {job_id} not found"
            )
        return job

    # ── Swipe ────────────────────────────────────────────────────────────────

    async def swipe(
        self,
        db: AsyncSession,
        swiper: User,
        target_id: UUID,
        category: Optional[str],
        direction: str,
        job_id: Optional[UUID] = None
    ) -> SwipeResult:
        """
        Record a swipe and form the match if the other side already swiped back.

        Args:
            db: Active database session
            swiper: Authenticated user performing the swipe
            target_id: Job ID (job seekers) or profile ID (recruiters)
            category: 'job' or 'profile'; inferred from the role when None
            direction: reject, interested or super_interested
            job_id: Recruiters only, the job this profile swipe is for

        Returns:
            SwipeResult with is_match and, on a match, the match summary

        Raises:
            HTTPException: 400 invalid input, 403 foreign job, 404 unknown
                target, 409 pair already unmatched, 503 storage fault

        Example:
            result = await service.swipe(db, user, job_id, "job", "interested")
            if result.is_match:
                print(f"Matched on {result.match.job_title}")
        """
        parsed_category, parsed_direction = self._parse_swipe(swiper, category, direction)

        try:
            # Resolve the pair this swipe belongs to
            job: Optional[Job] = None
            profile_id: Optional[UUID] = None
            if parsed_category is SwipeCategory.JOB:
                job = await self._get_active_job(db, target_id)
                job_seeker_id = swiper.id
                recruiter_id = job.recruiter_id
                profile = await self.directory_repo.get_profile_for_user(db, swiper.id)
                profile_id = profile.id if profile else None
            else:
                profile = await self.directory_repo.get_profile(db, target_id)
                if not profile:
                    raise HTTPException(
                        status_code=status.HTTP_404_NOT_FOUND,
                        detail=f"Profile {target_id} not found"
                    )
                job_seeker_id = profile.user_id
                recruiter_id = swiper.id
                profile_id = profile.id
                if job_id is not None:
                    job = await self._get_active_job(db, job_id)
                    if job.recruiter_id != swiper.id:
                        raise HTTPException(
                            status_code=status.HTTP_403_FORBIDDEN,
                            detail="Access denied. Job does not belong to you"
                        )

            # An unmatched pair is closed for good
            if job is not None:
                existing = await self.match_repo.get_by_pair(db, job.id, job_seeker_id)
                if existing and existing.status == MatchStatus.UNMATCHED.value:
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail="This match was closed and cannot be reopened"
                    )

            # Ledger write, committed before looking for the other side
            swipe = await self.swipe_repo.record_swipe(
                db, swiper.id, target_id, parsed_category, parsed_direction
            )
            await self.swipe_repo.increment_swipe_count(db, swiper.id)
            await db.commit()

            logger.info(
                f"User {swiper.id} swiped {parsed_direction.value} on {parsed_category.value} {target_id}"
            )

            if not parsed_direction.is_qualifying:
                return SwipeResult(is_match=False)

            reciprocal: Optional[Swipe] = None
            if parsed_category is SwipeCategory.JOB:
                if profile_id is not None:
                    reciprocal = await self.swipe_repo.get_qualifying_swipe(
                        db, recruiter_id, profile_id, SwipeCategory.PROFILE
                    )
            elif job is not None:
                reciprocal = await self.swipe_repo.get_qualifying_swipe(
                    db, job_seeker_id, job.id, SwipeCategory.JOB
                )
            else:
                found = await self.swipe_repo.find_qualifying_job_swipe(db, job_seeker_id, recruiter_id)
                if found:
                    reciprocal, job = found

            if reciprocal is None:
                if job is None:
                    # No job named and none of the recruiter's jobs swiped yet
                    return SwipeResult(is_match=False)

                stamps = self._side_stamps(parsed_category, swipe.updated_at)
                await self.match_repo.upsert_pending(db, job.id, job_seeker_id, recruiter_id, **stamps)
                await db.commit()
                return SwipeResult(is_match=False)

            return await self._complete_match(
                db, swiper, job, job_seeker_id, recruiter_id, parsed_category, swipe, reciprocal
            )

        except HTTPException:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Storage error processing swipe by user {swiper.id} on {target_id}: {e}")
            await db.rollback()
            raise storage_unavailable()

    @staticmethod
    def _side_stamps(category: SwipeCategory, swiped_at: datetime) -> dict:
        if category is SwipeCategory.JOB:
            return {"job_seeker_swiped_at": swiped_at}
        return {"recruiter_swiped_at": swiped_at}

    async def _complete_match(
        self,
        db: AsyncSession,
        swiper: User,
        job: Job,
        job_seeker_id: UUID,
        recruiter_id: UUID,
        category: SwipeCategory,
        swipe: Swipe,
        reciprocal: Swipe
    ) -> SwipeResult:
        counterpart_id = recruiter_id if category is SwipeCategory.JOB else job_seeker_id
        counterpart = await self.directory_repo.get_user(db, counterpart_id)

        if category is SwipeCategory.JOB:
            job_seeker_swiped_at, recruiter_swiped_at = swipe.updated_at, reciprocal.updated_at
        else:
            job_seeker_swiped_at, recruiter_swiped_at = reciprocal.updated_at, swipe.updated_at

        match = await self.match_repo.transition_to_matched(
            db,
            job.id,
            job_seeker_id,
            recruiter_id,
            job_seeker_swiped_at=job_seeker_swiped_at,
            recruiter_swiped_at=recruiter_swiped_at,
            matched_at=datetime.now(timezone.utc),
        )

        if match is None:
            # Another writer got there first, or the pair was closed meanwhile
            current = await self.match_repo.get_by_pair(db, job.id, job_seeker_id)
            if current is not None and current.status == MatchStatus.MATCHED.value:
                return SwipeResult(
                    is_match=True,
                    match=build_match_summary(current, swiper.id, job=job, counterpart=counterpart),
                )
            if current is not None and current.status == MatchStatus.UNMATCHED.value:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="This match was closed and cannot be reopened"
                )
            logger.warning(f"Match transition for job {job.id} / seeker {job_seeker_id} found no row")
            return SwipeResult(is_match=False)

        await self.match_repo.increment_match_counters(db, job.id, [job_seeker_id, recruiter_id])
        await db.commit()

        logger.info(f"Match {match.id} formed: job {job.id}, seeker {job_seeker_id}, recruiter {recruiter_id}")

        # Only after commit: the other side hears about a match that exists
        await self.notification_service.notify_match(match, counterpart_id, job, swiper)

        return SwipeResult(
            is_match=True,
            match=build_match_summary(match, swiper.id, job=job, counterpart=counterpart),
        )

    # ── Lifecycle ────────────────────────────────────────────────────────────

    async def unmatch(
        self,
        db: AsyncSession,
        match_id: UUID,
        requester_id: UUID
    ) -> Match:
        """
        Close a pending or matched match for good.

        Raises:
            HTTPException: 404 if the requester has no live match with this ID
        """
        try:
            match = await self.match_repo.unmatch(db, match_id, requester_id)
            if not match:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Match {match_id} not found"
                )
            await db.commit()
        except HTTPException:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Storage error unmatching {match_id} for user {requester_id}: {e}")
            await db.rollback()
            raise storage_unavailable()

        logger.info(f"Match {match_id} unmatched by user {requester_id}")
        await self.notification_service.notify_status_update(match, match.counterpart_of(requester_id))
        return match

    async def update_application_status(
        self,
        db: AsyncSession,
        match_id: UUID,
        recruiter: User,
        application_status: str
    ) -> MatchSummary:
        """
        Move a matched candidate through the recruiter's pipeline.

        Writes a status message into the chat and notifies the job seeker.

        Raises:
            HTTPException: 400 unknown status, 404 no matched pair owned by
                the recruiter
        """
        try:
            new_status = ApplicationStatus(application_status)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid application status '{application_status}'"
            )

        try:
            updated = await self.match_repo.update_application_status(db, match_id, recruiter.id, new_status.value)
            if not updated:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Match {match_id} not found"
                )
            await self.message_repo.create(db, {
                "match_id": match_id,
                "sender_id": recruiter.id,
                "type": MessageType.STATUS.value,
                "content": f"Application status changed to {new_status.value}",
                "created_at": datetime.now(timezone.utc),
            })
            await self.match_repo.record_message_activity(
                db, match_id, recipient_is_job_seeker=True, at=datetime.now(timezone.utc)
            )
            await db.commit()
            match = await self.match_repo.get_for_participant(db, match_id, recruiter.id)
        except HTTPException:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Storage error updating application status of match {match_id}: {e}")
            await db.rollback()
            raise storage_unavailable()

        logger.info(f"Match {match_id} application status set to {new_status.value}")
        await self.notification_service.notify_status_update(match, match.job_seeker_id, new_status.value)
        return build_match_summary(match, recruiter.id)

    # ── Reads ────────────────────────────────────────────────────────────────

    async def list_matches(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        limit: int = 20
    ) -> dict:
        """
        Get the user's matched pairs, most recent activity first.

        Returns:
            Dictionary with items, total, page, limit, has_more
        """
        try:
            skip = (page - 1) * limit
            matches, total = await self.match_repo.list_for_user(db, user.id, skip=skip, limit=limit)
        except SQLAlchemyError as e:
            logger.error(f"Storage error listing matches for user {user.id}: {e}")
            raise storage_unavailable()

        pages = math.ceil(total / limit) if limit > 0 else 0
        return {
            "items": [build_match_summary(m, user.id) for m in matches],
            "total": total,
            "page": page,
            "limit": limit,
            "has_more": page < pages,
        }

    async def get_match(self, db: AsyncSession, match_id: UUID, user: User) -> MatchSummary:
        match = await self.get_match_for_participant(db, match_id, user.id)
        return build_match_summary(match, user.id)

    async def get_match_for_participant(self, db: AsyncSession, match_id: UUID, user_id: UUID) -> Match:
        """Load a match the user takes part in, or raise 404."""
        try:
            match = await self.match_repo.get_for_participant(db, match_id, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Storage error fetching match {match_id}: {e}")
            raise storage_unavailable()

        if not match:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Match {match_id} not found"
            )
        return match

    async def list_swipes(self, db: AsyncSession, user: User, limit: int = 100) -> list[Swipe]:
        try:
            return await self.swipe_repo.list_swipes(db, user.id, limit=limit)
        except SQLAlchemyError as e:
            logger.error(f"Storage error fetching swipe history for user {user.id}: {e}")
            raise storage_unavailable()

    async def get_user_stats(self, db: AsyncSession, user: User) -> dict:
        """
        Read the user's activity counters.

        The counters are read from storage rather than from ``user``, which may
        be a cached identity without them.
        """
        try:
            stored = await self.directory_repo.get_user(db, user.id)
            unread = await self.match_repo.count_unread_for_user(db, user.id)
        except SQLAlchemyError as e:
            logger.error(f"Storage error reading stats for user {user.id}: {e}")
            raise storage_unavailable()

        if not stored:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"User {user.id} not found"
            )
        return {
            "user_id": stored.id,
            "total_swipes": stored.total_swipes,
            "total_matches": stored.total_matches,
            "unread_messages": unread,
        }
