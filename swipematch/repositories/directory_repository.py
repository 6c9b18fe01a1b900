"""
Counterpart resolution against the profile and job directories.

Job seekers swipe jobs and recruiters swipe profiles, so the match engine
translates job → owning recruiter and profile → owning job seeker through
these lookups. The rows themselves are owned by the listing and profile
services.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from swipematch.models.job import Job
from swipematch.models.profile import JobSeekerProfile
from swipematch.models.user import User

logger = logging.getLogger(__name__)


class DirectoryRepository:
    """Read-only lookups over users, job seeker profiles and jobs."""

    async def get_user(self, db: AsyncSession, user_id: UUID) -> Optional[User]:
        try:
            # Counters are bumped with bulk updates, so refresh any identity-mapped copy
            result = await db.execute(
                select(User).where(User.id == user_id).execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching user {user_id}: {e}")
            raise

    async def get_active_job(self, db: AsyncSession, job_id: UUID) -> Optional[Job]:
        """Return the job if it exists and is still open; its recruiter_id is the owner."""
        try:
            result = await db.execute(
                select(Job).where(Job.id == job_id, Job.is_active == True)  # noqa: E712
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching job {job_id}: {e}")
            raise

    async def get_profile(self, db: AsyncSession, profile_id: UUID) -> Optional[JobSeekerProfile]:
        """Return the profile card; its user_id is the owning job seeker."""
        try:
            result = await db.execute(
                select(JobSeekerProfile).where(JobSeekerProfile.id == profile_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching profile {profile_id}: {e}")
            raise

    async def get_profile_for_user(self, db: AsyncSession, user_id: UUID) -> Optional[JobSeekerProfile]:
        try:
            result = await db.execute(
                select(JobSeekerProfile).where(JobSeekerProfile.user_id == user_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching profile for user {user_id}: {e}")
            raise
