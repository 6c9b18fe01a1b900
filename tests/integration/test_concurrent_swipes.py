"""
Both sides of a pair swiping at the same instant, each on its own session.

The SQLite run uses a file database so the two sessions hold separate
connections and interleave at every await. SQLite still serializes writers,
so set TEST_DATABASE_URL=postgresql+asyncpg://... to also run the race
against PostgreSQL's row locking.
"""

from __future__ import annotations

import asyncio
import os

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from swipematch.core.database import Base
from swipematch.core.hub import NotificationHub
from swipematch.models.user import UserRole
from swipematch.services.match_service import MatchService
from swipematch.services.notification_service import NotificationService
from tests.factories import JobFactory, ProfileFactory, RecordingSession, UserFactory

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "")

requires_postgres = pytest.mark.skipif(
    not TEST_DATABASE_URL.startswith("postgresql"),
    reason="needs TEST_DATABASE_URL pointing at PostgreSQL",
)

PAIRS = 20


@pytest_asyncio.fixture
async def sqlite_sessionmaker(tmp_path):
    import swipematch.models  # noqa: F401

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def pg_sessionmaker():
    import swipematch.models  # noqa: F401

    engine = create_async_engine(TEST_DATABASE_URL, pool_size=10)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


async def _seed_pair(maker):
    async with maker() as db:
        seeker = await UserFactory.create_async(db, role=UserRole.JOB_SEEKER)
        recruiter = await UserFactory.create_async(db, role=UserRole.RECRUITER)
        profile = await ProfileFactory.create_async(db, user_id=seeker.id)
        job = await JobFactory.create_async(db, recruiter_id=recruiter.id)
        await db.commit()
    return seeker, recruiter, profile, job


async def _race_pairs(maker, pairs: int) -> None:
    hub = NotificationHub()
    service = MatchService(notification_service=NotificationService(hub=hub, use_relay=False))

    async def seeker_swipe(seeker, job):
        async with maker() as db:
            return await service.swipe(db, seeker, job.id, "job", "interested")

    async def recruiter_swipe(recruiter, profile, job):
        async with maker() as db:
            return await service.swipe(db, recruiter, profile.id, "profile", "interested", job_id=job.id)

    for _ in range(pairs):
        seeker, recruiter, profile, job = await _seed_pair(maker)
        inboxes = [RecordingSession(seeker.id), RecordingSession(recruiter.id)]
        hub.register(seeker.id, inboxes[0])
        hub.register(recruiter.id, inboxes[1])

        results = await asyncio.gather(
            seeker_swipe(seeker, job),
            recruiter_swipe(recruiter, profile, job),
        )

        # The later of the two always sees the earlier swipe
        assert any(r.is_match for r in results)
        assert sum(len(inbox.of_type("match")) for inbox in inboxes) == 1

        async with maker() as db:
            for obj in (seeker, recruiter, job):
                merged = await db.merge(obj, load=True)
                await db.refresh(merged)
                counter = merged.match_count if obj is job else merged.total_matches
                assert counter == 1


async def test_simultaneous_swipes_match_exactly_once_on_sqlite(sqlite_sessionmaker):
    await _race_pairs(sqlite_sessionmaker, pairs=5)


@requires_postgres
async def test_simultaneous_swipes_match_exactly_once(pg_sessionmaker):
    await _race_pairs(pg_sessionmaker, PAIRS)
