"""
Top-level pytest configuration.

Provides:
  - A test SQLite database (aiosqlite) with all tables created fresh per test.
  - A db_session fixture that rolls back each test in a transaction.
  - An async_client fixture wired to the FastAPI app with Redis replaced by
    fakeredis.
  - Seeded job seeker / recruiter / profile / job fixtures and their tokens.
  - A clean process-wide notification hub per test.
"""

from __future__ import annotations

import os
import uuid
from typing import AsyncGenerator

# ---------------------------------------------------------------------------
# Environment must be set BEFORE any swipematch module is imported so that
# pydantic-settings picks up the test values.
# ---------------------------------------------------------------------------
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("POSTGRES_DB", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-32c")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("HUB_RELAY_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

SQLITE_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# Per-test engine (SQLite in-memory, shared via StaticPool so every
# connection sees the same data).
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine():
    """Create the SQLite test engine and all tables."""
    # Import Base here (after env vars are set) to ensure models register.
    from swipematch.core.database import Base
    import swipematch.models  # noqa: F401

    test_engine = create_async_engine(
        SQLITE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


# ---------------------------------------------------------------------------
# Per-test DB session that rolls back after each test for isolation.
#
# Services call session.commit() after writes. Turning commit() into flush()
# keeps those writes visible inside the test while the outer transaction,
# rolled back at teardown, keeps them out of every other test.
# ---------------------------------------------------------------------------
class _NonCommittingSession(AsyncSession):
    """AsyncSession subclass where commit() becomes flush()."""

    async def commit(self) -> None:  # type: ignore[override]
        await self.flush()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a per-test database session that is fully rolled back on teardown."""
    async with engine.connect() as conn:
        await conn.begin()

        session = _NonCommittingSession(
            bind=conn,
            expire_on_commit=False,
        )

        try:
            yield session
        finally:
            await session.close()
            await conn.rollback()


# ---------------------------------------------------------------------------
# Redis: fakeredis so the identity cache and the hub relay work without a
# real Redis server.
# ---------------------------------------------------------------------------
@pytest.fixture
def fake_redis():
    import fakeredis
    import fakeredis.aioredis as fakeredis_async

    fake_server = fakeredis.FakeServer()
    return fakeredis_async.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture(autouse=True)
def mock_redis(monkeypatch, fake_redis):
    """Replace the Redis client factory with the in-process fakeredis instance."""
    async def _get_redis():
        return fake_redis

    monkeypatch.setattr("swipematch.core.cache.get_redis", _get_redis)
    return _get_redis


# ---------------------------------------------------------------------------
# Notification hub: the process-wide registry starts empty in every test.
# ---------------------------------------------------------------------------
@pytest.fixture
def hub():
    from swipematch.core.hub import notification_hub

    notification_hub._sessions.clear()
    yield notification_hub
    notification_hub._sessions.clear()


# ---------------------------------------------------------------------------
# Override FastAPI database dependency to use the test session.
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def async_client(db_session: AsyncSession, hub) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide an httpx AsyncClient backed by the FastAPI app.

    The app's get_db dependency is overridden to yield the test session so all
    requests in a test share the same transactional session.
    """
    from swipematch.core.database import get_db
    from swipematch.main import app

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seeded fixtures
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def job_seeker(db_session: AsyncSession):
    """Persisted job seeker."""
    from tests.factories import UserFactory
    from swipematch.models.user import UserRole

    return await UserFactory.create_async(
        db_session,
        email="seeker@example.com",
        full_name="Sam Seeker",
        role=UserRole.JOB_SEEKER,
    )


@pytest_asyncio.fixture
async def seeker_profile(db_session: AsyncSession, job_seeker):
    """Profile card of the job seeker."""
    from tests.factories import ProfileFactory

    return await ProfileFactory.create_async(db_session, user_id=job_seeker.id)


@pytest_asyncio.fixture
async def recruiter(db_session: AsyncSession):
    """Persisted recruiter."""
    from tests.factories import UserFactory
    from swipematch.models.user import UserRole

    return await UserFactory.create_async(
        db_session,
        email="recruiter@acme.example",
        full_name="Riley Recruiter",
        role=UserRole.RECRUITER,
        company_name="Acme Corp",
    )


@pytest_asyncio.fixture
async def job(db_session: AsyncSession, recruiter):
    """Open job owned by the recruiter."""
    from tests.factories import JobFactory

    return await JobFactory.create_async(
        db_session,
        recruiter_id=recruiter.id,
        title="Backend Engineer",
        company_name="Acme Corp",
    )


@pytest.fixture
def seeker_headers(job_seeker) -> dict[str, str]:
    """Authorization headers for the job seeker."""
    from swipematch.core.security import create_access_token
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(job_seeker.id)})}"}


@pytest.fixture
def recruiter_headers(recruiter) -> dict[str, str]:
    """Authorization headers for the recruiter."""
    from swipematch.core.security import create_access_token
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(recruiter.id)})}"}


@pytest.fixture
def unknown_id() -> uuid.UUID:
    return uuid.uuid4()
