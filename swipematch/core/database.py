from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from .config import settings

# Create async engine with asyncpg
engine = create_async_engine(
    settings.database_url,
    echo=settings.app_env == "dev",
    future=True,
    pool_pre_ping=True,
)

# AsyncSessionLocal class for creating async database sessions
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Base class for SQLAlchemy models
Base = declarative_base()


# Dependency to get async DB session
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def upsert_statement(db: AsyncSession, model):
    """
    Return an INSERT construct for ``model`` that supports ``on_conflict_do_*``.

    Upserts are the storage-level atomic primitive for the swipe ledger and the
    match table. PostgreSQL runs in production; SQLite backs the test suite.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    raise NotImplementedError(f"Upserts are not supported on the '{dialect}' dialect")
