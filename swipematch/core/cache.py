import json
import logging
import uuid
from datetime import datetime
from typing import Optional

from redis.asyncio import Redis, ConnectionPool

from swipematch.core.config import settings

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None


# ── Connection pool ───────────────────────────────────────────────────────────

async def get_redis_pool() -> ConnectionPool:
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_pool_size,
            decode_responses=True,
        )
        logger.info("Redis connection pool created: %s", settings.redis_url)
    return _pool


async def get_redis() -> Redis:
    pool = await get_redis_pool()
    return Redis(connection_pool=pool)


async def close_redis_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.aclose()
        _pool = None
        logger.info("Redis connection pool closed")


# ── Serialization helpers ─────────────────────────────────────────────────────

def _serialize_user_model(user) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role.value if hasattr(user.role, "value") else user.role,
        "company_name": user.company_name,
        "is_active": bool(user.is_active),
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def _deserialize_user_model(data: dict):
    from swipematch.models.user import User, UserRole

    user = User()
    user.id = uuid.UUID(data["id"])
    user.email = data.get("email")
    user.full_name = data.get("full_name")
    user.role = UserRole(data["role"]) if data.get("role") else None
    user.company_name = data.get("company_name")
    user.is_active = data.get("is_active", True)
    ca = data.get("created_at")
    user.created_at = datetime.fromisoformat(ca) if ca else None
    return user


# ── Identity cache ────────────────────────────────────────────────────────────
#
# Only identity fields are cached. Aggregate counters (total_swipes,
# total_matches) change on every swipe and are always read from the database.

async def get_cached_user(user_id: str):
    """Return a detached User carrying identity fields, or None on miss/error."""
    try:
        r = await get_redis()
        raw = await r.get(f"identity:{user_id}")
        if raw:
            return _deserialize_user_model(json.loads(raw))
    except Exception:
        logger.warning("Identity cache read failed for %s", user_id, exc_info=True)
    return None


async def set_cached_user(user_id: str, user) -> None:
    """Serialize and store a User's identity fields in cache."""
    try:
        r = await get_redis()
        await r.setex(
            f"identity:{user_id}",
            settings.identity_cache_ttl,
            json.dumps(_serialize_user_model(user)),
        )
    except Exception:
        logger.warning("Identity cache write failed for %s", user_id, exc_info=True)

