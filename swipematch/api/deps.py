from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Callable
from swipematch.core.database import get_db
from swipematch.core.security import verify_token
from swipematch.core.cache import get_cached_user, set_cached_user
from swipematch.models.user import User, UserRole
import uuid

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Resolve the bearer token to the calling user.

    The active check runs against the cached identity when there is one, so a
    deactivation recorded in the database takes effect once the
    ``identity:{user_id}`` entry expires (``IDENTITY_CACHE_TTL`` seconds) or is
    deleted by whoever deactivates the account. The returned user carries
    identity fields only; read counters from the database.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    # Verify token
    user_id = verify_token(credentials.credentials, "access")
    if user_id is None:
        raise credentials_exception

    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        raise credentials_exception

    # Check cache first
    user = await get_cached_user(user_id)
    if user is None:
        # Cache miss: load from database
        result = await db.execute(select(User).where(User.id == user_uuid))
        user = result.scalar_one_or_none()
        if user is None:
            raise credentials_exception
        await set_cached_user(user_id, user)

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )
    return user


def require_roles(allowed_roles: List[UserRole]) -> Callable:
    """Dependency factory for role-based access control"""
    def role_dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[role.value for role in allowed_roles]}"
            )
        return current_user
    return role_dependency


# Common role dependencies
get_job_seeker = require_roles([UserRole.JOB_SEEKER])
get_recruiter = require_roles([UserRole.RECRUITER])
