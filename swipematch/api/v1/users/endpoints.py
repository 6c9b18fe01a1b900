from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from swipematch.api.deps import get_current_user
from swipematch.core.database import get_db
from swipematch.core.hub import notification_hub
from swipematch.models.user import User
from swipematch.schemas.presence import Presence
from swipematch.schemas.user import UserStats
from swipematch.services.match_service import MatchService

router = APIRouter()


@router.get("/me/stats", response_model=UserStats)
async def get_my_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Swipe and match counters of the current user."""
    service = MatchService()
    return await service.get_user_stats(db, current_user)


@router.get("/{user_id}/presence", response_model=Presence)
async def get_presence(
    user_id: uuid.UUID,
    current_user: User = Depends(get_current_user)
):
    """Whether the user holds a live real-time session on this process."""
    return {"user_id": user_id, "is_online": notification_hub.is_online(user_id)}
