"""
Swipe endpoints.

Job seekers swipe jobs, recruiters swipe job seeker profiles; both go through
the same entry point, which records the swipe and reports whether it
completed a match.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.core.database import get_db
from swipematch.api.deps import get_current_user
from swipematch.models.user import User
from swipematch.services.match_service import MatchService
from swipematch.schemas.swipe import SwipeCreate, SwipeResult, SwipeHistoryResponse

router = APIRouter()


@router.post("", response_model=SwipeResult)
async def create_swipe(
    swipe_data: SwipeCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a swipe.

    A qualifying swipe (interested or super_interested) forms a match when
    the other side already swiped back; the other side is notified in real
    time. Re-swiping the same card overwrites the previous direction.
    """
    service = MatchService()
    return await service.swipe(
        db,
        current_user,
        swipe_data.target_id,
        swipe_data.category,
        swipe_data.direction,
        job_id=swipe_data.job_id,
    )


@router.get("/history", response_model=SwipeHistoryResponse)
async def get_swipe_history(
    limit: int = Query(100, ge=1, le=500, description="Maximum number of swipes"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the current user's swipes, most recent first."""
    service = MatchService()
    swipes = await service.list_swipes(db, current_user, limit=limit)
    return {"items": swipes, "total": len(swipes)}
