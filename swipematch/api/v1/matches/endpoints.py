"""
API endpoints for matches.

These reads are also how a reconnecting client catches up: the real-time
channel never replays events it missed.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from swipematch.core.database import get_db
from swipematch.api.deps import get_current_user, get_recruiter
from swipematch.models.user import User
from swipematch.services.match_service import MatchService
from swipematch.schemas.match import MatchSummary, MatchListResponse, MatchStatusUpdate, UnmatchResponse

router = APIRouter()


@router.get("", response_model=MatchListResponse)
async def list_matches(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the current user's matches, most recent activity first."""
    service = MatchService()
    return await service.list_matches(db, current_user, page=page, limit=limit)


@router.get("/{match_id}", response_model=MatchSummary)
async def get_match(
    match_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = MatchService()
    return await service.get_match(db, match_id, current_user)


@router.put("/{match_id}/status", response_model=MatchSummary)
async def update_match_status(
    match_id: uuid.UUID,
    update: MatchStatusUpdate,
    current_user: User = Depends(get_recruiter),
    db: AsyncSession = Depends(get_db)
):
    """
    Update the application status of a matched candidate.

    Recruiters only. The job seeker receives a status_update event and a
    status message in the chat.
    """
    service = MatchService()
    return await service.update_application_status(db, match_id, current_user, update.application_status)


@router.delete("/{match_id}", response_model=UnmatchResponse)
async def unmatch(
    match_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Unmatch. Either participant may close a pending or matched match; it cannot be reopened."""
    service = MatchService()
    match = await service.unmatch(db, match_id, current_user.id)
    return {"message": "Match closed", "match_id": match.id}
