from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import uuid
from swipematch.schemas.match import MatchSummary


class SwipeCreate(BaseModel):
    target_id: uuid.UUID  # Job ID for job seekers, profile ID for recruiters
    direction: str  # reject, interested or super_interested
    category: Optional[str] = None  # Inferred from the swiper's role when omitted
    job_id: Optional[uuid.UUID] = None  # Recruiters: the job this profile swipe is for


class Swipe(BaseModel):
    id: uuid.UUID
    swiper_id: uuid.UUID
    target_id: uuid.UUID
    category: str
    direction: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SwipeResult(BaseModel):
    """Outcome of a swipe: whether it completed a match, and the match if so"""
    is_match: bool
    match: Optional[MatchSummary] = None


class SwipeHistoryResponse(BaseModel):
    items: List[Swipe]
    total: int = Field(description="Number of swipes returned")
