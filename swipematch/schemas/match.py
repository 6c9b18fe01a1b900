from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import datetime
import uuid


ApplicationStatusValue = Literal['active', 'reviewing', 'interview', 'offered', 'rejected', 'withdrawn', 'hired']


class MatchSummary(BaseModel):
    """A match as seen by one of its two participants"""
    id: uuid.UUID
    job_id: uuid.UUID
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    job_seeker_id: uuid.UUID
    recruiter_id: uuid.UUID
    counterpart_id: uuid.UUID
    counterpart_name: Optional[str] = None
    status: str
    application_status: str
    matched_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None
    unread_count: int = 0  # The viewer's own inbound unread counter
    created_at: Optional[datetime] = None


class MatchListResponse(BaseModel):
    items: List[MatchSummary]
    total: int
    page: int
    limit: int
    has_more: bool


class MatchStatusUpdate(BaseModel):
    application_status: ApplicationStatusValue


class UnmatchResponse(BaseModel):
    message: str
    match_id: uuid.UUID
