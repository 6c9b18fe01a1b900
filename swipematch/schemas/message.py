from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import uuid


class MessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=2000)


class Message(BaseModel):
    id: uuid.UUID
    match_id: uuid.UUID
    sender_id: uuid.UUID
    type: str
    content: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MessageListResponse(BaseModel):
    items: List[Message]
    total: int
    has_more: bool


class ReadReceipt(BaseModel):
    match_id: uuid.UUID
    marked_read: int


class Conversation(BaseModel):
    match_id: uuid.UUID
    job_id: uuid.UUID
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    counterpart_id: uuid.UUID
    counterpart_name: Optional[str] = None
    application_status: str
    unread_count: int
    last_message: Optional[str] = None
    last_activity_at: Optional[datetime] = None


class ConversationListResponse(BaseModel):
    items: List[Conversation]
    total: int
