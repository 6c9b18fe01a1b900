"""
Chat endpoints for matched parties.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from swipematch.core.database import get_db
from swipematch.api.deps import get_current_user
from swipematch.models.user import User
from swipematch.services.chat_service import ChatService
from swipematch.schemas.message import (
    ConversationListResponse, Message, MessageCreate, MessageListResponse, ReadReceipt
)

router = APIRouter()


@router.get("/conversations", response_model=ConversationListResponse)
async def get_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List the user's active conversations, most recent activity first."""
    service = ChatService()
    return await service.list_conversations(db, current_user.id)


@router.get("/{match_id}/messages", response_model=MessageListResponse)
async def get_messages(
    match_id: uuid.UUID,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the conversation of a match, oldest first."""
    service = ChatService()
    return await service.list_messages(db, match_id, current_user.id, page=page, limit=limit)


@router.post("/{match_id}/messages", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_message(
    match_id: uuid.UUID,
    message_data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Send a message to the other participant of an active match."""
    service = ChatService()
    return await service.send_message(db, match_id, current_user.id, message_data.content)


@router.put("/{match_id}/read", response_model=ReadReceipt)
async def mark_read(
    match_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark the other participant's messages as read."""
    service = ChatService()
    count = await service.mark_read(db, match_id, current_user.id)
    return {"match_id": match_id, "marked_read": count}
