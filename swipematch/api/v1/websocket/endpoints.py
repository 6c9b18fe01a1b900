"""
WebSocket API endpoint for real-time events.

This module performs the authenticated upgrade and hands the socket to a
``ConnectionSession``, which owns it for the rest of its life.
"""

from fastapi import APIRouter, WebSocket, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import logging
import json
from typing import Optional
from uuid import UUID
import asyncio

from swipematch.core.config import settings
from swipematch.core.database import AsyncSessionLocal
from swipematch.core.hub import notification_hub
from swipematch.core.security import decode_token
from swipematch.core.session import ConnectionSession
from swipematch.models.user import User, UserRole
from swipematch.schemas.websocket import ControlType, EventType, InboundEnvelope, TypingPayload
from swipematch.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter()


async def authenticate_websocket(token: str, db: AsyncSession) -> Optional[User]:
    """
    Authenticate a WebSocket connection using JWT token.

    Args:
        token: JWT access token string
        db: Database session (should be short-lived)

    Returns:
        The active user the token was issued to, None otherwise

    Example:
        async with AsyncSessionLocal() as db:
            user = await authenticate_websocket(token, db)
    """
    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        logger.debug("WebSocket auth failed: Invalid token")
        return None

    subject = payload.get("sub")
    try:
        user_uuid = UUID(str(subject))
    except (ValueError, TypeError):
        logger.debug(f"WebSocket auth failed: Invalid subject: {subject}")
        return None

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        logger.debug(f"WebSocket auth failed: No active user {user_uuid}")
        return None
    return user


async def handle_client_message(session: ConnectionSession, envelope: InboundEnvelope) -> None:
    """Default inbound handler: liveness replies and typing indicators."""
    if envelope.type == ControlType.PONG.value:
        return

    if envelope.type == EventType.TYPING.value:
        try:
            typing = TypingPayload.model_validate(envelope.payload or {})
        except ValidationError:
            session.enqueue({
                "type": ControlType.ERROR.value,
                "code": "INVALID_PAYLOAD",
                "message": "typing requires a match_id",
            })
            return

        async with AsyncSessionLocal() as db:
            await ChatService().relay_typing(db, typing.match_id, session.user_id, typing.is_typing)
        return

    logger.info(f"Ignoring unsupported WebSocket message type '{envelope.type}' from user {session.user_id}")


async def _reject(websocket: WebSocket, message: str) -> None:
    await websocket.send_json({"type": ControlType.ERROR.value, "message": message})
    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time events.

    Protocol:
    1. Client connects
    2. Client sends {"type": "authenticate", "token": "<jwt>"}
    3. Server responds with authenticated message or error + close 1008
    4. Server sends periodic {"type": "ping"}; client may answer "pong"
    5. Server pushes {"type": ..., "payload": ...} events as they occur

    Note:
    This endpoint does NOT use Depends(get_db): a dependency session would
    hold a pooled connection for the entire socket lifetime. A short-lived
    session is opened for authentication and for each inbound message that
    needs storage.
    """
    await websocket.accept()

    try:
        message = await asyncio.wait_for(websocket.receive(), timeout=settings.ws_auth_timeout)
    except asyncio.TimeoutError:
        await _reject(websocket, "Authentication timeout")
        return

    if message["type"] == "websocket.disconnect":
        logger.debug("WebSocket closed before authenticating")
        return

    # Text or binary frame, decoded like the session read loop does
    raw = message.get("text")
    if raw is None:
        raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")

    try:
        auth_message = json.loads(raw)
    except ValueError:
        auth_message = None

    if not isinstance(auth_message, dict) or auth_message.get("type") != ControlType.AUTHENTICATE.value:
        await _reject(websocket, "First message must be authentication")
        return

    token = auth_message.get("token")
    if not token:
        await _reject(websocket, "Token is required")
        return

    async with AsyncSessionLocal() as db:
        user = await authenticate_websocket(token, db)

    if not user:
        await _reject(websocket, "Invalid or expired token")
        return

    role = UserRole(user.role).value
    session = ConnectionSession(websocket, user.id, role, notification_hub)
    notification_hub.register(user.id, session)

    try:
        await websocket.send_json({
            "type": ControlType.AUTHENTICATED.value,
            "user_id": str(user.id),
            "role": role,
            "message": "Successfully authenticated"
        })
    except Exception as e:
        logger.warning(f"WebSocket closed during handshake: user={user.id}: {e}")
        notification_hub.deregister(user.id, session)
        return
    logger.info(f"WebSocket authenticated: user={user.id} role={role}")

    await session.run(handle_client_message)
    logger.info(f"WebSocket closed: user={user.id} reason={session.close_reason}")
