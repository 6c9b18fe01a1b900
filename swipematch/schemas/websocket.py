"""
Wire envelope for the real-time channel.

Both directions carry ``{"type": <str>, "payload": <json>}``. Outbound event
types are owned by the core and its collaborators; inbound types are defined by
whoever supplies the session's message handler.
"""

from pydantic import BaseModel, Field, ValidationError
from typing import Any, Optional
from enum import Enum
import uuid


class EventType(str, Enum):
    MATCH = "match"
    MESSAGE = "message"
    STATUS_UPDATE = "status_update"
    INTERVIEW = "interview"
    INTERVIEW_UPDATE = "interview_update"
    INTERVIEW_RESULT = "interview_result"
    TYPING = "typing"


class ControlType(str, Enum):
    AUTHENTICATE = "authenticate"
    AUTHENTICATED = "authenticated"
    PING = "ping"
    PONG = "pong"
    ERROR = "error"


class InboundEnvelope(BaseModel):
    type: str = Field(min_length=1, max_length=64)
    payload: Any = None


class TypingPayload(BaseModel):
    match_id: uuid.UUID
    is_typing: bool = True


def make_event(event_type: str, payload: Optional[dict] = None) -> dict:
    """Build an outbound envelope."""
    if isinstance(event_type, Enum):
        event_type = event_type.value
    return {"type": event_type, "payload": payload or {}}


def decode_envelope(raw: str) -> Optional[InboundEnvelope]:
    """Decode one inbound frame; None if it is not a valid envelope."""
    try:
        return InboundEnvelope.model_validate_json(raw)
    except ValidationError:
        return None
