from .match import MatchSummary, MatchListResponse, MatchStatusUpdate, UnmatchResponse
from .swipe import Swipe, SwipeCreate, SwipeResult, SwipeHistoryResponse
from .message import Message, MessageCreate, MessageListResponse, ReadReceipt, Conversation, ConversationListResponse
from .presence import Presence
from .user import UserStats
from .websocket import EventType, ControlType, InboundEnvelope, TypingPayload

__all__ = [
    "MatchSummary", "MatchListResponse", "MatchStatusUpdate", "UnmatchResponse",
    "Swipe", "SwipeCreate", "SwipeResult", "SwipeHistoryResponse",
    "Message", "MessageCreate", "MessageListResponse", "ReadReceipt",
    "Conversation", "ConversationListResponse",
    "Presence", "UserStats",
    "EventType", "ControlType", "InboundEnvelope", "TypingPayload",
]
