from .notification_service import NotificationService
from .match_service import MatchService
from .chat_service import ChatService

__all__ = [
    "NotificationService",
    "MatchService",
    "ChatService"
]
