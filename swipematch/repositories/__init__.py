# Repositories package
from .base import BaseRepository
from .directory_repository import DirectoryRepository
from .swipe_repository import SwipeRepository
from .match_repository import MatchRepository
from .message_repository import MessageRepository

__all__ = [
    "BaseRepository",
    "DirectoryRepository",
    "SwipeRepository",
    "MatchRepository",
    "MessageRepository",
]
