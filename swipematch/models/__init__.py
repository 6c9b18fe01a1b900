from .user import User, UserRole
from .profile import JobSeekerProfile
from .job import Job
from .swipe import Swipe, SwipeCategory, SwipeDirection
from .match import Match, MatchStatus, ApplicationStatus
from .message import Message, MessageType

__all__ = [
    "User", "UserRole", "JobSeekerProfile", "Job",
    "Swipe", "SwipeCategory", "SwipeDirection",
    "Match", "MatchStatus", "ApplicationStatus",
    "Message", "MessageType",
]
