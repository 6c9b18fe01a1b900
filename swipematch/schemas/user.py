from pydantic import BaseModel
import uuid


class UserStats(BaseModel):
    user_id: uuid.UUID
    total_swipes: int
    total_matches: int
    unread_messages: int
