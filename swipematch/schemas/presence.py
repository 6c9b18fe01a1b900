from pydantic import BaseModel
import uuid


class Presence(BaseModel):
    user_id: uuid.UUID
    is_online: bool
