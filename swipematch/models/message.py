from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
import enum
from swipematch.core.database import Base


class MessageType(str, enum.Enum):
    TEXT = "text"
    SYSTEM = "system"
    STATUS = "status"  # Application status change


class Message(Base):
    __tablename__ = "messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    match_id = Column(UUID(as_uuid=True), ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(20), nullable=False, default=MessageType.TEXT.value)
    content = Column(Text, nullable=False)

    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    sender = relationship("User")

    def __repr__(self):
        return f"<Message(id={self.id}, match_id={self.match_id}, sender_id={self.sender_id}, type={self.type})>"
