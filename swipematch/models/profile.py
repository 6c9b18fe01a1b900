from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from swipematch.core.database import Base


class JobSeekerProfile(Base):
    """
    The card recruiters swipe on.

    Its id is a separate namespace from the owning user's id, which is why the
    match engine resolves profile → job seeker before keying a match.
    """
    __tablename__ = "job_seeker_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)
    headline = Column(String(255))
    summary = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User")

    def __repr__(self):
        return f"<JobSeekerProfile(id={self.id}, user_id={self.user_id})>"
