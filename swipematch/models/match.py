from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
import enum
from swipematch.core.database import Base


class MatchStatus(str, enum.Enum):
    PENDING = "pending"      # One side expressed interest
    MATCHED = "matched"      # Both sides expressed interest
    UNMATCHED = "unmatched"  # Either side left; terminal


class ApplicationStatus(str, enum.Enum):
    ACTIVE = "active"
    REVIEWING = "reviewing"
    INTERVIEW = "interview"
    OFFERED = "offered"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    HIRED = "hired"


class Match(Base):
    __tablename__ = "matches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    job_id = Column(UUID(as_uuid=True), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    job_seeker_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recruiter_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=MatchStatus.PENDING.value, index=True)
    application_status = Column(String(20), nullable=False, default=ApplicationStatus.ACTIVE.value)

    # Each side's swipe is stamped independently; matched_at is written once
    job_seeker_swiped_at = Column(DateTime(timezone=True), nullable=True)
    recruiter_swiped_at = Column(DateTime(timezone=True), nullable=True)
    matched_at = Column(DateTime(timezone=True), nullable=True)

    # Inbound unread counters, one per side
    job_seeker_unread_count = Column(Integer, nullable=False, default=0, server_default="0")
    recruiter_unread_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_activity_at = Column(DateTime(timezone=True), nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    job = relationship("Job")
    job_seeker = relationship("User", foreign_keys=[job_seeker_id])
    recruiter = relationship("User", foreign_keys=[recruiter_id])

    # At most one match row per (job, job seeker) pair
    __table_args__ = (
        UniqueConstraint("job_id", "job_seeker_id", name="unique_job_seeker_match"),
        CheckConstraint("status IN ('pending', 'matched', 'unmatched')", name="check_match_status"),
    )

    def counterpart_of(self, user_id):
        """Return the other participant's id, or None if ``user_id`` is not a participant."""
        if user_id == self.job_seeker_id:
            return self.recruiter_id
        if user_id == self.recruiter_id:
            return self.job_seeker_id
        return None

    def __repr__(self):
        return f"<Match(id={self.id}, job_id={self.job_id}, job_seeker_id={self.job_seeker_id}, status={self.status})>"
