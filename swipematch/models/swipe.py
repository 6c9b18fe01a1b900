from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
import uuid
import enum
from swipematch.core.database import Base


class SwipeCategory(str, enum.Enum):
    JOB = "job"          # Job seeker swiping a job card
    PROFILE = "profile"  # Recruiter swiping a job seeker profile card


class SwipeDirection(str, enum.Enum):
    REJECT = "reject"
    INTERESTED = "interested"
    SUPER_INTERESTED = "super_interested"

    @property
    def is_qualifying(self) -> bool:
        return self is not SwipeDirection.REJECT


QUALIFYING_DIRECTIONS = (SwipeDirection.INTERESTED.value, SwipeDirection.SUPER_INTERESTED.value)


class Swipe(Base):
    __tablename__ = "swipes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    swiper_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    target_id = Column(UUID(as_uuid=True), nullable=False, index=True)  # Job ID or profile ID, per category
    category = Column(String(10), nullable=False)
    direction = Column(String(20), nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())  # Last (re-)swipe

    # One live swipe per swiper-target-category triple
    __table_args__ = (
        UniqueConstraint("swiper_id", "target_id", "category", name="unique_swiper_target_category"),
        CheckConstraint("category IN ('job', 'profile')", name="check_swipe_category"),
        CheckConstraint("direction IN ('reject', 'interested', 'super_interested')", name="check_swipe_direction"),
    )

    def __repr__(self):
        return f"<Swipe(swiper_id={self.swiper_id}, target_id={self.target_id}, category={self.category}, direction={self.direction})>"
