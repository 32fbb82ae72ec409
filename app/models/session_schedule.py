# app/models/session_schedule.py
import enum
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, Boolean, ForeignKey, Text, Index, Uuid
from sqlalchemy.orm import relationship
from .base import Base
from ..utils.day_time import is_pausable


class SessionStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    PAUSED = "paused"
    COMPLETED = "completed"
    MISSED = "missed"
    CANCELLED = "cancelled"


class PauseRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class SessionSchedule(Base):
    """One concrete dated session for one enrollment."""
    __tablename__ = "session_schedules"

    # Foreign Keys
    enrollment_id = Column(Uuid(as_uuid=True), ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False, index=True)
    batch_id = Column(Uuid(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)

    # Schedule
    session_number = Column(Integer, nullable=False)
    scheduled_date = Column(DateTime, nullable=False, index=True)  # date + start time
    scheduled_start_time = Column(String(5), nullable=False)  # "18:00"
    scheduled_end_time = Column(String(5), nullable=False)    # "19:30"
    status = Column(String(20), default=SessionStatus.SCHEDULED.value, nullable=False, index=True)

    # Pause tracking
    is_paused = Column(Boolean, default=False, nullable=False)
    paused_at = Column(DateTime)
    paused_reason = Column(Text)
    rescheduled_from = Column(DateTime)  # original scheduled_date if this is a replacement

    # Eligibility snapshot taken at creation time
    can_pause = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("ix_session_schedules_enrollment_number", "enrollment_id", "session_number"),
        Index("ix_session_schedules_batch_date", "batch_id", "scheduled_date"),
    )

    # Relationships
    enrollment = relationship("Enrollment", back_populates="session_schedules")

    def pausable_at(self, now: datetime, cutoff_hours: int = 2) -> bool:
        """Live eligibility; ``can_pause`` is only the creation-time snapshot."""
        return (
            self.status == SessionStatus.SCHEDULED.value
            and is_pausable(self.scheduled_date, now, cutoff_hours)
        )


class PauseRequest(Base):
    __tablename__ = "pause_requests"

    # Foreign Keys
    enrollment_id = Column(Uuid(as_uuid=True), ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False, index=True)
    # Kept when occurrences are regenerated so the quota survives
    session_schedule_id = Column(Uuid(as_uuid=True), ForeignKey("session_schedules.id", ondelete="SET NULL"), index=True)

    # Request Details
    requested_at = Column(DateTime, nullable=False)
    session_date = Column(DateTime, nullable=False, index=True)
    reason = Column(Text)
    status = Column(String(20), default=PauseRequestStatus.APPROVED.value, nullable=False, index=True)
    pauses_used = Column(Integer, nullable=False)

    # Outcome
    rescheduled_to_date = Column(DateTime)
    processed_at = Column(DateTime)
