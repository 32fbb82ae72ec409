# app/models/enrollment.py
import enum
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from .base import Base


class EnrollmentStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Enrollment(Base):
    __tablename__ = "enrollments"

    # Foreign Keys
    batch_id = Column(Uuid(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)

    # Enrollment Details
    student_name = Column(String(100))
    package_type = Column(String(50))
    sessions_total = Column(Integer, nullable=False, default=0)
    sessions_attended = Column(Integer, nullable=False, default=0)
    start_date = Column(DateTime, nullable=False)  # naive local wall-clock
    end_date = Column(DateTime)
    status = Column(String(20), default=EnrollmentStatus.ACTIVE.value, nullable=False, index=True)

    # Relationships
    batch = relationship("Batch", back_populates="enrollments")
    session_schedules = relationship("SessionSchedule", back_populates="enrollment", passive_deletes=True)

    @property
    def remaining_sessions(self) -> int:
        return max(0, (self.sessions_total or 0) - (self.sessions_attended or 0))

    def extend_end_date(self, sessions) -> None:
        """Move ``end_date`` to the latest of the given sessions if it is later."""
        dates = [s.scheduled_date for s in sessions]
        if self.end_date:
            dates.append(self.end_date)
        if dates:
            self.end_date = max(dates)
