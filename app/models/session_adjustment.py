# app/models/session_adjustment.py
import enum
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Uuid
from .base import Base


class AdjustmentType(str, enum.Enum):
    ADD_SESSIONS = "add_sessions"
    REMOVE_SESSIONS = "remove_sessions"


class SessionAdjustment(Base):
    """Audit trail for admin changes to an enrollment's session count."""
    __tablename__ = "session_adjustments"

    enrollment_id = Column(Uuid(as_uuid=True), ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False, index=True)

    adjustment_type = Column(String(20), nullable=False, index=True)
    sessions_adjusted = Column(Integer, nullable=False)  # Positive for add, negative for remove
    previous_sessions_total = Column(Integer, nullable=False)
    new_sessions_total = Column(Integer, nullable=False)

    reason = Column(Text, nullable=False)
    adjusted_by_name = Column(String(100), default="System Admin", nullable=False)
    adjusted_at = Column(DateTime, nullable=False, index=True)
    notes = Column(Text)
