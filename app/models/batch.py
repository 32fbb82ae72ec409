# app/models/batch.py
from sqlalchemy import Column, String, Integer, Boolean, JSON
from sqlalchemy.orm import relationship
from .base import Base


class Batch(Base):
    """Coaching group with a fixed weekly meeting template.

    ``schedule`` is a list of ``{"day": "Monday", "startTime": "18:00",
    "endTime": "19:30"}`` entries. Entry order is significant: session
    generation walks the entries in the order they are stored.
    """
    __tablename__ = "batches"

    name = Column(String(100), nullable=False)
    sport = Column(String(50))
    coach_name = Column(String(100))
    max_capacity = Column(Integer, default=20, nullable=False)
    current_enrollments = Column(Integer, default=0, nullable=False)

    schedule = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    enrollments = relationship("Enrollment", back_populates="batch")
