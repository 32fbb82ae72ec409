# app/schemas/schedule_schemas.py
"""Pydantic schemas for session scheduling requests."""
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field, field_validator


class GenerateSchedulesRequest(BaseModel):
    enrollment_id: UUID
    batch_id: UUID
    sessions_total: int = Field(..., ge=0, description="Number of sessions purchased")
    start_date: datetime = Field(..., description="First day of the package (local time)")


class ExtendSchedulesRequest(BaseModel):
    enrollment_id: UUID
    batch_id: UUID
    additional_sessions: int = Field(..., gt=0)
    anchor_date: Optional[datetime] = Field(default=None, description="Do not schedule before this date")


class SessionStatusUpdate(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        allowed = {"completed", "missed", "cancelled"}
        if v not in allowed:
            raise ValueError(f"status must be one of {sorted(allowed)}")
        return v


class PauseRequestCreate(BaseModel):
    enrollment_id: UUID
    session_schedule_id: UUID
    reason: Optional[str] = Field(default=None, max_length=500)


class EnrollmentCreate(BaseModel):
    batch_id: UUID
    sessions_total: int = Field(..., gt=0)
    start_date: datetime
    student_name: Optional[str] = Field(default=None, max_length=100)
    package_type: Optional[str] = Field(default=None, max_length=50)


class AttendanceUpdate(BaseModel):
    increment: int = Field(..., description="+1 for an attended session, -1 to undo")

    @field_validator('increment')
    @classmethod
    def validate_increment(cls, v):
        if v == 0:
            raise ValueError('increment must not be zero')
        return v


class PackageUpgrade(BaseModel):
    additional_sessions: int = Field(..., gt=0)
    package_type: Optional[str] = Field(default=None, max_length=50)


class SessionAdjustmentRequest(BaseModel):
    sessions: int = Field(..., gt=0)
    reason: str = Field(..., min_length=1, max_length=500)
    adjusted_by_name: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class SessionScheduleIds(BaseModel):
    session_schedule_ids: List[str]
