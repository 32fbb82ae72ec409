# app/core/exceptions.py
"""Custom exceptions for the session scheduler."""
from fastapi import HTTPException
from typing import Any, Dict, Optional


class SchedulerException(HTTPException):
    """Base exception for the scheduler application."""
    def __init__(
        self,
        status_code: int,
        detail: Any,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


# Configuration errors

class BatchNotFound(SchedulerException):
    """Exception raised when the batch directory has no such batch."""
    def __init__(self, batch_id: Any = None):
        detail = {"error": "Batch not found", "message": "Batch not found"}
        if batch_id is not None:
            detail["batch_id"] = str(batch_id)
        super().__init__(status_code=404, detail=detail)


class EmptyBatchSchedule(SchedulerException):
    """Exception raised when a batch template has no usable weekday entries."""
    def __init__(self, batch_id: Any = None):
        detail = {
            "error": "Configuration Error",
            "message": "Batch has no schedule data",
        }
        if batch_id is not None:
            detail["batch_id"] = str(batch_id)
        super().__init__(status_code=422, detail=detail)


# Validation errors

class EnrollmentNotFound(SchedulerException):
    def __init__(self, enrollment_id: Any = None):
        super().__init__(
            status_code=404,
            detail={"error": "Enrollment not found", "enrollment_id": str(enrollment_id)}
        )


class EnrollmentNotActive(SchedulerException):
    def __init__(self, status: str):
        super().__init__(
            status_code=409,
            detail={
                "error": "Enrollment not active",
                "message": f"Only active enrollments can be changed (status: {status})",
            }
        )


class SessionScheduleNotFound(SchedulerException):
    def __init__(self, session_schedule_id: Any = None):
        super().__init__(
            status_code=404,
            detail={"error": "Session schedule not found", "session_schedule_id": str(session_schedule_id)}
        )


class SessionNotPausable(SchedulerException):
    """Raised when the occurrence is no longer in the scheduled state."""
    def __init__(self, status: str):
        super().__init__(
            status_code=409,
            detail={
                "error": "Session not pausable",
                "message": f"Only scheduled sessions can be paused (status: {status})",
            }
        )


class PauseWindowClosed(SchedulerException):
    def __init__(self, cutoff_hours: int = 2):
        super().__init__(
            status_code=400,
            detail={
                "error": "Too late to pause",
                "message": f"Cannot pause session less than {cutoff_hours} hours before start time",
            }
        )


class PauseQuotaExhausted(SchedulerException):
    def __init__(self, max_pauses: int = 10):
        super().__init__(
            status_code=409,
            detail={
                "error": "Pause quota exhausted",
                "message": f"Maximum of {max_pauses} session pauses allowed per enrollment",
            }
        )


class InvalidStatusTransition(SchedulerException):
    def __init__(self, current: str, requested: str):
        super().__init__(
            status_code=409,
            detail={
                "error": "Invalid status transition",
                "message": f"Cannot move session from '{current}' to '{requested}'",
            }
        )


class SchedulesAlreadyGenerated(SchedulerException):
    """Raised when initial generation is requested for an enrollment that already has sessions."""
    def __init__(self, enrollment_id: Any, existing: int):
        super().__init__(
            status_code=409,
            detail={
                "error": "Sessions already generated",
                "message": (
                    f"Enrollment already has {existing} sessions; "
                    "use the regenerate endpoint to rebuild them"
                ),
                "enrollment_id": str(enrollment_id),
            }
        )


class ValidationError(SchedulerException):
    """Exception raised for validation errors."""
    def __init__(self, message: str, field: Optional[str] = None):
        detail = {"error": "Validation Error", "message": message}
        if field:
            detail["field"] = field
        super().__init__(status_code=422, detail=detail)


class DatabaseError(SchedulerException):
    """Exception raised for database errors."""
    def __init__(self, message: str):
        super().__init__(
            status_code=500,
            detail={
                "error": "Database Error",
                "message": message
            }
        )


class EnrollmentLocked(SchedulerException):
    """Raised when another scheduling operation holds the enrollment lock too long."""
    def __init__(self, enrollment_id: Any = None):
        super().__init__(
            status_code=423,
            detail={
                "error": "Enrollment busy",
                "message": "Another scheduling operation is in progress for this enrollment",
                "enrollment_id": str(enrollment_id),
            }
        )


class BatchFull(SchedulerException):
    def __init__(self, max_capacity: int):
        super().__init__(
            status_code=409,
            detail={
                "error": "Batch is full",
                "message": f"Batch is full. Maximum capacity: {max_capacity}",
            }
        )
