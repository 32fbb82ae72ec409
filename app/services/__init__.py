from .base_service import BaseService
from .session_schedule_service import SessionScheduleService
from .pause_service import PauseService
from .enrollment_service import EnrollmentService
from .session_adjustment_service import SessionAdjustmentService

__all__ = [
    "BaseService",
    "SessionScheduleService",
    "PauseService",
    "EnrollmentService",
    "SessionAdjustmentService"
]
