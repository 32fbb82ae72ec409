"""Import all models here, if needed for Alembic migration."""
from .base import Base

from .batch import Batch
from .enrollment import Enrollment, EnrollmentStatus
from .session_schedule import SessionSchedule, SessionStatus, PauseRequest, PauseRequestStatus
from .session_adjustment import SessionAdjustment, AdjustmentType
