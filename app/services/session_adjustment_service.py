# app/services/session_adjustment_service.py
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from .session_schedule_service import SessionScheduleService
from ..core.exceptions import DatabaseError, EnrollmentNotFound, SchedulerException, ValidationError
from ..core.locks import enrollment_locks
from ..models.session_adjustment import AdjustmentType, SessionAdjustment
from ..utils.day_time import Clock, local_now
from ..utils.scheduling_metrics import scheduling_metrics

logger = logging.getLogger(__name__)


def _require_reason(reason: str):
    if not reason or not reason.strip():
        raise ValidationError("A reason is required for session adjustments", field="reason")


class SessionAdjustmentService(BaseService[SessionAdjustment]):
    """Admin corrections to an enrollment's session count, with an audit trail."""

    def __init__(self, db: AsyncSession, clock: Optional[Clock] = None):
        super().__init__(SessionAdjustment, db)
        self.clock = clock or local_now

    async def get_session_adjustments(self, enrollment_id: UUID) -> List[SessionAdjustment]:
        stmt = (
            select(self.model)
            .where(self.model.enrollment_id == enrollment_id, self.model.is_deleted == False)
            .order_by(self.model.adjusted_at.desc(), self.model.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def add_sessions(
        self,
        enrollment_id: UUID,
        sessions_to_add: int,
        reason: str,
        adjusted_by_name: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """Grant extra sessions and schedule them after the existing ones"""
        if sessions_to_add <= 0:
            raise ValidationError("sessions_to_add must be positive", field="sessions_to_add")
        _require_reason(reason)

        schedule_service = SessionScheduleService(self.db, clock=self.clock)
        async with enrollment_locks.acquire(enrollment_id):
            try:
                enrollment = await self.lock_enrollment(enrollment_id)
                if not enrollment:
                    raise EnrollmentNotFound(enrollment_id)

                previous_total = enrollment.sessions_total
                sessions = await schedule_service.stage_additional_sessions(
                    enrollment_id, enrollment.batch_id, sessions_to_add
                )
                enrollment.extend_end_date(sessions)
                enrollment.sessions_total = previous_total + sessions_to_add
                adjustment = self._record(
                    enrollment_id, AdjustmentType.ADD_SESSIONS, sessions_to_add,
                    previous_total, enrollment.sessions_total, reason, adjusted_by_name, notes
                )
                await self.db.commit()
            except SchedulerException:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Failed to add sessions to enrollment {enrollment_id}: {e}")
                raise DatabaseError(f"Failed to add sessions: {str(e)}")

        scheduling_metrics.record_generated(len(sessions))
        logger.info(
            f"{adjustment.adjusted_by_name} added {sessions_to_add} sessions to enrollment "
            f"{enrollment_id}: {previous_total} -> {enrollment.sessions_total}"
        )
        return {
            "success": True,
            "previous_total": previous_total,
            "new_total": enrollment.sessions_total,
            "sessions_added": sessions_to_add,
            "session_schedule_ids": [str(session.id) for session in sessions],
        }

    async def remove_sessions(
        self,
        enrollment_id: UUID,
        sessions_to_remove: int,
        reason: str,
        adjusted_by_name: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """Lower the package size; never below zero or below sessions already attended"""
        if sessions_to_remove <= 0:
            raise ValidationError("sessions_to_remove must be positive", field="sessions_to_remove")
        _require_reason(reason)

        async with enrollment_locks.acquire(enrollment_id):
            enrollment = await self.lock_enrollment(enrollment_id)
            if not enrollment:
                raise EnrollmentNotFound(enrollment_id)

            previous_total = enrollment.sessions_total
            new_total = max(0, enrollment.sessions_attended, previous_total - sessions_to_remove)
            enrollment.sessions_total = new_total
            self._record(
                enrollment_id, AdjustmentType.REMOVE_SESSIONS, -(previous_total - new_total),
                previous_total, new_total, reason, adjusted_by_name, notes
            )
            try:
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Failed to remove sessions from enrollment {enrollment_id}: {e}")
                raise DatabaseError(f"Failed to remove sessions: {str(e)}")

        logger.info(f"Enrollment {enrollment_id} reduced from {previous_total} to {new_total} sessions")
        return {
            "success": True,
            "previous_total": previous_total,
            "new_total": new_total,
            "sessions_removed": previous_total - new_total,
        }

    def _record(
        self,
        enrollment_id: UUID,
        adjustment_type: AdjustmentType,
        sessions_adjusted: int,
        previous_total: int,
        new_total: int,
        reason: str,
        adjusted_by_name: Optional[str],
        notes: Optional[str]
    ) -> SessionAdjustment:
        return self.add({
            "enrollment_id": enrollment_id,
            "adjustment_type": adjustment_type.value,
            "sessions_adjusted": sessions_adjusted,
            "previous_sessions_total": previous_total,
            "new_sessions_total": new_total,
            "reason": reason.strip(),
            "adjusted_by_name": adjusted_by_name or "System Admin",
            "adjusted_at": self.clock(),
            "notes": notes,
        })
