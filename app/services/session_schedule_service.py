# app/services/session_schedule_service.py
import logging
import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from .session_planner import PlannedSession, plan_additional_sessions, plan_initial_sessions
from ..core.config import settings
from ..core.exceptions import (
    BatchNotFound, DatabaseError, EnrollmentNotFound, InvalidStatusTransition,
    SchedulerException, SchedulesAlreadyGenerated, SessionScheduleNotFound, ValidationError
)
from ..core.locks import enrollment_locks
from ..models.batch import Batch
from ..models.enrollment import Enrollment
from ..models.session_schedule import SessionSchedule, SessionStatus
from ..utils.day_time import Clock, local_now
from ..utils.scheduling_metrics import scheduling_metrics

logger = logging.getLogger(__name__)

# Attendance marking; "paused" is only reachable through a pause request
ALLOWED_TRANSITIONS = {
    SessionStatus.SCHEDULED.value: {
        SessionStatus.COMPLETED.value,
        SessionStatus.MISSED.value,
        SessionStatus.CANCELLED.value,
    },
}


class SessionScheduleService(BaseService[SessionSchedule]):
    def __init__(self, db: AsyncSession, clock: Optional[Clock] = None):
        super().__init__(SessionSchedule, db)
        self.clock = clock or local_now

    # READ OPERATIONS

    async def get_batch(self, batch_id: UUID) -> Batch:
        result = await self.db.execute(
            select(Batch).where(Batch.id == batch_id, Batch.is_deleted == False)
        )
        batch = result.scalar_one_or_none()
        if not batch:
            logger.error(f"Batch not found: {batch_id}")
            raise BatchNotFound(batch_id)
        return batch

    async def get_session_schedules_by_enrollment(self, enrollment_id: UUID) -> List[SessionSchedule]:
        """All occurrences of an enrollment in date order"""
        stmt = (
            select(self.model)
            .where(self.model.enrollment_id == enrollment_id, self.model.is_deleted == False)
            .order_by(self.model.scheduled_date.asc(), self.model.session_number.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_session_schedules_by_date_range(
        self,
        enrollment_id: UUID,
        start_date: datetime,
        end_date: datetime
    ) -> List[SessionSchedule]:
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date", field="end_date")

        stmt = (
            select(self.model)
            .where(
                self.model.enrollment_id == enrollment_id,
                self.model.is_deleted == False,
                self.model.scheduled_date >= start_date,
                self.model.scheduled_date <= end_date,
            )
            .order_by(self.model.scheduled_date.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_schedule_summary(self, enrollment_id: UUID) -> Dict[str, Any]:
        """Occurrence counts for reconciling an enrollment against its package size"""
        enrollment = await self.db.get(Enrollment, enrollment_id)
        if not enrollment or enrollment.is_deleted:
            raise EnrollmentNotFound(enrollment_id)

        sessions = await self.get_session_schedules_by_enrollment(enrollment_id)
        by_status = {status.value: 0 for status in SessionStatus}
        for session in sessions:
            by_status[session.status] = by_status.get(session.status, 0) + 1

        placed = {s.session_number for s in sessions if s.status != SessionStatus.PAUSED.value}
        paused = {s.session_number for s in sessions if s.status == SessionStatus.PAUSED.value}
        unrelocated = sorted(paused - placed)

        return {
            "enrollment_id": str(enrollment_id),
            "sessions_total": enrollment.sessions_total,
            "sessions_attended": enrollment.sessions_attended,
            "occurrences": len(sessions),
            "by_status": by_status,
            "placed_sessions": len(placed),
            "unrelocated_session_numbers": unrelocated,
            "mismatch": len(placed) != enrollment.sessions_total,
        }

    # GENERATION

    def _add_planned(
        self,
        enrollment_id: UUID,
        batch_id: UUID,
        planned: List[PlannedSession],
        rescheduled_from: Optional[datetime] = None
    ) -> List[SessionSchedule]:
        sessions = []
        for item in planned:
            sessions.append(self.add({
                "id": uuid.uuid4(),
                "enrollment_id": enrollment_id,
                "batch_id": batch_id,
                "session_number": item.session_number,
                "scheduled_date": item.scheduled_date,
                "scheduled_start_time": item.start_time,
                "scheduled_end_time": item.end_time,
                "status": SessionStatus.SCHEDULED.value,
                "is_paused": False,
                "can_pause": item.can_pause,
                "rescheduled_from": rescheduled_from,
            }))
        return sessions

    async def stage_initial_sessions(
        self,
        enrollment_id: UUID,
        batch_id: UUID,
        sessions_total: int,
        start_date: Union[date, datetime]
    ) -> List[SessionSchedule]:
        batch = await self.get_batch(batch_id)
        planned = plan_initial_sessions(
            batch.schedule,
            sessions_total,
            start_date,
            self.clock(),
            cutoff_hours=settings.pause_cutoff_hours,
            batch_id=batch_id,
        )
        for item in planned:
            logger.debug(
                f"Planned session {item.session_number} for enrollment {enrollment_id}: "
                f"{item.scheduled_date:%a %Y-%m-%d} {item.start_time}-{item.end_time}"
            )
        return self._add_planned(enrollment_id, batch_id, planned)

    async def stage_additional_sessions(
        self,
        enrollment_id: UUID,
        batch_id: UUID,
        additional_sessions: int,
        anchor_date: Optional[Union[date, datetime]] = None
    ) -> List[SessionSchedule]:
        batch = await self.get_batch(batch_id)
        existing = await self.get_session_schedules_by_enrollment(enrollment_id)
        planned = plan_additional_sessions(
            batch.schedule,
            additional_sessions,
            existing,
            self.clock(),
            anchor_date=anchor_date,
            cutoff_hours=settings.pause_cutoff_hours,
            batch_id=batch_id,
        )
        return self._add_planned(enrollment_id, batch_id, planned)

    async def _require_enrollment(self, enrollment_id: UUID) -> Enrollment:
        enrollment = await self.lock_enrollment(enrollment_id)
        if not enrollment:
            raise EnrollmentNotFound(enrollment_id)
        return enrollment

    async def _rollback_and_raise(self, action: str, error: SQLAlchemyError):
        await self.db.rollback()
        logger.error(f"Failed to {action}: {error}")
        raise DatabaseError(f"Failed to {action}: {str(error)}")

    async def _commit(self, action: str):
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._rollback_and_raise(action, e)

    async def generate_session_schedules(
        self,
        enrollment_id: UUID,
        batch_id: UUID,
        sessions_total: int,
        start_date: Union[date, datetime]
    ) -> List[UUID]:
        """Create the initial occurrences for a newly confirmed enrollment.

        Refuses to run twice: numbering restarts at 1, so a second run would
        duplicate session numbers. Use ``clear_and_regenerate`` to rebuild.
        """
        logger.info(
            f"Generating {sessions_total} sessions for enrollment {enrollment_id} "
            f"(batch {batch_id}, start {start_date})"
        )
        async with enrollment_locks.acquire(enrollment_id):
            try:
                enrollment = await self._require_enrollment(enrollment_id)
                if sessions_total != enrollment.sessions_total:
                    raise ValidationError(
                        f"sessions_total {sessions_total} does not match the enrollment's "
                        f"package of {enrollment.sessions_total}",
                        field="sessions_total",
                    )
                existing = await self.get_session_schedules_by_enrollment(enrollment_id)
                if existing:
                    raise SchedulesAlreadyGenerated(enrollment_id, len(existing))

                sessions = await self.stage_initial_sessions(enrollment_id, batch_id, sessions_total, start_date)
                enrollment.extend_end_date(sessions)
                await self.db.commit()
            except SchedulerException:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self._rollback_and_raise("generate session schedules", e)

        scheduling_metrics.record_generated(len(sessions))
        logger.info(f"Created {len(sessions)} sessions for enrollment {enrollment_id}")
        return [session.id for session in sessions]

    async def clear_and_regenerate(self, enrollment_id: UUID) -> List[UUID]:
        """Replace every occurrence of an enrollment with a freshly generated set"""
        async with enrollment_locks.acquire(enrollment_id):
            try:
                enrollment = await self._require_enrollment(enrollment_id)
                result = await self.db.execute(
                    delete(self.model).where(self.model.enrollment_id == enrollment_id)
                )
                logger.info(f"Cleared {result.rowcount} sessions for enrollment {enrollment_id}")
                sessions = await self.stage_initial_sessions(
                    enrollment_id,
                    enrollment.batch_id,
                    enrollment.sessions_total,
                    enrollment.start_date,
                )
                enrollment.end_date = None
                enrollment.extend_end_date(sessions)
                await self.db.commit()
            except SchedulerException:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self._rollback_and_raise("regenerate session schedules", e)

        scheduling_metrics.record_generated(len(sessions))
        logger.info(f"Regenerated {len(sessions)} sessions for enrollment {enrollment_id}")
        return [session.id for session in sessions]

    async def generate_additional_sessions(
        self,
        enrollment_id: UUID,
        batch_id: UUID,
        additional_sessions: int,
        anchor_date: Optional[Union[date, datetime]] = None
    ) -> List[UUID]:
        """Append sessions after the enrollment's existing ones (package top-up)"""
        async with enrollment_locks.acquire(enrollment_id):
            try:
                enrollment = await self._require_enrollment(enrollment_id)
                sessions = await self.stage_additional_sessions(enrollment_id, batch_id, additional_sessions, anchor_date)
                enrollment.extend_end_date(sessions)
                await self.db.commit()
            except SchedulerException:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self._rollback_and_raise("generate additional sessions", e)

        scheduling_metrics.record_generated(len(sessions))
        logger.info(f"Added {len(sessions)} sessions to enrollment {enrollment_id}")
        return [session.id for session in sessions]

    # ATTENDANCE

    async def update_session_status(self, session_schedule_id: UUID, status: str) -> SessionSchedule:
        """Mark a scheduled session completed, missed or cancelled"""
        session = await self.get(session_schedule_id)
        if not session:
            raise SessionScheduleNotFound(session_schedule_id)

        async with enrollment_locks.acquire(session.enrollment_id):
            await self.db.refresh(session)
            if status not in ALLOWED_TRANSITIONS.get(session.status, set()):
                raise InvalidStatusTransition(session.status, status)

            if status == SessionStatus.COMPLETED.value:
                from .enrollment_service import EnrollmentService
                enrollment = await self._require_enrollment(session.enrollment_id)
                EnrollmentService(self.db, clock=self.clock).apply_attendance(enrollment, 1)
            session.status = status

            await self._commit("update session status")
            await self.db.refresh(session)

        logger.info(f"Session {session_schedule_id} marked {status}")
        return session
