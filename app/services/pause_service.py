# app/services/pause_service.py
import logging
import uuid
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from .session_planner import find_reschedule_slot
from ..core.config import settings
from ..core.exceptions import (
    DatabaseError, EnrollmentNotFound, PauseQuotaExhausted, PauseWindowClosed,
    SchedulerException, SessionNotPausable, SessionScheduleNotFound
)
from ..core.locks import enrollment_locks
from ..models.batch import Batch
from ..models.session_schedule import PauseRequest, PauseRequestStatus, SessionSchedule, SessionStatus
from ..utils.day_time import Clock, is_pausable, local_now
from ..utils.scheduling_metrics import scheduling_metrics

logger = logging.getLogger(__name__)


class PauseService(BaseService[PauseRequest]):
    """Student-initiated pauses and the automatic relocation of paused sessions."""

    def __init__(self, db: AsyncSession, clock: Optional[Clock] = None):
        super().__init__(PauseRequest, db)
        self.clock = clock or local_now

    async def count_approved_pauses(self, enrollment_id: UUID) -> int:
        stmt = select(func.count()).select_from(self.model).where(
            self.model.enrollment_id == enrollment_id,
            self.model.status == PauseRequestStatus.APPROVED.value,
            self.model.is_deleted == False,
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def get_pause_requests_by_enrollment(self, enrollment_id: UUID) -> List[PauseRequest]:
        stmt = (
            select(self.model)
            .where(self.model.enrollment_id == enrollment_id, self.model.is_deleted == False)
            .order_by(self.model.requested_at.desc(), self.model.pauses_used.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_pause_summary(self, enrollment_id: UUID) -> Dict[str, Any]:
        used = await self.count_approved_pauses(enrollment_id)
        return {
            "enrollment_id": str(enrollment_id),
            "pauses_used": used,
            "pauses_remaining": max(0, settings.max_pauses_per_enrollment - used),
            "max_pauses": settings.max_pauses_per_enrollment,
        }

    async def request_session_pause(
        self,
        enrollment_id: UUID,
        session_schedule_id: UUID,
        reason: Optional[str] = None
    ) -> PauseRequest:
        """Pause one scheduled session and move it to the next free batch slot.

        The checks run in order: the session exists, it is still scheduled,
        it starts more than the cutoff from now, and the enrollment has pauses
        left. The pause and its replacement are committed together.
        """
        async with enrollment_locks.acquire(enrollment_id):
            try:
                enrollment = await self.lock_enrollment(enrollment_id)
                if not enrollment:
                    raise EnrollmentNotFound(enrollment_id)

                session = await self.db.get(SessionSchedule, session_schedule_id)
                if not session or session.is_deleted or session.enrollment_id != enrollment_id:
                    raise SessionScheduleNotFound(session_schedule_id)
                await self.db.refresh(session)

                if session.status != SessionStatus.SCHEDULED.value:
                    raise SessionNotPausable(session.status)

                now = self.clock()
                if not is_pausable(session.scheduled_date, now, settings.pause_cutoff_hours):
                    raise PauseWindowClosed(settings.pause_cutoff_hours)

                prior_pauses = await self.count_approved_pauses(enrollment_id)
                if prior_pauses >= settings.max_pauses_per_enrollment:
                    raise PauseQuotaExhausted(settings.max_pauses_per_enrollment)

                pause_request = self.add({
                    "id": uuid.uuid4(),
                    "enrollment_id": enrollment_id,
                    "session_schedule_id": session.id,
                    "requested_at": now,
                    "session_date": session.scheduled_date,
                    "reason": reason,
                    "status": PauseRequestStatus.APPROVED.value,
                    "pauses_used": prior_pauses + 1,
                })

                session.status = SessionStatus.PAUSED.value
                session.is_paused = True
                session.can_pause = False
                session.paused_at = now
                session.paused_reason = reason

                replacement = await self._reschedule(session, now)
                if replacement:
                    pause_request.rescheduled_to_date = replacement.scheduled_date
                    enrollment.extend_end_date([replacement])
                    pause_request.processed_at = now

                await self.db.commit()
            except SchedulerException:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Failed to pause session {session_schedule_id}: {e}")
                raise DatabaseError(f"Failed to pause session: {str(e)}")

        await self.db.refresh(pause_request)
        scheduling_metrics.record_pause(rescheduled=replacement is not None)
        logger.info(
            f"Paused session {session.session_number} of enrollment {enrollment_id} "
            f"({pause_request.pauses_used}/{settings.max_pauses_per_enrollment} pauses used)"
        )
        return pause_request

    async def _reschedule(self, paused: SessionSchedule, now) -> Optional[SessionSchedule]:
        """Create the replacement occurrence for a just-paused session, if a slot is free"""
        batch = await self.db.get(Batch, paused.batch_id)
        if not batch:
            logger.warning(f"Batch {paused.batch_id} missing; session {paused.id} not rescheduled")
            return None

        await self.db.flush()
        result = await self.db.execute(
            select(SessionSchedule).where(
                SessionSchedule.enrollment_id == paused.enrollment_id,
                SessionSchedule.is_deleted == False,
            )
        )
        occurrences = list(result.scalars().all())

        slot = find_reschedule_slot(
            batch.schedule,
            occurrences,
            paused.session_number,
            now,
            horizon_days=settings.reschedule_horizon_days,
            cutoff_hours=settings.pause_cutoff_hours,
            batch_id=batch.id,
        )
        if not slot:
            logger.warning(
                f"No free slot within {settings.reschedule_horizon_days} days for session "
                f"{paused.session_number} of enrollment {paused.enrollment_id}; left unrelocated"
            )
            return None

        replacement = SessionSchedule(
            id=uuid.uuid4(),
            enrollment_id=paused.enrollment_id,
            batch_id=paused.batch_id,
            session_number=paused.session_number,
            scheduled_date=slot.scheduled_date,
            scheduled_start_time=slot.start_time,
            scheduled_end_time=slot.end_time,
            status=SessionStatus.SCHEDULED.value,
            is_paused=False,
            can_pause=slot.can_pause,
            rescheduled_from=paused.scheduled_date,
        )
        self.db.add(replacement)
        logger.info(
            f"Session {paused.session_number} of enrollment {paused.enrollment_id} "
            f"rescheduled from {paused.scheduled_date} to {slot.scheduled_date}"
        )
        return replacement
