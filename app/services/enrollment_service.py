# app/services/enrollment_service.py
import logging
import uuid
from datetime import date, datetime
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from ..core.exceptions import (
    BatchFull, DatabaseError, EnrollmentNotActive, EnrollmentNotFound,
    SchedulerException, ValidationError
)
from ..core.locks import enrollment_locks
from ..models.enrollment import Enrollment, EnrollmentStatus
from ..utils.day_time import Clock, local_now
from ..utils.scheduling_metrics import scheduling_metrics

logger = logging.getLogger(__name__)


class EnrollmentService(BaseService[Enrollment]):
    def __init__(self, db: AsyncSession, clock: Optional[Clock] = None):
        super().__init__(Enrollment, db)
        self.clock = clock or local_now

    async def get_or_404(self, enrollment_id: UUID) -> Enrollment:
        enrollment = await self.get(enrollment_id)
        if not enrollment:
            raise EnrollmentNotFound(enrollment_id)
        return enrollment

    async def create_enrollment(
        self,
        batch_id: UUID,
        sessions_total: int,
        start_date: Union[date, datetime],
        student_name: Optional[str] = None,
        package_type: Optional[str] = None
    ) -> Enrollment:
        """Create a paid enrollment together with its session schedule"""
        from .session_schedule_service import SessionScheduleService

        if sessions_total <= 0:
            raise ValidationError("sessions_total must be positive", field="sessions_total")
        if not isinstance(start_date, datetime):
            start_date = datetime.combine(start_date, datetime.min.time())

        schedule_service = SessionScheduleService(self.db, clock=self.clock)
        enrollment_id = uuid.uuid4()

        async with enrollment_locks.acquire(enrollment_id):
            try:
                batch = await schedule_service.get_batch(batch_id)
                if batch.current_enrollments >= batch.max_capacity:
                    raise BatchFull(batch.max_capacity)

                enrollment = self.add({
                    "id": enrollment_id,
                    "batch_id": batch_id,
                    "student_name": student_name,
                    "package_type": package_type,
                    "sessions_total": sessions_total,
                    "sessions_attended": 0,
                    "start_date": start_date,
                    "status": EnrollmentStatus.ACTIVE.value,
                })
                sessions = await schedule_service.stage_initial_sessions(enrollment_id, batch_id, sessions_total, start_date)
                enrollment.extend_end_date(sessions)
                batch.current_enrollments += 1
                await self.db.commit()
            except SchedulerException:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Failed to create enrollment: {e}")
                raise DatabaseError(f"Failed to create enrollment: {str(e)}")

        scheduling_metrics.record_generated(len(sessions))
        logger.info(f"Enrollment {enrollment_id} created with {len(sessions)} sessions")
        return enrollment

    def apply_attendance(self, enrollment: Enrollment, increment: int) -> int:
        """Move the attended count within [0, sessions_total] and complete finished enrollments"""
        attended = max(0, min(enrollment.sessions_total, enrollment.sessions_attended + increment))
        enrollment.sessions_attended = attended

        if attended >= enrollment.sessions_total and enrollment.status == EnrollmentStatus.ACTIVE.value:
            enrollment.status = EnrollmentStatus.COMPLETED.value
            logger.info(f"Enrollment {enrollment.id} completed ({attended}/{enrollment.sessions_total})")
        return attended

    async def update_session_attendance(self, enrollment_id: UUID, increment: int) -> Enrollment:
        """+1 for an attended session, -1 to undo"""
        async with enrollment_locks.acquire(enrollment_id):
            enrollment = await self.lock_enrollment(enrollment_id)
            if not enrollment:
                raise EnrollmentNotFound(enrollment_id)

            self.apply_attendance(enrollment, increment)
            await self.db.commit()
            await self.db.refresh(enrollment)
        return enrollment

    async def upgrade_package(
        self,
        enrollment_id: UUID,
        additional_sessions: int,
        package_type: Optional[str] = None
    ) -> List[UUID]:
        """Add sessions to an active enrollment and schedule them"""
        from .session_schedule_service import SessionScheduleService

        if additional_sessions <= 0:
            raise ValidationError("additional_sessions must be positive", field="additional_sessions")

        schedule_service = SessionScheduleService(self.db, clock=self.clock)
        async with enrollment_locks.acquire(enrollment_id):
            try:
                enrollment = await self.lock_enrollment(enrollment_id)
                if not enrollment:
                    raise EnrollmentNotFound(enrollment_id)
                if enrollment.status != EnrollmentStatus.ACTIVE.value:
                    raise EnrollmentNotActive(enrollment.status)

                sessions = await schedule_service.stage_additional_sessions(
                    enrollment_id, enrollment.batch_id, additional_sessions
                )
                enrollment.extend_end_date(sessions)
                enrollment.sessions_total += additional_sessions
                if package_type:
                    enrollment.package_type = package_type
                await self.db.commit()
            except SchedulerException:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Failed to upgrade enrollment {enrollment_id}: {e}")
                raise DatabaseError(f"Failed to upgrade enrollment: {str(e)}")

        scheduling_metrics.record_generated(len(sessions))
        logger.info(
            f"Enrollment {enrollment_id} upgraded by {additional_sessions} sessions "
            f"(total {enrollment.sessions_total})"
        )
        return [session.id for session in sessions]
