# app/routers/enrollments.py
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..models.enrollment import Enrollment
from ..schemas.schedule_schemas import (
    AttendanceUpdate, EnrollmentCreate, PackageUpgrade, SessionAdjustmentRequest
)
from ..services.enrollment_service import EnrollmentService
from ..services.session_adjustment_service import SessionAdjustmentService
from ..utils.day_time import Clock, get_clock

router = APIRouter(prefix="/api/v1/enrollments", tags=["Enrollments"])


def format_enrollment(enrollment: Enrollment) -> dict:
    return {
        "id": str(enrollment.id),
        "batch_id": str(enrollment.batch_id),
        "student_name": enrollment.student_name,
        "package_type": enrollment.package_type,
        "sessions_total": enrollment.sessions_total,
        "sessions_attended": enrollment.sessions_attended,
        "remaining_sessions": enrollment.remaining_sessions,
        "start_date": enrollment.start_date.isoformat(),
        "end_date": enrollment.end_date.isoformat() if enrollment.end_date else None,
        "status": enrollment.status,
    }


@router.post("", status_code=201)
async def create_enrollment(
    payload: EnrollmentCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Create a paid enrollment and generate its sessions"""
    service = EnrollmentService(db, clock=clock)
    enrollment = await service.create_enrollment(
        payload.batch_id,
        payload.sessions_total,
        payload.start_date,
        student_name=payload.student_name,
        package_type=payload.package_type,
    )
    return format_enrollment(enrollment)


@router.get("/{enrollment_id}")
async def get_enrollment(enrollment_id: UUID, db: AsyncSession = Depends(get_db)):
    service = EnrollmentService(db)
    return format_enrollment(await service.get_or_404(enrollment_id))


@router.post("/{enrollment_id}/attendance")
async def update_session_attendance(
    enrollment_id: UUID,
    payload: AttendanceUpdate,
    db: AsyncSession = Depends(get_db)
):
    service = EnrollmentService(db)
    enrollment = await service.update_session_attendance(enrollment_id, payload.increment)
    return format_enrollment(enrollment)


@router.post("/{enrollment_id}/upgrade")
async def upgrade_package(
    enrollment_id: UUID,
    payload: PackageUpgrade,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    service = EnrollmentService(db, clock=clock)
    ids = await service.upgrade_package(enrollment_id, payload.additional_sessions, payload.package_type)
    enrollment = await service.get_or_404(enrollment_id)
    return {
        "enrollment": format_enrollment(enrollment),
        "session_schedule_ids": [str(i) for i in ids],
    }


@router.post("/{enrollment_id}/adjustments/add")
async def add_sessions(
    enrollment_id: UUID,
    payload: SessionAdjustmentRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    service = SessionAdjustmentService(db, clock=clock)
    return await service.add_sessions(
        enrollment_id, payload.sessions, payload.reason, payload.adjusted_by_name, payload.notes
    )


@router.post("/{enrollment_id}/adjustments/remove")
async def remove_sessions(
    enrollment_id: UUID,
    payload: SessionAdjustmentRequest,
    db: AsyncSession = Depends(get_db)
):
    service = SessionAdjustmentService(db)
    return await service.remove_sessions(
        enrollment_id, payload.sessions, payload.reason, payload.adjusted_by_name, payload.notes
    )


@router.get("/{enrollment_id}/adjustments")
async def get_session_adjustments(enrollment_id: UUID, db: AsyncSession = Depends(get_db)):
    service = SessionAdjustmentService(db)
    adjustments = await service.get_session_adjustments(enrollment_id)
    return {
        "items": [
            {
                "id": str(a.id),
                "adjustment_type": a.adjustment_type,
                "sessions_adjusted": a.sessions_adjusted,
                "previous_sessions_total": a.previous_sessions_total,
                "new_sessions_total": a.new_sessions_total,
                "reason": a.reason,
                "adjusted_by_name": a.adjusted_by_name,
                "adjusted_at": a.adjusted_at.isoformat(),
                "notes": a.notes,
                "created_at": a.created_at.isoformat() if a.created_at else None,
            }
            for a in adjustments
        ],
        "total": len(adjustments),
    }
