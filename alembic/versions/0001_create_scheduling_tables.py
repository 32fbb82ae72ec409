"""Create batches, enrollments, session schedules, pause requests and adjustments

Revision ID: 0001_scheduling
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_scheduling'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns():
    return [
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


def upgrade() -> None:
    op.create_table(
        'batches',
        *_base_columns(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('sport', sa.String(length=50)),
        sa.Column('coach_name', sa.String(length=100)),
        sa.Column('max_capacity', sa.Integer(), nullable=False),
        sa.Column('current_enrollments', sa.Integer(), nullable=False),
        sa.Column('schedule', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )

    op.create_table(
        'enrollments',
        *_base_columns(),
        sa.Column('batch_id', sa.Uuid(), sa.ForeignKey('batches.id'), nullable=False),
        sa.Column('student_name', sa.String(length=100)),
        sa.Column('package_type', sa.String(length=50)),
        sa.Column('sessions_total', sa.Integer(), nullable=False),
        sa.Column('sessions_attended', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime()),
        sa.Column('status', sa.String(length=20), nullable=False),
    )
    op.create_index('ix_enrollments_batch_id', 'enrollments', ['batch_id'])
    op.create_index('ix_enrollments_status', 'enrollments', ['status'])

    op.create_table(
        'session_schedules',
        *_base_columns(),
        sa.Column('enrollment_id', sa.Uuid(), sa.ForeignKey('enrollments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('batch_id', sa.Uuid(), sa.ForeignKey('batches.id'), nullable=False),
        sa.Column('session_number', sa.Integer(), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=False),
        sa.Column('scheduled_start_time', sa.String(length=5), nullable=False),
        sa.Column('scheduled_end_time', sa.String(length=5), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('is_paused', sa.Boolean(), nullable=False),
        sa.Column('paused_at', sa.DateTime()),
        sa.Column('paused_reason', sa.Text()),
        sa.Column('rescheduled_from', sa.DateTime()),
        sa.Column('can_pause', sa.Boolean(), nullable=False),
    )
    op.create_index('ix_session_schedules_enrollment_id', 'session_schedules', ['enrollment_id'])
    op.create_index('ix_session_schedules_status', 'session_schedules', ['status'])
    op.create_index('ix_session_schedules_scheduled_date', 'session_schedules', ['scheduled_date'])
    op.create_index('ix_session_schedules_enrollment_number', 'session_schedules', ['enrollment_id', 'session_number'])
    op.create_index('ix_session_schedules_batch_date', 'session_schedules', ['batch_id', 'scheduled_date'])

    op.create_table(
        'pause_requests',
        *_base_columns(),
        sa.Column('enrollment_id', sa.Uuid(), sa.ForeignKey('enrollments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('session_schedule_id', sa.Uuid(), sa.ForeignKey('session_schedules.id', ondelete='SET NULL')),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        sa.Column('session_date', sa.DateTime(), nullable=False),
        sa.Column('reason', sa.Text()),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('pauses_used', sa.Integer(), nullable=False),
        sa.Column('rescheduled_to_date', sa.DateTime()),
        sa.Column('processed_at', sa.DateTime()),
    )
    op.create_index('ix_pause_requests_enrollment_id', 'pause_requests', ['enrollment_id'])
    op.create_index('ix_pause_requests_status', 'pause_requests', ['status'])

    op.create_table(
        'session_adjustments',
        *_base_columns(),
        sa.Column('enrollment_id', sa.Uuid(), sa.ForeignKey('enrollments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('adjustment_type', sa.String(length=20), nullable=False),
        sa.Column('sessions_adjusted', sa.Integer(), nullable=False),
        sa.Column('previous_sessions_total', sa.Integer(), nullable=False),
        sa.Column('new_sessions_total', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('adjusted_by_name', sa.String(length=100), nullable=False),
        sa.Column('adjusted_at', sa.DateTime(), nullable=False),
        sa.Column('notes', sa.Text()),
    )
    op.create_index('ix_session_adjustments_enrollment_id', 'session_adjustments', ['enrollment_id'])
    op.create_index('ix_session_adjustments_adjusted_at', 'session_adjustments', ['adjusted_at'])


def downgrade() -> None:
    op.drop_table('session_adjustments')
    op.drop_table('pause_requests')
    op.drop_table('session_schedules')
    op.drop_table('enrollments')
    op.drop_table('batches')
