# app/services/session_planner.py
"""Date arithmetic for turning a weekly batch template into dated sessions.

Everything here is pure: callers pass the current instant in and persist the
results themselves.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Iterable, List, Optional, Sequence, Union

from ..core.exceptions import EmptyBatchSchedule
from ..models.session_schedule import SessionStatus
from ..utils.day_time import as_date, combine, day_index_of, is_pausable, parse_hhmm, weekday_index
from ..utils.scheduling_metrics import scheduling_metrics

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
ONE_WEEK = timedelta(days=7)


@dataclass(frozen=True)
class TemplateSlot:
    """A usable entry of a batch's weekly template."""
    day: str
    day_index: int
    start_time: str
    end_time: str


@dataclass(frozen=True)
class PlannedSession:
    session_number: int
    scheduled_date: datetime
    start_time: str
    end_time: str
    can_pause: bool


def usable_slots(
    template: Optional[Iterable[dict]],
    batch_id: Any = None,
    count_skipped: bool = True,
) -> List[TemplateSlot]:
    """Template entries in stored order, skipping ones that cannot be scheduled.

    Skipped entries are logged and counted only when ``count_skipped`` is set,
    so a bad entry is reported once per generation rather than on every pause.
    """
    slots = []
    report = logger.warning if count_skipped else logger.debug
    for entry in template or []:
        day = entry.get("day")
        day_index = day_index_of(day)
        if day_index == -1:
            report(f"Skipping schedule entry with invalid day name {day!r} (batch {batch_id})")
            if count_skipped:
                scheduling_metrics.record_skipped_entry()
            continue
        try:
            parse_hhmm(entry.get("startTime"))
            parse_hhmm(entry.get("endTime"))
        except ValueError as e:
            report(f"Skipping schedule entry for {day} (batch {batch_id}): {e}")
            if count_skipped:
                scheduling_metrics.record_skipped_entry()
            continue
        slots.append(TemplateSlot(
            day=day.strip(),
            day_index=day_index,
            start_time=entry["startTime"].strip(),
            end_time=entry["endTime"].strip(),
        ))
    return slots


def _require_slots(template, batch_id) -> List[TemplateSlot]:
    slots = usable_slots(template, batch_id)
    if not slots:
        logger.error(f"Batch {batch_id} has no usable schedule entries")
        raise EmptyBatchSchedule(batch_id)
    return slots


def plan_initial_sessions(
    template: Optional[Iterable[dict]],
    sessions_total: int,
    start_date: Union[date, datetime],
    now: datetime,
    cutoff_hours: int = 2,
    batch_id: Any = None,
) -> List[PlannedSession]:
    """Expand a package of ``sessions_total`` sessions over the weekly template.

    Walks week by week from ``start_date``. Within a week the template entries
    are taken in stored order, so dates inside one week follow the template
    rather than the calendar. In the first week an entry falling on the start
    day whose time has already passed moves to the following week.
    """
    if sessions_total <= 0:
        return []

    slots = _require_slots(template, batch_id)
    planned: List[PlannedSession] = []
    week_start = as_date(start_date)
    first_week = True

    while len(planned) < sessions_total:
        for slot in slots:
            if len(planned) >= sessions_total:
                break

            days_from_week_start = (slot.day_index - weekday_index(week_start) + 7) % 7
            starts_at = combine(week_start + timedelta(days=days_from_week_start), slot.start_time)
            if first_week and days_from_week_start == 0 and starts_at < now:
                starts_at += ONE_WEEK

            planned.append(PlannedSession(
                session_number=len(planned) + 1,
                scheduled_date=starts_at,
                start_time=slot.start_time,
                end_time=slot.end_time,
                can_pause=is_pausable(starts_at, now, cutoff_hours),
            ))

        week_start += ONE_WEEK
        first_week = False

    return planned


def plan_additional_sessions(
    template: Optional[Iterable[dict]],
    additional_sessions: int,
    existing: Sequence[Any],
    now: datetime,
    anchor_date: Optional[Union[date, datetime]] = None,
    cutoff_hours: int = 2,
    batch_id: Any = None,
) -> List[PlannedSession]:
    """Continue an enrollment's schedule with ``additional_sessions`` more sessions.

    Numbering continues from the highest existing session number. Dates start
    on the latest of: the day after the last existing session, today, and
    ``anchor_date``; from there the template is walked day by day.
    """
    if additional_sessions <= 0:
        return []

    slots = _require_slots(template, batch_id)
    next_number = max((s.session_number for s in existing), default=0) + 1

    current = now.date()
    if existing:
        last_day = max(as_date(s.scheduled_date) for s in existing)
        current = max(current, last_day + ONE_DAY)
    if anchor_date is not None:
        current = max(current, as_date(anchor_date))

    planned: List[PlannedSession] = []
    while len(planned) < additional_sessions:
        for slot in slots:
            if len(planned) >= additional_sessions:
                break

            days_until = (slot.day_index - weekday_index(current) + 7) % 7
            session_day = current + timedelta(days=days_until)
            starts_at = combine(session_day, slot.start_time)
            if starts_at < now:
                session_day += ONE_WEEK
                starts_at += ONE_WEEK

            planned.append(PlannedSession(
                session_number=next_number + len(planned),
                scheduled_date=starts_at,
                start_time=slot.start_time,
                end_time=slot.end_time,
                can_pause=is_pausable(starts_at, now, cutoff_hours),
            ))
            current = session_day + ONE_DAY

    return planned


def find_reschedule_slot(
    template: Optional[Iterable[dict]],
    occurrences: Sequence[Any],
    session_number: int,
    now: datetime,
    horizon_days: int = 14,
    cutoff_hours: int = 2,
    batch_id: Any = None,
) -> Optional[PlannedSession]:
    """Next free template slot after the enrollment's last scheduled session.

    Returns ``None`` when nothing is scheduled any more or when no free slot
    exists within ``horizon_days`` days.
    """
    scheduled = [o for o in occurrences if o.status == SessionStatus.SCHEDULED.value]
    if not scheduled:
        return None

    latest = max(scheduled, key=lambda o: o.scheduled_date)
    taken = {o.scheduled_date for o in scheduled}
    slots = usable_slots(template, batch_id, count_skipped=False)

    candidate = as_date(latest.scheduled_date) + ONE_DAY
    for _ in range(horizon_days):
        slot = next((s for s in slots if s.day_index == weekday_index(candidate)), None)
        if slot:
            starts_at = combine(candidate, slot.start_time)
            if starts_at not in taken:
                return PlannedSession(
                    session_number=session_number,
                    scheduled_date=starts_at,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    can_pause=is_pausable(starts_at, now, cutoff_hours),
                )
        candidate += ONE_DAY

    return None
