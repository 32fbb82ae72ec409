# app/utils/day_time.py
"""Weekday and wall-clock helpers for recurring batch schedules.

All values are naive local datetimes; no timezone conversion happens anywhere
in the scheduler.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Union

logger = logging.getLogger(__name__)

# Sunday-first, matching the batch directory's week
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
_DAY_INDEX = {name.lower(): index for index, name in enumerate(DAY_NAMES)}

Clock = Callable[[], datetime]


def day_index_of(name) -> int:
    """Map a weekday name to 0..6 (Sunday=0), or -1 if it is not a weekday."""
    if not isinstance(name, str):
        return -1
    return _DAY_INDEX.get(name.strip().lower(), -1)


def day_name_of(index: int) -> str:
    return DAY_NAMES[index % 7]


def weekday_index(value: Union[date, datetime]) -> int:
    """Sunday-based weekday index of a date (Python's weekday() is Monday-based)."""
    return (value.weekday() + 1) % 7


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` string into a time."""
    try:
        hours, minutes = (int(part) for part in value.strip().split(":"))
        return time(hours, minutes)
    except (AttributeError, TypeError, ValueError):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")


def combine(day: Union[date, datetime], hhmm: str) -> datetime:
    """Wall-clock timestamp at ``hhmm`` on the calendar date of ``day``."""
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, parse_hhmm(hhmm))


def as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def is_pausable(scheduled_start: datetime, now: datetime, cutoff_hours: int = 2) -> bool:
    """A session can be paused until ``cutoff_hours`` before it starts."""
    return now < scheduled_start - timedelta(hours=cutoff_hours)


def local_now() -> datetime:
    return datetime.now()


def get_clock() -> Clock:
    """FastAPI dependency returning the clock used by scheduling services."""
    return local_now
