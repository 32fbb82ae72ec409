from . import health, session_schedules, pause_requests, enrollments

__all__ = [
    "health",
    "session_schedules",
    "pause_requests",
    "enrollments"
]
