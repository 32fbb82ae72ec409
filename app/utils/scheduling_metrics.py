# app/utils/scheduling_metrics.py
"""Counters for scheduling soft degradations."""
from typing import Dict, Any

class SchedulingMetrics:
    def __init__(self):
        self.reset()

    def reset(self):
        self.sessions_generated = 0
        self.pauses_approved = 0
        self.sessions_rescheduled = 0
        self.skipped_template_entries = 0
        self.reschedule_exhausted = 0

    def record_generated(self, count: int):
        self.sessions_generated += count

    def record_skipped_entry(self):
        self.skipped_template_entries += 1

    def record_pause(self, rescheduled: bool):
        self.pauses_approved += 1
        if rescheduled:
            self.sessions_rescheduled += 1
        else:
            self.reschedule_exhausted += 1

    def get_stats(self) -> Dict[str, Any]:
        reschedule_rate = (
            self.sessions_rescheduled / self.pauses_approved * 100
        ) if self.pauses_approved > 0 else 0
        return {
            "sessions_generated": self.sessions_generated,
            "pauses_approved": self.pauses_approved,
            "sessions_rescheduled": self.sessions_rescheduled,
            "reschedule_exhausted": self.reschedule_exhausted,
            "skipped_template_entries": self.skipped_template_entries,
            "reschedule_rate_percent": round(reschedule_rate, 2),
        }

# Global metrics instance
scheduling_metrics = SchedulingMetrics()
