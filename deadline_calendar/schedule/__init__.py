"""Live project set."""

from .store import UNORDERED_TRIGGER_INDEX, ScheduleStore, UpcomingDeadline

__all__ = ["UNORDERED_TRIGGER_INDEX", "ScheduleStore", "UpcomingDeadline"]
