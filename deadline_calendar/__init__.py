"""Deadline calendar - template-driven project deadlines with trigger-anchored dates."""

from .errors import (
    CalendarOverflow,
    DeadlineCalendarError,
    InstantiationError,
    NoOpWarning,
    NotFoundError,
    PersistenceError,
    TemplateIntegrityError,
    UnresolvedDateError,
)
from .service import DeadlineService

__version__ = "0.1.0"

__all__ = [
    "CalendarOverflow",
    "DeadlineCalendarError",
    "InstantiationError",
    "NoOpWarning",
    "NotFoundError",
    "PersistenceError",
    "TemplateIntegrityError",
    "UnresolvedDateError",
    "DeadlineService",
]
