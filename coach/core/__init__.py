"""Shared enums, errors, clock and logging setup."""

from coach.core.clock import LocalClock
from coach.core.errors import CoachError, NotFoundError, PersistenceError, ValidationError
from coach.core.types import (
    CANONICAL_TASKS,
    ConfirmationStatus,
    PomodoroEventType,
    TaskType,
)

__all__ = [
    "CANONICAL_TASKS",
    "CoachError",
    "ConfirmationStatus",
    "LocalClock",
    "NotFoundError",
    "PersistenceError",
    "PomodoroEventType",
    "TaskType",
    "ValidationError",
]
