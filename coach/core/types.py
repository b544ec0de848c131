"""
Typed vocabulary shared by every core component.

Inbound dispatchers hand the core already-typed values; the ``parse_*``
helpers exist for the outer surfaces (API, CLI) that still hold raw strings.
"""

from __future__ import annotations

import math
from enum import Enum

from coach.core.errors import ValidationError


class TaskType(str, Enum):
    """A study task a confirmation or report refers to."""

    VOCAB = "vocab"
    GRAMMAR = "grammar"
    LISTENING = "listening"
    READING = "reading"
    ALL = "all"


class ConfirmationStatus(str, Enum):
    """Outcome a user reports for a task."""

    DONE = "done"
    MISS = "miss"


class PomodoroEventType(str, Enum):
    """Entries of the append-only pomodoro history."""

    START_FOCUS = "start_focus"
    END_FOCUS = "end_focus"
    START_BREAK = "start_break"
    START_LONG_BREAK = "start_long_break"
    PAUSE = "pause"
    STOP = "stop"


# The four tasks that must all be done on one day to extend a streak
CANONICAL_TASKS: tuple[TaskType, ...] = (
    TaskType.VOCAB,
    TaskType.GRAMMAR,
    TaskType.LISTENING,
    TaskType.READING,
)


def parse_task(value: str | TaskType | None, allow_all: bool = True) -> TaskType:
    """Coerce a raw value to a TaskType, rejecting unknown names."""
    if value is None or value == "":
        raise ValidationError("task is required")
    try:
        task = TaskType(value)
    except ValueError as e:
        raise ValidationError(f"unknown task: {value!r}") from e
    if task is TaskType.ALL and not allow_all:
        raise ValidationError("a concrete task is required, not 'all'")
    return task


def parse_status(value: str | ConfirmationStatus | None) -> ConfirmationStatus:
    """Coerce a raw value to a ConfirmationStatus."""
    try:
        return ConfirmationStatus(value)
    except ValueError as e:
        raise ValidationError(f"unknown status: {value!r}") from e


def parse_event(value: str | PomodoroEventType) -> PomodoroEventType:
    """Coerce a raw value to a PomodoroEventType."""
    try:
        return PomodoroEventType(value)
    except ValueError as e:
        raise ValidationError(f"unknown pomodoro event: {value!r}") from e


def require_user(user_id: str | None) -> str:
    """Reject empty user ids."""
    if not user_id or not str(user_id).strip():
        raise ValidationError("userId is required")
    return str(user_id)


def require_positive(name: str, value: int) -> int:
    """Reject non-integer or non-positive counts (minutes, amounts, durations)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")
    if value <= 0:
        raise ValidationError(f"{name} must be positive")
    return value


def round_half_up(value: float) -> int:
    """Round halves upward (``round`` would use banker's rounding)."""
    return math.floor(value + 0.5)
