"""
Pomodoro Scheduler.

Runs one focus/break cycle machine per (user, task):

    Idle --start--> Focusing --elapse--> OnBreak --elapse--> Focusing ...
      ^                 |                   |
      +-----stop/pause--+-------------------+

Every focus elapse increments an in-memory completed-cycle counter; when it
is a multiple of ``long_every`` the break is a long one. After a break the
next focus period starts by itself, so a cycle keeps running until paused
or stopped.

At most one timer is live per key: every transition cancels the previous
handle and bumps a generation number, and a callback whose generation no
longer matches is dropped.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from loguru import logger

from coach.core.types import CANONICAL_TASKS, PomodoroEventType, TaskType, parse_task, require_user
from coach.ledger.records import PomodoroDurations
from coach.ledger.store import LedgerStore
from coach.notify.base import Notifier, QuickAction
from coach.pomodoro.timers import ThreadingTimerFactory, TimerFactory, TimerHandle

TimerKey = tuple[str, TaskType]

TASK_LABELS: dict[TaskType, str] = {
    TaskType.VOCAB: "Vocabulary",
    TaskType.GRAMMAR: "Grammar",
    TaskType.LISTENING: "Listening",
    TaskType.READING: "Reading",
}


class Phase(str, Enum):
    """Where a (user, task) timer currently is."""

    IDLE = "idle"
    FOCUSING = "focusing"
    ON_BREAK = "on_break"


@dataclass
class TimerSlot:
    """Registry entry for one (user, task) key."""

    phase: Phase = Phase.IDLE
    long_break: bool = False
    completed_cycles: int = 0
    generation: int = 0
    handle: TimerHandle | None = None
    durations: PomodoroDurations | None = None
    notify_target: str | None = None

    def cancel(self) -> bool:
        """Cancel the live timer, if any. Returns True when one was cancelled."""
        self.generation += 1
        if self.handle is None:
            return False
        self.handle.cancel()
        self.handle = None
        return True


class TimerRegistry:
    """Keyed registry of timer slots owned by one scheduler instance."""

    def __init__(self):
        self._slots: dict[TimerKey, TimerSlot] = {}

    def get(self, key: TimerKey) -> TimerSlot | None:
        return self._slots.get(key)

    def slot(self, key: TimerKey) -> TimerSlot:
        return self._slots.setdefault(key, TimerSlot())

    def discard(self, key: TimerKey) -> TimerSlot | None:
        return self._slots.pop(key, None)

    def live_keys(self) -> list[TimerKey]:
        return [key for key, slot in self._slots.items() if slot.handle is not None]

    def items(self) -> list[tuple[TimerKey, TimerSlot]]:
        return list(self._slots.items())


# Deferred side effect run after the registry lock is released
Effect = Callable[[], Any]


class PomodoroScheduler:
    """
    Per (user, task) focus/break timer state machine.

    Usage:
        scheduler = PomodoroScheduler(store, notifier, defaults)
        scheduler.start("U123", "U123", TaskType.VOCAB)
        # ... timers fire on their own ...
        scheduler.stop("U123", TaskType.VOCAB)
    """

    def __init__(
        self,
        store: LedgerStore,
        notifier: Notifier,
        defaults: PomodoroDurations,
        timers: TimerFactory | None = None,
        registry: TimerRegistry | None = None,
    ):
        self.store = store
        self.notifier = notifier
        self.defaults = defaults.validate()
        self.timers = timers or ThreadingTimerFactory()
        self.registry = registry or TimerRegistry()
        self._lock = threading.RLock()

    # =========================================================================
    # Public operations
    # =========================================================================

    def start(self, user_id: str, notify_target: str, task: TaskType) -> dict[str, Any]:
        """
        Begin a focus period, replacing any timer already running for the key.

        The completed-cycle counter is kept so long-break cadence survives
        restarts within the process.
        """
        key = self._key(user_id, task)
        effects = self._begin_focus(key, notify_target)
        for effect in effects:
            effect()
        return self.status(user_id, task)

    def resume(self, user_id: str, notify_target: str, task: TaskType) -> dict[str, Any]:
        """Resume after a pause by starting a full-length focus period."""
        return self.start(user_id, notify_target, task)

    def pause(self, user_id: str, task: TaskType) -> None:
        """Cancel the live timer but keep the cycle counter."""
        key = self._key(user_id, task)
        with self._lock:
            slot = self.registry.get(key)
            if slot is not None:
                slot.cancel()
                slot.phase = Phase.IDLE
                slot.long_break = False
        logger.info(f"Pomodoro paused for {key[0]}/{key[1].value}")
        self.store.log_pomodoro_event(key[0], key[1], PomodoroEventType.PAUSE)

    def stop(self, user_id: str, task: TaskType) -> None:
        """Cancel the live timer and forget the cycle counter."""
        key = self._key(user_id, task)
        with self._lock:
            slot = self.registry.discard(key)
            if slot is not None:
                slot.cancel()
        logger.info(f"Pomodoro stopped for {key[0]}/{key[1].value}")
        self.store.log_pomodoro_event(key[0], key[1], PomodoroEventType.STOP)

    def status(self, user_id: str, task: TaskType) -> dict[str, Any]:
        key = self._key(user_id, task)
        with self._lock:
            slot = self.registry.get(key) or TimerSlot()
            durations = slot.durations
            return {
                "userId": key[0],
                "task": key[1].value,
                "phase": slot.phase.value,
                "longBreak": slot.long_break,
                "completedCycles": slot.completed_cycles,
                "active": slot.handle is not None,
                "durations": durations.to_dict() if durations else None,
            }

    def live_keys(self) -> list[TimerKey]:
        with self._lock:
            return self.registry.live_keys()

    def shutdown(self) -> None:
        """Cancel every live timer without logging events (process exit)."""
        with self._lock:
            for _, slot in self.registry.items():
                slot.cancel()
        logger.info("Pomodoro scheduler shut down")

    def durations_for(self, user_id: str) -> PomodoroDurations:
        """Per-user override, or the global defaults."""
        try:
            return self.store.get_pomodoro_config(user_id) or self.defaults
        except Exception as exc:  # Intentionally broad - a broken lookup must not block the timer
            logger.warning(f"Pomodoro config lookup failed for {user_id}: {exc}")
            return self.defaults

    # =========================================================================
    # Transitions
    # =========================================================================

    def advance(self, key: TimerKey, generation: int) -> None:
        """
        Timer callback: move the key to its next phase.

        Stale callbacks (cancelled or superseded timers) are ignored. Errors in
        logging or notification are logged and never stop the chain.
        """
        try:
            with self._lock:
                slot = self.registry.get(key)
                if slot is None or slot.generation != generation:
                    logger.debug(f"Ignoring stale pomodoro timer for {key[0]}/{key[1].value}")
                    return
                slot.handle = None
                if slot.phase is Phase.FOCUSING:
                    effects = self._finish_focus(key, slot)
                elif slot.phase is Phase.ON_BREAK:
                    effects = self._finish_break(key, slot)
                else:
                    return
        except Exception:  # Intentionally broad - timer threads must never die silently
            logger.exception(f"Pomodoro transition failed for {key[0]}/{key[1].value}")
            return

        for effect in effects:
            self._run_safely(key, effect)

    def _begin_focus(self, key: TimerKey, notify_target: str) -> list[Effect]:
        user_id, task = key
        durations = self.durations_for(user_id)
        with self._lock:
            slot = self.registry.slot(key)
            if slot.cancel():
                logger.debug(f"Replaced running pomodoro timer for {user_id}/{task.value}")
            slot.phase = Phase.FOCUSING
            slot.long_break = False
            slot.durations = durations
            slot.notify_target = notify_target
            slot.handle = self._schedule(key, slot, durations.focus)

        logger.info(
            f"Pomodoro focus started for {user_id}/{task.value}: {durations.focus} min "
            f"(cycle {slot.completed_cycles + 1})"
        )
        return [
            lambda: self.store.log_pomodoro_event(
                user_id, task, PomodoroEventType.START_FOCUS, {"minutes": durations.focus}
            )
        ]

    def _finish_focus(self, key: TimerKey, slot: TimerSlot) -> list[Effect]:
        user_id, task = key
        durations = slot.durations or self.defaults
        target = slot.notify_target or user_id

        slot.completed_cycles += 1
        is_long = slot.completed_cycles % durations.long_every == 0
        rest = durations.long_brk if is_long else durations.brk
        break_name = "long break" if is_long else "short break"

        slot.phase = Phase.ON_BREAK
        slot.long_break = is_long
        slot.handle = self._schedule(key, slot, rest)
        logger.info(
            f"Pomodoro focus finished for {user_id}/{task.value} "
            f"(completed {slot.completed_cycles}); {break_name} {rest} min"
        )

        label = TASK_LABELS[task]
        text = (
            f"Focus {durations.focus} min is up. Time for a {break_name} of {rest} min.\n"
            f"Report your {label} minutes/amount, or reply '{label} done' / '{label} miss'."
        )
        actions = [
            QuickAction(label=f"{label} done", text=f"{task.value} done"),
            QuickAction(label=f"{label} miss", text=f"{task.value} miss"),
        ]
        break_event = PomodoroEventType.START_LONG_BREAK if is_long else PomodoroEventType.START_BREAK
        return [
            lambda: self.store.log_pomodoro_event(
                user_id, task, PomodoroEventType.END_FOCUS, {"minutes": durations.focus}
            ),
            lambda: self.notifier.push(target, text, actions),
            lambda: self.store.log_pomodoro_event(user_id, task, break_event, {"minutes": rest}),
        ]

    def _finish_break(self, key: TimerKey, slot: TimerSlot) -> list[Effect]:
        user_id, task = key
        target = slot.notify_target or user_id
        label = TASK_LABELS[task]
        break_name = "Long break" if slot.long_break else "Short break"
        text = (
            f"{break_name} is over, back to {label}! "
            f"To stop, reply '{label} done' or '{label} miss'."
        )
        notify = lambda: self.notifier.push(target, text)  # noqa: E731
        return [notify] + self._begin_focus(key, target)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _schedule(self, key: TimerKey, slot: TimerSlot, minutes: int) -> TimerHandle:
        slot.generation += 1
        generation = slot.generation
        return self.timers.schedule(
            minutes * 60,
            lambda: self.advance(key, generation),
            name=f"pomodoro-{key[0]}-{key[1].value}",
        )

    def _run_safely(self, key: TimerKey, effect: Effect) -> None:
        try:
            effect()
        except Exception:  # Intentionally broad - notification/logging failures are non-fatal
            logger.exception(f"Pomodoro side effect failed for {key[0]}/{key[1].value}")

    @staticmethod
    def _key(user_id: str, task: TaskType) -> TimerKey:
        return require_user(user_id), parse_task(task, allow_all=False)


def expand_tasks(task: TaskType | None) -> tuple[TaskType, ...]:
    """A concrete task, or every canonical task when none (or 'all') is given."""
    if task is None:
        return CANONICAL_TASKS
    task = parse_task(task)
    if task is TaskType.ALL:
        return CANONICAL_TASKS
    return (task,)
