"""
Deferred-callback abstraction for the pomodoro scheduler.

Production code uses daemon ``threading.Timer`` objects; tests substitute a
manual implementation that fires callbacks when simulated time advances.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerFactory(Protocol):
    def schedule(self, delay_seconds: float, callback: Callable[[], None], name: str = "") -> TimerHandle:
        """Run ``callback`` once after ``delay_seconds``; the handle cancels it."""
        ...


class ThreadingTimerFactory:
    """Wall-clock timers; the delay is fixed when the timer is scheduled."""

    def schedule(self, delay_seconds: float, callback: Callable[[], None], name: str = "") -> TimerHandle:
        timer = threading.Timer(delay_seconds, callback)
        timer.daemon = True
        if name:
            timer.name = name
        timer.start()
        return timer
