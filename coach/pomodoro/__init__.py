"""Per (user, task) focus/break timers."""

from coach.pomodoro.scheduler import Phase, PomodoroScheduler, TimerRegistry, expand_tasks
from coach.pomodoro.timers import ThreadingTimerFactory, TimerFactory, TimerHandle

__all__ = [
    "Phase",
    "PomodoroScheduler",
    "ThreadingTimerFactory",
    "TimerFactory",
    "TimerHandle",
    "TimerRegistry",
    "expand_tasks",
]
