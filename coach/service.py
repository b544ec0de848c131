"""
StudyCoach facade.

One public method per inbound action. Callers (webhook dispatcher, API,
CLI) hand over already-typed arguments; each method performs one core
mutation plus whatever is derived from it (points, streak, timers).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from loguru import logger

from config import Settings
from coach.core.clock import LocalClock
from coach.core.errors import ValidationError
from coach.core.types import ConfirmationStatus, TaskType, parse_status, parse_task, require_user
from coach.ledger.records import PomodoroDurations
from coach.ledger.store import LedgerStore
from coach.notify.base import LogNotifier, Notifier
from coach.notify.line import LinePushNotifier
from coach.points.engine import PointsEngine, reached_milestone
from coach.pomodoro.scheduler import PomodoroScheduler, expand_tasks
from coach.pomodoro.timers import TimerFactory
from coach.reports.aggregation import ReportService
from coach.srs.service import FlashcardService
from coach.srs.sm2 import SM2Scheduler

TIMER_OPERATIONS = ("pause", "resume", "stop")


@dataclass
class ConfirmResult:
    """Outcome of a confirmation as shown back to the user."""

    confirmation: dict[str, Any]
    points: int
    streak: int
    milestone: int | None = None
    closed_session: dict[str, Any] | None = None
    stopped_timers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "confirmation": self.confirmation,
            "points": self.points,
            "streak": self.streak,
            "milestone": self.milestone,
            "closedSession": self.closed_session,
            "stoppedTimers": self.stopped_timers,
        }


class StudyCoach:
    """Wires the ledger, SRS, pomodoro, points and report components together."""

    def __init__(
        self,
        store: LedgerStore,
        pomodoro: PomodoroScheduler,
        points: PointsEngine,
        flashcards: FlashcardService,
        reports: ReportService,
        milestones: list[int] | None = None,
    ):
        self.store = store
        self.pomodoro = pomodoro
        self.points = points
        self.flashcards = flashcards
        self.reports = reports
        self.milestones = list(milestones or [])

    @property
    def clock(self) -> LocalClock:
        return self.store.clock

    # =========================================================================
    # Confirmations & sessions
    # =========================================================================

    def confirm(
        self,
        user_id: str,
        status: ConfirmationStatus,
        task: TaskType = TaskType.ALL,
    ) -> ConfirmResult:
        """
        Record a done/miss confirmation.

        A concrete task also stops that task's pomodoro. ``done`` awards
        points and re-evaluates the streak; ``all`` + ``done`` additionally
        closes the latest open study session.
        """
        user_id = require_user(user_id)
        status = parse_status(status)
        task = parse_task(task)

        confirmation = self.store.record_confirmation(user_id, status, task)

        stopped: list[str] = []
        if task is not TaskType.ALL:
            self.pomodoro.stop(user_id, task)
            stopped.append(task.value)

        update = self.points.on_confirmation(user_id, status, task)

        closed = None
        if task is TaskType.ALL and status is ConfirmationStatus.DONE:
            closed = self.store.end_latest_open_session(user_id)

        milestone = reached_milestone(update.streak, self.milestones) if update.streak_changed else None
        if milestone:
            logger.info(f"{user_id} reached a {milestone}-day streak")
        return ConfirmResult(
            confirmation=confirmation,
            points=update.points,
            streak=update.streak,
            milestone=milestone,
            closed_session=closed,
            stopped_timers=stopped,
        )

    def start_study(self, user_id: str) -> dict[str, Any]:
        return self.store.start_session(user_id)

    def end_study(self, user_id: str) -> dict[str, Any] | None:
        return self.store.end_latest_open_session(user_id)

    def report_minutes(self, user_id: str, task: TaskType, minutes: int) -> dict[str, Any]:
        return self.store.report_minutes(user_id, task, minutes)

    def report_progress(self, user_id: str, task: TaskType, metric: str, amount: int) -> dict[str, Any]:
        return self.store.report_progress(user_id, task, metric, amount)

    def points_and_streak(self, user_id: str) -> dict[str, int]:
        points, streak = self.points.get_points_and_streak(require_user(user_id))
        return {"points": points, "streak": streak}

    # =========================================================================
    # Pomodoro
    # =========================================================================

    def start_timer(
        self,
        user_id: str,
        task: TaskType,
        notify_target: str | None = None,
    ) -> dict[str, Any]:
        """Open a study session and start the task's pomodoro."""
        user_id = require_user(user_id)
        task = parse_task(task, allow_all=False)
        session = self.store.start_session(user_id)
        status = self.pomodoro.start(user_id, notify_target or user_id, task)
        return {"session": session, "timer": status}

    def timer_control(
        self,
        user_id: str,
        operation: str,
        task: TaskType | None = None,
        notify_target: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        Pause, resume or stop one task's timer, or all four when no task
        (or ``all``) is given.
        """
        user_id = require_user(user_id)
        if operation not in TIMER_OPERATIONS:
            raise ValidationError(f"unknown timer operation: {operation!r}")

        statuses = []
        for each in expand_tasks(task):
            if operation == "pause":
                self.pomodoro.pause(user_id, each)
            elif operation == "resume":
                self.pomodoro.resume(user_id, notify_target or user_id, each)
            else:
                self.pomodoro.stop(user_id, each)
            statuses.append(self.pomodoro.status(user_id, each))
        return statuses

    def set_pomodoro_config(
        self,
        user_id: str,
        focus: int,
        brk: int,
        long_brk: int,
        long_every: int,
    ) -> dict[str, int]:
        durations = PomodoroDurations(focus=focus, brk=brk, long_brk=long_brk, long_every=long_every)
        return self.store.set_pomodoro_config(user_id, durations).to_dict()

    def pomodoro_config(self, user_id: str | None = None) -> dict[str, Any]:
        """Effective durations for a user, or the global defaults."""
        if user_id:
            durations = self.pomodoro.durations_for(user_id)
        else:
            durations = self.pomodoro.defaults
        return durations.to_dict()

    # =========================================================================
    # Flashcards
    # =========================================================================

    def create_card(self, user_id: str, front: str, **content: str | None) -> dict[str, Any]:
        return self.flashcards.create_card(user_id, front, **content)

    def review_card(self, user_id: str, card_id: int, grade: int) -> dict[str, Any]:
        return self.flashcards.review(user_id, card_id, grade)

    def due_cards(self, user_id: str, day: date | None = None) -> list[dict[str, Any]]:
        return self.flashcards.due_cards(require_user(user_id), day)

    # =========================================================================
    # Identity & plan
    # =========================================================================

    def upsert_profile(
        self,
        user_id: str,
        display_name: str | None = None,
        picture_url: str | None = None,
    ) -> None:
        self.store.upsert_user_profile(user_id, display_name, picture_url)

    def shutdown(self) -> None:
        self.pomodoro.shutdown()


def build_notifier(settings: Settings) -> Notifier:
    if settings.has_line_configured():
        return LinePushNotifier(
            settings.line_channel_access_token,
            api_base=settings.line_api_base,
            timeout_seconds=settings.notify_timeout_seconds,
        )
    logger.warning("No LINE channel token configured; notifications will only be logged")
    return LogNotifier()


def build_coach(
    settings: Settings,
    store: LedgerStore | None = None,
    notifier: Notifier | None = None,
    timers: TimerFactory | None = None,
) -> StudyCoach:
    """Assemble a StudyCoach from settings; collaborators may be injected."""
    clock = LocalClock(settings.timezone)
    store = store or LedgerStore.from_url(settings.database_url, clock=clock)
    pomodoro = PomodoroScheduler(
        store,
        notifier or build_notifier(settings),
        settings.pomodoro_defaults(),
        timers=timers,
    )
    return StudyCoach(
        store=store,
        pomodoro=pomodoro,
        points=PointsEngine(store, award=settings.complete_task_points),
        flashcards=FlashcardService(
            store,
            SM2Scheduler(store.clock),
            page_size=settings.due_cards_page_size,
            recent_max=settings.recent_cards_max,
        ),
        reports=ReportService(store, max_days=settings.weekly_max_days),
        milestones=settings.streak_milestones,
    )
