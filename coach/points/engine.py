"""
Points / Streak Engine.

Every ``done`` confirmation earns a fixed award. A day counts towards the
streak once all four canonical tasks have a ``done`` confirmation; the
streak continues only when the previous full day was yesterday.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from loguru import logger

from coach.core.types import (
    CANONICAL_TASKS,
    ConfirmationStatus,
    TaskType,
    parse_status,
    parse_task,
    require_user,
)
from coach.ledger.store import LedgerStore


@dataclass
class StreakUpdate:
    """Result of applying one confirmation to an account."""

    points: int
    streak: int
    full_day: bool = False
    streak_changed: bool = False


def reached_milestone(streak: int, milestones: Iterable[int]) -> int | None:
    """Return ``streak`` when it is one of the milestones, else None."""
    return streak if streak in set(milestones) else None


class PointsEngine:
    """Awards points and maintains the consecutive full-day streak."""

    def __init__(self, store: LedgerStore, award: int = 10):
        self.store = store
        self.award = award

    def on_confirmation(
        self,
        user_id: str,
        status: ConfirmationStatus,
        task: TaskType = TaskType.ALL,
        today: date | None = None,
    ) -> StreakUpdate:
        """
        Apply a confirmation that has already been recorded.

        ``miss`` confirmations leave the account untouched. Repeated ``done``
        confirmations for the same task are each awarded.
        """
        user_id = require_user(user_id)
        status = parse_status(status)
        task = parse_task(task)
        today = today or self.store.clock.today()

        with self.store.lock:
            if status is not ConfirmationStatus.DONE:
                points, streak = self.get_points_and_streak(user_id)
                return StreakUpdate(points=points, streak=streak)

            points = self.store.add_points(user_id, self.award)
            logger.debug(f"+{self.award} points for {user_id} ({task.value})")

            account = self.store.get_account(user_id)
            streak = account.streak if account else 0
            if not self.all_tasks_done(user_id, today):
                return StreakUpdate(points=points, streak=streak)

            last_full = account.last_full_done_date if account else None
            if last_full == today.isoformat():
                # Already counted today; later confirmations only add points
                return StreakUpdate(points=points, streak=streak, full_day=True)

            yesterday = (today - timedelta(days=1)).isoformat()
            new_streak = streak + 1 if last_full == yesterday else 1
            self.store.save_streak(user_id, new_streak, today)
            logger.info(f"Streak for {user_id}: {streak} -> {new_streak}")
            return StreakUpdate(points=points, streak=new_streak, full_day=True, streak_changed=True)

    def all_tasks_done(self, user_id: str, day: date) -> bool:
        done = {
            row["task"]
            for row in self.store.confirmations_on(day, user_id)
            if row["status"] == ConfirmationStatus.DONE.value
        }
        return all(task.value in done for task in CANONICAL_TASKS)

    def get_points_and_streak(self, user_id: str) -> tuple[int, int]:
        account = self.store.get_account(user_id)
        if account is None:
            return 0, 0
        return account.points, account.streak

    def leaderboard(self) -> list[dict[str, Any]]:
        return self.store.leaderboard()
