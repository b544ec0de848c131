"""
Query / Aggregation.

Single-day rollups are computed straight from ledger rows; multi-day views
are built by composing single-day calls into parallel per-day arrays, one
per canonical task, ready for charting. Nothing here writes.
"""

from __future__ import annotations

import csv
import io
from collections import Counter, defaultdict
from datetime import date
from typing import Any

from coach.core.clock import parse_day
from coach.core.types import CANONICAL_TASKS, ConfirmationStatus, PomodoroEventType
from coach.ledger.store import LedgerStore

CSV_COLUMNS = ["id", "userId", "task", "status", "createdAt"]


def clamp_days(days: int | None, default: int, maximum: int) -> int:
    """Clamp a requested window to ``1..maximum``; None means ``default``."""
    if days is None:
        days = default
    return max(1, min(maximum, int(days)))


def _status_counts(rows: list[dict[str, Any]]) -> dict[str, int]:
    return dict(Counter(row["status"] for row in rows))


class ReportService:
    """Day, week and pomodoro rollups for one ledger."""

    def __init__(self, store: LedgerStore, max_days: int = 31, pomodoro_max_days: int = 60):
        self.store = store
        self.clock = store.clock
        self.max_days = max_days
        self.pomodoro_max_days = pomodoro_max_days

    # =========================================================================
    # Single day
    # =========================================================================

    def confirmations_for_day(
        self,
        day: str | date | None = None,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Confirmation rollup for one local day.

        Returns:
            {date, summary: {status: n}, byTask: {task: {status: n}}, count, rows}
        """
        day = parse_day(day, self.clock)
        rows = self.store.confirmations_on(day, user_id)
        by_task: dict[str, dict[str, int]] = defaultdict(dict)
        for row in rows:
            statuses = by_task[row["task"] or "all"]
            statuses[row["status"]] = statuses.get(row["status"], 0) + 1
        return {
            "date": day.isoformat(),
            "summary": _status_counts(rows),
            "byTask": dict(by_task),
            "count": len(rows),
            "rows": rows,
        }

    def sessions_for_day(
        self,
        day: str | date | None = None,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """Sessions that started or ended on the day; open sessions add 0 minutes."""
        day = parse_day(day, self.clock)
        rows = self.store.sessions_on(day, user_id)
        return {
            "date": day.isoformat(),
            "totalMinutes": sum(row["durationMinutes"] or 0 for row in rows),
            "count": len(rows),
            "rows": rows,
        }

    def task_minutes_for_day(
        self,
        day: str | date | None = None,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        day = parse_day(day, self.clock)
        rows = self.store.task_minutes_on(day, user_id)
        by_task: Counter[str] = Counter()
        for row in rows:
            by_task[row["task"]] += row["minutes"]
        return {
            "date": day.isoformat(),
            "totalMinutes": sum(by_task.values()),
            "byTask": dict(by_task),
            "rows": rows,
        }

    def task_progress_for_day(
        self,
        day: str | date | None = None,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        day = parse_day(day, self.clock)
        rows = self.store.task_progress_on(day, user_id)
        by_task: dict[str, Counter[str]] = defaultdict(Counter)
        for row in rows:
            by_task[row["task"]][row["metric"]] += row["amount"]
        return {
            "date": day.isoformat(),
            "byTask": {task: dict(metrics) for task, metrics in by_task.items()},
            "rows": rows,
        }

    def export_confirmations_csv(
        self,
        day: str | date | None = None,
        user_id: str | None = None,
    ) -> str:
        """The day's confirmation rows as CSV text with a header line."""
        rows = self.confirmations_for_day(day, user_id)["rows"]
        buffer = io.StringIO()
        writer = csv.DictWriter(
            buffer,
            fieldnames=CSV_COLUMNS,
            extrasaction="ignore",
            quoting=csv.QUOTE_ALL,
            lineterminator="\n",
        )
        writer.writeheader()
        writer.writerows(rows)
        return buffer.getvalue()

    # =========================================================================
    # Multi day
    # =========================================================================

    def weekly(
        self,
        days: int | None = 7,
        user_id: str | None = None,
        today: str | date | None = None,
    ) -> dict[str, Any]:
        """
        Per-day arrays over the last ``days`` days (oldest first).

        Returns:
            {dates, perTask: {task: [{done, miss}, ...]}, totalCount: [...],
             totalMinutes: [...]}
        """
        days = clamp_days(days, 7, self.max_days)
        dates = self.clock.days_back(days, parse_day(today, self.clock))

        per_task: dict[str, list[dict[str, int]]] = {task.value: [] for task in CANONICAL_TASKS}
        total_count: list[int] = []
        total_minutes: list[int] = []
        for day in dates:
            confirmations = self.confirmations_for_day(day, user_id)
            sessions = self.sessions_for_day(day, user_id)
            for task in CANONICAL_TASKS:
                counts = confirmations["byTask"].get(task.value, {})
                per_task[task.value].append(
                    {
                        "done": counts.get(ConfirmationStatus.DONE.value, 0),
                        "miss": counts.get(ConfirmationStatus.MISS.value, 0),
                    }
                )
            total_count.append(confirmations["count"])
            total_minutes.append(sessions["totalMinutes"])

        return {
            "dates": [day.isoformat() for day in dates],
            "perTask": per_task,
            "totalCount": total_count,
            "totalMinutes": total_minutes,
        }

    def weekly_totals(
        self,
        days: int | None = 7,
        user_id: str | None = None,
        today: str | date | None = None,
    ) -> dict[str, Any]:
        """Collapse :meth:`weekly` into per-task sums and total minutes."""
        week = self.weekly(days, user_id, today)
        by_task = {
            task: {
                "done": sum(day["done"] for day in series),
                "miss": sum(day["miss"] for day in series),
            }
            for task, series in week["perTask"].items()
        }
        return {
            "dates": week["dates"],
            "byTask": by_task,
            "totalMinutes": sum(week["totalMinutes"]),
        }

    def pomodoro_summary(
        self,
        days: int | None = 14,
        user_id: str | None = None,
        today: str | date | None = None,
    ) -> dict[str, Any]:
        """Count focus periods (``start_focus`` events) per day and per task."""
        days = clamp_days(days, 14, self.pomodoro_max_days)
        dates = self.clock.days_back(days, parse_day(today, self.clock))
        events = self.store.pomodoro_events_between(dates[0], dates[-1], user_id)

        per_day: Counter[date] = Counter()
        by_task = {task.value: 0 for task in CANONICAL_TASKS}
        for event in events:
            if event["event"] != PomodoroEventType.START_FOCUS.value:
                continue
            per_day[self.clock.date_of(event["at"])] += 1
            if event["task"] in by_task:
                by_task[event["task"]] += 1

        return {
            "dates": [day.isoformat() for day in dates],
            "counts": [per_day[day] for day in dates],
            "byTask": by_task,
        }

    # =========================================================================
    # Users
    # =========================================================================

    def distinct_users(self) -> list[str]:
        return self.store.distinct_user_ids()

    def user_profiles(self) -> dict[str, dict[str, str | None]]:
        return self.store.user_profiles()

    def leaderboard(self) -> list[dict[str, Any]]:
        return self.store.leaderboard()
