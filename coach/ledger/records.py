"""Plain value objects passed across the store boundary."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from coach.core.types import require_positive


@dataclass
class SRSSnapshot:
    """SM-2 state for a single (card, user)."""

    card_id: int
    user_id: str
    ease: float = 2.5
    interval_days: int = 0
    reps: int = 0
    lapses: int = 0
    due_date: str | None = None  # fixed-zone ISO timestamp (end of day)
    last_grade: int | None = None


@dataclass
class AccountSnapshot:
    user_id: str
    points: int = 0
    streak: int = 0
    last_full_done_date: str | None = None  # YYYY-MM-DD


@dataclass(frozen=True)
class PomodoroDurations:
    """Focus/break lengths in minutes plus the long-break cadence."""

    focus: int
    brk: int
    long_brk: int
    long_every: int

    def validate(self) -> PomodoroDurations:
        require_positive("focus", self.focus)
        require_positive("brk", self.brk)
        require_positive("longBrk", self.long_brk)
        require_positive("longEvery", self.long_every)
        return self

    def to_dict(self) -> dict[str, int]:
        data = asdict(self)
        return {
            "focus": data["focus"],
            "brk": data["brk"],
            "longBrk": data["long_brk"],
            "longEvery": data["long_every"],
        }


@dataclass
class PlanSnapshot:
    version: str
    day: int
    to_user_id: str | None
    started_at: str
