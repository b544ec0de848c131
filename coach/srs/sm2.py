"""
SM-2 Spaced Repetition Scheduler.

Grade Scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall

Grades below 3 are lapses: repetitions reset, the interval drops to one day
and the easiness factor is kept as it was.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from coach.core.clock import LocalClock
from coach.core.errors import ValidationError
from coach.core.types import round_half_up
from coach.ledger.records import SRSSnapshot


@dataclass
class SM2Config:
    """Configuration for SM-2 algorithm."""

    initial_easiness: float = 2.5
    minimum_easiness: float = 1.3
    first_interval: int = 1  # Days for first review
    second_interval: int = 6  # Days for second review
    passing_grade: int = 3


def clamp_grade(grade: int | float) -> int:
    """Clamp a numeric grade into 0..5; non-numbers are rejected."""
    if isinstance(grade, bool) or not isinstance(grade, (int, float)):
        raise ValidationError(f"grade must be a number, got {grade!r}")
    if grade != grade:  # NaN
        raise ValidationError("grade must be a number")
    return int(max(0, min(5, grade)))


class SM2Scheduler:
    """
    Implements the SM-2 spaced repetition algorithm.

    Each (card, user) has:
    - Ease: growth multiplier for the interval (2.5 default, min 1.3)
    - Interval: Days until next review
    - Reps: Consecutive successful recalls
    - Lapses: Total failed recalls
    """

    def __init__(self, clock: LocalClock, config: SM2Config | None = None):
        """
        Initialize SM-2 scheduler.

        Args:
            clock: Fixed-zone clock for due-date computation
            config: Custom configuration (uses defaults if None)
        """
        self.clock = clock
        self.config = config or SM2Config()

    def initial_state(self, card_id: int, user_id: str, now: datetime | None = None) -> SRSSnapshot:
        """A new card is due at the end of the day it was created."""
        now = now or self.clock.now()
        return SRSSnapshot(
            card_id=card_id,
            user_id=user_id,
            ease=self.config.initial_easiness,
            interval_days=0,
            reps=0,
            lapses=0,
            due_date=self.clock.to_iso(self.clock.end_of_day(now.date())),
        )

    def due_date_for(self, interval_days: int, now: datetime | None = None) -> str:
        """End of the local day ``interval_days`` after today."""
        now = now or self.clock.now()
        return self.clock.to_iso(self.clock.end_of_day(now.date() + timedelta(days=interval_days)))

    def calculate_next_review(
        self,
        state: SRSSnapshot,
        grade: int,
        now: datetime | None = None,
    ) -> SRSSnapshot:
        """
        Calculate the state after a review.

        Args:
            state: Current SRS state for the card
            grade: User grade (clamped to 0-5)
            now: Review time (defaults to the clock)

        Returns:
            Updated SRSSnapshot with new interval and due date
        """
        grade = clamp_grade(grade)
        ease = state.ease
        reps = state.reps
        lapses = state.lapses

        if grade >= self.config.passing_grade:
            if reps == 0:
                interval = self.config.first_interval
            elif reps == 1:
                interval = self.config.second_interval
            else:
                interval = max(1, round_half_up(state.interval_days * ease))
            reps += 1
            # EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
            ease_delta = 0.1 - (5 - grade) * (0.08 + (5 - grade) * 0.02)
            ease = max(self.config.minimum_easiness, ease + ease_delta)
        else:
            reps = 0
            lapses += 1
            interval = self.config.first_interval

        return replace(
            state,
            ease=ease,
            interval_days=interval,
            reps=reps,
            lapses=lapses,
            due_date=self.due_date_for(interval, now),
            last_grade=grade,
        )
