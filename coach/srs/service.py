"""Flashcard operations: creation, review and due-card queries."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Any

from loguru import logger

from coach.core.errors import NotFoundError
from coach.core.types import require_user
from coach.ledger.store import LedgerStore
from coach.srs.sm2 import SM2Scheduler, clamp_grade


class FlashcardService:
    """Persists SM-2 scheduling for cards owned by a user."""

    def __init__(
        self,
        store: LedgerStore,
        scheduler: SM2Scheduler | None = None,
        page_size: int = 100,
        recent_max: int = 500,
    ):
        self.store = store
        self.scheduler = scheduler or SM2Scheduler(store.clock)
        self.page_size = page_size
        self.recent_max = recent_max

    def create_card(
        self,
        user_id: str,
        front: str,
        back: str | None = None,
        example: str | None = None,
        language: str | None = None,
        tags: str | None = None,
    ) -> dict[str, Any]:
        """Create a card that is due immediately (end of today)."""
        user_id = require_user(user_id)
        # card_id is assigned by the store; only the scheduling fields are used
        initial = self.scheduler.initial_state(card_id=0, user_id=user_id)
        card = self.store.create_card(
            user_id,
            front,
            initial,
            back=back,
            example=example,
            language=language,
            tags=tags,
        )
        card["dueDate"] = initial.due_date
        return card

    def review(self, user_id: str, card_id: int, grade: int) -> dict[str, Any]:
        """
        Apply a graded review to a card.

        A missing SRS row is initialized with the defaults before grading.

        Raises:
            NotFoundError: the card does not exist for this user
        """
        user_id = require_user(user_id)
        grade = clamp_grade(grade)
        with self.store.lock:
            if self.store.get_card(card_id, user_id) is None:
                raise NotFoundError(f"card {card_id} not found for {user_id}")
            state = self.store.get_srs_state(card_id, user_id)
            if state is None:
                logger.warning(f"Card {card_id} had no SRS row for {user_id}; using defaults")
                state = self.scheduler.initial_state(card_id, user_id)
            interval_before = state.interval_days
            updated = self.scheduler.calculate_next_review(state, grade)
            self.store.apply_review(updated, grade, interval_before)

        logger.debug(
            f"Card {card_id} reviewed by {user_id}: grade={grade} "
            f"interval {interval_before}->{updated.interval_days} ease={updated.ease:.2f}"
        )
        return {
            "nextDueDate": updated.due_date,
            "ease": updated.ease,
            "intervalDays": updated.interval_days,
            "reps": updated.reps,
            "lapses": updated.lapses,
        }

    def due_cards(self, user_id: str, day: date | None = None) -> list[dict[str, Any]]:
        """Cards due by the end of ``day`` (today by default), soonest first."""
        clock = self.store.clock
        day = day or clock.today()
        until = clock.to_iso(clock.end_of_day(day))
        return self.store.due_cards(user_id, until, self.page_size)

    def recent_cards(self, user_id: str | None = None, limit: int = 100) -> list[dict[str, Any]]:
        limit = max(1, min(self.recent_max, int(limit or 100)))
        return self.store.recent_cards(user_id, limit)

    def state(self, user_id: str, card_id: int) -> dict[str, Any] | None:
        snapshot = self.store.get_srs_state(card_id, user_id)
        return asdict(snapshot) if snapshot else None
