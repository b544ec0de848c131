"""
Ledger Store.

Durable persistence for:
- Task confirmations and study sessions
- Manual minute / progress reports
- Pomodoro event history and per-user timer overrides
- Flashcards, their SM-2 state and the review audit log
- Points/streak accounts, cached profiles and plan progress

Every mutating call commits before it returns (write-through) and holds a
process-wide lock, so timer threads and request handlers serialize against
the same database.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Generator
from contextlib import contextmanager
from datetime import date
from typing import Any

from loguru import logger
from sqlalchemy import Engine, or_, select, union
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coach.core.clock import LocalClock
from coach.core.errors import PersistenceError, ValidationError
from coach.core.types import (
    ConfirmationStatus,
    PomodoroEventType,
    TaskType,
    parse_event,
    parse_status,
    parse_task,
    require_positive,
    require_user,
    round_half_up,
)
from coach.db.database import create_db_engine, init_db, make_session_factory, session_scope
from coach.db.models import (
    Card,
    Confirmation,
    PlanState,
    PomodoroEvent,
    PomodoroUserConfig,
    Review,
    SRSState,
    StudySession,
    TaskMinutes,
    TaskProgress,
    UserAccount,
    UserProfile,
)
from coach.ledger.records import AccountSnapshot, PlanSnapshot, PomodoroDurations, SRSSnapshot


class LedgerStore:
    """
    SQLAlchemy-backed ledger.

    Handles:
    - Append-only rows (confirmations, reports, pomodoro events, reviews)
    - Session close-out (the only in-place ledger update)
    - Primary-key upserts for SRS state, accounts, profiles, configs, plans
    """

    def __init__(self, engine: Engine, clock: LocalClock | None = None):
        """
        Initialize the store.

        Args:
            engine: SQLAlchemy engine for the ledger database
            clock: Fixed-zone clock used for every timestamp
        """
        self.engine = engine
        self.clock = clock or LocalClock()
        self._sessions = make_session_factory(engine)
        self._lock = threading.RLock()

    @classmethod
    def from_url(cls, database_url: str, clock: LocalClock | None = None, echo: bool = False) -> LedgerStore:
        """Create a store for ``database_url`` and make sure its tables exist."""
        store = cls(create_db_engine(database_url, echo=echo), clock=clock)
        store.init_schema()
        logger.info(f"LedgerStore initialized at {store.engine.url}")
        return store

    def init_schema(self) -> None:
        try:
            init_db(self.engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"schema initialization failed: {e}") from e

    @property
    def lock(self) -> threading.RLock:
        """Lock serializing every mutation; callers may hold it across several calls."""
        return self._lock

    @contextmanager
    def _write(self) -> Generator[Session, None, None]:
        with self._lock:
            try:
                with session_scope(self._sessions) as session:
                    yield session
            except SQLAlchemyError as e:
                logger.error(f"Ledger commit failed: {e}")
                raise PersistenceError(str(e)) from e

    @contextmanager
    def _read(self) -> Generator[Session, None, None]:
        session = self._sessions()
        try:
            yield session
        finally:
            session.close()

    def _day_bounds(self, day: date) -> tuple[str, str]:
        return (
            self.clock.to_iso(self.clock.start_of_day(day)),
            self.clock.to_iso(self.clock.end_of_day(day)),
        )

    # =========================================================================
    # Confirmations
    # =========================================================================

    def record_confirmation(
        self,
        user_id: str,
        status: ConfirmationStatus,
        task: TaskType = TaskType.ALL,
    ) -> dict[str, Any]:
        """
        Append a done/miss confirmation stamped with the local time.

        Returns:
            The stored row as a dict
        """
        user_id = require_user(user_id)
        status = parse_status(status)
        task = parse_task(task)
        with self._write() as session:
            row = Confirmation(
                user_id=user_id,
                status=status.value,
                task=task.value,
                created_at=self.clock.now_iso(),
            )
            session.add(row)
            session.flush()
            logger.debug(f"Confirmation #{row.id}: {user_id} {task.value}={status.value}")
            return row.to_dict()

    def confirmations_on(self, day: date, user_id: str | None = None) -> list[dict[str, Any]]:
        """Confirmations created within ``day`` (local zone), oldest first."""
        start, end = self._day_bounds(day)
        stmt = select(Confirmation).where(
            Confirmation.created_at >= start,
            Confirmation.created_at <= end,
        )
        if user_id:
            stmt = stmt.where(Confirmation.user_id == user_id)
        stmt = stmt.order_by(Confirmation.created_at.asc(), Confirmation.id.asc())
        with self._read() as session:
            return [row.to_dict() for row in session.scalars(stmt)]

    # =========================================================================
    # Study Sessions
    # =========================================================================

    def start_session(self, user_id: str) -> dict[str, Any]:
        """Open a new study session. Already-open sessions are left untouched."""
        user_id = require_user(user_id)
        with self._write() as session:
            row = StudySession(user_id=user_id, started_at=self.clock.now_iso())
            session.add(row)
            session.flush()
            logger.debug(f"Study session #{row.id} started for {user_id}")
            return row.to_dict()

    def end_latest_open_session(self, user_id: str) -> dict[str, Any] | None:
        """
        Close the most recent open session (highest id) for the user.

        Duration is ``max(1, round(elapsed minutes))``.

        Returns:
            The closed session, or None when nothing was open
        """
        user_id = require_user(user_id)
        with self._write() as session:
            row = session.scalars(
                select(StudySession)
                .where(StudySession.user_id == user_id, StudySession.ended_at.is_(None))
                .order_by(StudySession.id.desc())
                .limit(1)
            ).first()
            if row is None:
                logger.debug(f"No open study session for {user_id}")
                return None
            ended = self.clock.now()
            started = self.clock.from_iso(row.started_at)
            elapsed_ms = (ended - started).total_seconds() * 1000
            row.ended_at = self.clock.to_iso(ended)
            row.duration_minutes = max(1, round_half_up(elapsed_ms / 60000))
            logger.debug(f"Study session #{row.id} closed after {row.duration_minutes} min")
            return row.to_dict()

    def sessions_on(self, day: date, user_id: str | None = None) -> list[dict[str, Any]]:
        """Sessions that started or ended within ``day``, by id."""
        start, end = self._day_bounds(day)
        stmt = select(StudySession).where(
            or_(
                (StudySession.started_at >= start) & (StudySession.started_at <= end),
                (StudySession.ended_at >= start) & (StudySession.ended_at <= end),
            )
        )
        if user_id:
            stmt = stmt.where(StudySession.user_id == user_id)
        stmt = stmt.order_by(StudySession.id.asc())
        with self._read() as session:
            return [row.to_dict() for row in session.scalars(stmt)]

    # =========================================================================
    # Manual Reports
    # =========================================================================

    def report_minutes(self, user_id: str, task: TaskType, minutes: int) -> dict[str, Any]:
        user_id = require_user(user_id)
        task = parse_task(task)
        require_positive("minutes", minutes)
        with self._write() as session:
            row = TaskMinutes(
                user_id=user_id,
                date=self.clock.today().isoformat(),
                task=task.value,
                minutes=minutes,
            )
            session.add(row)
            session.flush()
            return row.to_dict()

    def report_progress(self, user_id: str, task: TaskType, metric: str, amount: int) -> dict[str, Any]:
        user_id = require_user(user_id)
        task = parse_task(task)
        if not metric or not metric.strip():
            raise ValidationError("metric is required")
        require_positive("amount", amount)
        with self._write() as session:
            row = TaskProgress(
                user_id=user_id,
                date=self.clock.today().isoformat(),
                task=task.value,
                metric=metric.strip(),
                amount=amount,
            )
            session.add(row)
            session.flush()
            return row.to_dict()

    def task_minutes_on(self, day: date, user_id: str | None = None) -> list[dict[str, Any]]:
        stmt = select(TaskMinutes).where(TaskMinutes.date == day.isoformat())
        if user_id:
            stmt = stmt.where(TaskMinutes.user_id == user_id)
        with self._read() as session:
            return [row.to_dict() for row in session.scalars(stmt.order_by(TaskMinutes.id))]

    def task_progress_on(self, day: date, user_id: str | None = None) -> list[dict[str, Any]]:
        stmt = select(TaskProgress).where(TaskProgress.date == day.isoformat())
        if user_id:
            stmt = stmt.where(TaskProgress.user_id == user_id)
        with self._read() as session:
            return [row.to_dict() for row in session.scalars(stmt.order_by(TaskProgress.id))]

    # =========================================================================
    # Pomodoro
    # =========================================================================

    def log_pomodoro_event(
        self,
        user_id: str,
        task: TaskType,
        event: PomodoroEventType,
        meta: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        user_id = require_user(user_id)
        task = parse_task(task)
        event = parse_event(event)
        with self._write() as session:
            row = PomodoroEvent(
                user_id=user_id,
                task=task.value,
                event=event.value,
                at=self.clock.now_iso(),
                meta=json.dumps(meta) if meta else None,
            )
            session.add(row)
            session.flush()
            return row.to_dict()

    def pomodoro_events_between(
        self,
        start: date,
        end: date,
        user_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Events from the start of ``start`` to the end of ``end``."""
        lower, _ = self._day_bounds(start)
        _, upper = self._day_bounds(end)
        stmt = select(PomodoroEvent).where(PomodoroEvent.at >= lower, PomodoroEvent.at <= upper)
        if user_id:
            stmt = stmt.where(PomodoroEvent.user_id == user_id)
        with self._read() as session:
            return [row.to_dict() for row in session.scalars(stmt.order_by(PomodoroEvent.id))]

    def set_pomodoro_config(self, user_id: str, durations: PomodoroDurations) -> PomodoroDurations:
        user_id = require_user(user_id)
        durations.validate()
        with self._write() as session:
            session.merge(
                PomodoroUserConfig(
                    user_id=user_id,
                    focus=durations.focus,
                    brk=durations.brk,
                    long_brk=durations.long_brk,
                    long_every=durations.long_every,
                )
            )
        return durations

    def get_pomodoro_config(self, user_id: str) -> PomodoroDurations | None:
        with self._read() as session:
            row = session.get(PomodoroUserConfig, user_id)
            if row is None:
                return None
            return PomodoroDurations(
                focus=row.focus,
                brk=row.brk,
                long_brk=row.long_brk,
                long_every=row.long_every,
            )

    # =========================================================================
    # Flashcards
    # =========================================================================

    def create_card(
        self,
        user_id: str,
        front: str,
        initial_state: SRSSnapshot,
        back: str | None = None,
        example: str | None = None,
        language: str | None = None,
        tags: str | None = None,
    ) -> dict[str, Any]:
        """Insert a card together with its initial SRS row in one transaction."""
        user_id = require_user(user_id)
        if not front or not front.strip():
            raise ValidationError("front is required")
        with self._write() as session:
            card = Card(
                user_id=user_id,
                front=front,
                back=back,
                example=example,
                language=language,
                tags=tags,
                created_at=self.clock.now_iso(),
            )
            session.add(card)
            session.flush()
            session.add(
                SRSState(
                    card_id=card.id,
                    user_id=user_id,
                    ease=initial_state.ease,
                    interval_days=initial_state.interval_days,
                    reps=initial_state.reps,
                    lapses=initial_state.lapses,
                    due_date=initial_state.due_date,
                    last_grade=None,
                )
            )
            logger.debug(f"Card #{card.id} created for {user_id}")
            return card.to_dict()

    def get_card(self, card_id: int, user_id: str) -> dict[str, Any] | None:
        with self._read() as session:
            card = session.get(Card, card_id)
            if card is None or card.user_id != user_id:
                return None
            return card.to_dict()

    def get_srs_state(self, card_id: int, user_id: str) -> SRSSnapshot | None:
        with self._read() as session:
            row = session.get(SRSState, (card_id, user_id))
            if row is None:
                return None
            return SRSSnapshot(
                card_id=row.card_id,
                user_id=row.user_id,
                ease=row.ease,
                interval_days=row.interval_days,
                reps=row.reps,
                lapses=row.lapses,
                due_date=row.due_date,
                last_grade=row.last_grade,
            )

    def apply_review(self, state: SRSSnapshot, grade: int, interval_before: int) -> dict[str, Any]:
        """Upsert the SRS row and append the audit entry atomically."""
        with self._write() as session:
            session.merge(
                SRSState(
                    card_id=state.card_id,
                    user_id=state.user_id,
                    ease=state.ease,
                    interval_days=state.interval_days,
                    reps=state.reps,
                    lapses=state.lapses,
                    due_date=state.due_date,
                    last_grade=state.last_grade,
                )
            )
            review = Review(
                card_id=state.card_id,
                user_id=state.user_id,
                reviewed_at=self.clock.now_iso(),
                grade=grade,
                interval_before=interval_before,
                interval_after=state.interval_days,
                ease_after=state.ease,
            )
            session.add(review)
            session.flush()
            return review.to_dict()

    def due_cards(self, user_id: str, until_iso: str, limit: int) -> list[dict[str, Any]]:
        """Cards with no due date or due at/before ``until_iso``; soonest first."""
        stmt = (
            select(Card, SRSState.due_date)
            .join(SRSState, (Card.id == SRSState.card_id) & (Card.user_id == SRSState.user_id))
            .where(
                Card.user_id == user_id,
                or_(SRSState.due_date.is_(None), SRSState.due_date <= until_iso),
            )
            .order_by(SRSState.due_date.asc(), Card.id.asc())
            .limit(limit)
        )
        with self._read() as session:
            out = []
            for card, due_date in session.execute(stmt):
                data = card.to_dict()
                data["dueDate"] = due_date
                out.append(data)
            return out

    def recent_cards(self, user_id: str | None = None, limit: int = 100) -> list[dict[str, Any]]:
        stmt = select(Card)
        if user_id:
            stmt = stmt.where(Card.user_id == user_id)
        stmt = stmt.order_by(Card.id.desc()).limit(limit)
        with self._read() as session:
            return [row.to_dict() for row in session.scalars(stmt)]

    def reviews_for(self, card_id: int, user_id: str) -> list[dict[str, Any]]:
        stmt = (
            select(Review)
            .where(Review.card_id == card_id, Review.user_id == user_id)
            .order_by(Review.id.asc())
        )
        with self._read() as session:
            return [row.to_dict() for row in session.scalars(stmt)]

    # =========================================================================
    # Accounts (points & streak)
    # =========================================================================

    def get_account(self, user_id: str) -> AccountSnapshot | None:
        with self._read() as session:
            row = session.get(UserAccount, user_id)
            if row is None:
                return None
            return AccountSnapshot(
                user_id=row.user_id,
                points=row.points,
                streak=row.streak,
                last_full_done_date=row.last_full_done_date,
            )

    def add_points(self, user_id: str, delta: int) -> int:
        """Add ``delta`` points (never below zero), creating the account lazily."""
        user_id = require_user(user_id)
        with self._write() as session:
            account = session.get(UserAccount, user_id)
            if account is None:
                account = UserAccount(user_id=user_id, points=0, streak=0)
                session.add(account)
            account.points = max(0, (account.points or 0) + delta)
            return account.points

    def save_streak(self, user_id: str, streak: int, last_full_done_date: date) -> None:
        user_id = require_user(user_id)
        with self._write() as session:
            account = session.get(UserAccount, user_id)
            if account is None:
                account = UserAccount(user_id=user_id, points=0)
                session.add(account)
            account.streak = max(0, streak)
            account.last_full_done_date = last_full_done_date.isoformat()

    def leaderboard(self) -> list[dict[str, Any]]:
        """All accounts by points desc, streak desc, user id asc, with display names."""
        profiles = self.user_profiles()
        stmt = select(UserAccount).order_by(
            UserAccount.points.desc(),
            UserAccount.streak.desc(),
            UserAccount.user_id.asc(),
        )
        with self._read() as session:
            return [
                {
                    "userId": row.user_id,
                    "points": row.points,
                    "streak": row.streak,
                    "displayName": profiles.get(row.user_id, {}).get("displayName"),
                }
                for row in session.scalars(stmt)
            ]

    # =========================================================================
    # Users & Profiles
    # =========================================================================

    def distinct_user_ids(self) -> list[str]:
        """Users seen in confirmations or study sessions, ascending."""
        stmt = union(select(Confirmation.user_id), select(StudySession.user_id))
        with self._read() as session:
            return sorted({row[0] for row in session.execute(stmt)})

    def upsert_user_profile(
        self,
        user_id: str,
        display_name: str | None = None,
        picture_url: str | None = None,
    ) -> None:
        user_id = require_user(user_id)
        with self._write() as session:
            session.merge(
                UserProfile(
                    user_id=user_id,
                    display_name=display_name,
                    picture_url=picture_url,
                    updated_at=self.clock.now_iso(),
                )
            )

    def user_profiles(self) -> dict[str, dict[str, str | None]]:
        with self._read() as session:
            return {
                row.user_id: {"displayName": row.display_name, "pictureUrl": row.picture_url}
                for row in session.scalars(select(UserProfile))
            }

    # =========================================================================
    # Plan State
    # =========================================================================

    def set_plan_state(self, version: str, day: int, to_user_id: str | None = None) -> PlanSnapshot:
        if not version:
            raise ValidationError("plan version is required")
        require_positive("day", day)
        started_at = self.clock.now_iso()
        with self._write() as session:
            session.merge(
                PlanState(version=version, day=day, to_user_id=to_user_id, started_at=started_at)
            )
        return PlanSnapshot(version=version, day=day, to_user_id=to_user_id, started_at=started_at)

    def get_plan_state(self, version: str) -> PlanSnapshot | None:
        with self._read() as session:
            row = session.get(PlanState, version)
            if row is None:
                return None
            return PlanSnapshot(
                version=row.version,
                day=row.day,
                to_user_id=row.to_user_id,
                started_at=row.started_at,
            )

    def advance_plan_day(self, version: str, max_day: int = 9999) -> int:
        """
        Move a plan to its next day, capped at ``max_day``.

        A version that was never configured counts as day 1 with no target
        user, so its first advance lands on day 2.
        """
        with self._lock:
            current = self.get_plan_state(version)
            day = current.day if current is not None else 1
            to_user_id = current.to_user_id if current is not None else None
            next_day = min(max_day, day + 1)
            self.set_plan_state(version, next_day, to_user_id)
            return next_day

