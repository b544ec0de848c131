"""
Unit tests for the SQLAlchemy ledger store.
"""

from datetime import date, datetime

import pytest
from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from coach.core.errors import PersistenceError, ValidationError
from coach.core.types import ConfirmationStatus, PomodoroEventType, TaskType
from coach.db.database import create_db_engine
from coach.db.models import StudySession
from coach.ledger.records import PomodoroDurations
from coach.ledger.store import LedgerStore
from coach.srs.sm2 import SM2Scheduler

TODAY = date(2026, 10, 19)


def _session_count(store) -> int:
    with store._read() as session:
        return session.scalar(select(func.count()).select_from(StudySession))


class TestConfirmations:
    def test_record_stamps_local_time(self, store):
        row = store.record_confirmation("U1", ConfirmationStatus.DONE, TaskType.VOCAB)
        assert row["task"] == "vocab"
        assert row["status"] == "done"
        assert row["createdAt"] == "2026-10-19T09:00:00.000000+09:00"

    def test_raw_strings_are_accepted(self, store):
        row = store.record_confirmation("U1", "miss", "reading")
        assert (row["task"], row["status"]) == ("reading", "miss")

    @pytest.mark.parametrize(
        "status, task",
        [("finished", "vocab"), ("done", "math"), ("done", "")],
    )
    def test_invalid_values_write_nothing(self, store, status, task):
        with pytest.raises(ValidationError):
            store.record_confirmation("U1", status, task)
        assert store.confirmations_on(TODAY) == []

    def test_empty_user_rejected(self, store):
        with pytest.raises(ValidationError):
            store.record_confirmation("", ConfirmationStatus.DONE)

    def test_day_boundaries_are_local(self, store, frozen_now):
        frozen_now.set(datetime(2026, 10, 19, 0, 0, 0, tzinfo=store.clock.zone))
        store.record_confirmation("U1", ConfirmationStatus.DONE, TaskType.VOCAB)
        frozen_now.set(datetime(2026, 10, 19, 23, 59, 59, tzinfo=store.clock.zone))
        store.record_confirmation("U1", ConfirmationStatus.DONE, TaskType.GRAMMAR)
        frozen_now.set(datetime(2026, 10, 20, 0, 0, 0, tzinfo=store.clock.zone))
        store.record_confirmation("U1", ConfirmationStatus.DONE, TaskType.READING)

        tasks = [row["task"] for row in store.confirmations_on(TODAY)]
        assert tasks == ["vocab", "grammar"]

    def test_filter_by_user(self, store):
        store.record_confirmation("U1", ConfirmationStatus.DONE)
        store.record_confirmation("U2", ConfirmationStatus.MISS)
        rows = store.confirmations_on(TODAY, "U2")
        assert [row["userId"] for row in rows] == ["U2"]


class TestSessions:
    def test_close_computes_rounded_duration(self, store, frozen_now):
        store.start_session("U1")
        frozen_now.advance(minutes=24, seconds=30)
        closed = store.end_latest_open_session("U1")
        assert closed["durationMinutes"] == 25
        assert closed["endedAt"] == "2026-10-19T09:24:30.000000+09:00"

    def test_minimum_duration_is_one(self, store, frozen_now):
        store.start_session("U1")
        frozen_now.advance(seconds=5)
        assert store.end_latest_open_session("U1")["durationMinutes"] == 1

    def test_closes_most_recent_open_session(self, store, frozen_now):
        first = store.start_session("U1")
        frozen_now.advance(minutes=10)
        second = store.start_session("U1")
        frozen_now.advance(minutes=10)

        closed = store.end_latest_open_session("U1")
        assert closed["id"] == second["id"]
        assert closed["durationMinutes"] == 10

        closed = store.end_latest_open_session("U1")
        assert closed["id"] == first["id"]
        assert closed["durationMinutes"] == 20

    def test_end_with_nothing_open_is_idempotent(self, store):
        assert store.end_latest_open_session("U1") is None
        assert store.end_latest_open_session("U1") is None
        assert _session_count(store) == 0

    def test_start_does_not_check_open_sessions(self, store):
        store.start_session("U1")
        store.start_session("U1")
        assert _session_count(store) == 2

    def test_session_counted_on_day_it_ended(self, store, frozen_now):
        frozen_now.set(datetime(2026, 10, 18, 23, 30, tzinfo=store.clock.zone))
        store.start_session("U1")
        frozen_now.set(datetime(2026, 10, 19, 0, 30, tzinfo=store.clock.zone))
        store.end_latest_open_session("U1")

        assert len(store.sessions_on(date(2026, 10, 18))) == 1
        assert len(store.sessions_on(TODAY)) == 1
        assert store.sessions_on(date(2026, 10, 20)) == []


class TestManualReports:
    def test_minutes_and_progress(self, store):
        store.report_minutes("U1", TaskType.LISTENING, 30)
        store.report_progress("U1", TaskType.READING, "pages", 12)

        assert store.task_minutes_on(TODAY)[0]["minutes"] == 30
        progress = store.task_progress_on(TODAY, "U1")[0]
        assert (progress["metric"], progress["amount"]) == ("pages", 12)

    @pytest.mark.parametrize("minutes", [0, -5, 2.5, "10", True])
    def test_non_positive_minutes_rejected(self, store, minutes):
        with pytest.raises(ValidationError):
            store.report_minutes("U1", TaskType.VOCAB, minutes)
        assert store.task_minutes_on(TODAY) == []

    def test_empty_metric_rejected(self, store):
        with pytest.raises(ValidationError):
            store.report_progress("U1", TaskType.VOCAB, "  ", 3)


class TestPomodoroStorage:
    def test_event_meta_round_trips_as_json(self, store):
        store.log_pomodoro_event("U1", TaskType.VOCAB, PomodoroEventType.START_FOCUS, {"minutes": 25})
        event = store.pomodoro_events_between(TODAY, TODAY)[0]
        assert event["event"] == "start_focus"
        assert event["meta"] == '{"minutes": 25}'

    def test_unknown_event_rejected(self, store):
        with pytest.raises(ValidationError):
            store.log_pomodoro_event("U1", TaskType.VOCAB, "snooze")

    def test_config_upsert(self, store):
        assert store.get_pomodoro_config("U1") is None
        store.set_pomodoro_config("U1", PomodoroDurations(50, 10, 30, 3))
        store.set_pomodoro_config("U1", PomodoroDurations(45, 5, 20, 4))
        assert store.get_pomodoro_config("U1") == PomodoroDurations(45, 5, 20, 4)

    @pytest.mark.parametrize("bad", [PomodoroDurations(0, 5, 15, 4), PomodoroDurations(25, 5, 15, -1)])
    def test_config_requires_positive_values(self, store, bad):
        with pytest.raises(ValidationError):
            store.set_pomodoro_config("U1", bad)
        assert store.get_pomodoro_config("U1") is None


class TestCards:
    def test_card_and_srs_created_together(self, store):
        scheduler = SM2Scheduler(store.clock)
        card = store.create_card("U1", "猫", scheduler.initial_state(0, "U1"), back="cat")
        state = store.get_srs_state(card["id"], "U1")
        assert state.card_id == card["id"]
        assert state.due_date == "2026-10-19T23:59:59.999999+09:00"

    def test_empty_front_rejected(self, store):
        scheduler = SM2Scheduler(store.clock)
        with pytest.raises(ValidationError):
            store.create_card("U1", "", scheduler.initial_state(0, "U1"))
        assert store.recent_cards() == []

    def test_get_card_is_scoped_to_owner(self, store):
        scheduler = SM2Scheduler(store.clock)
        card = store.create_card("U1", "犬", scheduler.initial_state(0, "U1"))
        assert store.get_card(card["id"], "U1") is not None
        assert store.get_card(card["id"], "U2") is None

    def test_recent_cards_newest_first(self, store):
        scheduler = SM2Scheduler(store.clock)
        for front in ["a", "b", "c"]:
            store.create_card("U1", front, scheduler.initial_state(0, "U1"))
        assert [c["front"] for c in store.recent_cards("U1", limit=2)] == ["c", "b"]


class TestAccounts:
    def test_accounts_created_lazily(self, store):
        assert store.get_account("U1") is None
        assert store.add_points("U1", 10) == 10
        assert store.add_points("U1", 10) == 20

    def test_points_never_negative(self, store):
        store.add_points("U1", 5)
        assert store.add_points("U1", -50) == 0

    def test_leaderboard_order_and_names(self, store):
        store.add_points("Ub", 30)
        store.add_points("Ua", 30)
        store.add_points("Uc", 30)
        store.save_streak("Uc", 4, TODAY)
        store.add_points("Ud", 50)
        store.upsert_user_profile("Ua", display_name="Aki")

        board = store.leaderboard()
        assert [row["userId"] for row in board] == ["Ud", "Uc", "Ua", "Ub"]
        assert board[2]["displayName"] == "Aki"
        assert board[0]["displayName"] is None


class TestUsersAndPlans:
    def test_distinct_users_union(self, store):
        store.record_confirmation("U2", ConfirmationStatus.DONE)
        store.start_session("U3")
        store.start_session("U2")
        store.record_confirmation("U1", ConfirmationStatus.MISS)
        assert store.distinct_user_ids() == ["U1", "U2", "U3"]

    def test_profile_upsert_replaces(self, store):
        store.upsert_user_profile("U1", "Old", None)
        store.upsert_user_profile("U1", "New", "https://example.com/p.png")
        assert store.user_profiles() == {
            "U1": {"displayName": "New", "pictureUrl": "https://example.com/p.png"}
        }

    def test_plan_advance(self, store):
        store.set_plan_state("v1", 1, "U1")
        assert store.advance_plan_day("v1") == 2
        assert store.advance_plan_day("v1", max_day=2) == 2
        assert store.get_plan_state("v1").to_user_id == "U1"

    def test_unknown_plan_starts_from_day_one(self, store):
        assert store.get_plan_state("nope") is None
        assert store.advance_plan_day("nope") == 2
        plan = store.get_plan_state("nope")
        assert plan.day == 2
        assert plan.to_user_id is None

    def test_unknown_plan_respects_cap(self, store):
        assert store.advance_plan_day("capped", max_day=1) == 1
        assert store.get_plan_state("capped").day == 1


class TestStoreSetup:
    def test_log_line_omits_raw_database_url(self, clock, monkeypatch):
        """Only the engine's own URL rendering reaches the log."""

        def memory_engine(database_url, echo=False):
            return create_db_engine("sqlite://", echo=echo)

        monkeypatch.setattr("coach.ledger.store.create_db_engine", memory_engine)
        messages = []
        sink_id = logger.add(messages.append, format="{message}")
        try:
            ledger = LedgerStore.from_url("postgresql://coach:s3cret@db/coach", clock=clock)
        finally:
            logger.remove(sink_id)
        ledger.engine.dispose()

        initialized = [m for m in messages if "LedgerStore initialized" in m]
        assert len(initialized) == 1
        assert str(ledger.engine.url) in initialized[0]
        assert "s3cret" not in "".join(messages)


class TestPersistenceFailures:
    def test_sqlalchemy_errors_become_persistence_errors(self, store, monkeypatch):
        def broken_flush(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr("sqlalchemy.orm.Session.flush", broken_flush)
        with pytest.raises(PersistenceError):
            store.record_confirmation("U1", ConfirmationStatus.DONE)

    def test_failed_write_leaves_nothing_behind(self, store, monkeypatch):
        def broken_commit(*args, **kwargs):
            raise OperationalError("COMMIT", {}, Exception("database or disk is full"))

        monkeypatch.setattr("sqlalchemy.orm.Session.commit", broken_commit)
        with pytest.raises(PersistenceError):
            store.start_session("U1")
        monkeypatch.undo()
        assert _session_count(store) == 0
