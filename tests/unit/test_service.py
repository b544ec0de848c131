"""
Unit tests for the StudyCoach facade.
"""

from datetime import date, timedelta

import pytest

from config import Settings
from coach.core.errors import NotFoundError, ValidationError
from coach.core.types import CANONICAL_TASKS, ConfirmationStatus, TaskType
from coach.notify.base import LogNotifier
from coach.notify.line import LinePushNotifier
from coach.service import build_coach, build_notifier

DONE = ConfirmationStatus.DONE
MISS = ConfirmationStatus.MISS
TODAY = date(2026, 10, 19)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        pomodoro_focus_minutes=1,
        pomodoro_break_minutes=2,
        pomodoro_long_break_minutes=5,
        pomodoro_long_break_every=2,
        streak_milestones=[1, 3],
    )


@pytest.fixture
def coach(settings, store, notifier, timers):
    instance = build_coach(settings, store=store, notifier=notifier, timers=timers)
    yield instance
    instance.shutdown()


class TestConfirm:
    def test_task_confirmation_stops_its_timer(self, coach, timers, store):
        coach.start_timer("U1", TaskType.VOCAB)
        coach.start_timer("U1", TaskType.GRAMMAR)

        result = coach.confirm("U1", DONE, TaskType.VOCAB)

        assert result.stopped_timers == ["vocab"]
        assert coach.pomodoro.status("U1", TaskType.VOCAB)["active"] is False
        assert coach.pomodoro.status("U1", TaskType.GRAMMAR)["active"] is True
        assert result.points == 10

    def test_all_done_closes_latest_session(self, coach, frozen_now):
        coach.start_study("U1")
        frozen_now.advance(minutes=45)
        result = coach.confirm("U1", DONE, TaskType.ALL)

        assert result.closed_session["durationMinutes"] == 45
        assert result.stopped_timers == []

    def test_all_miss_leaves_session_open(self, coach):
        coach.start_study("U1")
        result = coach.confirm("U1", MISS, TaskType.ALL)
        assert result.closed_session is None
        assert result.points == 0

    def test_full_day_reports_milestone(self, coach):
        result = None
        for task in CANONICAL_TASKS:
            result = coach.confirm("U1", DONE, task)
        assert result.streak == 1
        assert result.milestone == 1
        assert result.points == 40
        assert result.to_dict()["milestone"] == 1

    def test_scenario_four_tasks_after_yesterday(self, coach, store):
        store.save_streak("U1", 2, TODAY - timedelta(days=1))
        store.add_points("U1", 50)
        for task in CANONICAL_TASKS:
            result = coach.confirm("U1", DONE, task)
        assert result.streak == 3
        assert result.milestone == 3
        assert coach.points_and_streak("U1") == {"points": 90, "streak": 3}

    def test_invalid_status_writes_nothing(self, coach, store):
        with pytest.raises(ValidationError):
            coach.confirm("U1", "maybe", TaskType.VOCAB)
        assert store.confirmations_on(TODAY) == []


class TestTimers:
    def test_start_timer_opens_session(self, coach, store):
        result = coach.start_timer("U1", TaskType.READING, notify_target="GROUP1")
        assert result["session"]["endedAt"] is None
        assert result["timer"]["phase"] == "focusing"
        assert len(store.sessions_on(TODAY, "U1")) == 1

    def test_start_timer_needs_concrete_task(self, coach):
        with pytest.raises(ValidationError):
            coach.start_timer("U1", TaskType.ALL)

    def test_pause_all_tasks(self, coach, timers):
        coach.start_timer("U1", TaskType.VOCAB)
        coach.start_timer("U1", TaskType.LISTENING)

        statuses = coach.timer_control("U1", "pause")
        assert [s["task"] for s in statuses] == [t.value for t in CANONICAL_TASKS]
        assert timers.pending == []

    def test_resume_one_task(self, coach, timers):
        coach.start_timer("U1", TaskType.VOCAB)
        coach.timer_control("U1", "pause", TaskType.VOCAB)
        statuses = coach.timer_control("U1", "resume", TaskType.VOCAB)
        assert statuses[0]["active"] is True
        assert len(timers.pending) == 1

    def test_stop_via_control(self, coach, timers, store):
        coach.start_timer("U1", TaskType.VOCAB)
        coach.timer_control("U1", "stop", "vocab")
        assert timers.pending == []

    def test_unknown_operation(self, coach):
        with pytest.raises(ValidationError):
            coach.timer_control("U1", "snooze")

    def test_pomodoro_config(self, coach):
        assert coach.pomodoro_config() == {"focus": 1, "brk": 2, "longBrk": 5, "longEvery": 2}
        coach.set_pomodoro_config("U1", 50, 10, 20, 3)
        assert coach.pomodoro_config("U1") == {"focus": 50, "brk": 10, "longBrk": 20, "longEvery": 3}
        with pytest.raises(ValidationError):
            coach.set_pomodoro_config("U1", 50, 0, 20, 3)


class TestFlashcards:
    def test_review_scenario(self, coach, frozen_now):
        """Due today, reviewed with grade 4, due again tomorrow."""
        card = coach.create_card("U1", "勉強", back="study")
        assert [c["id"] for c in coach.due_cards("U1", TODAY)] == [card["id"]]

        result = coach.review_card("U1", card["id"], 4)
        assert result["intervalDays"] == 1
        assert result["nextDueDate"].startswith("2026-10-20")

        assert coach.due_cards("U1", TODAY) == []
        assert [c["id"] for c in coach.due_cards("U1", TODAY + timedelta(days=1))] == [card["id"]]

    def test_review_records_audit_row(self, coach, store):
        card = coach.create_card("U1", "本")
        coach.review_card("U1", card["id"], 5)
        coach.review_card("U1", card["id"], 2)

        reviews = store.reviews_for(card["id"], "U1")
        assert [r["grade"] for r in reviews] == [5, 2]
        assert [(r["intervalBefore"], r["intervalAfter"]) for r in reviews] == [(0, 1), (1, 1)]

    def test_review_missing_card(self, coach):
        with pytest.raises(NotFoundError):
            coach.review_card("U1", 999, 4)

    def test_review_someone_elses_card(self, coach):
        card = coach.create_card("U1", "水")
        with pytest.raises(NotFoundError):
            coach.review_card("U2", card["id"], 4)

    def test_missing_srs_row_is_initialized(self, coach, store):
        from coach.db.models import SRSState

        card = coach.create_card("U1", "火")
        with store._write() as session:
            session.delete(session.get(SRSState, (card["id"], "U1")))

        result = coach.review_card("U1", card["id"], 5)
        assert result["reps"] == 1
        assert store.get_srs_state(card["id"], "U1").reps == 1

    def test_due_query_excludes_future_cards(self, coach):
        first = coach.create_card("U1", "a")
        second = coach.create_card("U1", "b")
        coach.review_card("U1", first["id"], 5)

        due = coach.due_cards("U1", TODAY)
        assert [c["id"] for c in due] == [second["id"]]
        assert all(c["dueDate"] <= "2026-10-19T23:59:59.999999+09:00" for c in due)

    def test_recent_cards_limit_clamped(self, coach):
        coach.create_card("U1", "x")
        assert len(coach.flashcards.recent_cards("U1", limit=0)) == 1
        assert len(coach.flashcards.recent_cards("U1", limit=10_000)) == 1


class TestBuildNotifier:
    def test_log_notifier_without_token(self, settings):
        assert isinstance(build_notifier(settings), LogNotifier)

    def test_line_notifier_with_token(self, settings):
        configured = settings.model_copy(update={"line_channel_access_token": "secret"})
        notifier = build_notifier(configured)
        assert isinstance(notifier, LinePushNotifier)
        notifier.close()
