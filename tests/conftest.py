"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests:
a frozen clock, an in-memory ledger, manual pomodoro timers and a
notifier that records what it was asked to send.
"""
from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from coach.core.clock import LocalClock  # noqa: E402
from coach.ledger.records import PomodoroDurations  # noqa: E402
from coach.ledger.store import LedgerStore  # noqa: E402

TOKYO = ZoneInfo("Asia/Tokyo")


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (API over an in-memory database)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# ========================================
# Test doubles
# ========================================


class FrozenNow:
    """Settable ``now`` source; only moves when a test moves it."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def set(self, moment: datetime) -> None:
        self.current = moment

    def advance(self, **delta) -> None:
        self.current = self.current + timedelta(**delta)


class ManualTimer:
    def __init__(self, due: float, callback, name: str):
        self.due = due
        self.callback = callback
        self.name = name
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerFactory:
    """
    Timer factory driven by simulated time.

    ``advance(seconds)`` moves the shared clock forward and fires every
    timer that comes due, including timers scheduled by those callbacks.
    """

    def __init__(self, now: FrozenNow):
        self.now = now
        self.elapsed = 0.0
        self.timers: list[ManualTimer] = []

    def schedule(self, delay_seconds, callback, name=""):
        timer = ManualTimer(self.elapsed + delay_seconds, callback, name)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled and t.callback is not None]

    @property
    def cancelled_count(self) -> int:
        return sum(1 for t in self.timers if t.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.elapsed + seconds
        while True:
            due = sorted((t for t in self.pending if t.due <= target), key=lambda t: t.due)
            if not due:
                break
            timer = due[0]
            self.now.advance(seconds=timer.due - self.elapsed)
            self.elapsed = timer.due
            callback, timer.callback = timer.callback, None
            callback()
        self.now.advance(seconds=target - self.elapsed)
        self.elapsed = target

    def advance_minutes(self, minutes: float) -> None:
        self.advance(minutes * 60)


class RecordingNotifier:
    """Notifier that keeps every push; can be told to fail."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages: list[tuple[str, str, list]] = []

    def push(self, to, text, quick_actions=None):
        if self.fail:
            raise RuntimeError("push failed")
        self.messages.append((to, text, list(quick_actions or [])))


# ========================================
# Fixtures
# ========================================


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def frozen_now():
    """Monday 2026-10-19 09:00 in Tokyo."""
    return FrozenNow(datetime(2026, 10, 19, 9, 0, tzinfo=TOKYO))


@pytest.fixture
def clock(frozen_now):
    return LocalClock("Asia/Tokyo", now_fn=frozen_now)


@pytest.fixture
def store(clock):
    """Fresh in-memory ledger per test."""
    ledger = LedgerStore.from_url("sqlite://", clock=clock)
    yield ledger
    ledger.engine.dispose()


@pytest.fixture
def timers(frozen_now):
    return ManualTimerFactory(frozen_now)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def short_durations():
    """1-minute focus, 2-minute break, 5-minute long break every 2nd cycle."""
    return PomodoroDurations(focus=1, brk=2, long_brk=5, long_every=2)


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail=True)
