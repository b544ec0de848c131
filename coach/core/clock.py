"""
Fixed-zone clock.

Every timestamp the ledger stores is an ISO-8601 string in one local zone
with microsecond precision, so string order equals time order.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from coach.core.errors import ValidationError

DEFAULT_TIMEZONE = "Asia/Tokyo"


class LocalClock:
    """Wall clock pinned to a single time zone."""

    def __init__(
        self,
        timezone: str = DEFAULT_TIMEZONE,
        now_fn: Callable[[], datetime] | None = None,
    ):
        self.zone = ZoneInfo(timezone)
        self._now_fn = now_fn

    def now(self) -> datetime:
        """Current time in the local zone."""
        if self._now_fn is not None:
            return self._now_fn().astimezone(self.zone)
        return datetime.now(self.zone)

    def today(self) -> date:
        return self.now().date()

    def start_of_day(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.zone)

    def end_of_day(self, day: date) -> datetime:
        return datetime.combine(day, time.max, tzinfo=self.zone)

    def days_back(self, days: int, today: date | None = None) -> list[date]:
        """The last ``days`` dates, oldest first, ending with ``today``."""
        end = today or self.today()
        return [end - timedelta(days=offset) for offset in range(days - 1, -1, -1)]

    def to_iso(self, moment: datetime) -> str:
        return moment.astimezone(self.zone).isoformat(timespec="microseconds")

    def from_iso(self, value: str) -> datetime:
        return datetime.fromisoformat(value).astimezone(self.zone)

    def now_iso(self) -> str:
        return self.to_iso(self.now())

    def date_of(self, value: str) -> date:
        """Local calendar date of a stored timestamp."""
        return self.from_iso(value).date()


def parse_day(value: str | date | None, clock: LocalClock) -> date:
    """Accept ``YYYY-MM-DD`` strings or dates; ``None`` means today."""
    if value is None or value == "":
        return clock.today()
    if isinstance(value, datetime):
        return value.astimezone(clock.zone).date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"invalid date: {value!r}") from e
