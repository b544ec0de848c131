"""
Configuration settings for the study-coach service.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from coach.ledger.records import PomodoroDurations


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///data.sqlite",
        description="SQLAlchemy connection string for the ledger",
    )
    timezone: str = Field(
        default="Asia/Tokyo",
        description="Fixed local zone used for every day boundary",
    )

    # ========================================
    # Pomodoro
    # ========================================
    pomodoro_focus_minutes: int = Field(default=25, gt=0, description="Default focus period")
    pomodoro_break_minutes: int = Field(default=5, gt=0, description="Default short break")
    pomodoro_long_break_minutes: int = Field(default=15, gt=0, description="Default long break")
    pomodoro_long_break_every: int = Field(
        default=4,
        gt=0,
        description="A long break follows every Nth completed focus period",
    )

    # ========================================
    # Points & Streaks
    # ========================================
    complete_task_points: int = Field(
        default=10,
        ge=0,
        description="Points awarded for each 'done' confirmation",
    )
    streak_milestones: list[int] = Field(
        default_factory=lambda: [3, 7, 14],
        description="Streak lengths that trigger a celebration",
    )

    # ========================================
    # Flashcards & Reports
    # ========================================
    due_cards_page_size: int = Field(default=100, gt=0, description="Due-card query cap")
    recent_cards_max: int = Field(default=500, gt=0, description="Upper clamp for recent cards")
    weekly_max_days: int = Field(default=31, gt=0, description="Upper clamp for multi-day views")

    # ========================================
    # Outbound notifications (LINE Messaging API)
    # ========================================
    line_channel_access_token: str | None = Field(
        default=None,
        description="Channel access token; notifications are only logged when unset",
    )
    line_api_base: str = Field(
        default="https://api.line.me",
        description="LINE Messaging API base URL",
    )
    notify_timeout_seconds: float = Field(default=10.0, gt=0, description="Push request timeout")

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default="logs/study_coach.log",
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # API Server
    # ========================================
    api_host: str = Field(default="127.0.0.1", description="API server host")
    api_port: int = Field(default=8100, description="API server port")

    # ========================================
    # Helper Methods
    # ========================================
    def pomodoro_defaults(self) -> PomodoroDurations:
        """Global focus/break durations used when a user has no override."""
        return PomodoroDurations(
            focus=self.pomodoro_focus_minutes,
            brk=self.pomodoro_break_minutes,
            long_brk=self.pomodoro_long_break_minutes,
            long_every=self.pomodoro_long_break_every,
        )

    def has_line_configured(self) -> bool:
        """Check if outbound LINE pushes can be sent."""
        return bool(self.line_channel_access_token)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
