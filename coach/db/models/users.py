"""Per-user state: points/streak account, cached profile, pomodoro overrides, plan progress."""

from __future__ import annotations

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UserAccount(Base):
    """Points and streak; only the points engine writes here."""

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_full_done_date: Mapped[str | None] = mapped_column(Text)  # YYYY-MM-DD


class UserProfile(Base):
    """Non-authoritative cache of the chat platform's identity data."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    display_name: Mapped[str | None] = mapped_column(Text)
    picture_url: Mapped[str | None] = mapped_column(Text)
    updated_at: Mapped[str | None] = mapped_column(Text)


class PomodoroUserConfig(Base):
    __tablename__ = "pomodoro_user_config"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    focus: Mapped[int] = mapped_column(Integer, nullable=False)
    brk: Mapped[int] = mapped_column(Integer, nullable=False)
    long_brk: Mapped[int] = mapped_column(Integer, nullable=False)
    long_every: Mapped[int] = mapped_column(Integer, nullable=False)


class PlanState(Base):
    """Which day of a versioned study plan is current."""

    __tablename__ = "plan_state"

    version: Mapped[str] = mapped_column(Text, primary_key=True)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    to_user_id: Mapped[str | None] = mapped_column(Text)
    started_at: Mapped[str] = mapped_column(Text, nullable=False)
