"""
Append-only ledger tables.

Confirmations, manual reports and pomodoro events are never updated once
written. Study sessions are the one exception: ``ended_at`` and
``duration_minutes`` are filled in when the session is closed.
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Confirmation(Base):
    """A user-reported done/miss outcome for a task."""

    __tablename__ = "confirmations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    task: Mapped[str] = mapped_column(Text, nullable=False, default="all")
    status: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        CheckConstraint("status IN ('done', 'miss')", name="ck_confirmation_status"),
        Index("idx_confirmations_created", "created_at"),
        Index("idx_confirmations_user_created", "user_id", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "task": self.task,
            "status": self.status,
            "createdAt": self.created_at,
        }


class StudySession(Base):
    """A study session; open until ``ended_at`` is set."""

    __tablename__ = "study_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    started_at: Mapped[str] = mapped_column(Text, nullable=False)
    ended_at: Mapped[str | None] = mapped_column(Text)
    duration_minutes: Mapped[int | None] = mapped_column(Integer)

    __table_args__ = (Index("idx_study_sessions_user", "user_id", "ended_at"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "startedAt": self.started_at,
            "endedAt": self.ended_at,
            "durationMinutes": self.duration_minutes,
        }


class TaskMinutes(Base):
    """Manually reported minutes spent on a task."""

    __tablename__ = "task_minutes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[str] = mapped_column(Text, nullable=False)
    task: Mapped[str] = mapped_column(Text, nullable=False)
    minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "date": self.date,
            "task": self.task,
            "minutes": self.minutes,
        }


class TaskProgress(Base):
    """Manually reported quantity (pages, words, ...) for a task."""

    __tablename__ = "task_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[str] = mapped_column(Text, nullable=False)
    task: Mapped[str] = mapped_column(Text, nullable=False)
    metric: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "date": self.date,
            "task": self.task,
            "metric": self.metric,
            "amount": self.amount,
        }


class PomodoroEvent(Base):
    """Authoritative history of focus/break transitions."""

    __tablename__ = "pomodoro_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    task: Mapped[str] = mapped_column(Text, nullable=False)
    event: Mapped[str] = mapped_column(Text, nullable=False)
    at: Mapped[str] = mapped_column(Text, nullable=False)
    meta: Mapped[str | None] = mapped_column(Text)  # JSON

    __table_args__ = (Index("idx_pomodoro_events_at", "at"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "task": self.task,
            "event": self.event,
            "at": self.at,
            "meta": self.meta,
        }
