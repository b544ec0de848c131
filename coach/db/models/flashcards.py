"""
Flashcard tables.

Card content is immutable. ``SRSState`` has exactly one row per
(card, user) and is only written by reviews; ``Review`` is the audit log.
"""

from __future__ import annotations

from sqlalchemy import Float, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Card(Base):
    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    front: Mapped[str] = mapped_column(Text, nullable=False)
    back: Mapped[str | None] = mapped_column(Text)
    example: Mapped[str | None] = mapped_column(Text)
    language: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "front": self.front,
            "back": self.back,
            "example": self.example,
            "language": self.language,
            "tags": self.tags,
            "createdAt": self.created_at,
        }


class SRSState(Base):
    """SM-2 scheduling state for one (card, user)."""

    __tablename__ = "srs"

    card_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    ease: Mapped[float] = mapped_column(Float, nullable=False, default=2.5)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lapses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    due_date: Mapped[str | None] = mapped_column(Text)
    last_grade: Mapped[int | None] = mapped_column(Integer)

    __table_args__ = (Index("idx_srs_due", "user_id", "due_date"),)

    def __repr__(self) -> str:
        return (
            f"<SRSState card={self.card_id} user={self.user_id} "
            f"ease={self.ease} interval={self.interval_days} due={self.due_date}>"
        )


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    reviewed_at: Mapped[str] = mapped_column(Text, nullable=False)
    grade: Mapped[int] = mapped_column(Integer, nullable=False)
    interval_before: Mapped[int | None] = mapped_column(Integer)
    interval_after: Mapped[int | None] = mapped_column(Integer)
    ease_after: Mapped[float | None] = mapped_column(Float)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cardId": self.card_id,
            "userId": self.user_id,
            "reviewedAt": self.reviewed_at,
            "grade": self.grade,
            "intervalBefore": self.interval_before,
            "intervalAfter": self.interval_after,
            "easeAfter": self.ease_after,
        }
