"""Spaced-repetition flashcards (SM-2)."""

from coach.srs.service import FlashcardService
from coach.srs.sm2 import SM2Config, SM2Scheduler, clamp_grade

__all__ = ["FlashcardService", "SM2Config", "SM2Scheduler", "clamp_grade"]
