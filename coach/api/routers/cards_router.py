"""
Flashcards router.

Create cards, grade reviews and list the due queue.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from coach.api.deps import get_coach
from coach.core.clock import parse_day
from coach.service import StudyCoach

router = APIRouter()


class CardCreateRequest(BaseModel):
    user_id: str = Field(..., alias="userId")
    front: str
    back: str | None = None
    example: str | None = None
    language: str | None = None
    tags: str | None = None


class ReviewRequest(BaseModel):
    user_id: str = Field(..., alias="userId")
    # Numbers outside 0..5 are clamped by the scheduler
    grade: float


class ReviewResponse(BaseModel):
    next_due_date: str = Field(..., serialization_alias="nextDueDate")
    ease: float
    interval_days: int = Field(..., serialization_alias="intervalDays")
    reps: int
    lapses: int


@router.post("", summary="Create a card (due immediately)")
def create_card(request: CardCreateRequest, coach: StudyCoach = Depends(get_coach)) -> dict[str, Any]:
    return coach.create_card(
        request.user_id,
        request.front,
        back=request.back,
        example=request.example,
        language=request.language,
        tags=request.tags,
    )


@router.post("/{card_id}/review", summary="Grade a review (0-5)")
def review_card(card_id: int, request: ReviewRequest, coach: StudyCoach = Depends(get_coach)) -> dict[str, Any]:
    result = coach.review_card(request.user_id, card_id, request.grade)
    return ReviewResponse(
        next_due_date=result["nextDueDate"],
        ease=result["ease"],
        interval_days=result["intervalDays"],
        reps=result["reps"],
        lapses=result["lapses"],
    ).model_dump(by_alias=True)


@router.get("/due", summary="Cards due by the end of a day")
def due_cards(
    user_id: str = Query(..., alias="userId"),
    day: str | None = None,
    coach: StudyCoach = Depends(get_coach),
) -> dict[str, Any]:
    target: date = parse_day(day, coach.clock)
    cards = coach.due_cards(user_id, target)
    return {"date": target.isoformat(), "count": len(cards), "cards": cards}


@router.get("/recent", summary="Most recently created cards")
def recent_cards(
    user_id: str | None = Query(default=None, alias="userId"),
    limit: int = 100,
    coach: StudyCoach = Depends(get_coach),
) -> list[dict[str, Any]]:
    return coach.flashcards.recent_cards(user_id, limit)
