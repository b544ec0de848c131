"""
Admin router.

Read-only rollups for dashboards plus plan-progress management.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from coach.api.deps import get_coach
from coach.core.clock import parse_day
from coach.service import StudyCoach

router = APIRouter()


class PlanStateRequest(BaseModel):
    day: int = 1
    to_user_id: str | None = Field(default=None, alias="toUserId")


class PlanAdvanceRequest(BaseModel):
    max_day: int = Field(default=9999, alias="maxDay")


# ========================================
# Daily & Weekly Rollups
# ========================================


@router.get("/confirmations", summary="Confirmation rollup for one day")
def confirmations(
    date: str | None = None,
    user_id: str | None = Query(default=None, alias="userId"),
    coach: StudyCoach = Depends(get_coach),
) -> dict[str, Any]:
    return coach.reports.confirmations_for_day(date, user_id)


@router.get("/sessions", summary="Study-session rollup for one day")
def sessions(
    date: str | None = None,
    user_id: str | None = Query(default=None, alias="userId"),
    coach: StudyCoach = Depends(get_coach),
) -> dict[str, Any]:
    return coach.reports.sessions_for_day(date, user_id)


@router.get("/task-minutes", summary="Manually reported minutes for one day")
def task_minutes(
    date: str | None = None,
    user_id: str | None = Query(default=None, alias="userId"),
    coach: StudyCoach = Depends(get_coach),
) -> dict[str, Any]:
    return coach.reports.task_minutes_for_day(date, user_id)


@router.get("/task-progress", summary="Manually reported progress for one day")
def task_progress(
    date: str | None = None,
    user_id: str | None = Query(default=None, alias="userId"),
    coach: StudyCoach = Depends(get_coach),
) -> dict[str, Any]:
    return coach.reports.task_progress_for_day(date, user_id)


@router.get("/weekly", summary="Per-day arrays for the last N days")
def weekly(
    days: int = 7,
    user_id: str | None = Query(default=None, alias="userId"),
    coach: StudyCoach = Depends(get_coach),
) -> dict[str, Any]:
    return coach.reports.weekly(days, user_id)


@router.get("/weekly/totals", summary="Per-task sums for the last N days")
def weekly_totals(
    days: int = 7,
    user_id: str | None = Query(default=None, alias="userId"),
    coach: StudyCoach = Depends(get_coach),
) -> dict[str, Any]:
    return coach.reports.weekly_totals(days, user_id)


@router.get("/export.csv", response_class=PlainTextResponse, summary="Confirmation rows as CSV")
def export_csv(
    date: str | None = None,
    user_id: str | None = Query(default=None, alias="userId"),
    coach: StudyCoach = Depends(get_coach),
) -> PlainTextResponse:
    day = parse_day(date, coach.clock)
    return PlainTextResponse(
        coach.reports.export_confirmations_csv(day, user_id),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename=export_{day.isoformat()}.csv"},
    )


@router.get("/pomodoro/summary", summary="Focus periods per day and per task")
def pomodoro_summary(
    days: int = 14,
    user_id: str | None = Query(default=None, alias="userId"),
    coach: StudyCoach = Depends(get_coach),
) -> dict[str, Any]:
    return coach.reports.pomodoro_summary(days, user_id)


# ========================================
# Users
# ========================================


@router.get("/leaderboard", summary="Points leaderboard")
def leaderboard(coach: StudyCoach = Depends(get_coach)) -> list[dict[str, Any]]:
    return coach.reports.leaderboard()


@router.get("/users", summary="Users seen in confirmations or sessions")
def users(coach: StudyCoach = Depends(get_coach)) -> dict[str, Any]:
    return {"users": coach.reports.distinct_users(), "profiles": coach.reports.user_profiles()}


# ========================================
# Plan State
# ========================================


@router.get("/plan/{version}", summary="Plan progress for a version")
def get_plan(version: str, coach: StudyCoach = Depends(get_coach)) -> dict[str, Any] | None:
    state = coach.store.get_plan_state(version)
    return _plan_dict(state) if state else None


@router.put("/plan/{version}", summary="Set plan progress")
def set_plan(version: str, request: PlanStateRequest, coach: StudyCoach = Depends(get_coach)) -> dict[str, Any]:
    return _plan_dict(coach.store.set_plan_state(version, request.day, request.to_user_id))


@router.post("/plan/{version}/advance", summary="Move a plan to its next day")
def advance_plan(
    version: str,
    request: PlanAdvanceRequest | None = None,
    coach: StudyCoach = Depends(get_coach),
) -> dict[str, Any]:
    max_day = request.max_day if request else 9999
    return {"version": version, "day": coach.store.advance_plan_day(version, max_day)}


def _plan_dict(state) -> dict[str, Any]:
    return {
        "version": state.version,
        "day": state.day,
        "toUserId": state.to_user_id,
        "startedAt": state.started_at,
    }
