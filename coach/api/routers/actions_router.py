"""
Actions router.

One endpoint per inbound chat action: confirmations, study sessions,
manual reports, pomodoro control and profile snapshots.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from coach.api.deps import get_coach
from coach.core.types import ConfirmationStatus, TaskType
from coach.service import StudyCoach

router = APIRouter()


# ========================================
# Request Models
# ========================================


class ConfirmRequest(BaseModel):
    user_id: str = Field(..., alias="userId")
    status: ConfirmationStatus
    task: TaskType = TaskType.ALL


class UserRequest(BaseModel):
    user_id: str = Field(..., alias="userId")


class MinutesRequest(BaseModel):
    user_id: str = Field(..., alias="userId")
    task: TaskType
    minutes: int


class ProgressRequest(BaseModel):
    user_id: str = Field(..., alias="userId")
    task: TaskType
    metric: str
    amount: int


class TimerStartRequest(BaseModel):
    user_id: str = Field(..., alias="userId")
    task: TaskType
    notify_target: str | None = Field(default=None, alias="notifyTarget")


class TimerControlRequest(BaseModel):
    user_id: str = Field(..., alias="userId")
    op: Literal["pause", "resume", "stop"]
    task: TaskType | None = None
    notify_target: str | None = Field(default=None, alias="notifyTarget")


class PomodoroConfigRequest(BaseModel):
    user_id: str = Field(..., alias="userId")
    focus: int
    brk: int
    long_brk: int = Field(..., alias="longBrk")
    long_every: int = Field(..., alias="longEvery")


class ProfileRequest(BaseModel):
    display_name: str | None = Field(default=None, alias="displayName")
    picture_url: str | None = Field(default=None, alias="pictureUrl")


# ========================================
# Confirmations & Sessions
# ========================================


@router.post("/confirm", summary="Record a done/miss confirmation")
def confirm(request: ConfirmRequest, coach: StudyCoach = Depends(get_coach)) -> dict[str, Any]:
    return coach.confirm(request.user_id, request.status, request.task).to_dict()


@router.post("/study/start", summary="Open a study session")
def start_study(request: UserRequest, coach: StudyCoach = Depends(get_coach)) -> dict[str, Any]:
    return coach.start_study(request.user_id)


@router.post("/study/end", summary="Close the latest open study session")
def end_study(request: UserRequest, coach: StudyCoach = Depends(get_coach)) -> dict[str, Any]:
    """Closing with nothing open is not an error; ``session`` is null."""
    return {"session": coach.end_study(request.user_id)}


@router.post("/reports/minutes", summary="Report minutes spent on a task")
def report_minutes(request: MinutesRequest, coach: StudyCoach = Depends(get_coach)) -> dict[str, Any]:
    return coach.report_minutes(request.user_id, request.task, request.minutes)


@router.post("/reports/progress", summary="Report progress on a task")
def report_progress(request: ProgressRequest, coach: StudyCoach = Depends(get_coach)) -> dict[str, Any]:
    return coach.report_progress(request.user_id, request.task, request.metric, request.amount)


@router.get("/users/{user_id}/points", summary="Current points and streak")
def points(user_id: str, coach: StudyCoach = Depends(get_coach)) -> dict[str, int]:
    return coach.points_and_streak(user_id)


@router.put("/users/{user_id}/profile", summary="Store a display name / picture snapshot")
def upsert_profile(user_id: str, request: ProfileRequest, coach: StudyCoach = Depends(get_coach)) -> dict[str, bool]:
    coach.upsert_profile(user_id, request.display_name, request.picture_url)
    return {"ok": True}


# ========================================
# Pomodoro
# ========================================


@router.post("/pomodoro/start", summary="Start a study session and the task's pomodoro")
def start_timer(request: TimerStartRequest, coach: StudyCoach = Depends(get_coach)) -> dict[str, Any]:
    return coach.start_timer(request.user_id, request.task, request.notify_target)


@router.post("/pomodoro/control", summary="Pause, resume or stop timers")
def timer_control(request: TimerControlRequest, coach: StudyCoach = Depends(get_coach)) -> dict[str, Any]:
    timers = coach.timer_control(request.user_id, request.op, request.task, request.notify_target)
    return {"timers": timers}


@router.get("/pomodoro/config", summary="Effective pomodoro durations")
def get_pomodoro_config(
    user_id: str | None = Query(default=None, alias="userId"),
    coach: StudyCoach = Depends(get_coach),
) -> dict[str, Any]:
    return coach.pomodoro_config(user_id)


@router.put("/pomodoro/config", summary="Set a user's pomodoro durations")
def set_pomodoro_config(request: PomodoroConfigRequest, coach: StudyCoach = Depends(get_coach)) -> dict[str, int]:
    return coach.set_pomodoro_config(
        request.user_id,
        request.focus,
        request.brk,
        request.long_brk,
        request.long_every,
    )
