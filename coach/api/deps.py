"""Request-scoped access to the shared StudyCoach."""

from __future__ import annotations

from fastapi import Request

from coach.service import StudyCoach


def get_coach(request: Request) -> StudyCoach:
    return request.app.state.coach
