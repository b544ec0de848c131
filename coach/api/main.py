"""
FastAPI application for the study coach.

Provides a JSON API for:
- Task confirmations, study sessions and manual reports
- Pomodoro timers and per-user durations
- Flashcards (SM-2 review, due queue)
- Admin rollups, leaderboard and plan progress
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from coach import __version__
from coach.api.routers import actions_router, admin_router, cards_router
from coach.core.errors import CoachError, NotFoundError, PersistenceError, ValidationError
from coach.core.logging_config import configure_logging
from coach.service import StudyCoach, build_coach
from config import get_settings

ERROR_STATUS: dict[type[CoachError], int] = {
    ValidationError: 422,
    NotFoundError: 404,
    PersistenceError: 503,
}


def _check_database_health(coach: StudyCoach) -> tuple[str, str | None]:
    """
    Check database connectivity.

    Returns:
        Tuple of (status, error_message). Status is "ok" or "error".
    """
    try:
        with coach.store.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "ok", None
    except SQLAlchemyError as e:
        return "error", str(e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the coach on startup (unless injected) and cancel timers on shutdown."""
    owned = getattr(app.state, "coach", None) is None
    if owned:
        settings = get_settings()
        configure_logging(settings.log_level, settings.log_file)
        logger.info("Starting study-coach service...")
        app.state.coach = build_coach(settings)
        logger.info(f"Service started on {settings.api_host}:{settings.api_port}")

    yield

    logger.info("Shutting down study-coach service...")
    app.state.coach.shutdown()
    if owned:
        app.state.coach = None


async def coach_error_handler(request: Request, exc: CoachError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        500,
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.debug(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=status_code, content={"error": type(exc).__name__, "detail": str(exc)})


def create_app(coach: StudyCoach | None = None) -> FastAPI:
    """Create the API; tests pass a pre-built coach."""
    app = FastAPI(
        title="Study Coach",
        description="Daily study tasks, streaks, pomodoro timers and SM-2 flashcards.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.coach = coach
    app.add_exception_handler(CoachError, coach_error_handler)

    @app.get("/", tags=["Health"])
    def root() -> dict[str, str]:
        """Root endpoint returning service info."""
        return {"service": "study-coach", "version": __version__, "status": "ok"}

    @app.get("/health", tags=["Health"])
    def health_check(request: Request) -> dict[str, Any]:
        """Database connectivity and live timer count."""
        current: StudyCoach = request.app.state.coach
        db_status, db_error = _check_database_health(current)
        result: dict[str, Any] = {
            "status": "healthy" if db_status == "ok" else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {"database": db_status},
            "liveTimers": len(current.pomodoro.live_keys()),
        }
        if db_error:
            result["errors"] = {"database": db_error}
        return result

    app.include_router(actions_router.router, prefix="/api", tags=["Actions"])
    app.include_router(cards_router.router, prefix="/api/cards", tags=["Flashcards"])
    app.include_router(admin_router.router, prefix="/admin", tags=["Admin"])
    return app


app = create_app()
