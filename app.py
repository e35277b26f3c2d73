"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the calendar engine, registers routers, and validates settings
before the first request.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from inventory_calendar.controllers.calendar_controller import router as calendar_router
from inventory_calendar.domain.constraints import validate_calendar_config
from inventory_calendar.services.calendar_service import CalendarGridService
from inventory_calendar.utils.config import get_settings
from inventory_calendar.utils.logger import get_logger


logger = get_logger(__name__)


def create_app() -> FastAPI:
    """
    Build and wire the FastAPI application.

    The engine is stateless, so a single service instance serves every
    request; it is exposed through app.state for dependency resolution.
    """
    settings = get_settings()
    calendar_service = CalendarGridService(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup checks before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(calendar_router)

    app.state.calendar_service = calendar_service

    return app


def _startup(app: FastAPI) -> None:
    """Idempotent startup sequence. Safe to re-run on server restarts."""
    settings = get_settings()
    logger.info("Startup: validating calendar settings")
    validate_calendar_config(settings)
    logger.info(
        "Startup complete | single_rooms=%s | week_start_weekday=%s | max_window_days=%s",
        len(settings.single_room_titles),
        settings.week_start_weekday,
        settings.max_window_days,
    )


# Module-level app object for uvicorn
app = create_app()
