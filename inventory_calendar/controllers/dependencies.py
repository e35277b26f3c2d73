"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import Request

from inventory_calendar.services.calendar_service import CalendarGridService
from inventory_calendar.utils.config import get_settings


def get_calendar_service(request: Request) -> CalendarGridService:
    service = getattr(request.app.state, "calendar_service", None)
    if service is None:
        service = CalendarGridService(settings=get_settings())
        request.app.state.calendar_service = service
    return service
