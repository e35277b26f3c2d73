"""Environment-driven settings for the calendar engine and its API."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


DEFAULT_SINGLE_ROOM_TITLES: tuple[str, ...] = (
    "Microcabin Left",
    "Microcabin Middle",
    "Microcabin Right",
    "The Hearth",
    "The Yurt",
    "Valleyview Room",
    "Writer's Room",
)

DEFAULT_SHARED_HOST_TITLES: tuple[str, ...] = ("Staying with somebody",)


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    single_room_titles: tuple[str, ...]
    shared_host_titles: tuple[str, ...]
    dorm_title_marker: str
    week_start_weekday: int
    max_window_days: int
    api_host: str
    api_port: int


def _split_titles(raw: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if raw is None:
        return default
    # Titles may contain apostrophes and spaces, so only "|" separates them.
    titles = tuple(item.strip() for item in raw.split("|") if item.strip())
    return titles or default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings from the environment once per process."""
    return Settings(
        app_name=os.getenv("APP_NAME", "Inventory Calendar Engine"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        single_room_titles=_split_titles(
            os.getenv("CALENDAR_SINGLE_ROOMS"),
            DEFAULT_SINGLE_ROOM_TITLES,
        ),
        shared_host_titles=_split_titles(
            os.getenv("CALENDAR_SHARED_HOST_TITLES"),
            DEFAULT_SHARED_HOST_TITLES,
        ),
        dorm_title_marker=os.getenv("CALENDAR_DORM_MARKER", "Dorm"),
        week_start_weekday=int(os.getenv("CALENDAR_WEEK_START_WEEKDAY", "1")),
        max_window_days=int(os.getenv("CALENDAR_MAX_WINDOW_DAYS", "93")),
        api_host=os.getenv("API_HOST", "127.0.0.1"),
        api_port=int(os.getenv("API_PORT", "8000")),
    )
