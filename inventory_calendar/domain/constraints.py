"""Domain-level rules and validation for catalog building and view windows."""

from __future__ import annotations

from dataclasses import dataclass

from inventory_calendar.utils.config import (
    DEFAULT_SHARED_HOST_TITLES,
    DEFAULT_SINGLE_ROOM_TITLES,
    Settings,
)


@dataclass(frozen=True)
class CatalogRules:
    single_room_titles: tuple[str, ...] = DEFAULT_SINGLE_ROOM_TITLES
    shared_host_titles: tuple[str, ...] = DEFAULT_SHARED_HOST_TITLES
    dorm_title_marker: str = "Dorm"

    @classmethod
    def from_settings(cls, settings: Settings) -> "CatalogRules":
        return cls(
            single_room_titles=settings.single_room_titles,
            shared_host_titles=settings.shared_host_titles,
            dorm_title_marker=settings.dorm_title_marker,
        )


def validate_catalog_rules(rules: CatalogRules) -> None:
    if not rules.dorm_title_marker.strip():
        raise ValueError("dorm_title_marker must be non-empty")
    if any(not title.strip() for title in rules.single_room_titles):
        raise ValueError("single_room_titles must not contain blank titles")
    if any(not title.strip() for title in rules.shared_host_titles):
        raise ValueError("shared_host_titles must not contain blank titles")


def validate_calendar_config(settings: Settings) -> None:
    if not 0 <= settings.week_start_weekday <= 6:
        raise ValueError("week_start_weekday must be between 0 (Monday) and 6 (Sunday)")
    if settings.max_window_days <= 0:
        raise ValueError("max_window_days must be > 0")
    if not 0 < settings.api_port <= 65535:
        raise ValueError("api_port must be in (0, 65535]")
    validate_catalog_rules(CatalogRules.from_settings(settings))
