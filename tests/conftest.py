from __future__ import annotations

from datetime import date

import pytest

from inventory_calendar.domain.models import (
    Booking,
    CapacityKind,
    Category,
    DateWindow,
    Tag,
)
from inventory_calendar.services.calendar_service import CalendarGridService
from inventory_calendar.utils.config import get_settings


@pytest.fixture
def service() -> CalendarGridService:
    get_settings.cache_clear()
    return CalendarGridService(settings=get_settings())


@pytest.fixture
def window() -> DateWindow:
    return DateWindow(start=date(2026, 6, 2), end=date(2026, 6, 9))


@pytest.fixture
def categories() -> list[Category]:
    return [
        Category(id="yurt", display_name="The Yurt", capacity_kind=CapacityKind.LIMITED_WITH_INVENTORY, inventory_count=1),
        Category(id="dorm6", display_name="6-Bed Dorm", capacity_kind=CapacityKind.LIMITED_WITH_INVENTORY, inventory_count=6),
        Category(id="bell", display_name="Bell Tent", capacity_kind=CapacityKind.LIMITED_WITH_INVENTORY, inventory_count=2),
        Category(id="tents", display_name="Tent Site", capacity_kind=CapacityKind.LIMITED_WITH_TAGS),
        Category(id="van", display_name="Van Parking", capacity_kind=CapacityKind.UNLIMITED),
        Category(id="host", display_name="Staying with somebody", capacity_kind=CapacityKind.LIMITED_WITH_TAGS),
    ]


@pytest.fixture
def tags() -> list[Tag]:
    return [
        Tag(id="bell-1", category_id="bell", ordinal_label="Bell Tent #1"),
        Tag(id="tent-b", category_id="tents", ordinal_label="Site B"),
        Tag(id="tent-a", category_id="tents", ordinal_label="Site A"),
        Tag(id="bay-1", category_id="van", ordinal_label="Bay 1"),
    ]


def _booking(booking_id, check_in, check_out, category_id, slot_id=None) -> Booking:
    return Booking(
        id=booking_id,
        check_in=check_in,
        check_out=check_out,
        category_id=category_id,
        slot_id=slot_id,
        guest_name=f"Guest {booking_id}",
    )


@pytest.fixture
def bookings() -> list[Booking]:
    return [
        _booking("y1", date(2026, 6, 1), date(2026, 6, 4), "yurt"),
        _booking("y2", date(2026, 6, 4), date(2026, 6, 7), "yurt"),
        *[
            _booking(f"d{index}", date(2026, 6, 3), date(2026, 6, 6), "dorm6")
            for index in range(1, 5)
        ],
        _booking("b1", date(2026, 6, 2), date(2026, 6, 5), "bell", slot_id="bell-1"),
        _booking("b2", date(2026, 6, 3), date(2026, 6, 5), "bell"),
        _booking("b3", date(2026, 6, 3), date(2026, 6, 6), "bell"),
        _booking("t1", date(2026, 6, 2), date(2026, 6, 4), "tents", slot_id="tent-a"),
        _booking("v0", date(2026, 5, 30), date(2026, 6, 2), "van"),
        _booking("v1", date(2026, 6, 2), date(2026, 6, 4), "van"),
        _booking("v2", date(2026, 6, 3), date(2026, 6, 5), "van"),
        _booking("v3", date(2026, 6, 5), date(2026, 6, 8), "van", slot_id="bay-1"),
        _booking("ghost", date(2026, 6, 3), date(2026, 6, 5), "tents", slot_id="tent-z"),
        _booking("bad", date(2026, 6, 5), date(2026, 6, 5), "yurt"),
        _booking("lost", date(2026, 6, 3), date(2026, 6, 4), "nowhere"),
    ]
