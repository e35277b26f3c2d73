from __future__ import annotations

from datetime import date

from inventory_calendar.domain.models import (
    Booking,
    CapacityKind,
    Category,
    ResolvedCell,
    Slot,
    SlotKind,
)
from inventory_calendar.services.summary_service import summarize


CATEGORIES = [
    Category(id="tents", display_name="Tent Site", capacity_kind=CapacityKind.LIMITED_WITH_TAGS),
    Category(id="bell", display_name="Bell Tent", capacity_kind=CapacityKind.LIMITED_WITH_INVENTORY, inventory_count=2),
    Category(id="empty", display_name="Empty Meadow", capacity_kind=CapacityKind.LIMITED_WITH_TAGS),
]
SLOTS = [
    Slot(id="bell-1", category_id="bell", kind=SlotKind.FIXED_TAGGED, label="Bell 1", tag_id="bell-1"),
    Slot(id="bell-2", category_id="bell", kind=SlotKind.FIXED_TAGGED, label="Bell 2", tag_id="bell-2"),
    Slot(id="tent-a", category_id="tents", kind=SlotKind.FIXED_TAGGED, label="Site A", tag_id="tent-a"),
]


def _cell(slot_id: str, day: date, *bookings: Booking) -> tuple[tuple[str, str], ResolvedCell]:
    return (slot_id, day.isoformat()), ResolvedCell(slot_id=slot_id, day=day, bookings=tuple(bookings))


def test_counts_slots_with_any_occupied_night():
    stay = Booking(id="s", check_in=date(2026, 6, 1), check_out=date(2026, 6, 3), category_id="bell", slot_id="bell-1")
    leaving = Booking(id="l", check_in=date(2026, 5, 28), check_out=date(2026, 6, 1), category_id="tents", slot_id="tent-a")
    cells = dict(
        [
            _cell("bell-1", date(2026, 6, 1), stay),
            _cell("bell-2", date(2026, 6, 1)),
            _cell("tent-a", date(2026, 6, 1), leaving),
        ]
    )

    summary = summarize(CATEGORIES, SLOTS, cells)

    assert list(summary) == ["bell", "tents"]
    assert (summary["bell"].occupied, summary["bell"].total) == (1, 2)
    assert summary["bell"].is_full is False
    assert (summary["tents"].occupied, summary["tents"].total) == (0, 1)


def test_full_category_is_flagged():
    stay = Booking(id="s", check_in=date(2026, 6, 1), check_out=date(2026, 6, 3), category_id="tents", slot_id="tent-a")
    cells = dict([_cell("tent-a", date(2026, 6, 2), stay)])
    summary = summarize(CATEGORIES, SLOTS, cells)
    assert summary["tents"].is_full is True
