"""Per-category occupied/total counts for the visible window."""

from __future__ import annotations

from collections import defaultdict
from typing import Mapping, Sequence

from inventory_calendar.domain.models import Category, OccupancyCount, ResolvedCell, Slot


def summarize(
    categories: Sequence[Category],
    slots: Sequence[Slot],
    cells: Mapping[tuple[str, str], ResolvedCell],
) -> dict[str, OccupancyCount]:
    """A slot counts as occupied when any visible night in it is taken.

    Checkout-only boundary cells do not count, so a slot that only shows a
    departure on the first visible day is still free for the window.
    """
    occupied_slot_ids = {
        cell.slot_id
        for cell in cells.values()
        if any(booking.occupies(cell.day) for booking in cell.bookings)
    }

    totals: dict[str, int] = defaultdict(int)
    occupied: dict[str, int] = defaultdict(int)
    for slot in slots:
        totals[slot.category_id] += 1
        if slot.id in occupied_slot_ids:
            occupied[slot.category_id] += 1

    summary: dict[str, OccupancyCount] = {}
    for category in sorted(categories, key=lambda item: (item.display_name, item.id)):
        total = totals.get(category.id, 0)
        if total == 0:
            continue
        summary[category.id] = OccupancyCount(
            category_id=category.id,
            display_name=category.display_name,
            occupied=occupied.get(category.id, 0),
            total=total,
        )
    return summary
