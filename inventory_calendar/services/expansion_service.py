"""Per-window lane expansion for categories without enough static rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from inventory_calendar.domain.models import (
    Booking,
    Category,
    DateWindow,
    PackingResult,
    PackItem,
    Slot,
    SlotKind,
)
from inventory_calendar.services.catalog_service import unique_slot_id
from inventory_calendar.services.interval_packer import pack_intervals
from inventory_calendar.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class Expansion:
    slots: list[Slot]
    packing: PackingResult


def unassigned_in_window(
    category: Category,
    bookings: Iterable[Booking],
    window: DateWindow,
) -> list[Booking]:
    return [
        booking
        for booking in bookings
        if booking.category_id == category.id
        and booking.is_unassigned
        and booking.overlaps(window.start, window.end)
    ]


def dynamic_slot_id(category_id: str, lane: int) -> str:
    return f"{category_id}-unassigned-{lane}"


def expand_category(
    category: Category,
    bookings: Iterable[Booking],
    window: DateWindow,
    existing_tagged_slots: Sequence[Slot] = (),
    taken: Optional[set[str]] = None,
) -> Expansion:
    """Pack the window's unassigned bookings and materialize missing lanes.

    Lanes ``0..p-1`` land on the category's ``p`` inventory placeholders;
    every further lane becomes a ``DYNAMIC_UNASSIGNED`` slot. Intervals are
    packed unclipped so lanes do not shift as the window slides. Generated
    ids skip anything in ``taken`` (the existing slot ids by default).
    """
    candidates = unassigned_in_window(category, bookings, window)
    packing = pack_intervals(
        PackItem(item_id=booking.id, start=booking.check_in, end=booking.check_out)
        for booking in candidates
    )

    placeholder_count = sum(
        1
        for slot in existing_tagged_slots
        if slot.category_id == category.id and slot.is_placeholder
    )
    if taken is None:
        taken = {slot.id for slot in existing_tagged_slots}

    slots: list[Slot] = []
    for position, lane in enumerate(range(placeholder_count, packing.lanes_used)):
        slots.append(
            Slot(
                id=unique_slot_id(dynamic_slot_id(category.id, lane), taken),
                category_id=category.id,
                kind=SlotKind.DYNAMIC_UNASSIGNED,
                label=f"{category.display_name} (Unassigned {position + 1})",
                lane=lane,
            )
        )

    logger.debug(
        "Category expanded | category_id=%s | unassigned=%s | lanes=%s | placeholders=%s | dynamic=%s",
        category.id,
        len(candidates),
        packing.lanes_used,
        placeholder_count,
        len(slots),
    )
    return Expansion(slots=slots, packing=packing)


def expand(
    category: Category,
    bookings: Iterable[Booking],
    window: DateWindow,
    existing_tagged_slots: Sequence[Slot] = (),
    taken: Optional[set[str]] = None,
) -> list[Slot]:
    return expand_category(category, bookings, window, existing_tagged_slots, taken).slots
