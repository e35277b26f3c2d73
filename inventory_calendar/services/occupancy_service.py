"""Resolve which bookings occupy a single (slot, day) cell.

Two activity rules coexist here. Display activity includes the checkout day,
so a departing and an arriving guest are both visible on a shared boundary
cell. Occupancy is half-open, which is what packing, bed choice and overlap
detection use; a same-day turnover is therefore never an anomaly.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import AbstractSet, Mapping, Optional, Sequence

from inventory_calendar.domain.models import (
    Booking,
    BookingSegment,
    DateWindow,
    PackItem,
    Slot,
    SlotKind,
)
from inventory_calendar.services.interval_packer import pack_intervals


def _booking_order(booking: Booking) -> tuple[date, str]:
    return (booking.check_in, booking.id)


def displayed_on(bookings: Sequence[Booking], day: date) -> list[Booking]:
    return [
        booking
        for booking in bookings
        if booking.has_valid_interval and booking.is_displayed_on(day)
    ]


def _is_unassigned(booking: Booking, category_id: str) -> bool:
    return booking.category_id == category_id and booking.is_unassigned


def _is_pinned_to(booking: Booking, slot: Slot, room_category_ids: AbstractSet[str]) -> bool:
    # Single-room bookings always render in their room row.
    return booking.slot_id == slot.id and booking.category_id not in room_category_ids


def _clashes(stays: Sequence[Booking], bound: Sequence[Booking]) -> bool:
    return any(stay.overlaps(other.check_in, other.check_out) for stay in stays for other in bound)


def assign_dorm_beds(
    beds: Sequence[Slot],
    bookings: Sequence[Booking],
    window: DateWindow,
) -> dict[str, str]:
    """Map every unassigned stay of one dorm to a single bed id.

    Unassigned stays overlapping ``window`` are packed into lanes. Lane ``k``
    takes the lowest-ordinal bed that no earlier lane took and whose
    explicitly bound stays never overlap the lane; a lane with no such bed
    shares the last bed. A guest therefore keeps one bed for the whole stay,
    and a departing guest's half-cell stays on the bed held the night before.
    """
    if not beds:
        return {}
    ordered = sorted(beds, key=lambda bed: (bed.ordinal or 0, bed.id))
    category_id = ordered[0].category_id
    bed_ids = {bed.id for bed in ordered}

    bound: dict[str, list[Booking]] = defaultdict(list)
    candidates: list[Booking] = []
    for booking in bookings:
        if not booking.has_valid_interval or not booking.overlaps(window.start, window.end):
            continue
        if booking.slot_id in bed_ids:
            bound[booking.slot_id].append(booking)
        elif _is_unassigned(booking, category_id):
            candidates.append(booking)

    packing = pack_intervals(
        PackItem(item_id=booking.id, start=booking.check_in, end=booking.check_out)
        for booking in candidates
    )
    lane_members: dict[int, list[Booking]] = defaultdict(list)
    for booking in candidates:
        lane_members[packing.lanes[booking.id]].append(booking)

    taken: set[str] = set()
    bed_by_lane: dict[int, str] = {}
    for lane in range(packing.lanes_used):
        bed = next(
            (
                candidate
                for candidate in ordered
                if candidate.id not in taken
                and not _clashes(lane_members[lane], bound.get(candidate.id, ()))
            ),
            ordered[-1],
        )
        taken.add(bed.id)
        bed_by_lane[lane] = bed.id

    return {booking.id: bed_by_lane[packing.lanes[booking.id]] for booking in candidates}


def _resolve_lane(
    slot: Slot,
    active: list[Booking],
    lane_assignments: Mapping[str, Mapping[str, int]],
) -> list[Booking]:
    lanes = lane_assignments.get(slot.category_id, {})
    return [
        booking
        for booking in active
        if _is_unassigned(booking, slot.category_id) and lanes.get(booking.id) == slot.lane
    ]


def resolve(
    slot: Slot,
    day: date,
    bookings: Sequence[Booking],
    lane_assignments: Mapping[str, Mapping[str, int]],
    bed_assignments: Optional[Mapping[str, str]] = None,
    room_category_ids: AbstractSet[str] = frozenset(),
) -> list[Booking]:
    """Return the bookings shown in ``slot`` on ``day``, ordered by check-in.

    ``bed_assignments`` comes from :func:`assign_dorm_beds`; bookings of
    ``room_category_ids`` show only in their single-room row.
    """
    active = displayed_on(bookings, day)

    if slot.kind is SlotKind.SINGLE_ROOM:
        resolved = [booking for booking in active if booking.category_id == slot.category_id]
    elif slot.kind is SlotKind.DORM_BED:
        beds = bed_assignments or {}
        resolved = [
            booking
            for booking in active
            if _is_pinned_to(booking, slot, room_category_ids)
            or (_is_unassigned(booking, slot.category_id) and beds.get(booking.id) == slot.id)
        ]
    elif slot.hosts_lane:
        resolved = _resolve_lane(slot, active, lane_assignments)
    else:
        resolved = [booking for booking in active if _is_pinned_to(booking, slot, room_category_ids)]

    return sorted(resolved, key=_booking_order)


def occupying_count(bookings: Sequence[Booking], day: date) -> int:
    return sum(1 for booking in bookings if booking.occupies(day))


def segment_for(booking: Booking, day: date) -> Optional[BookingSegment]:
    """Which half of the cell the booking covers; ``None`` if not shown."""
    if not booking.is_displayed_on(day):
        return None
    if day == booking.check_out:
        return BookingSegment.DEPARTING
    if day == booking.check_in:
        return BookingSegment.ARRIVING
    return BookingSegment.STAYING


def show_name(booking: Booking, day: date, visible_days: Sequence[date]) -> bool:
    first_visible = next((candidate for candidate in visible_days if booking.occupies(candidate)), None)
    return first_visible is not None and first_visible == day
