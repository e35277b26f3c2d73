"""Occupancy grid orchestration over one immutable booking snapshot."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Sequence

from inventory_calendar.domain.constraints import CatalogRules, validate_calendar_config
from inventory_calendar.domain.models import (
    Anomaly,
    AnomalyKind,
    Booking,
    CalendarGrid,
    Category,
    DateWindow,
    ResolvedCell,
    Slot,
    SlotKind,
    Tag,
)
from inventory_calendar.services.catalog_service import (
    build_catalog,
    build_unlimited_tag_slots,
    index_bookings_by_assigned_slot,
    is_lane_hosting,
    is_single_room,
)
from inventory_calendar.services.expansion_service import expand_category
from inventory_calendar.services.occupancy_service import (
    assign_dorm_beds,
    displayed_on,
    occupying_count,
    resolve,
)
from inventory_calendar.services.summary_service import summarize
from inventory_calendar.utils.config import Settings, get_settings
from inventory_calendar.utils.logger import get_logger


logger = get_logger(__name__)

UNASSIGNED_TARGET = "unassigned"
VIEW_MODES = ("week", "month")


class CalendarValidationError(Exception):
    """Raised when a grid request violates the engine's input contract."""


class BookingNotFoundError(Exception):
    """Raised when a booking id is not part of the supplied snapshot."""


@dataclass(frozen=True)
class ReassignTarget:
    slot_id: str
    label: str
    category_id: Optional[str]


@dataclass(frozen=True)
class ScreenedBookings:
    bookings: list[Booking]
    anomalies: list[Anomaly]


def week_window(anchor: date, week_start_weekday: int) -> DateWindow:
    offset = (anchor.weekday() - week_start_weekday) % 7
    start = anchor - timedelta(days=offset)
    return DateWindow(start=start, end=start + timedelta(days=7))


def _first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def month_window(anchor: date) -> DateWindow:
    start = anchor.replace(day=1)
    return DateWindow(start=start, end=_first_of_next_month(start))


def view_window(view_mode: str, anchor: date, week_start_weekday: int = 1) -> DateWindow:
    if view_mode == "week":
        return week_window(anchor, week_start_weekday)
    if view_mode == "month":
        return month_window(anchor)
    raise CalendarValidationError(f"view_mode must be one of {VIEW_MODES}")


def shift_window(window: DateWindow, view_mode: str, direction: int) -> DateWindow:
    """Move one week or one month forwards (``direction > 0``) or backwards."""
    if direction == 0:
        return window
    step = 1 if direction > 0 else -1
    if view_mode == "week":
        delta = timedelta(days=7 * step)
        return DateWindow(start=window.start + delta, end=window.end + delta)
    if view_mode == "month":
        if step > 0:
            return month_window(window.end)
        return month_window(window.start - timedelta(days=1))
    raise CalendarValidationError(f"view_mode must be one of {VIEW_MODES}")


def _validate_window(window: DateWindow, max_window_days: int) -> None:
    if window.start >= window.end:
        raise CalendarValidationError("window start must be before window end")
    if window.length_days > max_window_days:
        raise CalendarValidationError(
            f"window spans {window.length_days} days; the maximum is {max_window_days}"
        )


def _validate_unique_booking_ids(bookings: Sequence[Booking]) -> None:
    counts = Counter(booking.id for booking in bookings)
    duplicates = sorted(booking_id for booking_id, count in counts.items() if count > 1)
    if duplicates:
        raise CalendarValidationError(f"Duplicate booking ids in snapshot: {duplicates}")


def screen_bookings(
    bookings: Sequence[Booking],
    categories: Sequence[Category],
    tagged_slots: Sequence[Slot],
    rules: CatalogRules,
) -> ScreenedBookings:
    """Drop bookings the grid cannot place and record why."""
    category_by_id = {category.id: category for category in categories}
    slot_by_id = {slot.id: slot for slot in tagged_slots}
    kept: list[Booking] = []
    anomalies: list[Anomaly] = []

    for booking in sorted(bookings, key=lambda item: (item.check_in, item.id)):
        if not booking.has_valid_interval:
            anomalies.append(
                Anomaly(
                    kind=AnomalyKind.INVALID_INTERVAL,
                    message=(
                        f"Booking {booking.id} checks out on {booking.check_out.isoformat()}, "
                        f"not after check-in {booking.check_in.isoformat()}"
                    ),
                    booking_id=booking.id,
                    category_id=booking.category_id,
                )
            )
            continue

        category = category_by_id.get(booking.category_id)
        if category is None:
            anomalies.append(
                Anomaly(
                    kind=AnomalyKind.UNKNOWN_CATEGORY,
                    message=f"Booking {booking.id} references unknown category {booking.category_id}",
                    booking_id=booking.id,
                    category_id=booking.category_id,
                )
            )
            continue

        if booking.slot_id is not None:
            slot = slot_by_id.get(booking.slot_id)
            # Room rows stand for the whole category, so rooms need no tag.
            in_room = is_single_room(category, rules)
            if slot is None and not in_room:
                anomalies.append(
                    Anomaly(
                        kind=AnomalyKind.UNKNOWN_SLOT,
                        message=f"Booking {booking.id} is assigned to unknown slot {booking.slot_id}",
                        booking_id=booking.id,
                        slot_id=booking.slot_id,
                        category_id=booking.category_id,
                    )
                )
                continue
            if slot is not None and slot.category_id != booking.category_id:
                anomalies.append(
                    Anomaly(
                        kind=AnomalyKind.CATEGORY_MISMATCH,
                        message=(
                            f"Booking {booking.id} of category {booking.category_id} is assigned "
                            f"to slot {slot.id} of category {slot.category_id}"
                            + ("; shown in its room row only" if in_room else "")
                        ),
                        booking_id=booking.id,
                        slot_id=slot.id,
                        category_id=booking.category_id,
                    )
                )

        kept.append(booking)

    for anomaly in anomalies:
        logger.warning(
            "Booking anomaly | kind=%s | booking_id=%s | detail=%s",
            anomaly.kind.value,
            anomaly.booking_id,
            anomaly.message,
        )
    return ScreenedBookings(bookings=kept, anomalies=anomalies)


class CalendarGridService:
    """Builds slot rows, occupancy cells and summaries for a visible window."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        validate_calendar_config(self._settings)
        self._rules = CatalogRules.from_settings(self._settings)

    @property
    def rules(self) -> CatalogRules:
        return self._rules

    def view_window(self, view_mode: str, anchor: date, direction: int = 0) -> DateWindow:
        window = view_window(view_mode, anchor, self._settings.week_start_weekday)
        return shift_window(window, view_mode, direction)

    def _tagged_catalog(
        self,
        bookings: Sequence[Booking],
        categories: Sequence[Category],
        tags: Sequence[Tag],
    ) -> tuple[list[Slot], dict[str, list[Slot]], list[Anomaly]]:
        index = index_bookings_by_assigned_slot(bookings)
        catalog = build_catalog(categories, tags, index, self._rules)
        unlimited_tag_slots = {
            category.id: build_unlimited_tag_slots(category, tags, index)
            for category in categories
            if category.is_unlimited
        }
        return catalog.slots, unlimited_tag_slots, catalog.anomalies

    @staticmethod
    def _tagged_only(
        static_slots: Sequence[Slot],
        unlimited_tag_slots: dict[str, list[Slot]],
    ) -> list[Slot]:
        tagged = [slot for slot in static_slots if slot.tag_id is not None]
        for category_id in sorted(unlimited_tag_slots):
            tagged.extend(unlimited_tag_slots[category_id])
        return tagged

    @staticmethod
    def _dorm_bed_assignments(
        head: Sequence[Slot],
        bookings: Sequence[Booking],
        window: DateWindow,
    ) -> dict[str, str]:
        beds_by_category: dict[str, list[Slot]] = {}
        for slot in head:
            if slot.kind is SlotKind.DORM_BED:
                beds_by_category.setdefault(slot.category_id, []).append(slot)
        assignments: dict[str, str] = {}
        for category_id in sorted(beds_by_category):
            assignments.update(assign_dorm_beds(beds_by_category[category_id], bookings, window))
        return assignments

    def build_grid(
        self,
        *,
        bookings: Sequence[Booking],
        categories: Sequence[Category],
        tags: Sequence[Tag],
        window: DateWindow,
    ) -> CalendarGrid:
        _validate_window(window, self._settings.max_window_days)
        _validate_unique_booking_ids(bookings)

        static_slots, unlimited_tag_slots, catalog_anomalies = self._tagged_catalog(
            bookings, categories, tags
        )
        tagged_slots = self._tagged_only(static_slots, unlimited_tag_slots)
        screened = screen_bookings(bookings, categories, tagged_slots, self._rules)
        valid_bookings = screened.bookings

        # One extra day keeps a lane for a checkout landing on the first visible day.
        packing_window = window.widened(1)
        ordered_categories = sorted(categories, key=lambda item: (item.display_name, item.id))
        lane_assignments: dict[str, dict[str, int]] = {}
        head = [
            slot
            for slot in static_slots
            if slot.kind in (SlotKind.SINGLE_ROOM, SlotKind.DORM_BED)
        ]
        taken = {slot.id for slot in static_slots}
        taken.update(slot.id for rows in unlimited_tag_slots.values() for slot in rows)
        limited_rows: list[Slot] = []
        unlimited_rows: list[Slot] = []
        for category in ordered_categories:
            if not is_lane_hosting(category, self._rules):
                continue
            if category.is_unlimited:
                existing = unlimited_tag_slots.get(category.id, [])
            else:
                existing = [slot for slot in static_slots if slot.category_id == category.id]
            expansion = expand_category(category, valid_bookings, packing_window, existing, taken)
            lane_assignments[category.id] = dict(expansion.packing.lanes)
            target = unlimited_rows if category.is_unlimited else limited_rows
            target.extend(existing)
            target.extend(expansion.slots)
        slots = [*head, *limited_rows, *unlimited_rows]
        room_category_ids = frozenset(
            slot.category_id for slot in head if slot.kind is SlotKind.SINGLE_ROOM
        )
        bed_assignments = self._dorm_bed_assignments(
            head,
            [booking for booking in valid_bookings if booking.category_id not in room_category_ids],
            packing_window,
        )

        cells: dict[tuple[str, str], ResolvedCell] = {}
        overlap_anomalies: list[Anomaly] = []
        for day in window.days():
            active = displayed_on(valid_bookings, day)
            for slot in slots:
                resolved = resolve(
                    slot,
                    day,
                    active,
                    lane_assignments,
                    bed_assignments,
                    room_category_ids,
                )
                anomalous = occupying_count(resolved, day) > 1
                if anomalous:
                    overlap_anomalies.append(
                        Anomaly(
                            kind=AnomalyKind.AMBIGUOUS_OVERLAP,
                            message=(
                                f"{len(resolved)} bookings share slot '{slot.label}' "
                                f"on {day.isoformat()}"
                            ),
                            slot_id=slot.id,
                            category_id=slot.category_id,
                            day=day,
                        )
                    )
                cells[(slot.id, day.isoformat())] = ResolvedCell(
                    slot_id=slot.id,
                    day=day,
                    bookings=tuple(resolved),
                    anomalous=anomalous,
                )

        for anomaly in overlap_anomalies:
            logger.warning(
                "Overlapping cell | slot_id=%s | day=%s | detail=%s",
                anomaly.slot_id,
                anomaly.day,
                anomaly.message,
            )

        summary = summarize(categories, slots, cells)
        warnings = self._unassigned_warnings(valid_bookings, categories, window)
        anomalies = [*catalog_anomalies, *screened.anomalies, *overlap_anomalies]

        logger.info(
            (
                "Calendar grid computed | window=%s..%s | slots=%s | cells=%s | "
                "anomalies=%s | unassigned_warnings=%s"
            ),
            window.start.isoformat(),
            window.end.isoformat(),
            len(slots),
            len(cells),
            len(anomalies),
            len(warnings),
        )
        return CalendarGrid(
            window=window,
            slots=slots,
            cells=cells,
            summary=summary,
            anomalies=anomalies,
            unassigned_warnings=warnings,
        )

    def _unassigned_warnings(
        self,
        bookings: Sequence[Booking],
        categories: Sequence[Category],
        window: DateWindow,
    ) -> list[Booking]:
        """Unassigned bookings in limited categories that expect a physical tag."""
        limited_ids = {
            category.id
            for category in categories
            if not category.is_unlimited and is_lane_hosting(category, self._rules)
        }
        return [
            booking
            for booking in bookings
            if booking.category_id in limited_ids
            and booking.is_unassigned
            and booking.overlaps(window.start, window.end)
        ]

    def reassign_targets(
        self,
        *,
        booking_id: str,
        bookings: Sequence[Booking],
        categories: Sequence[Category],
        tags: Sequence[Tag],
    ) -> list[ReassignTarget]:
        """Slots a booking could be moved to; the move itself belongs to storage."""
        booking = next((item for item in bookings if item.id == booking_id), None)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found in snapshot")

        static_slots, unlimited_tag_slots, _ = self._tagged_catalog(bookings, categories, tags)
        all_tagged = self._tagged_only(static_slots, unlimited_tag_slots)
        category = next((item for item in categories if item.id == booking.category_id), None)
        hosts_anywhere = category is not None and category.display_name in self._rules.shared_host_titles

        targets = [
            ReassignTarget(slot_id=slot.id, label=slot.label, category_id=slot.category_id)
            for slot in all_tagged
            if slot.id != booking.slot_id
            and (hosts_anywhere or slot.category_id == booking.category_id)
        ]
        if booking.slot_id is not None:
            targets.append(ReassignTarget(slot_id=UNASSIGNED_TARGET, label="Unassigned", category_id=None))

        logger.info(
            "Reassign targets listed | booking_id=%s | targets=%s",
            booking_id,
            len(targets),
        )
        return targets
