"""Domain models for slot catalogs, lane packing and occupancy grids."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Optional


class CapacityKind(str, Enum):
    LIMITED_WITH_INVENTORY = "limited_with_inventory"
    LIMITED_WITH_TAGS = "limited_with_tags"
    UNLIMITED = "unlimited"


class SlotKind(str, Enum):
    SINGLE_ROOM = "single_room"
    DORM_BED = "dorm_bed"
    FIXED_TAGGED = "fixed_tagged"
    DYNAMIC_UNASSIGNED = "dynamic_unassigned"


class AnomalyKind(str, Enum):
    INVALID_INTERVAL = "invalid_interval"
    AMBIGUOUS_OVERLAP = "ambiguous_overlap"
    UNKNOWN_CATEGORY = "unknown_category"
    UNKNOWN_SLOT = "unknown_slot"
    BED_COUNT_MISMATCH = "bed_count_mismatch"
    CATEGORY_MISMATCH = "category_mismatch"


class BookingSegment(str, Enum):
    """Which part of a display cell a booking covers on a given day."""

    ARRIVING = "arriving"
    STAYING = "staying"
    DEPARTING = "departing"


@dataclass(frozen=True)
class Booking:
    id: str
    check_in: date
    check_out: date
    category_id: str
    slot_id: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None

    @property
    def is_unassigned(self) -> bool:
        return self.slot_id is None

    @property
    def has_valid_interval(self) -> bool:
        return self.check_in < self.check_out

    def is_displayed_on(self, day: date) -> bool:
        """Display rule: the checkout day is still shown as a boundary cell."""
        return self.check_in <= day <= self.check_out

    def occupies(self, day: date) -> bool:
        """Occupancy rule: half-open, the checkout day is free."""
        return self.check_in <= day < self.check_out

    def overlaps(self, start: date, end: date) -> bool:
        return self.check_in < end and self.check_out > start


@dataclass(frozen=True)
class Category:
    id: str
    display_name: str
    capacity_kind: CapacityKind
    inventory_count: Optional[int] = None

    @property
    def is_unlimited(self) -> bool:
        return self.capacity_kind is CapacityKind.UNLIMITED


@dataclass(frozen=True)
class Tag:
    id: str
    category_id: str
    ordinal_label: str


@dataclass(frozen=True)
class Slot:
    id: str
    category_id: str
    kind: SlotKind
    label: str
    tag_id: Optional[str] = None
    ordinal: Optional[int] = None
    lane: Optional[int] = None
    is_assigned: bool = False

    @property
    def is_placeholder(self) -> bool:
        """Inventory padding row that hosts unassigned bookings by lane."""
        return self.kind is SlotKind.FIXED_TAGGED and self.tag_id is None

    @property
    def hosts_lane(self) -> bool:
        return self.kind is SlotKind.DYNAMIC_UNASSIGNED or self.is_placeholder


@dataclass(frozen=True)
class DateWindow:
    """Half-open visible range ``[start, end)``."""

    start: date
    end: date

    @property
    def length_days(self) -> int:
        return (self.end - self.start).days

    def days(self) -> list[date]:
        return [self.start + timedelta(days=offset) for offset in range(self.length_days)]

    def widened(self, days_before: int) -> "DateWindow":
        return DateWindow(start=self.start - timedelta(days=days_before), end=self.end)


@dataclass(frozen=True)
class PackItem:
    item_id: str
    start: date
    end: date


@dataclass(frozen=True)
class PackingResult:
    lanes: dict[str, int]
    rejected_ids: list[str] = field(default_factory=list)

    @property
    def lanes_used(self) -> int:
        if not self.lanes:
            return 0
        return max(self.lanes.values()) + 1


@dataclass(frozen=True)
class Anomaly:
    kind: AnomalyKind
    message: str
    booking_id: Optional[str] = None
    slot_id: Optional[str] = None
    category_id: Optional[str] = None
    day: Optional[date] = None


@dataclass(frozen=True)
class ResolvedCell:
    slot_id: str
    day: date
    bookings: tuple[Booking, ...]
    anomalous: bool = False


@dataclass(frozen=True)
class OccupancyCount:
    category_id: str
    display_name: str
    occupied: int
    total: int

    @property
    def is_full(self) -> bool:
        return self.total > 0 and self.occupied >= self.total


@dataclass(frozen=True)
class CalendarGrid:
    window: DateWindow
    slots: list[Slot]
    cells: dict[tuple[str, str], ResolvedCell]
    summary: dict[str, OccupancyCount]
    anomalies: list[Anomaly]
    unassigned_warnings: list[Booking]

    def cell(self, slot_id: str, day: date) -> ResolvedCell:
        return self.cells[(slot_id, day.isoformat())]

    def bookings_at(self, slot_id: str, day: date) -> list[Booking]:
        return list(self.cell(slot_id, day).bookings)
