"""First-fit interval partitioning shared by every lane-based slot kind.

Items are ordered by ``(start, item_id)`` and dropped into the lowest lane
whose last interval has ended on or before the item's start. Intervals are
half-open, so a checkout and a check-in on the same day share a lane. The
lane count equals the maximum number of simultaneously active intervals.
"""

from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Iterable

from inventory_calendar.domain.models import PackingResult, PackItem
from inventory_calendar.utils.logger import get_logger


logger = get_logger(__name__)


class DuplicateItemError(Exception):
    """Raised when the same item id is submitted twice for packing."""


def _ensure_unique_ids(items: list[PackItem]) -> None:
    counts = Counter(item.item_id for item in items)
    duplicates = sorted(item_id for item_id, count in counts.items() if count > 1)
    if duplicates:
        raise DuplicateItemError(f"Duplicate item ids submitted for packing: {duplicates}")


def pack_intervals(items: Iterable[PackItem]) -> PackingResult:
    """Assign each valid item to a lane; report items with empty intervals."""
    materialized = list(items)
    _ensure_unique_ids(materialized)

    rejected_ids = sorted(item.item_id for item in materialized if item.start >= item.end)
    if rejected_ids:
        logger.warning(
            "Rejected items with non-positive intervals | count=%s | item_ids=%s",
            len(rejected_ids),
            rejected_ids,
        )

    ordered = sorted(
        (item for item in materialized if item.start < item.end),
        key=lambda item: (item.start, item.item_id),
    )

    lane_ends: list[date] = []
    lanes: dict[str, int] = {}
    for item in ordered:
        for lane, lane_end in enumerate(lane_ends):
            if lane_end <= item.start:
                lane_ends[lane] = item.end
                lanes[item.item_id] = lane
                break
        else:
            lanes[item.item_id] = len(lane_ends)
            lane_ends.append(item.end)

    return PackingResult(lanes=lanes, rejected_ids=rejected_ids)


def pack(items: Iterable[PackItem]) -> dict[str, int]:
    return pack_intervals(items).lanes


def lanes_used(lanes: dict[str, int]) -> int:
    if not lanes:
        return 0
    return max(lanes.values()) + 1


def max_concurrency(items: Iterable[PackItem]) -> int:
    """Largest number of valid intervals active at one instant.

    Ends sort before starts on the same day, matching the half-open rule.
    """
    events: list[tuple[date, int]] = []
    for item in items:
        if item.start >= item.end:
            continue
        events.append((item.start, 1))
        events.append((item.end, -1))
    events.sort(key=lambda event: (event[0], event[1]))

    active = 0
    peak = 0
    for _, delta in events:
        active += delta
        peak = max(peak, active)
    return peak
