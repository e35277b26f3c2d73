"""Slot catalog construction from categories and physical tags."""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

from inventory_calendar.domain.constraints import CatalogRules, validate_catalog_rules
from inventory_calendar.domain.models import (
    Anomaly,
    AnomalyKind,
    Booking,
    Category,
    CapacityKind,
    Slot,
    SlotKind,
    Tag,
)
from inventory_calendar.utils.logger import get_logger


logger = get_logger(__name__)

_BED_COUNT_PATTERN = re.compile(r"(\d+)\s*-\s*Bed", re.IGNORECASE)


@dataclass(frozen=True)
class CatalogBuild:
    slots: list[Slot]
    anomalies: list[Anomaly]


def is_dorm(category: Category, rules: CatalogRules) -> bool:
    return rules.dorm_title_marker in category.display_name


def is_single_room(category: Category, rules: CatalogRules) -> bool:
    return category.display_name in rules.single_room_titles


def is_lane_hosting(category: Category, rules: CatalogRules) -> bool:
    """Categories whose unassigned bookings are packed into lanes."""
    if category.is_unlimited:
        return True
    return not is_dorm(category, rules) and not is_single_room(category, rules)


def parse_bed_count(display_name: str) -> Optional[int]:
    match = _BED_COUNT_PATTERN.search(display_name)
    if match is None:
        return None
    return int(match.group(1))


def unique_slot_id(base: str, taken: set[str]) -> str:
    """Return ``base`` or the first free ``base.N``, and reserve it."""
    candidate = base
    suffix = 2
    while candidate in taken:
        candidate = f"{base}.{suffix}"
        suffix += 1
    taken.add(candidate)
    return candidate


def index_bookings_by_assigned_slot(bookings: Iterable[Booking]) -> dict[str, list[Booking]]:
    index: dict[str, list[Booking]] = defaultdict(list)
    for booking in bookings:
        if booking.slot_id is not None:
            index[booking.slot_id].append(booking)
    return dict(index)


def _sorted_tags(tags: Iterable[Tag]) -> list[Tag]:
    return sorted(tags, key=lambda tag: (tag.ordinal_label, tag.id))


def _sorted_categories(categories: Iterable[Category]) -> list[Category]:
    return sorted(categories, key=lambda category: (category.display_name, category.id))


def _resolve_bed_count(category: Category, anomalies: list[Anomaly]) -> int:
    declared = category.inventory_count or None
    parsed = parse_bed_count(category.display_name)
    if declared is not None and parsed is not None and declared != parsed:
        message = (
            f"Declared bed count {declared} differs from the {parsed} beds "
            f"implied by '{category.display_name}'"
        )
        anomalies.append(
            Anomaly(
                kind=AnomalyKind.BED_COUNT_MISMATCH,
                message=message,
                category_id=category.id,
            )
        )
        logger.warning(
            "Dorm bed count mismatch | category_id=%s | declared=%s | parsed=%s",
            category.id,
            declared,
            parsed,
        )
    if declared is not None:
        return declared
    if parsed is not None:
        return parsed
    return 1


def _tag_slot(
    tag: Tag,
    kind: SlotKind,
    index: Mapping[str, Sequence[Booking]],
    ordinal: Optional[int] = None,
) -> Slot:
    return Slot(
        id=tag.id,
        category_id=tag.category_id,
        kind=kind,
        label=tag.ordinal_label,
        tag_id=tag.id,
        ordinal=ordinal,
        is_assigned=bool(index.get(tag.id)),
    )


def _dorm_slots(
    category: Category,
    tags: list[Tag],
    index: Mapping[str, Sequence[Booking]],
    anomalies: list[Anomaly],
    taken: set[str],
) -> list[Slot]:
    if tags:
        return [
            _tag_slot(tag, SlotKind.DORM_BED, index, ordinal=position)
            for position, tag in enumerate(_sorted_tags(tags), start=1)
        ]
    bed_count = _resolve_bed_count(category, anomalies)
    return [
        Slot(
            id=unique_slot_id(f"{category.id}-bed-{bed}", taken),
            category_id=category.id,
            kind=SlotKind.DORM_BED,
            label=f"Bed {bed}",
            ordinal=bed,
        )
        for bed in range(1, bed_count + 1)
    ]


def _limited_slots(
    category: Category,
    tags: list[Tag],
    index: Mapping[str, Sequence[Booking]],
    taken: set[str],
) -> list[Slot]:
    slots = [_tag_slot(tag, SlotKind.FIXED_TAGGED, index) for tag in _sorted_tags(tags)]
    if category.capacity_kind is not CapacityKind.LIMITED_WITH_INVENTORY:
        return slots

    padding = max(0, (category.inventory_count or 0) - len(tags))
    for lane in range(padding):
        slots.append(
            Slot(
                id=unique_slot_id(f"{category.id}-inventory-{lane}", taken),
                category_id=category.id,
                kind=SlotKind.FIXED_TAGGED,
                label=f"{category.display_name} #{len(tags) + lane + 1}",
                lane=lane,
            )
        )
    return slots


def build_unlimited_tag_slots(
    category: Category,
    tags: Iterable[Tag],
    index: Mapping[str, Sequence[Booking]],
) -> list[Slot]:
    """Tagged rows of an unlimited category; dynamic lanes are appended later."""
    return [
        _tag_slot(tag, SlotKind.FIXED_TAGGED, index)
        for tag in _sorted_tags(tag for tag in tags if tag.category_id == category.id)
    ]


def group_tags(
    categories: Sequence[Category],
    tags: Iterable[Tag],
) -> tuple[dict[str, list[Tag]], list[Anomaly]]:
    """Bucket tags by category; tags of unknown categories become anomalies."""
    known_ids = {category.id for category in categories}
    grouped: dict[str, list[Tag]] = defaultdict(list)
    anomalies: list[Anomaly] = []
    for tag in tags:
        if tag.category_id not in known_ids:
            anomalies.append(
                Anomaly(
                    kind=AnomalyKind.UNKNOWN_CATEGORY,
                    message=f"Tag '{tag.ordinal_label}' references unknown category {tag.category_id}",
                    slot_id=tag.id,
                    category_id=tag.category_id,
                )
            )
            logger.warning(
                "Tag excluded from catalog | tag_id=%s | category_id=%s",
                tag.id,
                tag.category_id,
            )
            continue
        grouped[tag.category_id].append(tag)
    return dict(grouped), anomalies


def build_catalog(
    categories: Sequence[Category],
    tags: Iterable[Tag],
    bookings_by_assigned_slot: Mapping[str, Sequence[Booking]],
    rules: Optional[CatalogRules] = None,
) -> CatalogBuild:
    """Build static slots in display order: single rooms, dorm beds, others.

    Unlimited categories contribute nothing here; their rows come from the
    dynamic expander.
    """
    rules = rules or CatalogRules()
    validate_catalog_rules(rules)
    tags_by_category, anomalies = group_tags(categories, tags)
    taken = {tag.id for grouped in tags_by_category.values() for tag in grouped}

    single_rooms: list[Slot] = []
    dorm_beds: list[Slot] = []
    others: list[Slot] = []
    for category in _sorted_categories(categories):
        category_tags = tags_by_category.get(category.id, [])
        if category.is_unlimited:
            continue
        if is_dorm(category, rules):
            dorm_beds.extend(_dorm_slots(category, category_tags, bookings_by_assigned_slot, anomalies, taken))
        elif is_single_room(category, rules):
            single_rooms.append(
                Slot(
                    id=unique_slot_id(category.id, taken),
                    category_id=category.id,
                    kind=SlotKind.SINGLE_ROOM,
                    label=category.display_name,
                )
            )
        else:
            others.extend(_limited_slots(category, category_tags, bookings_by_assigned_slot, taken))

    slots = [*single_rooms, *dorm_beds, *others]
    logger.debug(
        "Catalog built | single_rooms=%s | dorm_beds=%s | others=%s | anomalies=%s",
        len(single_rooms),
        len(dorm_beds),
        len(others),
        len(anomalies),
    )
    return CatalogBuild(slots=slots, anomalies=anomalies)


def build(
    categories: Sequence[Category],
    tags: Iterable[Tag],
    bookings_by_assigned_slot: Mapping[str, Sequence[Booking]],
    rules: Optional[CatalogRules] = None,
) -> list[Slot]:
    return build_catalog(categories, tags, bookings_by_assigned_slot, rules).slots
