from __future__ import annotations

import random
from dataclasses import replace
from datetime import date, timedelta

import pytest

from inventory_calendar.domain.models import (
    AnomalyKind,
    Booking,
    CapacityKind,
    Category,
    DateWindow,
    SlotKind,
    Tag,
)
from inventory_calendar.services.calendar_service import (
    UNASSIGNED_TARGET,
    BookingNotFoundError,
    CalendarGridService,
    CalendarValidationError,
    month_window,
    shift_window,
    week_window,
)
from inventory_calendar.utils.config import get_settings


INVALID_IDS = {"ghost", "bad", "lost"}


def test_slots_are_ordered_by_kind_and_category(service, bookings, categories, tags, window):
    grid = service.build_grid(bookings=bookings, categories=categories, tags=tags, window=window)
    assert [slot.id for slot in grid.slots] == [
        "yurt",
        "dorm6-bed-1",
        "dorm6-bed-2",
        "dorm6-bed-3",
        "dorm6-bed-4",
        "dorm6-bed-5",
        "dorm6-bed-6",
        "bell-1",
        "bell-inventory-0",
        "bell-unassigned-1",
        "tent-a",
        "tent-b",
        "bay-1",
        "van-unassigned-0",
        "van-unassigned-1",
    ]
    dynamic = [slot for slot in grid.slots if slot.kind is SlotKind.DYNAMIC_UNASSIGNED]
    assert [slot.label for slot in dynamic] == [
        "Bell Tent (Unassigned 1)",
        "Van Parking (Unassigned 1)",
        "Van Parking (Unassigned 2)",
    ]


def test_every_displayed_booking_lands_in_exactly_one_cell(service, bookings, categories, tags, window):
    grid = service.build_grid(bookings=bookings, categories=categories, tags=tags, window=window)
    for booking in bookings:
        if booking.id in INVALID_IDS:
            continue
        for day in window.days():
            hits = [
                slot.id
                for slot in grid.slots
                if booking in grid.bookings_at(slot.id, day)
            ]
            expected = 1 if booking.is_displayed_on(day) else 0
            assert len(hits) == expected, (booking.id, day, hits)


def test_problem_bookings_become_anomalies(service, bookings, categories, tags, window):
    grid = service.build_grid(bookings=bookings, categories=categories, tags=tags, window=window)

    reported = {(anomaly.kind, anomaly.booking_id) for anomaly in grid.anomalies}
    assert reported == {
        (AnomalyKind.UNKNOWN_SLOT, "ghost"),
        (AnomalyKind.INVALID_INTERVAL, "bad"),
        (AnomalyKind.UNKNOWN_CATEGORY, "lost"),
    }
    for cell in grid.cells.values():
        assert INVALID_IDS.isdisjoint(booking.id for booking in cell.bookings)


def test_turnover_day_shows_both_guests_without_anomaly(service, bookings, categories, tags, window):
    grid = service.build_grid(bookings=bookings, categories=categories, tags=tags, window=window)

    yurt_cell = grid.cell("yurt", date(2026, 6, 4))
    assert [booking.id for booking in yurt_cell.bookings] == ["y1", "y2"]
    assert yurt_cell.anomalous is False

    lane_cell = grid.cell("van-unassigned-0", window.start)
    assert [booking.id for booking in lane_cell.bookings] == ["v0", "v1"]
    assert lane_cell.anomalous is False


def test_unassigned_dorm_guests_fill_first_beds(service, bookings, categories, tags, window):
    grid = service.build_grid(bookings=bookings, categories=categories, tags=tags, window=window)
    day = date(2026, 6, 4)
    occupants = [
        [booking.id for booking in grid.bookings_at(f"dorm6-bed-{bed}", day)]
        for bed in range(1, 7)
    ]
    assert occupants == [["d1"], ["d2"], ["d3"], ["d4"], [], []]


def test_summary_counts_per_category(service, bookings, categories, tags, window):
    grid = service.build_grid(bookings=bookings, categories=categories, tags=tags, window=window)
    counts = {
        category_id: (count.occupied, count.total)
        for category_id, count in grid.summary.items()
    }
    assert counts == {
        "dorm6": (4, 6),
        "bell": (3, 3),
        "tents": (1, 2),
        "yurt": (1, 1),
        "van": (3, 3),
    }
    assert list(grid.summary) == ["dorm6", "bell", "tents", "yurt", "van"]


def test_unassigned_limited_bookings_raise_warnings(service, bookings, categories, tags, window):
    grid = service.build_grid(bookings=bookings, categories=categories, tags=tags, window=window)
    assert [booking.id for booking in grid.unassigned_warnings] == ["b2", "b3"]


def test_overbooked_single_room_is_flagged(service, categories, tags, window):
    clash = [
        Booking(id="a", check_in=date(2026, 6, 3), check_out=date(2026, 6, 5), category_id="yurt"),
        Booking(id="b", check_in=date(2026, 6, 4), check_out=date(2026, 6, 6), category_id="yurt"),
    ]
    grid = service.build_grid(bookings=clash, categories=categories, tags=tags, window=window)

    assert grid.cell("yurt", date(2026, 6, 4)).anomalous is True
    assert grid.cell("yurt", date(2026, 6, 5)).anomalous is False
    overlaps = [anomaly for anomaly in grid.anomalies if anomaly.kind is AnomalyKind.AMBIGUOUS_OVERLAP]
    assert [(anomaly.slot_id, anomaly.day) for anomaly in overlaps] == [("yurt", date(2026, 6, 4))]


def test_grid_ignores_input_order(service, bookings, categories, tags, window):
    first = service.build_grid(bookings=bookings, categories=categories, tags=tags, window=window)
    shuffled = list(bookings)
    random.Random(17).shuffle(shuffled)
    second = service.build_grid(
        bookings=shuffled,
        categories=list(reversed(categories)),
        tags=list(reversed(tags)),
        window=window,
    )
    assert first == second


def test_duplicate_booking_ids_are_rejected(service, bookings, categories, tags, window):
    with pytest.raises(CalendarValidationError):
        service.build_grid(
            bookings=[*bookings, bookings[0]],
            categories=categories,
            tags=tags,
            window=window,
        )


def test_empty_window_is_rejected(service, categories, tags):
    day = date(2026, 6, 2)
    with pytest.raises(CalendarValidationError):
        service.build_grid(bookings=[], categories=categories, tags=tags, window=DateWindow(day, day))


def test_oversized_window_is_rejected(categories, tags):
    get_settings.cache_clear()
    service = CalendarGridService(settings=replace(get_settings(), max_window_days=7))
    window = DateWindow(start=date(2026, 6, 1), end=date(2026, 6, 1) + timedelta(days=8))
    with pytest.raises(CalendarValidationError):
        service.build_grid(bookings=[], categories=categories, tags=tags, window=window)


def test_invalid_settings_fail_fast():
    get_settings.cache_clear()
    with pytest.raises(ValueError):
        CalendarGridService(settings=replace(get_settings(), week_start_weekday=9))


# --- View windows ---

def test_week_window_starts_on_configured_weekday():
    window = week_window(date(2026, 1, 8), week_start_weekday=1)
    assert (window.start, window.end) == (date(2026, 1, 6), date(2026, 1, 13))
    assert week_window(date(2026, 1, 6), week_start_weekday=1).start == date(2026, 1, 6)


def test_month_window_is_half_open():
    window = month_window(date(2026, 12, 15))
    assert (window.start, window.end) == (date(2026, 12, 1), date(2027, 1, 1))
    assert window.length_days == 31


def test_shift_window_moves_by_view_mode():
    week = week_window(date(2026, 1, 8), 1)
    assert shift_window(week, "week", 1).start == date(2026, 1, 13)
    assert shift_window(week, "week", 0) == week

    january = month_window(date(2026, 1, 20))
    assert shift_window(january, "month", -1) == month_window(date(2025, 12, 1))
    assert shift_window(january, "month", 1) == month_window(date(2026, 2, 1))


def test_service_view_window_rejects_unknown_mode(service):
    assert service.view_window("week", date(2026, 1, 8), 1).start == date(2026, 1, 13)
    with pytest.raises(CalendarValidationError):
        service.view_window("year", date(2026, 1, 8))


# --- Reassign targets ---

def test_reassign_targets_stay_within_category(service, bookings, categories, tags):
    targets = service.reassign_targets(
        booking_id="t1",
        bookings=bookings,
        categories=categories,
        tags=tags,
    )
    assert [target.slot_id for target in targets] == ["tent-b", UNASSIGNED_TARGET]


def test_unassigned_booking_gets_no_unassigned_target(service, bookings, categories, tags):
    targets = service.reassign_targets(
        booking_id="v1",
        bookings=bookings,
        categories=categories,
        tags=tags,
    )
    assert [target.slot_id for target in targets] == ["bay-1"]


def test_shared_host_booking_can_move_anywhere(service, bookings, categories, tags):
    guest = Booking(
        id="h1",
        check_in=date(2026, 6, 3),
        check_out=date(2026, 6, 4),
        category_id="host",
    )
    targets = service.reassign_targets(
        booking_id="h1",
        bookings=[*bookings, guest],
        categories=categories,
        tags=tags,
    )
    assert [target.slot_id for target in targets] == ["bell-1", "tent-a", "tent-b", "bay-1"]


def test_reassign_unknown_booking_raises(service, bookings, categories, tags):
    with pytest.raises(BookingNotFoundError):
        service.reassign_targets(
            booking_id="missing",
            bookings=bookings,
            categories=categories,
            tags=tags,
        )


# --- Dorm turnover, room pinning and generated ids ---

def test_dorm_turnover_is_not_an_overlap(service, window):
    dorm = Category(id="dorm2", display_name="2-Bed Dorm", capacity_kind=CapacityKind.LIMITED_WITH_TAGS)
    stays = [
        Booking(id="a", check_in=date(2026, 6, 1), check_out=date(2026, 6, 4), category_id="dorm2"),
        Booking(id="b", check_in=date(2026, 6, 2), check_out=date(2026, 6, 6), category_id="dorm2"),
        Booking(id="c", check_in=date(2026, 6, 4), check_out=date(2026, 6, 7), category_id="dorm2"),
    ]
    grid = service.build_grid(bookings=stays, categories=[dorm], tags=[], window=window)

    assert grid.anomalies == []
    shared = grid.cell("dorm2-bed-1", date(2026, 6, 4))
    assert [booking.id for booking in shared.bookings] == ["a", "c"]
    assert shared.anomalous is False
    for offset in range(5):
        day = window.start + timedelta(days=offset)
        assert [booking.id for booking in grid.bookings_at("dorm2-bed-2", day)] == ["b"]


def test_room_booking_pinned_to_foreign_tag_shows_once(service, categories, tags, window):
    pinned = Booking(
        id="y",
        check_in=date(2026, 6, 3),
        check_out=date(2026, 6, 5),
        category_id="yurt",
        slot_id="tent-a",
    )
    grid = service.build_grid(bookings=[pinned], categories=categories, tags=tags, window=window)

    for day in window.days():
        holders = [slot.id for slot in grid.slots if pinned in grid.bookings_at(slot.id, day)]
        assert holders == (["yurt"] if pinned.is_displayed_on(day) else [])
    assert [(anomaly.kind, anomaly.booking_id) for anomaly in grid.anomalies] == [
        (AnomalyKind.CATEGORY_MISMATCH, "y"),
    ]


def test_generated_ids_step_around_tag_ids(service, window):
    categories = [
        Category(id="van", display_name="Van Parking", capacity_kind=CapacityKind.UNLIMITED),
        Category(id="tents", display_name="Tent Site", capacity_kind=CapacityKind.LIMITED_WITH_TAGS),
    ]
    tags = [Tag(id="van-unassigned-0", category_id="tents", ordinal_label="Odd Site")]
    van = Booking(id="v", check_in=date(2026, 6, 3), check_out=date(2026, 6, 5), category_id="van")

    grid = service.build_grid(bookings=[van], categories=categories, tags=tags, window=window)

    slot_ids = [slot.id for slot in grid.slots]
    assert slot_ids == ["van-unassigned-0", "van-unassigned-0.2"]
    assert grid.bookings_at("van-unassigned-0.2", date(2026, 6, 3)) == [van]
    assert grid.bookings_at("van-unassigned-0", date(2026, 6, 3)) == []
