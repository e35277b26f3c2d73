#!/usr/bin/env python3
"""Validate local inventory calendar environment readiness."""

from __future__ import annotations

import importlib
import random
import sys
from datetime import date, timedelta
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from inventory_calendar.domain.constraints import validate_calendar_config
from inventory_calendar.domain.models import (
    Booking,
    CapacityKind,
    Category,
    PackItem,
)
from inventory_calendar.services.calendar_service import CalendarGridService
from inventory_calendar.services.interval_packer import max_concurrency, pack_intervals
from inventory_calendar.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def _sample_items(seed: int, count: int) -> list[PackItem]:
    rng = random.Random(seed)
    origin = date(2026, 1, 1)
    items: list[PackItem] = []
    for index in range(count):
        start = origin + timedelta(days=rng.randint(0, 40))
        items.append(
            PackItem(
                item_id=f"item-{index:03d}",
                start=start,
                end=start + timedelta(days=rng.randint(1, 10)),
            )
        )
    return items


def main() -> int:
    results: list[str] = []
    all_passed = True

    # CHECK 1: Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable with versions
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    from importlib.metadata import version

    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            _ = version(dist_name)
        except Exception as exc:  # pragma: no cover - runtime guard
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 3: Settings validation
    settings = get_settings()
    try:
        validate_calendar_config(settings)
        ok, line = _print_result("Calendar settings", True)
    except ValueError as exc:
        ok, line = _print_result("Calendar settings", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 4: Packer lane count matches peak concurrency
    try:
        items = _sample_items(seed=42, count=60)
        packing = pack_intervals(items)
        peak = max_concurrency(items)
        if packing.lanes_used != peak:
            raise RuntimeError(f"lanes_used={packing.lanes_used} but peak concurrency={peak}")
        ok, line = _print_result("Interval packer", True, f": {peak} lanes for 60 intervals")
    except Exception as exc:
        ok, line = _print_result("Interval packer", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 5: Sample grid is deterministic
    try:
        service = CalendarGridService(settings=settings)
        window = service.view_window("week", date(2026, 1, 6))
        categories = [
            Category(id="van", display_name="Van Parking", capacity_kind=CapacityKind.UNLIMITED),
            Category(
                id="dorm6",
                display_name="6-Bed Dorm",
                capacity_kind=CapacityKind.LIMITED_WITH_INVENTORY,
                inventory_count=6,
            ),
        ]
        bookings = [
            Booking(
                id=item.item_id,
                check_in=item.start,
                check_out=item.end,
                category_id="van" if index % 2 else "dorm6",
            )
            for index, item in enumerate(_sample_items(seed=7, count=12))
        ]
        first = service.build_grid(bookings=bookings, categories=categories, tags=[], window=window)
        second = service.build_grid(
            bookings=list(reversed(bookings)),
            categories=categories,
            tags=[],
            window=window,
        )
        if first.slots != second.slots or first.cells != second.cells:
            raise RuntimeError("grid changed when the input order changed")
        ok, line = _print_result("Occupancy grid", True, f": {len(first.slots)} slots")
    except Exception as exc:
        ok, line = _print_result("Occupancy grid", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    print(SEPARATOR_LINE)
    print(" Inventory Calendar Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
