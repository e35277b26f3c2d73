"""HTTP controller layer for lane packing and occupancy grids."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from inventory_calendar.controllers.dependencies import get_calendar_service
from inventory_calendar.domain.models import (
    AnomalyKind,
    Booking,
    BookingSegment,
    CalendarGrid,
    CapacityKind,
    Category,
    DateWindow,
    PackItem,
    SlotKind,
    Tag,
)
from inventory_calendar.services.calendar_service import (
    BookingNotFoundError,
    CalendarGridService,
    CalendarValidationError,
)
from inventory_calendar.services.interval_packer import DuplicateItemError, pack_intervals
from inventory_calendar.services.occupancy_service import segment_for, show_name
from inventory_calendar.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["calendar"])


class BookingPayload(BaseModel):
    """Snapshot row; inverted intervals are reported, not rejected here."""

    id: str = Field(min_length=1)
    check_in: date
    check_out: date
    category_id: str = Field(min_length=1)
    slot_id: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None

    def to_domain(self) -> Booking:
        return Booking(
            id=self.id,
            check_in=self.check_in,
            check_out=self.check_out,
            category_id=self.category_id,
            slot_id=self.slot_id,
            guest_name=self.guest_name,
            guest_email=self.guest_email,
        )


class CategoryPayload(BaseModel):
    id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    capacity_kind: CapacityKind
    inventory_count: Optional[int] = Field(default=None, ge=0)

    def to_domain(self) -> Category:
        return Category(
            id=self.id,
            display_name=self.display_name,
            capacity_kind=self.capacity_kind,
            inventory_count=self.inventory_count,
        )


class TagPayload(BaseModel):
    id: str = Field(min_length=1)
    category_id: str = Field(min_length=1)
    ordinal_label: str = Field(min_length=1)

    def to_domain(self) -> Tag:
        return Tag(id=self.id, category_id=self.category_id, ordinal_label=self.ordinal_label)


class PackItemPayload(BaseModel):
    id: str = Field(min_length=1)
    start: date
    end: date


class PackLanesRequest(BaseModel):
    items: list[PackItemPayload]


class PackLanesResponse(BaseModel):
    lanes: dict[str, int]
    lanes_used: int = Field(ge=0)
    rejected_ids: list[str]


class SnapshotRequest(BaseModel):
    categories: list[CategoryPayload]
    tags: list[TagPayload] = Field(default_factory=list)
    bookings: list[BookingPayload] = Field(default_factory=list)

    def domain_categories(self) -> list[Category]:
        return [item.to_domain() for item in self.categories]

    def domain_tags(self) -> list[Tag]:
        return [item.to_domain() for item in self.tags]

    def domain_bookings(self) -> list[Booking]:
        return [item.to_domain() for item in self.bookings]


class OccupancyGridRequest(SnapshotRequest):
    window_start: date
    window_end: date


class SlotResponse(BaseModel):
    id: str
    category_id: str
    kind: SlotKind
    label: str
    tag_id: Optional[str] = None
    ordinal: Optional[int] = Field(default=None, gt=0)
    lane: Optional[int] = Field(default=None, ge=0)
    is_assigned: bool


class CellBookingResponse(BaseModel):
    booking_id: str
    guest_name: Optional[str] = None
    segment: BookingSegment
    show_name: bool
    is_assigned: bool


class CellResponse(BaseModel):
    slot_id: str
    day: date
    bookings: list[CellBookingResponse]
    anomalous: bool


class OccupancyCountResponse(BaseModel):
    category_id: str
    display_name: str
    occupied: int = Field(ge=0)
    total: int = Field(gt=0)
    is_full: bool


class AnomalyResponse(BaseModel):
    kind: AnomalyKind
    message: str
    booking_id: Optional[str] = None
    slot_id: Optional[str] = None
    category_id: Optional[str] = None
    day: Optional[date] = None


class OccupancyGridResponse(BaseModel):
    window_start: date
    window_end: date
    days: list[date]
    slots: list[SlotResponse]
    cells: list[CellResponse]
    summary: list[OccupancyCountResponse]
    anomalies: list[AnomalyResponse]
    unassigned_warnings: list[str]


class ViewWindowResponse(BaseModel):
    view_mode: str
    start: date
    end: date
    days: list[date]


class ReassignTargetsRequest(SnapshotRequest):
    booking_id: str = Field(min_length=1)


class ReassignTargetResponse(BaseModel):
    slot_id: str
    label: str
    category_id: Optional[str] = None


class ReassignTargetsResponse(BaseModel):
    booking_id: str
    targets: list[ReassignTargetResponse]


def _to_grid_response(grid: CalendarGrid) -> OccupancyGridResponse:
    days = grid.window.days()
    cells: list[CellResponse] = []
    for slot in grid.slots:
        for day in days:
            cell = grid.cell(slot.id, day)
            cells.append(
                CellResponse(
                    slot_id=slot.id,
                    day=day,
                    bookings=[
                        CellBookingResponse(
                            booking_id=booking.id,
                            guest_name=booking.guest_name or booking.guest_email,
                            segment=segment_for(booking, day),
                            show_name=show_name(booking, day, days),
                            is_assigned=not booking.is_unassigned,
                        )
                        for booking in cell.bookings
                    ],
                    anomalous=cell.anomalous,
                )
            )

    return OccupancyGridResponse(
        window_start=grid.window.start,
        window_end=grid.window.end,
        days=days,
        slots=[
            SlotResponse(
                id=slot.id,
                category_id=slot.category_id,
                kind=slot.kind,
                label=slot.label,
                tag_id=slot.tag_id,
                ordinal=slot.ordinal,
                lane=slot.lane,
                is_assigned=slot.is_assigned,
            )
            for slot in grid.slots
        ],
        cells=cells,
        summary=[
            OccupancyCountResponse(
                category_id=count.category_id,
                display_name=count.display_name,
                occupied=count.occupied,
                total=count.total,
                is_full=count.is_full,
            )
            for count in grid.summary.values()
        ],
        anomalies=[
            AnomalyResponse(
                kind=anomaly.kind,
                message=anomaly.message,
                booking_id=anomaly.booking_id,
                slot_id=anomaly.slot_id,
                category_id=anomaly.category_id,
                day=anomaly.day,
            )
            for anomaly in grid.anomalies
        ],
        unassigned_warnings=[booking.id for booking in grid.unassigned_warnings],
    )


@router.post(
    "/pack_lanes",
    response_model=PackLanesResponse,
    status_code=status.HTTP_200_OK,
)
async def pack_lanes(payload: PackLanesRequest) -> PackLanesResponse:
    """Expose the shared interval packer for ad hoc lane previews."""
    try:
        result = pack_intervals(
            PackItem(item_id=item.id, start=item.start, end=item.end) for item in payload.items
        )
    except DuplicateItemError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return PackLanesResponse(
        lanes=result.lanes,
        lanes_used=result.lanes_used,
        rejected_ids=result.rejected_ids,
    )


@router.post(
    "/occupancy_grid",
    response_model=OccupancyGridResponse,
    status_code=status.HTTP_200_OK,
)
async def occupancy_grid(
    payload: OccupancyGridRequest,
    service: CalendarGridService = Depends(get_calendar_service),
) -> OccupancyGridResponse:
    """Resolve slot rows, cells and summary for one snapshot and window."""
    try:
        grid = service.build_grid(
            bookings=payload.domain_bookings(),
            categories=payload.domain_categories(),
            tags=payload.domain_tags(),
            window=DateWindow(start=payload.window_start, end=payload.window_end),
        )
        return _to_grid_response(grid)
    except CalendarValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected occupancy grid failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build occupancy grid",
        ) from exc


@router.get(
    "/view_window",
    response_model=ViewWindowResponse,
    status_code=status.HTTP_200_OK,
)
async def get_view_window(
    anchor: date,
    view_mode: str = Query(default="week", pattern="^(week|month)$"),
    direction: int = Query(default=0, ge=-1, le=1),
    service: CalendarGridService = Depends(get_calendar_service),
) -> ViewWindowResponse:
    try:
        window = service.view_window(view_mode, anchor, direction)
    except CalendarValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return ViewWindowResponse(
        view_mode=view_mode,
        start=window.start,
        end=window.end,
        days=window.days(),
    )


@router.post(
    "/reassign_targets",
    response_model=ReassignTargetsResponse,
    status_code=status.HTTP_200_OK,
)
async def reassign_targets(
    payload: ReassignTargetsRequest,
    service: CalendarGridService = Depends(get_calendar_service),
) -> ReassignTargetsResponse:
    """List slots a booking may move to; storage performs the move."""
    try:
        targets = service.reassign_targets(
            booking_id=payload.booking_id,
            bookings=payload.domain_bookings(),
            categories=payload.domain_categories(),
            tags=payload.domain_tags(),
        )
    except BookingNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    return ReassignTargetsResponse(
        booking_id=payload.booking_id,
        targets=[
            ReassignTargetResponse(
                slot_id=target.slot_id,
                label=target.label,
                category_id=target.category_id,
            )
            for target in targets
        ],
    )
