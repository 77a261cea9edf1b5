"""
Court availability and operating hours endpoints.
"""

from datetime import date

from fastapi import APIRouter, Path, Query

from app.dependencies import Gateway
from app.models import (
    AvailabilityResponse,
    EndOptionsResponse,
    FreeSlot,
    OperatingWindow,
    OperatingWindowInput,
    Reservation,
)
from app.services.consolidation import consolidate_free_slots
from app.timeutils import normalize_time, weekday_index

router = APIRouter(prefix="/api/courts/{court_id}", tags=["availability"])


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    operation_id="getCourtAvailability",
    summary="Free slots and free ranges of a court on a date",
)
async def get_availability(
    court_id: str,
    gateway: Gateway,
    day: date = Query(..., alias="date", description="Date to check (YYYY-MM-DD)"),
    step_minutes: int | None = Query(None, ge=5, le=1440, description="Slot length in minutes"),
) -> AvailabilityResponse:
    slots = await gateway.list_free_slots(court_id, day, step_minutes)
    ranges = consolidate_free_slots(slots)
    return AvailabilityResponse(
        court_id=court_id,
        reservation_date=day,
        day_of_week=weekday_index(day),
        step_minutes=step_minutes or gateway.engine.step_minutes,
        free_slots=[FreeSlot.from_interval(s) for s in slots],
        free_ranges=[FreeSlot.from_interval(r) for r in ranges],
    )


@router.get(
    "/availability/end-options",
    response_model=EndOptionsResponse,
    operation_id="getEndOptions",
    summary="End times reachable from a start time without crossing a busy slot",
)
async def get_end_options(
    court_id: str,
    gateway: Gateway,
    day: date = Query(..., alias="date", description="Date to check (YYYY-MM-DD)"),
    start: str = Query(..., description="Start time (HH:MM)"),
) -> EndOptionsResponse:
    options = await gateway.list_end_options(court_id, day, start)
    return EndOptionsResponse(
        court_id=court_id,
        reservation_date=day,
        start=normalize_time(start),
        end_options=options,
    )


@router.get(
    "/operating-windows",
    response_model=list[OperatingWindow],
    operation_id="listOperatingWindows",
    summary="Stored operating windows of a court for a weekday",
)
async def list_operating_windows(
    court_id: str,
    gateway: Gateway,
    day_of_week: int = Query(..., ge=0, le=6, description="0=Monday .. 6=Sunday"),
) -> list[OperatingWindow]:
    return await gateway.get_operating_windows(court_id, day_of_week)


@router.put(
    "/operating-windows/{day_of_week}",
    response_model=list[OperatingWindow],
    operation_id="replaceOperatingWindows",
    summary="Replace every operating window of a court for a weekday",
)
async def replace_operating_windows(
    court_id: str,
    body: list[OperatingWindowInput],
    gateway: Gateway,
    day_of_week: int = Path(..., ge=0, le=6, description="0=Monday .. 6=Sunday"),
) -> list[OperatingWindow]:
    windows = [
        OperatingWindow(court_id=court_id, day_of_week=day_of_week, **w.model_dump())
        for w in body
    ]
    return await gateway.replace_operating_windows(court_id, day_of_week, windows)


@router.get(
    "/reservations",
    response_model=list[Reservation],
    operation_id="listCourtReservations",
    summary="Reservations of a court on a date (calendar view)",
)
async def list_court_reservations(
    court_id: str,
    gateway: Gateway,
    day: date = Query(..., alias="date", description="Date (YYYY-MM-DD)"),
    include_cancelled: bool = Query(False, description="Also return cancelled reservations"),
) -> list[Reservation]:
    return await gateway.list_reservations(court_id, day, include_cancelled)
