"""
Reservation endpoints: book, inspect, move, cancel and change status.

Booking errors raised by the gateway are rendered by the BookingError
handler registered in ``app.main``.
"""

from fastapi import APIRouter, Request, status

from app import config
from app.dependencies import Gateway
from app.models import (
    BookingRequest,
    Error,
    Reservation,
    ScheduleChange,
    StatusChange,
)
from app.rate_limit import BOOKING, limiter
from app.services.pricing import quote
from app.timeutils import Interval

router = APIRouter(prefix="/api/reservations", tags=["reservations"])

_ERRORS = {
    404: {"model": Error, "description": "Reservation not found"},
    409: {"model": Error, "description": "Slot taken or status change not allowed"},
    422: {"model": Error, "description": "Invalid time range or outside opening hours"},
    503: {"model": Error, "description": "Storage temporarily unavailable"},
}


@router.post(
    "",
    response_model=Reservation,
    status_code=status.HTTP_201_CREATED,
    operation_id="createReservation",
    summary="Book a court for a time range",
    responses=_ERRORS,
)
@limiter.limit(BOOKING)
async def create_reservation(
    request: Request, body: BookingRequest, gateway: Gateway
) -> Reservation:
    metadata = body.metadata()
    if metadata.price is None and body.hourly_price is not None:
        booked = Interval.from_times(body.start_time, body.end_time)
        price = quote(body.hourly_price, booked, metadata.payment_method, config.CASH_DEPOSIT_RATE)
        metadata = metadata.model_copy(update={"price": price.total, "deposit_amount": price.deposit})

    return await gateway.request_booking(
        body.court_id,
        body.reservation_date,
        body.start_time,
        body.end_time,
        metadata,
    )


@router.get(
    "/{reservation_id}",
    response_model=Reservation,
    operation_id="getReservation",
    summary="Get a reservation",
    responses=_ERRORS,
)
async def get_reservation(reservation_id: str, gateway: Gateway) -> Reservation:
    return await gateway.get_reservation(reservation_id)


@router.patch(
    "/{reservation_id}/schedule",
    response_model=Reservation,
    operation_id="moveReservation",
    summary="Move or resize a reservation",
    responses=_ERRORS,
)
async def move_reservation(
    reservation_id: str, body: ScheduleChange, gateway: Gateway
) -> Reservation:
    return await gateway.move_or_resize(
        reservation_id, body.reservation_date, body.start_time, body.end_time
    )


@router.post(
    "/{reservation_id}/cancel",
    response_model=Reservation,
    operation_id="cancelReservation",
    summary="Cancel a reservation",
    responses=_ERRORS,
)
async def cancel_reservation(reservation_id: str, gateway: Gateway) -> Reservation:
    return await gateway.cancel(reservation_id)


@router.patch(
    "/{reservation_id}/status",
    response_model=Reservation,
    operation_id="updateReservationStatus",
    summary="Confirm, mark paid or cancel a reservation",
    responses=_ERRORS,
)
async def update_reservation_status(
    reservation_id: str, body: StatusChange, gateway: Gateway
) -> Reservation:
    return await gateway.update_status(reservation_id, body.status)
