"""Pydantic models for the court booking core and its HTTP API."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.timeutils import Interval, normalize_time


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PAID = "paid"
    CANCELLED = "cancelled"


# Statuses that occupy a court. Cancelled reservations never block a slot.
ACTIVE_STATUSES = frozenset(
    {ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.PAID}
)


class PaymentMethod(str, Enum):
    MERCADO_PAGO = "mercado_pago"
    TRANSFER = "transfer"
    CASH = "cash"


def _normalize(value: Any) -> Any:
    if isinstance(value, str):
        return normalize_time(value)
    return value


# ── Core entities ─────────────────────────────────────────────────────────


class OperatingWindow(BaseModel):
    """When a court is bookable on a given weekday."""
    court_id: str = Field(..., description="Court identifier")
    day_of_week: int = Field(..., ge=0, le=6, description="Day of week (0=Monday, 6=Sunday)")
    start_time: str = Field(..., description="Opening time (HH:MM)")
    end_time: str = Field(..., description="Closing time (HH:MM, 24:00 allowed)")
    is_available: bool = Field(default=True, description="Whether the window can be booked")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _normalize_times(cls, value: Any) -> Any:
        return _normalize(value)

    @field_validator("is_available", mode="before")
    @classmethod
    def _null_means_available(cls, value: Any) -> Any:
        return True if value is None else value

    @model_validator(mode="after")
    def _check_order(self) -> OperatingWindow:
        # Raises InvalidRangeError (a ValueError) when start >= end
        Interval.from_times(self.start_time, self.end_time)
        return self

    @property
    def interval(self) -> Interval:
        return Interval.from_times(self.start_time, self.end_time)


class BookingMetadata(BaseModel):
    """Everything about a booking besides court, date and time range."""
    price: Optional[float] = Field(None, ge=0, description="Total price")
    deposit_amount: float = Field(default=0.0, ge=0, description="Deposit to collect")
    deposit_paid: bool = Field(default=False, description="Whether the deposit was paid")
    payment_method: Optional[PaymentMethod] = Field(None, description="How the customer pays")
    user_id: Optional[str] = Field(None, description="Customer the booking is for")
    complex_id: Optional[str] = Field(None, description="Sports complex owning the court")
    notes: Optional[str] = Field(None, max_length=1000, description="Free-form notes")


class NewReservation(BookingMetadata):
    """A reservation row about to be inserted (storage assigns id and timestamps)."""
    court_id: str
    reservation_date: date
    start_time: str
    end_time: str
    status: ReservationStatus = ReservationStatus.PENDING

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _normalize_times(cls, value: Any) -> Any:
        return _normalize(value)


class Reservation(NewReservation):
    """A persisted booking of one court for a half-open time range on one date."""
    id: str = Field(..., description="Reservation identifier")
    created_at: datetime = Field(..., description="When the row was inserted (UTC)")
    updated_at: datetime = Field(..., description="Last modification (UTC)")

    @property
    def interval(self) -> Interval:
        return Interval.from_times(self.start_time, self.end_time)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


# ── API payloads ──────────────────────────────────────────────────────────


class FreeSlot(BaseModel):
    """A bookable [start, end) range. Derived on every query, never stored."""
    start: str = Field(..., description="Start time (HH:MM)")
    end: str = Field(..., description="End time (HH:MM)")

    @classmethod
    def from_interval(cls, interval: Interval) -> FreeSlot:
        return cls(start=interval.start_label, end=interval.end_label)


class AvailabilityResponse(BaseModel):
    court_id: str = Field(..., description="Court identifier")
    reservation_date: date = Field(..., description="Date the availability is for")
    day_of_week: int = Field(..., description="Day of week (0=Monday, 6=Sunday)")
    step_minutes: int = Field(..., description="Length of each free slot")
    free_slots: List[FreeSlot] = Field(..., description="Bookable unit slots")
    free_ranges: List[FreeSlot] = Field(..., description="Free slots merged into continuous ranges")


class EndOptionsResponse(BaseModel):
    court_id: str
    reservation_date: date
    start: str = Field(..., description="Requested start time (HH:MM)")
    end_options: List[str] = Field(..., description="End times reachable without a gap")


class OperatingWindowInput(BaseModel):
    start_time: str = Field(..., description="Opening time (HH:MM)")
    end_time: str = Field(..., description="Closing time (HH:MM)")
    is_available: bool = Field(default=True)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _normalize_times(cls, value: Any) -> Any:
        return _normalize(value)

    @model_validator(mode="after")
    def _check_order(self) -> OperatingWindowInput:
        Interval.from_times(self.start_time, self.end_time)
        return self


class BookingRequest(BookingMetadata):
    court_id: str = Field(..., description="Court to book")
    reservation_date: date = Field(..., description="Calendar date (YYYY-MM-DD)")
    start_time: str = Field(..., description="Start time (HH:MM)")
    end_time: str = Field(..., description="End time (HH:MM)")
    hourly_price: Optional[float] = Field(
        None, ge=0, description="Court price per hour; used to quote price when price is omitted"
    )

    def metadata(self) -> BookingMetadata:
        return BookingMetadata(**self.model_dump(include=set(BookingMetadata.model_fields)))


class ScheduleChange(BaseModel):
    reservation_date: date = Field(..., description="New calendar date")
    start_time: str = Field(..., description="New start time (HH:MM)")
    end_time: str = Field(..., description="New end time (HH:MM)")


class StatusChange(BaseModel):
    status: ReservationStatus


class Error(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(..., description="Current timestamp")
