"""
Booking error taxonomy.

Every failure the reservation core can report is a ``BookingError`` with a
machine-readable ``kind``, an actionable ``message`` and optional
``details``.  The HTTP layer turns these into tagged JSON responses; the
status code for each kind lives here so routers never have to guess.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class BookingErrorKind(str, Enum):
    INVALID_RANGE = "invalid_range"
    OUTSIDE_HOURS = "outside_hours"
    SLOT_TAKEN = "slot_taken"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    PENDING_EXISTS = "pending_exists"


class BookingError(Exception):
    """Base class for every error surfaced by the booking core."""

    kind: BookingErrorKind
    status_code: int = 400
    default_message = "The booking request could not be completed."

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.kind.value,
            "message": self.message,
            "details": self.details or None,
        }


class InvalidRangeError(BookingError, ValueError):
    """Malformed time input (start >= end, unparseable time, bad step)."""

    kind = BookingErrorKind.INVALID_RANGE
    status_code = 422
    default_message = "The start time must be before the end time."


class OutsideHoursError(BookingError):
    kind = BookingErrorKind.OUTSIDE_HOURS
    status_code = 422
    default_message = (
        "The court is not open for the whole requested time. "
        "Pick a time within its opening hours."
    )


class SlotTakenError(BookingError):
    kind = BookingErrorKind.SLOT_TAKEN
    status_code = 409
    default_message = (
        "That time is already booked. Refresh the availability and pick another time."
    )


class StorageUnavailableError(BookingError):
    kind = BookingErrorKind.STORAGE_UNAVAILABLE
    status_code = 503
    default_message = "Reservations are temporarily unavailable. Please try again in a moment."


class ReservationNotFoundError(BookingError):
    kind = BookingErrorKind.NOT_FOUND
    status_code = 404
    default_message = "Reservation not found."


class InvalidTransitionError(BookingError):
    kind = BookingErrorKind.INVALID_TRANSITION
    status_code = 409
    default_message = "That status change is not allowed for this reservation."


class PendingReservationExistsError(BookingError):
    kind = BookingErrorKind.PENDING_EXISTS
    status_code = 409
    default_message = (
        "You already have a pending reservation at this complex. "
        "Cancel or complete it before booking another one."
    )


class ConflictError(Exception):
    """
    Raised by a storage collaborator when a write would violate the
    no-overlap constraint.  Never leaves the reservation gateway, which
    translates it into ``SlotTakenError``.
    """
