"""Price quotes for a booking range."""

from __future__ import annotations

from dataclasses import dataclass

from app.models import PaymentMethod
from app.timeutils import Interval


@dataclass(frozen=True)
class Quote:
    total: float
    deposit: float


def quote(
    hourly_price: float,
    booked: Interval,
    payment_method: PaymentMethod | None,
    cash_deposit_rate: float,
) -> Quote:
    """
    Total is the hourly price times the booked hours (fractions allowed).
    Cash bookings owe a deposit of *cash_deposit_rate* of the total up front;
    other payment methods settle in full so no deposit is asked.
    """
    if hourly_price < 0:
        raise ValueError("hourly_price must not be negative")
    if not 0 <= cash_deposit_rate <= 1:
        raise ValueError("cash_deposit_rate must be between 0 and 1")

    total = round(hourly_price * booked.duration / 60, 2)
    deposit = round(total * cash_deposit_rate, 2) if payment_method is PaymentMethod.CASH else 0.0
    return Quote(total=total, deposit=deposit)
