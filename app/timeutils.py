"""
Wall-clock time helpers.

All booking times are local, naive ``HH:MM`` values.  Internally they are
handled as minute-of-day integers in ``[0, 1440]``; ``"24:00"`` is the
end-of-day boundary so a window can close at midnight.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from enum import Enum

from app.errors import InvalidRangeError

MINUTES_PER_DAY = 24 * 60


def parse_time(value: str | time) -> int:
    """Convert ``"HH:MM"``, ``"HH:MM:SS"`` or a ``time`` to minute-of-day."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise InvalidRangeError(f"Invalid time '{value}'. Use HH:MM.", value=str(value))

    hours, minutes = int(parts[0]), int(parts[1])
    seconds = int(parts[2]) if len(parts) == 3 else 0
    if not 0 <= seconds < 60:
        raise InvalidRangeError(f"Invalid time '{value}'. Use HH:MM.", value=str(value))
    if hours == 24 and minutes == 0 and seconds == 0:
        return MINUTES_PER_DAY
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise InvalidRangeError(f"Invalid time '{value}'. Use HH:MM.", value=str(value))
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    """Inverse of :func:`parse_time`, always zero-padded."""
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise InvalidRangeError(f"Minute-of-day {minutes} is out of range.", minutes=minutes)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str | time) -> str:
    """``"09:00:00"`` -> ``"09:00"``; also validates the value."""
    return format_minutes(parse_time(value))


# ── Weekdays ──────────────────────────────────────────────────────────────


class WeekdayConvention(str, Enum):
    """
    How a ``day_of_week`` integer is numbered.

    The canonical convention used everywhere in this package is MONDAY0
    (Monday=0 .. Sunday=6, same as ``date.weekday()``).  The others exist
    only so a storage adapter can translate rows written by other clients.
    """

    MONDAY0 = "monday0"   # Monday=0 .. Sunday=6
    SUNDAY0 = "sunday0"   # Sunday=0 .. Saturday=6 (JavaScript getDay)
    ISO = "iso"           # Monday=1 .. Sunday=7


def weekday_index(day: date) -> int:
    """Canonical weekday for a calendar date (Monday=0)."""
    return day.weekday()


def to_canonical_weekday(value: int, convention: WeekdayConvention) -> int:
    if convention is WeekdayConvention.MONDAY0:
        canonical = value
    elif convention is WeekdayConvention.SUNDAY0:
        canonical = (value + 6) % 7 if 0 <= value <= 6 else -1
    else:
        canonical = value - 1 if 1 <= value <= 7 else -1

    if not 0 <= canonical <= 6:
        raise ValueError(f"day_of_week {value} is invalid for convention {convention.value}")
    return canonical


def from_canonical_weekday(value: int, convention: WeekdayConvention) -> int:
    if not 0 <= value <= 6:
        raise ValueError(f"day_of_week {value} is out of range (0=Monday .. 6=Sunday)")
    if convention is WeekdayConvention.MONDAY0:
        return value
    if convention is WeekdayConvention.SUNDAY0:
        return (value + 1) % 7
    return value + 1


# ── Intervals ─────────────────────────────────────────────────────────────


@dataclass(frozen=True, order=True)
class Interval:
    """Half-open ``[start, end)`` range of minutes within one day."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if not (0 <= self.start <= MINUTES_PER_DAY and 0 <= self.end <= MINUTES_PER_DAY):
            raise InvalidRangeError(
                "Times must fall within a single day (00:00-24:00).",
                start=self.start,
                end=self.end,
            )
        if self.start >= self.end:
            raise InvalidRangeError(
                f"Start {format_minutes(self.start)} must be before end {format_minutes(self.end)}.",
                start=format_minutes(self.start),
                end=format_minutes(self.end),
            )

    @classmethod
    def from_times(cls, start: str | time, end: str | time) -> Interval:
        return cls(parse_time(start), parse_time(end))

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def start_label(self) -> str:
        return format_minutes(self.start)

    @property
    def end_label(self) -> str:
        return format_minutes(self.end)

    def __str__(self) -> str:
        return f"{self.start_label}-{self.end_label}"
