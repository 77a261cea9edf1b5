"""
Availability engine – pure interval arithmetic over one court and one day.

Given a court's operating windows and its occupied time ranges, the engine
produces the bookable unit slots and answers whether an arbitrary
``[start, end)`` range can be booked.  It performs no I/O and keeps no
state between calls, so identical inputs always give identical outputs.

All intervals are half-open, so back-to-back bookings (one ends at 10:00,
the next starts at 10:00) never overlap.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from app.errors import InvalidRangeError
from app.models import ACTIVE_STATUSES, OperatingWindow, Reservation
from app.timeutils import Interval

logger = logging.getLogger(__name__)

DEFAULT_STEP_MINUTES = 60

# Anything the engine accepts where it needs an interval.
IntervalLike = Interval | OperatingWindow | Reservation


def _as_interval(item: IntervalLike) -> Interval:
    if isinstance(item, Interval):
        return item
    return item.interval


def _open_windows(windows: Iterable[OperatingWindow | Interval]) -> list[Interval]:
    """Intervals of the windows that are bookable (``is_available`` true)."""
    return [
        _as_interval(w)
        for w in windows
        if getattr(w, "is_available", True)
    ]


def overlaps(a: Interval, b: Interval) -> bool:
    """True when two half-open intervals share at least one minute."""
    return max(a.start, b.start) < min(a.end, b.end)


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Sorted union of *intervals*; overlapping and touching ranges are joined."""
    merged: list[Interval] = []
    for current in sorted(intervals):
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            if current.end > last.end:
                merged[-1] = Interval(last.start, current.end)
        else:
            merged.append(current)
    return merged


def busy_intervals(
    reservations: Iterable[Reservation],
    exclude_id: str | None = None,
) -> list[Interval]:
    """
    Occupied ranges derived from reservations.

    Only active reservations count; cancelled ones and the reservation
    identified by *exclude_id* (a reservation being moved) are dropped.
    """
    return [
        r.interval
        for r in reservations
        if r.status in ACTIVE_STATUSES and r.id != exclude_id
    ]


class AvailabilityEngine:
    """Stateless slot computation; *step_minutes* is the default slot length."""

    def __init__(self, step_minutes: int = DEFAULT_STEP_MINUTES) -> None:
        if step_minutes <= 0:
            raise InvalidRangeError("Slot step must be a positive number of minutes.", step=step_minutes)
        self.step_minutes = step_minutes

    # Re-exported so callers only need an engine instance
    overlaps = staticmethod(overlaps)
    merge_intervals = staticmethod(merge_intervals)
    busy_intervals = staticmethod(busy_intervals)

    def build_base_slots(
        self,
        windows: Iterable[OperatingWindow | Interval],
        step_minutes: int | None = None,
    ) -> list[Interval]:
        """
        Cut every available window into consecutive slots of *step_minutes*.

        A trailing remainder shorter than the step is dropped, so a window
        shorter than one step yields nothing.  Windows are processed in the
        order given and overlapping windows are not deduplicated.
        """
        step = self.step_minutes if step_minutes is None else step_minutes
        if step <= 0:
            raise InvalidRangeError("Slot step must be a positive number of minutes.", step=step)

        slots: list[Interval] = []
        for window in _open_windows(windows):
            t = window.start
            while t + step <= window.end:
                slots.append(Interval(t, t + step))
                t += step
        return slots

    def compute_free_slots(
        self,
        base_slots: Iterable[Interval],
        busy: Iterable[IntervalLike],
    ) -> list[Interval]:
        """Base slots that no busy interval touches, in their original order."""
        busy_list = [_as_interval(b) for b in busy]
        return [
            slot for slot in base_slots
            if not any(overlaps(slot, b) for b in busy_list)
        ]

    def is_range_free(self, requested: Interval, busy: Iterable[IntervalLike]) -> bool:
        """True when no busy interval overlaps *requested* (no step alignment needed)."""
        return not any(overlaps(requested, _as_interval(b)) for b in busy)

    def is_within_operating_hours(
        self,
        requested: Interval,
        windows: Iterable[OperatingWindow | Interval],
    ) -> bool:
        """
        True when *requested* is fully covered by the union of available
        windows.  Touching windows (09:00-12:00 and 12:00-15:00) cover a
        range that crosses noon; a gap anywhere inside the range fails.
        """
        for opened in merge_intervals(_open_windows(windows)):
            if opened.start <= requested.start and requested.end <= opened.end:
                return True
        return False

    def free_slots_for_day(
        self,
        windows: Iterable[OperatingWindow | Interval],
        reservations: Iterable[Reservation],
        step_minutes: int | None = None,
    ) -> list[Interval]:
        """Convenience: base slots minus the active reservations of the day."""
        base = self.build_base_slots(windows, step_minutes)
        free = self.compute_free_slots(base, busy_intervals(reservations))
        logger.debug("Free slots: %d of %d base slots", len(free), len(base))
        return free
