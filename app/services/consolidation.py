"""Merge free slots into continuous ranges and compute reachable end times."""

from __future__ import annotations

from collections.abc import Iterable

from app.services.availability import merge_intervals
from app.timeutils import Interval


def consolidate_free_slots(slots: Iterable[Interval]) -> list[Interval]:
    """
    Consolidate overlapping and adjacent free slots into the longest
    possible ranges, e.g. 09-10, 10-11 and 13-14 become 09-11 and 13-14.
    """
    return merge_intervals(slots)


def end_options(free_slots: Iterable[Interval], start: int) -> list[int]:
    """
    End times a booking starting at *start* can choose without crossing a
    busy or closed gap.

    Starting from the free slot that begins at *start*, follows the chain of
    slots where each one starts exactly where the previous one ended.
    Returns an empty list when no free slot begins at *start*.
    """
    by_start: dict[int, Interval] = {}
    for slot in free_slots:
        # Keep the shortest slot per start so every reachable end is listed
        if slot.start not in by_start or slot.end < by_start[slot.start].end:
            by_start[slot.start] = slot

    options: list[int] = []
    cursor = start
    while cursor in by_start:
        cursor = by_start[cursor].end
        options.append(cursor)
    return options
