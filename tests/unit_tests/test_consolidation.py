"""Tests for free-range consolidation and end-time options."""

from app.services.consolidation import consolidate_free_slots, end_options
from app.timeutils import Interval
from tests.mocks.models import hours


class TestConsolidateFreeSlots:
    def test_adjacent_slots_merge(self):
        assert consolidate_free_slots([hours(9, 10), hours(10, 11), hours(13, 14)]) == [
            hours(9, 11),
            hours(13, 14),
        ]

    def test_unsorted_input(self):
        assert consolidate_free_slots([hours(11, 12), hours(9, 10), hours(10, 11)]) == [hours(9, 12)]

    def test_empty(self):
        assert consolidate_free_slots([]) == []


class TestEndOptions:
    def test_chain_until_gap(self):
        free = [hours(9, 10), hours(10, 11), hours(11, 12), hours(14, 15)]
        assert end_options(free, 9 * 60) == [600, 660, 720]

    def test_start_in_middle_of_chain(self):
        free = [hours(9, 10), hours(10, 11), hours(11, 12)]
        assert end_options(free, 10 * 60) == [660, 720]

    def test_start_not_free(self):
        assert end_options([hours(9, 10)], 10 * 60) == []

    def test_half_hour_grid(self):
        free = [
            Interval.from_times("09:00", "09:30"),
            Interval.from_times("09:30", "10:00"),
        ]
        assert end_options(free, 9 * 60) == [570, 600]
