"""Tests for the availability engine (pure interval arithmetic)."""

import pytest

from app.errors import InvalidRangeError
from app.models import ReservationStatus
from app.services.availability import AvailabilityEngine, busy_intervals, merge_intervals, overlaps
from app.timeutils import Interval
from tests.mocks.models import hours, make_reservation, make_window


@pytest.fixture()
def engine() -> AvailabilityEngine:
    return AvailabilityEngine()


# ── Base slots ─────────────────────────────────────────────────────────────


class TestBuildBaseSlots:
    def test_thirteen_hourly_slots_from_nine_to_ten_pm(self, engine):
        slots = engine.build_base_slots([make_window("09:00", "22:00")])
        assert len(slots) == 13
        assert slots[0] == hours(9, 10)
        assert slots[-1] == hours(21, 22)

    def test_remainder_shorter_than_step_is_dropped(self, engine):
        slots = engine.build_base_slots([make_window("09:00", "11:30")])
        assert slots == [hours(9, 10), hours(10, 11)]

    def test_window_shorter_than_step_yields_nothing(self, engine):
        assert engine.build_base_slots([make_window("09:00", "09:45")]) == []

    def test_unavailable_windows_are_skipped(self, engine):
        windows = [
            make_window("09:00", "12:00"),
            make_window("12:00", "14:00", is_available=False),
        ]
        assert engine.build_base_slots(windows) == [hours(9, 10), hours(10, 11), hours(11, 12)]

    def test_custom_step(self, engine):
        slots = engine.build_base_slots([make_window("09:00", "10:30")], step_minutes=30)
        assert [str(s) for s in slots] == ["09:00-09:30", "09:30-10:00", "10:00-10:30"]

    def test_window_closing_at_midnight(self, engine):
        slots = engine.build_base_slots([make_window("22:00", "24:00")])
        assert slots == [hours(22, 23), hours(23, 24)]

    def test_rejects_non_positive_step(self, engine):
        with pytest.raises(InvalidRangeError):
            engine.build_base_slots([make_window()], step_minutes=0)
        with pytest.raises(InvalidRangeError):
            AvailabilityEngine(step_minutes=-15)


# ── Free slots ─────────────────────────────────────────────────────────────


class TestComputeFreeSlots:
    def test_busy_slot_removed(self, engine):
        base = engine.build_base_slots([make_window("09:00", "12:00")])
        free = engine.compute_free_slots(base, [hours(10, 11)])
        assert free == [hours(9, 10), hours(11, 12)]

    def test_partial_overlap_blocks_whole_slot(self, engine):
        base = engine.build_base_slots([make_window("09:00", "12:00")])
        free = engine.compute_free_slots(base, [Interval.from_times("10:30", "11:30")])
        assert free == [hours(9, 10)]

    def test_touching_busy_interval_does_not_block(self, engine):
        base = [hours(9, 10), hours(10, 11)]
        assert engine.compute_free_slots(base, [hours(8, 9), hours(11, 12)]) == base

    def test_accepts_reservations_as_busy(self, engine):
        base = [hours(9, 10), hours(10, 11)]
        assert engine.compute_free_slots(base, [make_reservation("09:00", "10:00")]) == [hours(10, 11)]

    def test_free_slots_for_day_ignores_cancelled(self, engine):
        reservations = [
            make_reservation("09:00", "10:00"),
            make_reservation("10:00", "11:00", status=ReservationStatus.CANCELLED),
        ]
        free = engine.free_slots_for_day([make_window("09:00", "12:00")], reservations)
        assert free == [hours(10, 11), hours(11, 12)]

    def test_same_inputs_same_outputs(self, engine):
        windows = [make_window("09:00", "22:00")]
        reservations = [make_reservation("13:00", "15:00")]
        first = engine.free_slots_for_day(windows, reservations)
        assert engine.free_slots_for_day(windows, reservations) == first
        assert len(first) == 11


# ── Range checks ───────────────────────────────────────────────────────────


class TestRangeChecks:
    def test_overlaps_is_half_open(self):
        assert overlaps(hours(9, 10), Interval.from_times("09:30", "10:30"))
        assert not overlaps(hours(9, 10), hours(10, 11))

    def test_range_free_unaligned(self, engine):
        busy = [hours(9, 10)]
        assert engine.is_range_free(Interval.from_times("10:00", "11:15"), busy)
        assert not engine.is_range_free(Interval.from_times("09:45", "10:15"), busy)

    def test_within_hours(self, engine):
        windows = [make_window("09:00", "22:00")]
        assert engine.is_within_operating_hours(hours(9, 22), windows)
        assert engine.is_within_operating_hours(Interval.from_times("21:00", "22:00"), windows)

    def test_range_crossing_closing_time_is_outside(self, engine):
        windows = [make_window("09:00", "22:00")]
        assert not engine.is_within_operating_hours(Interval.from_times("21:30", "22:30"), windows)
        assert not engine.is_within_operating_hours(Interval.from_times("08:30", "09:30"), windows)

    def test_touching_windows_cover_a_spanning_range(self, engine):
        windows = [make_window("09:00", "12:00"), make_window("12:00", "15:00")]
        assert engine.is_within_operating_hours(hours(11, 13), windows)

    def test_gap_between_windows_is_outside(self, engine):
        windows = [make_window("09:00", "12:00"), make_window("13:00", "15:00")]
        assert not engine.is_within_operating_hours(hours(11, 14), windows)

    def test_unavailable_window_does_not_count(self, engine):
        windows = [make_window("09:00", "12:00", is_available=False)]
        assert not engine.is_within_operating_hours(hours(9, 10), windows)

    def test_no_windows_means_closed(self, engine):
        assert not engine.is_within_operating_hours(hours(9, 10), [])


# ── Helpers ────────────────────────────────────────────────────────────────


def test_merge_intervals_joins_touching_and_overlapping():
    merged = merge_intervals([hours(13, 14), hours(9, 10), hours(10, 11), Interval.from_times("10:30", "12:00")])
    assert merged == [hours(9, 12), hours(13, 14)]


def test_busy_intervals_excludes_cancelled_and_self():
    mine = make_reservation("09:00", "10:00", name="mine")
    other = make_reservation("10:00", "11:00", name="other")
    gone = make_reservation("11:00", "12:00", name="gone", status=ReservationStatus.CANCELLED)
    assert busy_intervals([mine, other, gone], exclude_id=mine.id) == [hours(10, 11)]
