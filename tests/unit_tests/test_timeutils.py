"""Tests for time parsing, weekday conventions and intervals."""

from datetime import date, time

import pytest

from app.errors import InvalidRangeError
from app.timeutils import (
    Interval,
    WeekdayConvention,
    format_minutes,
    from_canonical_weekday,
    normalize_time,
    parse_time,
    to_canonical_weekday,
    weekday_index,
)


class TestParseTime:
    def test_hours_and_minutes(self):
        assert parse_time("09:30") == 570

    def test_seconds_are_ignored(self):
        assert parse_time("21:00:00") == 1260

    def test_time_object(self):
        assert parse_time(time(7, 15)) == 435

    def test_end_of_day(self):
        assert parse_time("24:00") == 1440

    @pytest.mark.parametrize(
        "value", ["", "9", "25:00", "12:60", "24:30", "ab:cd", "-1:00", "09:00:99", "24:00:30"]
    )
    def test_rejects_garbage(self, value):
        with pytest.raises(InvalidRangeError):
            parse_time(value)

    def test_normalize_pads(self):
        assert normalize_time("9:05:00") == "09:05"

    def test_format_roundtrip_edges(self):
        assert format_minutes(0) == "00:00"
        assert format_minutes(1440) == "24:00"


class TestWeekdays:
    def test_canonical_is_monday_zero(self):
        assert weekday_index(date(2026, 3, 2)) == 0  # Monday
        assert weekday_index(date(2026, 3, 8)) == 6  # Sunday

    def test_sunday_zero_translation(self):
        assert to_canonical_weekday(0, WeekdayConvention.SUNDAY0) == 6
        assert to_canonical_weekday(1, WeekdayConvention.SUNDAY0) == 0
        assert from_canonical_weekday(6, WeekdayConvention.SUNDAY0) == 0

    def test_iso_translation(self):
        assert to_canonical_weekday(7, WeekdayConvention.ISO) == 6
        assert from_canonical_weekday(0, WeekdayConvention.ISO) == 1

    def test_invalid_stored_value(self):
        with pytest.raises(ValueError):
            to_canonical_weekday(0, WeekdayConvention.ISO)
        with pytest.raises(ValueError):
            from_canonical_weekday(7, WeekdayConvention.MONDAY0)


class TestInterval:
    def test_from_times(self):
        iv = Interval.from_times("10:00", "11:30")
        assert (iv.start, iv.end, iv.duration) == (600, 690, 90)
        assert str(iv) == "10:00-11:30"

    def test_start_must_precede_end(self):
        with pytest.raises(InvalidRangeError):
            Interval.from_times("11:00", "10:00")
        with pytest.raises(InvalidRangeError):
            Interval.from_times("10:00", "10:00")

    def test_out_of_day(self):
        with pytest.raises(InvalidRangeError):
            Interval(0, 1441)

    def test_invalid_range_is_value_error(self):
        with pytest.raises(ValueError):
            Interval(5, 1)


def test_end_of_day_with_zero_seconds():
    assert parse_time("24:00:00") == 1440
