"""Tests for calendar week helpers."""

from datetime import datetime, timezone

from slopboard_tracker.utils.date_utils import (
    is_same_week,
    start_of_day,
    week_boundaries,
    week_end,
    week_start,
)


def test_week_start_midweek():
    """A Wednesday maps to the Monday of the same week."""
    assert week_start(datetime(2024, 1, 10, 15, 30)) == datetime(2024, 1, 8)


def test_week_start_sunday_maps_to_previous_monday():
    """Weeks run Monday to Sunday."""
    assert week_start(datetime(2024, 1, 14, 23, 0)) == datetime(2024, 1, 8)


def test_week_start_monday_midnight_is_identity():
    monday = datetime(2024, 1, 8, 0, 0, 0)
    assert week_start(monday) == monday


def test_week_end_is_sunday_last_millisecond():
    assert week_end(datetime(2024, 1, 10, 8, 0)) == datetime(2024, 1, 14, 23, 59, 59, 999000)


def test_week_boundaries():
    bounds = week_boundaries(datetime(2024, 1, 10))
    assert bounds["start"] == datetime(2024, 1, 8)
    assert bounds["end"] == datetime(2024, 1, 14, 23, 59, 59, 999000)


def test_is_same_week():
    assert is_same_week(datetime(2024, 1, 14, 22, 0), datetime(2024, 1, 8, 1, 0))
    assert not is_same_week(datetime(2024, 1, 15, 0, 0), datetime(2024, 1, 14, 23, 59))


def test_start_of_day():
    assert start_of_day(datetime(2024, 1, 10, 17, 45, 12)) == datetime(2024, 1, 10)


def test_aware_input_gives_aware_result():
    """Aware datetimes keep an offset so they compare with other aware values."""
    d = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)
    start = week_start(d)
    assert start.tzinfo is not None
    assert start <= d
    assert start.weekday() == 0
    assert (start.hour, start.minute, start.second) == (0, 0, 0)
