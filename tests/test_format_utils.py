"""Tests for duration formatting."""

import pytest

from slopboard_tracker.utils.format_utils import format_duration


@pytest.mark.parametrize(
    "seconds,expected",
    [
        (0, "0s"),
        (45, "45s"),
        (60, "1m 0s"),
        (125, "2m 5s"),
        (3600, "1h 0m"),
        (3660, "1h 1m"),
        (90061, "25h 1m"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected
