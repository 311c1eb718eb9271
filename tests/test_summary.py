"""Tests for the daily/weekly activity summary."""

from datetime import datetime

from conftest import TYPESCRIPT, FakeClock, make_session
from slopboard_tracker.summary import RECENT_SESSIONS_LIMIT, ActivitySummary


def _summary() -> ActivitySummary:
    # Wednesday afternoon
    return ActivitySummary(clock=FakeClock(datetime(2024, 1, 10, 15, 0)))


def test_today_and_week_totals():
    summary = _summary()
    summary.add_completed_session(make_session(start=datetime(2024, 1, 10, 9, 0), duration=60))
    summary.add_completed_session(make_session(start=datetime(2024, 1, 8, 9, 0), duration=120))
    summary.add_completed_session(make_session(start=datetime(2024, 1, 5, 9, 0), duration=300))

    assert summary.today_total == 60
    assert summary.week_total == 180
    assert len(summary.recent) == 3


def test_recent_is_newest_first_and_bounded():
    summary = _summary()
    sessions = [
        make_session(start=datetime(2024, 1, 10, 9, i), duration=30)
        for i in range(RECENT_SESSIONS_LIMIT + 2)
    ]
    for s in sessions:
        summary.add_completed_session(s)

    assert len(summary.recent) == RECENT_SESSIONS_LIMIT
    assert summary.recent[0] is sessions[-1]


def test_today_by_language_sorted_by_time():
    summary = _summary()
    summary.add_completed_session(make_session(start=datetime(2024, 1, 10, 9, 0), duration=60))
    summary.add_completed_session(
        make_session(start=datetime(2024, 1, 10, 10, 0), duration=600, language=TYPESCRIPT)
    )
    summary.add_completed_session(make_session(start=datetime(2024, 1, 10, 11, 0), duration=65))

    by_language = summary.today_by_language()

    assert [(e["language"], e["duration"]) for e in by_language] == [
        ("TypeScript", 600),
        ("Python", 125),
    ]
    assert by_language[1]["formatted"] == "2m 5s"


def test_snapshot():
    summary = _summary()
    active = make_session(start=datetime(2024, 1, 10, 14, 0), duration=10)
    summary.set_active_session(active)
    summary.add_completed_session(make_session(start=datetime(2024, 1, 10, 9, 0), duration=3660))

    snapshot = summary.snapshot()

    assert snapshot["active_session"]["id"] == active.id
    assert snapshot["today_total"] == 3660
    assert snapshot["today_total_formatted"] == "1h 1m"
    assert snapshot["week_total_formatted"] == "1h 1m"
    assert len(snapshot["recent_sessions"]) == 1


def test_aware_sessions_with_naive_clock():
    summary = _summary()
    session = make_session(start=datetime(2024, 1, 10, 9, 0).astimezone(), duration=60)

    summary.add_completed_session(session)

    assert summary.today_total == 60
    assert summary.week_total == 60
