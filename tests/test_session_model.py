"""Tests for the Session model."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from conftest import PYTHON, T0
from slopboard_tracker.exceptions import SessionAlreadyClosedError
from slopboard_tracker.models.session import Session


def _open_session(**kwargs) -> Session:
    kwargs.setdefault("relative_path", "src/app.py")
    return Session(language=PYTHON, project="demo", start_time=T0, **kwargs)


def test_new_session_is_open():
    session = _open_session()
    assert not session.is_closed
    assert session.end_time is None
    assert session.duration_seconds is None
    assert session.id


def test_close_floors_duration_to_whole_seconds():
    session = _open_session()
    duration = session.close(T0 + timedelta(seconds=12, milliseconds=700))
    assert duration == 12
    assert session.duration_seconds == 12
    assert session.end_time == T0 + timedelta(seconds=12, milliseconds=700)


def test_close_twice_raises():
    session = _open_session()
    session.close(T0 + timedelta(seconds=30))
    with pytest.raises(SessionAlreadyClosedError):
        session.close(T0 + timedelta(seconds=60))
    assert session.duration_seconds == 30


def test_end_before_start_is_clamped():
    """A clock going backwards gives a zero-length session, never a negative one."""
    session = _open_session()
    assert session.close(T0 - timedelta(seconds=5)) == 0
    assert session.end_time == T0


def test_absolute_relative_path_rejected():
    with pytest.raises(ValidationError):
        _open_session(relative_path="/home/user/demo/src/app.py")


def test_payload_has_only_wire_fields():
    session = _open_session()
    session.close(T0 + timedelta(seconds=90))
    payload = session.to_payload()
    assert payload == {
        "language_id": 3,
        "start_time": T0.isoformat(),
        "end_time": (T0 + timedelta(seconds=90)).isoformat(),
        "duration": 90,
    }


def test_payload_of_open_session_raises():
    with pytest.raises(ValueError):
        _open_session().to_payload()


def test_closed_session_rejects_changes():
    session = _open_session()
    session.close(T0 + timedelta(seconds=30))

    with pytest.raises(SessionAlreadyClosedError):
        session.end_time = T0 + timedelta(seconds=90)
    with pytest.raises(SessionAlreadyClosedError):
        session.duration_seconds = 90
    with pytest.raises(SessionAlreadyClosedError):
        session.project = "other"

    assert session.end_time == T0 + timedelta(seconds=30)
    assert session.duration_seconds == 30


def test_open_session_accepts_changes():
    session = _open_session()
    session.project = "renamed"
    assert session.project == "renamed"


def test_close_mixes_naive_and_aware_times():
    """A naive end time is read as local time against an aware start."""
    session = Session(
        language=PYTHON, project="demo", start_time=T0.astimezone(), relative_path="a.py"
    )
    assert session.close(T0 + timedelta(seconds=45)) == 45
