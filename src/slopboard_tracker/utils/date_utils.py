"""Calendar week helpers shared by batch grouping and the summary view."""

from datetime import date, datetime, time, timedelta
from typing import Dict

END_OF_DAY = time(23, 59, 59, 999000)


def _local_date(d: datetime) -> date:
    # Aware datetimes are judged in local time; naive ones are taken as local already
    return d.astimezone().date() if d.tzinfo else d.date()


def _at(day: date, clock_time: time, aware: bool) -> datetime:
    result = datetime.combine(day, clock_time)
    # A naive datetime's astimezone() attaches the local offset valid on that day
    return result.astimezone() if aware else result


def week_start(d: datetime) -> datetime:
    """
    Monday 00:00:00.000 of the week containing ``d``.

    Weeks run Monday to Sunday, so a Sunday maps to the Monday six days
    earlier. The result is timezone-aware (local offset) when ``d`` is aware.
    """
    day = _local_date(d)
    monday = day - timedelta(days=day.weekday())
    return _at(monday, time.min, d.tzinfo is not None)


def week_end(d: datetime) -> datetime:
    """Sunday 23:59:59.999 of the week containing ``d``."""
    sunday = week_start(d).date() + timedelta(days=6)
    return _at(sunday, END_OF_DAY, d.tzinfo is not None)


def week_boundaries(d: datetime) -> Dict[str, datetime]:
    """Start and end of the week containing ``d``."""
    return {"start": week_start(d), "end": week_end(d)}


def is_same_week(target: datetime, week_of: datetime) -> bool:
    """True if ``target`` falls in the same Monday-based week as ``week_of``."""
    return week_start(target).date() == week_start(week_of).date()


def start_of_day(d: datetime) -> datetime:
    """Local midnight of the day containing ``d``."""
    return _at(_local_date(d), time.min, d.tzinfo is not None)
