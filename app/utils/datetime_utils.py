"""
Date and time helpers.

Everything persisted is UTC. Event schedules are wall-clock times in the
configured zone and are converted through pytz before comparison.
"""

from datetime import date, datetime, time, timezone
from typing import Optional

import pytz


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC.

    Naive values are assumed to already be UTC, which is how the
    database hands them back on backends without timezone storage.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_timezone(name: str):
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def local_date(instant: datetime, tz_name: str) -> date:
    """Calendar date of ``instant`` as seen in ``tz_name``."""
    return ensure_utc(instant).astimezone(get_timezone(tz_name)).date()


def scheduled_instant(day: date, wall_time: time, tz_name: str) -> datetime:
    """
    Combine a calendar day and a wall-clock time in ``tz_name``.

    Returns:
        Aware UTC datetime
    """
    tz = get_timezone(tz_name)
    local = tz.localize(datetime.combine(day, wall_time.replace(tzinfo=None)))
    return local.astimezone(timezone.utc)
