"""
Timezone utilities for the cash automation service.
Every tenant schedule is evaluated in its own IANA zone; storage is UTC.
"""
from datetime import date, datetime, time, timedelta
from typing import Tuple

import pytz


UTC = pytz.utc


def get_zone(tz_name: str):
    """Return the pytz zone for ``tz_name``. Raises pytz.UnknownTimeZoneError."""
    return pytz.timezone(tz_name)


def is_valid_timezone(tz_name: str) -> bool:
    try:
        get_zone(tz_name)
    except (pytz.UnknownTimeZoneError, AttributeError, ValueError):
        return False
    return True


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.
    Naive datetimes are assumed to already be UTC (that is how they are stored).
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return UTC.localize(dt)
    return dt.astimezone(UTC)


def to_local(dt: datetime, tz_name: str) -> datetime:
    """Convert an instant to wall-clock time in ``tz_name``."""
    return ensure_utc(dt).astimezone(get_zone(tz_name))


def localize(day: date, at: time, tz_name: str) -> datetime:
    """Build an aware datetime for a local wall-clock moment."""
    zone = get_zone(tz_name)
    return zone.normalize(zone.localize(datetime.combine(day, at)))


def day_bounds_utc(day: date, tz_name: str) -> Tuple[datetime, datetime]:
    """
    UTC range covering a local calendar day: [start, end).
    """
    start = localize(day, time.min, tz_name)
    end = localize(day + timedelta(days=1), time.min, tz_name)
    return start.astimezone(UTC), end.astimezone(UTC)
