"""
Timezone and calendar-day utilities.

Records are keyed by the calendar day in the user's timezone; these helpers
truncate timestamps to that key and walk day ranges.
"""

from datetime import date, datetime, timedelta

import pytz
from dateutil import parser

WEEK_LENGTH_DAYS = 7


def make_timezone_aware(
    dt: datetime, timezone_str: str = "America/New_York", assume_local: bool = False
) -> datetime:
    """
    Make a datetime object timezone-aware.

    Args:
        dt: Datetime object (may be naive or aware).
        timezone_str: Timezone string (e.g., "America/New_York").
        assume_local: If True and dt is naive, assume it's in timezone_str.

    Returns:
        Timezone-aware datetime object.
    """
    tz = pytz.timezone(timezone_str)

    if dt.tzinfo is None:
        if assume_local:
            return tz.localize(dt)
        else:
            return pytz.utc.localize(dt).astimezone(tz)
    else:
        return dt.astimezone(tz)


def parse_timestamp(
    value: str, timezone_str: str = "America/New_York", require_offset: bool = False
) -> datetime:
    """
    Parse an ISO-8601 timestamp into a timezone-aware datetime.

    Fractional seconds and zone offsets are accepted; naive values are
    assumed to be local to timezone_str unless require_offset is set.

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp, or has no
            offset while one is required.
    """
    dt = parser.isoparse(value.strip())
    if require_offset and dt.tzinfo is None:
        raise ValueError(f"Timestamp has no zone offset: {value!r}")
    return make_timezone_aware(dt, timezone_str, assume_local=True)


def calendar_day(dt: datetime, timezone_str: str = "America/New_York") -> date:
    """Truncate a timestamp to the calendar day it falls on in timezone_str."""
    return make_timezone_aware(dt, timezone_str).date()


def today(timezone_str: str = "America/New_York") -> date:
    """Return the current calendar day in timezone_str."""
    return datetime.now(pytz.timezone(timezone_str)).date()


def day_bounds(day: date, timezone_str: str = "America/New_York") -> tuple[datetime, datetime]:
    """
    Return the [start, end) interval of a calendar day.

    Args:
        day: Calendar day.
        timezone_str: Timezone the day is expressed in.

    Returns:
        Tuple of timezone-aware (start of day, start of next day).
    """
    tz = pytz.timezone(timezone_str)
    start = tz.localize(datetime.combine(day, datetime.min.time()))
    end = tz.localize(datetime.combine(day + timedelta(days=1), datetime.min.time()))
    return start, end


def day_range(start: date, end: date) -> list[date]:
    """Return every day in [start, end] in ascending order (empty if start > end)."""
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def week_window(day: date) -> list[date]:
    """Return the trailing week [day-6, day] in ascending order."""
    return day_range(day - timedelta(days=WEEK_LENGTH_DAYS - 1), day)
