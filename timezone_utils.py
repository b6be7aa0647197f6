"""
Local ("device") timezone utilities for EcoTracker.
All calendar-day reasoning (today's points, streaks) goes through this module
so that every component agrees on where a day starts and ends.
"""

import datetime
import os
import pytz
from typing import Iterable, Optional, Set, Union

from dotenv import load_dotenv

load_dotenv()


def get_timezone(tz_name: str) -> datetime.tzinfo:
    """
    Resolve an IANA timezone name.

    Args:
        tz_name: Timezone name like "Europe/Berlin"

    Returns:
        pytz timezone instance

    Raises:
        ValueError: If the name is unknown to pytz
    """
    try:
        return pytz.timezone(tz_name)
    except pytz.exceptions.UnknownTimeZoneError as exc:
        raise ValueError(f"Unknown timezone: {tz_name!r}") from exc


# Local timezone constant, configurable per device
LOCAL_TZ = get_timezone(os.environ.get("ECO_TIMEZONE", "UTC"))


def get_current_local_datetime(tz: Optional[datetime.tzinfo] = None) -> datetime.datetime:
    """
    Get current datetime in the local timezone.

    Returns:
        datetime.datetime: Current timezone-aware datetime
    """
    return datetime.datetime.now(tz or LOCAL_TZ)


def get_current_utc_datetime() -> datetime.datetime:
    """Timestamp used for newly created records."""
    return datetime.datetime.now(pytz.utc)


def convert_to_local(dt: Union[datetime.datetime, datetime.date],
                     tz: Optional[datetime.tzinfo] = None) -> datetime.datetime:
    """
    Convert a datetime or date to the local timezone.

    Naive values are assumed to already be local wall-clock time.

    Args:
        dt: datetime or date object to convert
        tz: Target timezone (defaults to LOCAL_TZ)

    Returns:
        datetime.datetime: Converted timezone-aware datetime
    """
    tz = tz or LOCAL_TZ
    if isinstance(dt, datetime.date) and not isinstance(dt, datetime.datetime):
        dt = datetime.datetime.combine(dt, datetime.time.min)

    if dt.tzinfo is None:
        dt = tz.localize(dt) if hasattr(tz, 'localize') else dt.replace(tzinfo=tz)
    else:
        dt = dt.astimezone(tz)

    return dt


def to_local_date(dt: datetime.datetime, tz: Optional[datetime.tzinfo] = None) -> datetime.date:
    """Calendar day of a timestamp in local time."""
    return convert_to_local(dt, tz).date()


def local_dates(timestamps: Iterable[datetime.datetime],
                tz: Optional[datetime.tzinfo] = None) -> Set[datetime.date]:
    """Distinct local calendar days covered by the given timestamps."""
    return {to_local_date(ts, tz) for ts in timestamps}


def local_days_before(dt: datetime.datetime, days: int,
                      tz: Optional[datetime.tzinfo] = None) -> datetime.datetime:
    """Same local wall-clock time `days` calendar days earlier, so a DST change keeps the hour."""
    tz = tz or LOCAL_TZ
    wall_clock = convert_to_local(dt, tz).replace(tzinfo=None) - datetime.timedelta(days=days)
    return convert_to_local(wall_clock, tz)


def format_local_datetime(dt: datetime.datetime, format_str: str = "%Y-%m-%d %H:%M:%S %Z",
                          tz: Optional[datetime.tzinfo] = None) -> str:
    """
    Format a datetime as a string in local time.

    Args:
        dt: Datetime to format
        format_str: Format string (default: ISO-like format with timezone)

    Returns:
        str: Formatted datetime string
    """
    return convert_to_local(dt, tz).strftime(format_str)


__all__ = [
    'LOCAL_TZ',
    'get_timezone',
    'get_current_local_datetime',
    'get_current_utc_datetime',
    'convert_to_local',
    'to_local_date',
    'local_dates',
    'local_days_before',
    'format_local_datetime',
]
