"""
Timezone utilities for ChoreBoard.

Provides consistent timezone-aware date and datetime functions
using the configured timezone from the TZ environment variable.
Timestamps are stored in the database as naive UTC values.
"""

import os
from datetime import date, datetime, timezone as dt_timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def get_timezone() -> ZoneInfo:
    """Get the configured timezone from environment.

    Returns:
        ZoneInfo for the configured timezone, defaults to UTC
    """
    tz_name = os.environ.get('TZ', 'UTC')
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        # Fallback to UTC if invalid timezone configured
        return ZoneInfo('UTC')


def local_now() -> datetime:
    """Get the current datetime in the configured timezone."""
    return datetime.now(get_timezone())


def local_today() -> date:
    """Get today's date in the configured timezone."""
    return local_now().date()


def from_db(value: Optional[datetime]) -> Optional[datetime]:
    """Convert a naive UTC timestamp read from the database to local time."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt_timezone.utc)
    return value.astimezone(get_timezone())


def to_db(value: Optional[datetime]) -> Optional[datetime]:
    """Convert a datetime to the naive UTC form stored in the database.

    Naive values are assumed to already be UTC.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(dt_timezone.utc).replace(tzinfo=None)


def calendar_date(value: Union[date, datetime]) -> date:
    """Get the calendar date of a date or datetime in local time.

    Aware datetimes are converted to the configured timezone first;
    naive datetimes and plain dates are taken at face value.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(get_timezone())
        return value.date()
    return value
