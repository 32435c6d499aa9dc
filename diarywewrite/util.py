"""Date helpers."""

from typing import Optional
from datetime import date, datetime
from pytz import timezone


def format_date(day: date) -> str:
    """Format a date as ``M/D/YYYY``, e.g. ``3/14/2024``."""
    return f'{day.month}/{day.day}/{day.year}'


def today(tz_name: Optional[str] = None) -> str:
    """
    Get the current calendar date as ``M/D/YYYY``.

    Uses the server's local time zone unless ``tz_name`` names another one.
    """
    if tz_name:
        now = datetime.now(tz=timezone(tz_name))
    else:
        now = datetime.now()
    return format_date(now)
