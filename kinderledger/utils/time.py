"""Date and time helpers"""

import calendar
from datetime import date, datetime, timezone
from typing import Tuple


def get_utc_now() -> datetime:
    """
    Returns a naive UTC datetime.
    Matches the DB schema (TIMESTAMP WITHOUT TIME ZONE).
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_today() -> date:
    """Current calendar date in UTC"""
    return get_utc_now().date()


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a calendar month (inclusive)."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def month_name(month: int) -> str:
    return calendar.month_name[month]
