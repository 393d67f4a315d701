"""Day numbers and business weeks.

A day number counts days since 0001-01-01 of the proleptic Gregorian calendar,
so Monday 2025-12-01 is day 739585. Day numbers carry no timezone; "today" is
resolved once at the edge and compared as a plain integer afterwards.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

BUSINESS_DAYS = 5


def day_number(value: date) -> int:
    if isinstance(value, datetime):
        value = value.date()
    return value.toordinal() - 1


def from_day_number(number: int) -> date:
    return date.fromordinal(number + 1)


def week_start(value: date) -> int:
    """Return the day number of the Monday that starts ``value``'s week."""
    if isinstance(value, datetime):
        value = value.date()
    offset = value.isoweekday() - 1  # Monday=1 .. Sunday=7
    return day_number(value - timedelta(days=offset))


def week_days(monday: int) -> List[int]:
    return [monday + i for i in range(BUSINESS_DAYS)]


def current_date(now: Optional[datetime] = None, tz: Optional[str] = None) -> date:
    if now is not None:
        if tz and now.tzinfo is not None:
            now = now.astimezone(ZoneInfo(tz))
        return now.date()
    if tz:
        return datetime.now(ZoneInfo(tz)).date()
    return datetime.now().date()


def today(now: Optional[datetime] = None, tz: Optional[str] = None) -> int:
    return day_number(current_date(now, tz))
