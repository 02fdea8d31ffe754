"""Date helpers shared by scoring, reminders and analytics."""
from __future__ import annotations

import calendar
import math
from datetime import date, datetime, UTC
from typing import Optional


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as read back from SQLite) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def start_of_day(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=UTC)


def end_of_day(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, 23, 59, 59, 999999, tzinfo=UTC)


def add_months(moment: datetime, months: int, day: Optional[int] = None) -> datetime:
    """Shift by whole calendar months, clamping the day to the target month length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    wanted = day if day is not None else moment.day
    last_day = calendar.monthrange(year, month)[1]
    return moment.replace(year=year, month=month, day=min(wanted, last_day))


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves going towards positive infinity (2.45 -> 2.5, -2.5 -> -2)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round1(value: float) -> float:
    return round_half_up(value, 1)
