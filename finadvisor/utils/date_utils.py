"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timedelta, timezone

# Month length used for ages and durations
DAYS_PER_MONTH = 30


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (matches stored column values)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def add_months(value: datetime, months: int) -> datetime:
    """Shift a datetime by calendar months, clamping the day to the target month"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def start_of_month(value: datetime, months_back: int = 0) -> datetime:
    """First instant of the month `months_back` months before `value`"""
    first = value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return add_months(first, -months_back)


def month_key(value: date) -> str:
    """Format a date as a YYYY-MM period key"""
    return f"{value.year}-{value.month:02d}"


def months_between(start: datetime, end: datetime) -> float:
    """Fractional number of 30-day months from start to end"""
    return (end - start) / timedelta(days=DAYS_PER_MONTH)


def whole_months_between(start: datetime, end: datetime) -> int:
    """Completed 30-day months from start to end"""
    return (end - start) // timedelta(days=DAYS_PER_MONTH)
