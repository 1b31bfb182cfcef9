"""
Calendar arithmetic for dashboard timeframes.

This module handles:
- Day granularity (datetimes are truncated to their date)
- Month / quarter boundaries using calendar arithmetic (not fixed day counts)
- Timeframe presets (current month, rolling week, end of month/quarter/year)
- Lenient ISO date parsing (malformed dates -> None)

Usage Examples:
    from datetime import date
    from inventory_risk.domain.calendar import range_from_preset, end_of_quarter

    r = range_from_preset("eoq", now=date(2026, 2, 10))
    # DateRange(start=date(2026, 2, 10), end=date(2026, 3, 31))
"""
from datetime import date as Date, datetime, timedelta
from enum import Enum
from typing import Optional, Union

from .models import DateRange

DateLike = Union[Date, datetime]


class PresetKey(str, Enum):
    """Timeframe presets offered by the dashboard sub-navigation."""
    CURRENT = "current"    # Current calendar month
    TODAY = "today"        # Rolling week starting today
    TOMORROW = "tomorrow"  # Rolling week starting tomorrow
    EOM = "eom"            # Today -> end of month
    EOQ = "eoq"            # Today -> end of quarter
    EOY = "eoy"            # Today -> end of year


ROLLING_WINDOW_DAYS = 7


def as_date(value: DateLike) -> Date:
    """Truncate a datetime to its day; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def diff_days(start: DateLike, end: DateLike) -> int:
    """Whole days from start to end, never negative."""
    return max(0, (as_date(end) - as_date(start)).days)


def parse_iso_date(value: object) -> Optional[Date]:
    """
    Parse an ISO date string (YYYY-MM-DD, optional time part).

    Returns None for anything unparseable instead of raising.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, Date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return Date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def add_months(d: Date, months: int) -> Date:
    """First day of the month `months` after d's month."""
    index = d.year * 12 + (d.month - 1) + months
    return Date(index // 12, index % 12 + 1, 1)


def start_of_month(d: DateLike) -> Date:
    d = as_date(d)
    return Date(d.year, d.month, 1)


def end_of_month(d: DateLike) -> Date:
    return add_months(as_date(d), 1) - timedelta(days=1)


def quarter_index(d: DateLike) -> int:
    """0-based quarter of the year."""
    return (as_date(d).month - 1) // 3


def start_of_quarter(d: DateLike) -> Date:
    d = as_date(d)
    return Date(d.year, quarter_index(d) * 3 + 1, 1)


def end_of_quarter(d: DateLike) -> Date:
    return add_months(start_of_quarter(d), 3) - timedelta(days=1)


def end_of_year(d: DateLike) -> Date:
    return Date(as_date(d).year, 12, 31)


def range_from_preset(key: Union[PresetKey, str], now: Optional[DateLike] = None) -> DateRange:
    """
    Build the date range of a timeframe preset.

    Pass a stable `now` so every computation of a dashboard pass agrees.

    Raises:
        ValueError: If key is not a known preset
    """
    key = PresetKey(key)
    today = as_date(now) if now is not None else Date.today()

    if key == PresetKey.CURRENT:
        # Whole current month so seeded future data appears
        return DateRange(start_of_month(today), end_of_month(today))

    if key == PresetKey.TODAY:
        # Rolling window so it never goes empty
        return DateRange(today, today + timedelta(days=ROLLING_WINDOW_DAYS))

    if key == PresetKey.TOMORROW:
        start = today + timedelta(days=1)
        return DateRange(start, start + timedelta(days=ROLLING_WINDOW_DAYS))

    if key == PresetKey.EOM:
        return DateRange(today, end_of_month(today))

    if key == PresetKey.EOQ:
        return DateRange(today, end_of_quarter(today))

    return DateRange(today, end_of_year(today))
