"""Date manipulation utilities"""

from datetime import date, datetime, timedelta, timezone
from typing import Tuple


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def previous_quarter(year: int, quarter: int) -> Tuple[int, int]:
    """Quarter immediately before (year, quarter); Q1 wraps to Q4 of the previous year"""
    if quarter == 1:
        return year - 1, 4
    return year, quarter - 1


def quarter_date_range(year: int, quarter: int) -> Tuple[date, date]:
    """First and last calendar day of a quarter"""
    start = date(year, 3 * (quarter - 1) + 1, 1)
    if quarter == 4:
        return start, date(year, 12, 31)
    next_start = date(year, 3 * quarter + 1, 1)
    return start, next_start - timedelta(days=1)


def period_label(year: int, quarter: int) -> str:
    return f"Q{quarter} {year}"
