from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings
from errors import InvalidMonthError


@dataclass(frozen=True)
class Period:
    year: int
    month: Optional[int]
    start: date
    end: date


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


def validate_month(month: int) -> int:
    if month < 1 or month > 12:
        raise InvalidMonthError("Invalid month. Month must be between 1 and 12")
    return month


def _month_end(year: int, month: int) -> date:
    if month == 12:
        return date(year, 12, 31)
    return date(year, month + 1, 1) - date.resolution


def month_period(year: int, month: int) -> Optional[Period]:
    """
    Inclusive date bounds for a calendar month.
    Returns None for years `datetime.date` cannot represent.
    """
    validate_month(month)
    if not MINYEAR <= year <= MAXYEAR:
        return None
    return Period(year, month, date(year, month, 1), _month_end(year, month))


def year_period(year: int) -> Optional[Period]:
    if not MINYEAR <= year <= MAXYEAR:
        return None
    return Period(year, None, date(year, 1, 1), date(year, 12, 31))
