import calendar
import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, get_args

import pytz

from marketcache.models import Period

PERIODS: tuple[str, ...] = get_args(Period)

EPOCH_START = date(1970, 1, 1)

_DAY_PERIODS = {"1d": 1, "5d": 5}
_MONTH_PERIODS = {"1mo": 1, "3mo": 3, "6mo": 6}
_YEAR_PERIODS = {"1y": 1, "2y": 2, "5y": 5, "10y": 10}


def now_in(tz_name: str = "UTC") -> datetime:
    """Return the current time as a timezone-aware datetime in the named zone."""
    return datetime.now(pytz.timezone(tz_name))


def _shift_months(d: date, months: int) -> date:
    """Move a date back by whole calendar months, clamping to the month's last day."""
    month_index = d.year * 12 + (d.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return d.replace(year=year, month=month, day=day)


def resolve_period_start(period: str, now: datetime | date) -> date:
    """
    Resolve a lookback period to the first calendar date it covers.

    Args:
        period: One of 1d, 5d, 1mo, 3mo, 6mo, 1y, 2y, 5y, 10y, ytd, max
        now: Reference instant (only its calendar date is used)

    Returns:
        The start date of the period

    Raises:
        ValueError: If the period is not recognised

    Examples:
        "1mo" on 2024-03-31 -> 2024-02-29
        "ytd" on any day of 2024 -> 2024-01-01
        "max" -> 1970-01-01
    """
    today = now.date() if isinstance(now, datetime) else now

    if period in _DAY_PERIODS:
        return today - timedelta(days=_DAY_PERIODS[period])
    if period in _MONTH_PERIODS:
        return _shift_months(today, _MONTH_PERIODS[period])
    if period in _YEAR_PERIODS:
        return _shift_months(today, 12 * _YEAR_PERIODS[period])
    if period == "ytd":
        return date(today.year, 1, 1)
    if period == "max":
        return EPOCH_START

    raise ValueError(f"Unknown period: {period!r}")


def period_days(period: str, now: datetime | date) -> int:
    """Number of calendar days between the period start and today."""
    today = now.date() if isinstance(now, datetime) else now
    return (today - resolve_period_start(period, today)).days


def to_float(value: Any) -> float:
    """Coerce an upstream value to a finite float, defaulting to 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_int(value: Any) -> int:
    """Coerce an upstream value to an int, defaulting to 0."""
    return int(to_float(value))


def parse_date(value: Any) -> date | None:
    """
    Parse the date of an upstream record.

    Accepts date/datetime objects, ISO-8601 strings ("2024-01-02" or
    "2024-01-02T00:00:00Z") and epoch timestamps in seconds or milliseconds.
    Returns None when the value cannot be interpreted.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None
