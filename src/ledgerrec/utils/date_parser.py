"""Date and period parsing utilities."""

from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from ledgerrec.domain.normalizer import parse_period, period_key


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2026-01-15", "January 15, 2026", etc.
    - Relative dates: "today", "yesterday", "last month", "this year", etc.

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    if date_str.startswith("last "):
        unit = date_str[5:]
        if unit == "month":
            return (today - relativedelta(months=1)).replace(day=1)
        elif unit == "year":
            return today.replace(month=1, day=1) - relativedelta(years=1)
        elif unit == "week":
            return today - timedelta(days=today.weekday() + 7)

    elif date_str.startswith("this "):
        unit = date_str[5:]
        if unit == "month":
            return today.replace(day=1)
        elif unit == "year":
            return today.replace(month=1, day=1)
        elif unit == "week":
            return today - timedelta(days=today.weekday())

    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_period_arg(period_str: str) -> str:
    """Parse a reconciliation period argument into a "YYYY-MM" key.

    Accepts a period key ("2026-01"), "this month" / "last month", or any
    date parse_date understands, in which case the period containing that
    date is returned.

    Args:
        period_str: Period string

    Returns:
        Period key

    Raises:
        ValueError: If the string is neither a period nor a date
    """
    value = period_str.strip().lower().replace("-month", " month")
    if len(value) == 7 and value[4] == "-":
        parse_period(value)
        return value
    return period_key(parse_date(value))
