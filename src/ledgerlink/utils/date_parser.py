"""Date parsing utilities."""

from datetime import date, timedelta
from typing import Optional

from dateutil import parser as date_parser


def parse_date(date_str: str, dayfirst: bool = True) -> date:
    """Parse a date string into a date object.

    Supports:
    - ISO dates: "2024-01-15" (always year-month-day)
    - Statement dates: "15/01/2024", "15.01.24" (day first by default)
    - Relative dates: "today", "yesterday"

    Args:
        date_str: Date string
        dayfirst: Interpret ambiguous numeric dates as day-first

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise ValueError("Empty date string")

    value = date_str.strip().lower()
    today = date.today()

    if value == "today":
        return today
    if value == "yesterday":
        return today - timedelta(days=1)

    # ISO strings must not be reinterpreted as day-first
    if len(value) >= 10 and value[4] == "-":
        dayfirst = False

    try:
        return date_parser.parse(value, dayfirst=dayfirst).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_optional_date(date_str: Optional[str], dayfirst: bool = True) -> Optional[date]:
    """Parse a date string, returning None for empty input."""
    if date_str is None or not date_str.strip():
        return None
    return parse_date(date_str, dayfirst=dayfirst)


def days_between(first: date, second: date) -> int:
    """Absolute whole days between two dates."""
    return abs((first - second).days)
