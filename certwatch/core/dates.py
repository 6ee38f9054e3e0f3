"""
Date helpers for values read out of spreadsheet cells.

Cells arrive as datetime objects (openpyxl), spreadsheet serial numbers, or
free-typed strings. Everything is normalized to a time-free ``date`` before
any comparison.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Optional

from certwatch.constants import DATE_INPUT_FORMATS, SPREADSHEET_EPOCH


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a spreadsheet cell into a calendar date.

    Args:
        value: datetime, date, serial number or string

    Returns:
        date with no time component, or None if the value is empty or
        cannot be understood as a date
    """
    if value is None or value == "":
        return None

    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            return SPREADSHEET_EPOCH + timedelta(days=int(value))
        except (OverflowError, ValueError):
            # NaN and infinities have no day count
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        for fmt in DATE_INPUT_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None

    return None


def days_between(start: date, end: date) -> int:
    """Calendar days from ``start`` to ``end`` (negative if end is earlier)."""
    return (end - start).days


def end_of_month(day: date) -> date:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=last)


def start_of_week(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def format_date(day: Optional[date]) -> str:
    """Format as MM/DD/YYYY, or N/A when missing."""
    if day is None:
        return "N/A"
    return day.strftime("%m/%d/%Y")


def format_month_day(day: date) -> str:
    """Format as M/D without zero padding (used in window ranges)."""
    return f"{day.month}/{day.day}"
