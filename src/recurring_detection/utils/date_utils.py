"""
Date Utility Functions.

Calendar arithmetic used by recurring charge detection and prediction.
"""

from calendar import monthrange
from datetime import date


def days_between(first: date, second: date) -> int:
    """
    Whole days between two calendar dates, regardless of order.

    Args:
        first: First date
        second: Second date

    Returns:
        Absolute number of days between the two dates
    """
    return abs((second - first).days)


def add_months(value: date, months: int) -> date:
    """
    Add calendar months to a date.

    The day of month is kept where the target month has it; otherwise the
    result is clamped to the target month's last day (Jan 31 + 1 month is
    Feb 28, or Feb 29 in a leap year). It never rolls over into the
    following month.

    Args:
        value: Starting date
        months: Number of months to add (may be negative)

    Returns:
        Shifted date
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1

    days_in_month = monthrange(year, month)[1]
    return date(year, month, min(value.day, days_in_month))


def add_years(value: date, years: int) -> date:
    """Add calendar years to a date; Feb 29 clamps to Feb 28 in non-leap years."""
    return add_months(value, 12 * years)


def day_of_week(value: date) -> int:
    """Day of week with 0 = Sunday through 6 = Saturday."""
    return value.isoweekday() % 7
