"""
Calendar-month arithmetic for monthly payroll.

Pure functions over ``datetime.date``; no clock access.
"""

import calendar
from datetime import date

from payroll_kernel.exceptions import InvalidInputError


def validate_month(month: int) -> None:
    if not 1 <= month <= 12:
        raise InvalidInputError("month", month, f"Month must be 1..12, got {month}")


def next_month(year: int, month: int) -> tuple[int, int]:
    """(year, month) of the month after the given one."""
    validate_month(month)
    if month == 12:
        return year + 1, 1
    return year, month + 1


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of the month."""
    validate_month(month)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def completed_months(start: date, end_exclusive: date) -> int:
    """Whole calendar months from ``start`` up to (not including) ``end_exclusive``.

    Returns 0 when ``end_exclusive`` is not after ``start``.
    """
    if end_exclusive <= start:
        return 0
    months = (end_exclusive.year - start.year) * 12 + (end_exclusive.month - start.month)
    if end_exclusive.day < start.day:
        months -= 1
    return max(0, months)
