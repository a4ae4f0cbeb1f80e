"""
Calendar Arithmetic

Month shifting with end-of-month clamping. Pure functions, no state.
"""

import calendar
from datetime import date


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in `month` (1-12) of `year`."""
    return calendar.monthrange(year, month)[1]


def add_calendar_months(start: date, months: int) -> date:
    """
    Shift `start` by a whole number of calendar months.

    When the target month is shorter than `start.day`, the result is the
    last day of the target month:

        2023-01-31 + 1 -> 2023-02-28
        2024-01-31 + 1 -> 2024-02-29
        2024-01-31 + 2 -> 2024-03-31

    The clamp is always applied against `start.day`, so shifting in one
    step and shifting in several steps can differ. Callers building a
    series must shift from the anchor date every time.
    """
    month_number = start.year * 12 + (start.month - 1) + months
    year, month_index = divmod(month_number, 12)
    month = month_index + 1
    day = min(start.day, last_day_of_month(year, month))
    return date(year, month, day)
