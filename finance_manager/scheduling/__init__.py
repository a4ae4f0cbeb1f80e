"""Calendar arithmetic and installment scheduling package."""

from finance_manager.scheduling.calendar_math import (
    add_calendar_months,
    last_day_of_month,
)
from finance_manager.scheduling.recurrence import (
    InvalidCountError,
    RecurrenceScheduler,
    generate_schedule,
)

__all__ = [
    "InvalidCountError",
    "RecurrenceScheduler",
    "add_calendar_months",
    "generate_schedule",
    "last_day_of_month",
]
