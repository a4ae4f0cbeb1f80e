"""
Recurrence Scheduler

Expands one anchor date into the dates of its monthly installments.

DESIGN DECISION: The scheduler only produces dates. Turning dates into
transactions (numbering descriptions, persisting them) belongs to the
caller, so the scheduler stays deterministic and free of I/O.
"""

from datetime import date
from typing import Optional

from finance_manager.config import get_settings
from finance_manager.models.reports import SchedulePreview
from finance_manager.models.transaction import RecurrenceMode, RecurrenceRequest
from finance_manager.scheduling.calendar_math import add_calendar_months


class InvalidCountError(ValueError):
    """Installment count below 1 or above the configured maximum."""

    def __init__(self, count: int, maximum: Optional[int] = None):
        self.count = count
        self.maximum = maximum
        if maximum is None:
            message = f"Installment count must be at least 1, got {count}"
        else:
            message = f"Installment count must be between 1 and {maximum}, got {count}"
        super().__init__(message)


def generate_schedule(start_date: date, count: int) -> list[date]:
    """
    Return `count` installment dates, one month apart.

    The first date is one month after `start_date`; the anchor itself is
    never part of the schedule. Each date is clamped to the end of its
    month independently (see add_calendar_months).
    """
    if count < 1:
        raise InvalidCountError(count)
    return [add_calendar_months(start_date, offset) for offset in range(1, count + 1)]


class RecurrenceScheduler:
    """
    Bounded front end to generate_schedule.

    Rejects counts above `max_count` before generating anything.
    """

    def __init__(
        self,
        max_count: Optional[int] = None,
        monthly_count: Optional[int] = None,
        default_count: Optional[int] = None,
    ):
        settings = get_settings().app
        self.max_count = max_count if max_count is not None else settings.max_installments
        self.monthly_count = (
            monthly_count if monthly_count is not None else settings.monthly_recurrence_count
        )
        self.default_count = (
            default_count if default_count is not None else settings.default_installments
        )

    def check_count(self, count: int) -> int:
        if count < 1 or count > self.max_count:
            raise InvalidCountError(count, self.max_count)
        return count

    def resolve_count(self, request: RecurrenceRequest) -> int:
        """Installment count for a recurrence request, validated."""
        if request.mode is RecurrenceMode.MONTHLY:
            return self.check_count(self.monthly_count)
        count = request.count if request.count is not None else self.default_count
        return self.check_count(count)

    def generate(self, start_date: date, count: int) -> list[date]:
        return generate_schedule(start_date, self.check_count(count))

    def preview(self, start_date: date, count: int) -> SchedulePreview:
        """First and last installment dates for a prospective schedule."""
        self.check_count(count)
        return SchedulePreview(
            count=count,
            first_date=add_calendar_months(start_date, 1),
            last_date=add_calendar_months(start_date, count),
        )
