"""Tests for installment scheduling."""

from datetime import date

import pytest

from finance_manager.models.transaction import RecurrenceMode, RecurrenceRequest
from finance_manager.scheduling import (
    InvalidCountError,
    RecurrenceScheduler,
    add_calendar_months,
    generate_schedule,
)


class TestGenerateSchedule:
    """Tests for generate_schedule."""

    def test_end_of_month_anchor(self):
        """Jan 31 of a leap year yields Feb 29, Mar 31, Apr 30."""
        assert generate_schedule(date(2024, 1, 31), 3) == [
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
        ]

    @pytest.mark.parametrize("start", [
        date(2024, 1, 31),
        date(2023, 12, 29),
        date(2024, 2, 29),
        date(2024, 6, 1),
    ])
    @pytest.mark.parametrize("count", [1, 2, 12, 60])
    def test_length_and_ordering(self, start, count):
        dates = generate_schedule(start, count)
        assert len(dates) == count
        assert dates[0] > start
        assert all(a < b for a, b in zip(dates, dates[1:]))
        for offset, installment in enumerate(dates, start=1):
            assert installment == add_calendar_months(start, offset)

    def test_anchor_is_not_part_of_schedule(self):
        start = date(2024, 5, 10)
        assert start not in generate_schedule(start, 12)

    def test_is_deterministic(self):
        assert generate_schedule(date(2024, 1, 31), 5) == generate_schedule(date(2024, 1, 31), 5)

    @pytest.mark.parametrize("count", [0, -1])
    def test_rejects_count_below_one(self, count):
        with pytest.raises(InvalidCountError):
            generate_schedule(date(2024, 1, 1), count)

    def test_invalid_count_is_value_error(self):
        with pytest.raises(ValueError, match="at least 1"):
            generate_schedule(date(2024, 1, 1), 0)


class TestRecurrenceScheduler:
    """Tests for the bounded scheduler."""

    def test_rejects_count_above_maximum(self):
        scheduler = RecurrenceScheduler(max_count=60)
        with pytest.raises(InvalidCountError) as exc_info:
            scheduler.generate(date(2024, 1, 1), 61)
        assert exc_info.value.maximum == 60
        assert exc_info.value.count == 61

    def test_accepts_maximum(self):
        scheduler = RecurrenceScheduler(max_count=60)
        assert len(scheduler.generate(date(2024, 1, 1), 60)) == 60

    def test_monthly_mode_spans_a_year(self):
        scheduler = RecurrenceScheduler(max_count=60, monthly_count=12)
        request = RecurrenceRequest(mode=RecurrenceMode.MONTHLY, count=3)
        assert scheduler.resolve_count(request) == 12

    def test_fixed_mode_uses_requested_count(self):
        scheduler = RecurrenceScheduler(max_count=60)
        assert scheduler.resolve_count(RecurrenceRequest(count=5)) == 5

    def test_fixed_mode_defaults(self):
        scheduler = RecurrenceScheduler(max_count=60, default_count=2)
        assert scheduler.resolve_count(RecurrenceRequest()) == 2

    def test_resolve_rejects_out_of_range(self):
        scheduler = RecurrenceScheduler(max_count=10)
        with pytest.raises(InvalidCountError):
            scheduler.resolve_count(RecurrenceRequest(count=11))
        with pytest.raises(InvalidCountError):
            scheduler.resolve_count(RecurrenceRequest(count=0))

    def test_defaults_come_from_settings(self):
        scheduler = RecurrenceScheduler()
        assert scheduler.max_count == 60
        assert scheduler.monthly_count == 12
        assert scheduler.default_count == 2

    def test_preview(self):
        scheduler = RecurrenceScheduler(max_count=60)
        preview = scheduler.preview(date(2024, 1, 31), 3)
        assert preview.count == 3
        assert preview.first_date == date(2024, 2, 29)
        assert preview.last_date == date(2024, 4, 30)

    def test_preview_matches_schedule_ends(self):
        scheduler = RecurrenceScheduler(max_count=60)
        start = date(2023, 10, 31)
        dates = scheduler.generate(start, 7)
        preview = scheduler.preview(start, 7)
        assert (preview.first_date, preview.last_date) == (dates[0], dates[-1])
