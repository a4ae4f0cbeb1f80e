"""
Aggregator

Turns a Snapshot into the current month's totals and a year's
month-by-month summary.

DESIGN DECISION: The annual summary is cached in a single slot keyed by
year. The aggregator cannot see snapshot mutations, so whoever inserts
or deletes entries must call invalidate_annual_cache() before asking
for the summary again.

The slot holds one immutable (year, summary) tuple and is only ever
replaced, never edited, so a reader always sees a consistent pair even
if another thread swaps the slot.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

import structlog

from finance_manager.groups import CategoryGroupRegistry, get_default_registry
from finance_manager.models.reports import (
    MONTH_NAMES,
    ZERO,
    AnnualSummary,
    CurrentMonthTotals,
    MonthlyBucket,
    YearTotals,
)
from finance_manager.models.transaction import SemanticType, Snapshot


logger = structlog.get_logger(__name__)


class Aggregator:
    """Monthly and annual totals over a snapshot."""

    def __init__(self, registry: Optional[CategoryGroupRegistry] = None):
        self._registry = registry or get_default_registry()
        self._annual_cache: Optional[tuple[int, AnnualSummary]] = None

    @property
    def cached_year(self) -> Optional[int]:
        cache = self._annual_cache
        return cache[0] if cache else None

    def invalidate_annual_cache(self) -> None:
        """Drop the cached summary; the next annual_summary call rescans."""
        self._annual_cache = None

    def current_month_totals(self, snapshot: Snapshot, today: date) -> CurrentMonthTotals:
        """
        Sum this month's entries per group, then into income and expense.

        "This month" is the calendar month and year of `today`. Not cached.
        """
        by_group: dict[str, Decimal] = {}
        total_income = ZERO
        total_expense = ZERO

        for group in self._registry.active_groups():
            total = sum(
                (
                    t.amount
                    for t in snapshot.for_group(group.key)
                    if t.date is not None
                    and t.date.year == today.year
                    and t.date.month == today.month
                ),
                ZERO,
            )
            by_group[group.key] = total
            if group.semantic_type is SemanticType.INCOME:
                total_income += total
            else:
                total_expense += total

        return CurrentMonthTotals(
            year=today.year,
            month_index=today.month - 1,
            month_name=MONTH_NAMES[today.month - 1],
            by_group=by_group,
            total_income=total_income,
            total_expense=total_expense,
            balance=total_income - total_expense,
        )

    def annual_summary(self, snapshot: Snapshot, year: int) -> AnnualSummary:
        """
        Twelve monthly buckets for `year`, plus year totals.

        Returns the cached object when `year` matches the cached year.
        """
        cache = self._annual_cache
        if cache is not None and cache[0] == year:
            logger.debug("annual_summary_cache_hit", year=year)
            return cache[1]

        logger.debug("annual_summary_cache_miss", year=year, cached_year=self.cached_year)
        summary = self._build_annual_summary(snapshot, year)
        self._annual_cache = (year, summary)
        return summary

    def _build_annual_summary(self, snapshot: Snapshot, year: int) -> AnnualSummary:
        income = [ZERO] * 12
        expense = [ZERO] * 12
        counts = [0] * 12

        for group in self._registry.active_groups():
            is_income = group.semantic_type is SemanticType.INCOME
            for transaction in snapshot.for_group(group.key):
                if transaction.date is None or transaction.date.year != year:
                    continue
                month = transaction.date.month - 1
                if is_income:
                    income[month] += transaction.amount
                else:
                    expense[month] += transaction.amount
                counts[month] += 1

        months = tuple(
            MonthlyBucket(
                month_index=index,
                month_name=MONTH_NAMES[index],
                income=income[index],
                expense=expense[index],
                balance=income[index] - expense[index],
                transaction_count=counts[index],
            )
            for index in range(12)
        )
        year_income = sum(income, ZERO)
        year_expense = sum(expense, ZERO)

        return AnnualSummary(
            year=year,
            months=months,
            totals=YearTotals(
                income=year_income,
                expense=year_expense,
                balance=year_income - year_expense,
            ),
        )

    def available_years(self, snapshot: Snapshot, today: date) -> list[int]:
        """
        Years the dashboard may navigate to, newest first.

        Always contains the current year, plus every year with at least
        one dated entry in an active group.
        """
        years = {today.year}
        for group in self._registry.active_groups():
            for transaction in snapshot.for_group(group.key):
                if transaction.date is not None:
                    years.add(transaction.date.year)
        return sorted(years, reverse=True)
