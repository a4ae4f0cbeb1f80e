"""Tests for monthly and annual aggregation."""

from datetime import date
from decimal import Decimal

import pytest

from finance_manager.aggregation import Aggregator
from finance_manager.models.reports import MONTH_NAMES
from finance_manager.models.transaction import Snapshot


@pytest.fixture
def aggregator() -> Aggregator:
    return Aggregator()


class TestCurrentMonthTotals:
    """Tests for Aggregator.current_month_totals."""

    def test_income_minus_expense(self, aggregator, make_transaction, make_snapshot):
        """One income of 1000 and one expense of 400 in March give a balance of 600."""
        snapshot = make_snapshot([
            make_transaction("income", "2024-03-10", "1000"),
            make_transaction("fixed-expenses", "2024-03-15", "400"),
        ])
        totals = aggregator.current_month_totals(snapshot, date(2024, 3, 20))

        assert totals.total_income == Decimal("1000")
        assert totals.total_expense == Decimal("400")
        assert totals.balance == Decimal("600")

    def test_only_counts_the_current_month_and_year(
        self, aggregator, make_transaction, make_snapshot
    ):
        snapshot = make_snapshot([
            make_transaction("income", "2024-03-01", "100"),
            make_transaction("income", "2024-02-29", "50"),
            make_transaction("income", "2023-03-15", "70"),
            make_transaction("credit-cards", "2024-03-31", "30"),
        ])
        totals = aggregator.current_month_totals(snapshot, date(2024, 3, 1))

        assert totals.total_income == Decimal("100")
        assert totals.total_expense == Decimal("30")
        assert totals.by_group["credit-cards"] == Decimal("30")
        assert totals.by_group["variable-expenses"] == Decimal("0")

    def test_month_metadata(self, aggregator):
        totals = aggregator.current_month_totals(Snapshot(), date(2024, 3, 20))
        assert totals.year == 2024
        assert totals.month_index == 2
        assert totals.month_name == "Março"
        assert totals.balance == Decimal("0")

    def test_ignores_excluded_groups(
        self, registry_with_excluded, make_transaction, make_snapshot
    ):
        aggregator = Aggregator(registry_with_excluded)
        snapshot = make_snapshot([
            make_transaction("fixed-expenses", "2024-03-15", "400"),
            make_transaction("savings", "2024-03-15", "999"),
        ])
        totals = aggregator.current_month_totals(snapshot, date(2024, 3, 20))

        assert totals.total_expense == Decimal("400")
        assert "savings" not in totals.by_group

    def test_skips_undated_entries(self, aggregator, make_transaction, make_snapshot):
        snapshot = make_snapshot([make_transaction("income", None, "100")])
        totals = aggregator.current_month_totals(snapshot, date(2024, 3, 20))
        assert totals.total_income == Decimal("0")


class TestAnnualSummary:
    """Tests for Aggregator.annual_summary."""

    @pytest.fixture
    def snapshot(self, make_transaction, make_snapshot) -> Snapshot:
        return make_snapshot([
            make_transaction("income", "2024-01-05", "3000.00"),
            make_transaction("income", "2024-02-05", "3000.00"),
            make_transaction("income", "2023-12-05", "2500.00"),
            make_transaction("fixed-expenses", "2024-01-10", "1200.50"),
            make_transaction("variable-expenses", "2024-01-20", "310.25"),
            make_transaction("credit-cards", "2024-12-31", "89.90"),
        ])

    def test_buckets(self, aggregator, snapshot):
        summary = aggregator.annual_summary(snapshot, 2024)

        assert summary.year == 2024
        assert len(summary.months) == 12
        january = summary.months[0]
        assert january.month_name == "Janeiro"
        assert january.income == Decimal("3000.00")
        assert january.expense == Decimal("1510.75")
        assert january.balance == Decimal("1489.25")
        assert january.transaction_count == 3
        assert summary.months[11].expense == Decimal("89.90")
        assert not summary.months[5].has_data

    def test_bucket_names_and_indexes(self, aggregator, snapshot):
        summary = aggregator.annual_summary(snapshot, 2024)
        assert [m.month_index for m in summary.months] == list(range(12))
        assert tuple(m.month_name for m in summary.months) == MONTH_NAMES

    @pytest.mark.parametrize("year", [2022, 2023, 2024])
    def test_totals_equal_sum_of_buckets(self, aggregator, snapshot, year):
        summary = aggregator.annual_summary(snapshot, year)
        assert summary.totals.income == sum((m.income for m in summary.months), Decimal("0"))
        assert summary.totals.expense == sum((m.expense for m in summary.months), Decimal("0"))
        assert summary.totals.balance == summary.totals.income - summary.totals.expense

    def test_other_year_only(self, aggregator, snapshot):
        summary = aggregator.annual_summary(snapshot, 2023)
        assert summary.totals.income == Decimal("2500.00")
        assert summary.months[11].transaction_count == 1

    def test_empty_year(self, aggregator, snapshot):
        summary = aggregator.annual_summary(snapshot, 2030)
        assert summary.totals.balance == Decimal("0")
        assert all(not m.has_data for m in summary.months)


class TestAnnualCache:
    """Tests for the single-slot annual cache."""

    def test_same_year_returns_cached_object(self, aggregator, make_transaction, make_snapshot):
        snapshot = make_snapshot([make_transaction("income", "2024-01-05", "100")])
        first = aggregator.annual_summary(snapshot, 2024)
        second = aggregator.annual_summary(snapshot, 2024)
        assert first is second
        assert aggregator.cached_year == 2024

    def test_stale_until_invalidated(self, aggregator, make_transaction, make_snapshot):
        """The cache does not notice snapshot changes on its own."""
        before = make_snapshot([make_transaction("income", "2024-01-05", "100")])
        after = before.with_added("income", [make_transaction("income", "2024-01-06", "50")])

        assert aggregator.annual_summary(before, 2024).totals.income == Decimal("100")
        assert aggregator.annual_summary(after, 2024).totals.income == Decimal("100")

        aggregator.invalidate_annual_cache()
        assert aggregator.cached_year is None
        assert aggregator.annual_summary(after, 2024).totals.income == Decimal("150")

    def test_other_year_replaces_cache(self, aggregator, make_transaction, make_snapshot):
        snapshot = make_snapshot([make_transaction("income", "2024-01-05", "100")])
        first = aggregator.annual_summary(snapshot, 2024)
        aggregator.annual_summary(snapshot, 2023)
        assert aggregator.cached_year == 2023
        assert aggregator.annual_summary(snapshot, 2024) is not first


class TestAvailableYears:
    """Tests for Aggregator.available_years."""

    def test_includes_current_year_and_data_years(
        self, aggregator, make_transaction, make_snapshot
    ):
        snapshot = make_snapshot([
            make_transaction("income", "2021-05-01"),
            make_transaction("fixed-expenses", "2023-05-01"),
            make_transaction("credit-cards", "2023-07-01"),
            make_transaction("credit-cards", None),
        ])
        assert aggregator.available_years(snapshot, date(2024, 1, 1)) == [2024, 2023, 2021]

    def test_empty_snapshot(self, aggregator):
        assert aggregator.available_years(Snapshot(), date(2024, 6, 1)) == [2024]

    def test_future_entries(self, aggregator, make_transaction, make_snapshot):
        snapshot = make_snapshot([make_transaction("fixed-expenses", "2026-02-28")])
        assert aggregator.available_years(snapshot, date(2024, 6, 1)) == [2026, 2024]
