"""
Query Execution Engine

DESIGN DECISION: Query execution is DETERMINISTIC and works on the
snapshot handed in, never on the store. The same snapshot and filter
always produce the same result, including the order of entries that
share a date (scan order: registry order, then each group's own order).
"""

from datetime import date
from typing import Optional

from finance_manager.groups import CategoryGroupRegistry, get_default_registry
from finance_manager.models.reports import (
    ZERO,
    AnnotatedTransaction,
    GroupSubtotal,
    QueryCounts,
    QueryFilter,
    QueryResult,
    QueryTotals,
)
from finance_manager.models.transaction import (
    SemanticType,
    Snapshot,
    Transaction,
)
from finance_manager.queries.collation import collation_key


class QueryEngine:
    """
    Filters a snapshot by date range, group and category.

    GUARANTEES:
    - Only returns entries present in the snapshot
    - Sub-totals cover every searched group, even those with no matches
    - Narrowing a filter never increases the result count
    """

    def __init__(self, registry: Optional[CategoryGroupRegistry] = None):
        self._registry = registry or get_default_registry()

    def execute(self, snapshot: Snapshot, query_filter: QueryFilter) -> QueryResult:
        """
        Run a filter against a snapshot.

        Raises UnknownGroupError if the filter names a group the
        registry does not know.
        """
        groups = self._registry.select(query_filter.group_keys)

        matches: list[AnnotatedTransaction] = []
        subtotals: dict[str, GroupSubtotal] = {}
        total_income = ZERO
        total_expense = ZERO
        income_count = 0
        expense_count = 0

        for group in groups:
            group_total = ZERO
            group_count = 0
            for transaction in snapshot.for_group(group.key):
                if not self._matches(transaction, query_filter):
                    continue
                matches.append(
                    AnnotatedTransaction(
                        transaction=transaction,
                        group_key=group.key,
                        group_label=group.label,
                        semantic_type=group.semantic_type,
                    )
                )
                group_total += transaction.amount
                group_count += 1

            subtotals[group.key] = GroupSubtotal(
                group_key=group.key,
                label=group.label,
                semantic_type=group.semantic_type,
                total=group_total,
                count=group_count,
            )
            if group.semantic_type is SemanticType.INCOME:
                total_income += group_total
                income_count += group_count
            else:
                total_expense += group_total
                expense_count += group_count

        return QueryResult(
            filter=query_filter,
            transactions=self._sort_most_recent_first(matches),
            groups=subtotals,
            totals=QueryTotals(
                total_income=total_income,
                total_expense=total_expense,
                balance=total_income - total_expense,
            ),
            counts=QueryCounts(
                total=income_count + expense_count,
                income=income_count,
                expense=expense_count,
            ),
            query_description=self.describe(query_filter),
        )

    def all_categories(self, snapshot: Snapshot) -> list[str]:
        """
        Every category label worth offering as a filter choice.

        The union of each active group's default categories and every
        non-empty category found on an entry, sorted alphabetically with
        accents and case ignored.
        """
        labels: set[str] = set()
        for group in self._registry.active_groups():
            labels.update(group.default_categories)
            for transaction in snapshot.for_group(group.key):
                if transaction.is_categorized:
                    labels.add(transaction.category)
        return sorted(labels, key=collation_key)

    def _matches(self, transaction: Transaction, query_filter: QueryFilter) -> bool:
        if query_filter.is_date_bounded:
            if transaction.date is None:
                return False
            if query_filter.start_date and transaction.date < query_filter.start_date:
                return False
            if query_filter.end_date and transaction.date > query_filter.end_date:
                return False
        if query_filter.category is not None and transaction.category != query_filter.category:
            return False
        return True

    def _sort_most_recent_first(
        self,
        matches: list[AnnotatedTransaction],
    ) -> tuple[AnnotatedTransaction, ...]:
        return tuple(
            sorted(
                matches,
                key=lambda m: (m.transaction.date is not None, m.transaction.date or date.min),
                reverse=True,
            )
        )

    def describe(self, query_filter: QueryFilter) -> str:
        """Human-readable summary of a filter."""
        desc_parts = ["Listing transactions"]
        if query_filter.group_keys:
            labels = [g.label for g in self._registry.select(query_filter.group_keys)]
            desc_parts.append(f"groups: {', '.join(labels)}")
        if query_filter.category is not None:
            desc_parts.append(f"category: {query_filter.category}")
        if query_filter.is_date_bounded:
            desc_parts.append(
                self._date_range_str(query_filter.start_date, query_filter.end_date)
            )
        return " | ".join(desc_parts)

    def _date_range_str(
        self,
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> str:
        """Format date range for description."""
        if date_from and date_to:
            if date_from == date_to:
                return f"on {date_from.strftime('%d %b %Y')}"
            elif date_from.month == date_to.month and date_from.year == date_to.year:
                return f"in {date_from.strftime('%B %Y')}"
            elif date_from.year == date_to.year:
                return f"from {date_from.strftime('%b')} to {date_to.strftime('%b %Y')}"
            else:
                return f"from {date_from.strftime('%b %Y')} to {date_to.strftime('%b %Y')}"
        elif date_from:
            return f"from {date_from.strftime('%d %b %Y')}"
        elif date_to:
            return f"until {date_to.strftime('%d %b %Y')}"
        return ""
