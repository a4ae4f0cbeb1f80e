"""
Shared fixtures.

No test talks to Google: Sheets access goes through mocks and
everything else runs on the in-memory stores.
"""

from datetime import date
from decimal import Decimal
from itertools import count

import pytest

from finance_manager.groups import CategoryGroupRegistry
from finance_manager.models.transaction import (
    CategoryGroup,
    SemanticType,
    Snapshot,
    Transaction,
)


@pytest.fixture
def make_transaction():
    """Factory for stored transactions with sequential ids."""
    ids = count(1)

    def _make(
        group_key: str,
        when,
        amount="100.00",
        category=None,
        description="Entry",
        is_paid=False,
    ) -> Transaction:
        return Transaction(
            id=next(ids),
            group_key=group_key,
            date=date.fromisoformat(when) if isinstance(when, str) else when,
            description=description,
            category=category,
            amount=Decimal(amount),
            is_paid=is_paid,
        )

    return _make


@pytest.fixture
def make_snapshot():
    """Build a Snapshot from a flat list, grouping by group_key."""

    def _make(transactions) -> Snapshot:
        groups: dict[str, list[Transaction]] = {}
        for transaction in transactions:
            groups.setdefault(transaction.group_key, []).append(transaction)
        return Snapshot(groups={key: tuple(rows) for key, rows in groups.items()})

    return _make


@pytest.fixture
def registry_with_excluded() -> CategoryGroupRegistry:
    """Default-like registry plus an excluded savings group."""
    return CategoryGroupRegistry([
        CategoryGroup(key="income", label="Receitas", semantic_type=SemanticType.INCOME),
        CategoryGroup(
            key="fixed-expenses", label="Contas Fixas", semantic_type=SemanticType.EXPENSE
        ),
        CategoryGroup(
            key="savings",
            label="Reserva",
            semantic_type=SemanticType.EXPENSE,
            default_categories=("Poupança",),
            excluded=True,
        ),
    ])
