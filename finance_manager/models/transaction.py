"""
Core Data Models for Finance Manager

These models define the strict schemas for the entries the ledger works on.
They are designed to:
1. Enforce type safety at runtime
2. Keep amounts as Decimal end to end (no float drift in totals)
3. Be immutable once built, so a snapshot can be shared between readers
4. Be serializable for storage and logging

DESIGN DECISION: `category` keeps "absent" (None) and "present but empty" ("")
apart. Both count as uncategorized, but only an exact filter value of ""
matches the latter.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


TransactionId = Union[int, str]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SemanticType(str, Enum):
    """Whether a category-group's amounts count as income or expense."""
    INCOME = "income"
    EXPENSE = "expense"


class RecurrenceMode(str, Enum):
    """
    How a recurring entry picks its installment count.

    FIXED uses the count the user typed; MONTHLY always spans a year.
    """
    FIXED = "fixed"
    MONTHLY = "monthly"


# =============================================================================
# CATEGORY GROUPS
# =============================================================================

class CategoryGroup(BaseModel):
    """
    A named bucket of transactions with a fixed income/expense type.

    Groups are configuration, not user data: they are built once at
    startup and never edited while the application runs.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    key: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Stable identifier stored on every transaction"
    )
    label: str = Field(
        ...,
        min_length=1,
        description="Display name"
    )
    semantic_type: SemanticType
    default_categories: tuple[str, ...] = Field(
        default=(),
        description="Suggested category labels, in display order"
    )
    icon: Optional[str] = None
    placeholder: Optional[str] = Field(
        default=None,
        description="Example descriptions shown in the entry form"
    )
    excluded: bool = Field(
        default=False,
        description="Excluded groups are left out of aggregation and default query scope"
    )

    @property
    def is_income(self) -> bool:
        return self.semantic_type is SemanticType.INCOME


# =============================================================================
# TRANSACTIONS
# =============================================================================

class NewTransaction(BaseModel):
    """
    A validated entry that has not been persisted yet.

    The store assigns the id when it accepts the entry.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    group_key: str = Field(..., min_length=1)
    date: dt.date = Field(
        ...,
        description="Calendar date of the entry (no time of day)"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    category: Optional[str] = Field(
        default=None,
        max_length=100,
        description="None means uncategorized"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
    )
    is_paid: bool = False

    def to_store_payload(self) -> dict:
        """Plain dict accepted by every store implementation."""
        return {
            "group_key": self.group_key,
            "date": self.date.isoformat(),
            "description": self.description,
            "category": self.category,
            "amount": str(self.amount),
            "is_paid": self.is_paid,
        }


class Transaction(BaseModel):
    """
    One persisted financial entry.

    `date` is optional here only because rows read back from a store may
    predate validation; such rows are skipped by anything date-based.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: TransactionId
    group_key: str = Field(..., min_length=1)
    date: Optional[dt.date] = None
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    category: Optional[str] = Field(
        default=None,
        max_length=100,
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
    )
    is_paid: bool = False

    @property
    def is_categorized(self) -> bool:
        return bool(self.category)

    @classmethod
    def from_new(cls, transaction_id: TransactionId, new: NewTransaction) -> "Transaction":
        return cls(id=transaction_id, **new.model_dump())


class RecurrenceRequest(BaseModel):
    """Recurrence options chosen alongside a new entry."""

    mode: RecurrenceMode = RecurrenceMode.FIXED
    count: Optional[int] = Field(
        default=None,
        description="Installment count for FIXED mode; ignored for MONTHLY"
    )


# =============================================================================
# SNAPSHOT
# =============================================================================

def most_recent_first(transactions: Iterable[Transaction]) -> tuple[Transaction, ...]:
    """
    Sort by date descending; equal dates keep their incoming order.

    Entries without a date go last.
    """
    return tuple(
        sorted(
            transactions,
            key=lambda t: (t.date is not None, t.date or dt.date.min),
            reverse=True,
        )
    )


class Snapshot(BaseModel):
    """
    Every transaction across every category-group at one point in time.

    Snapshots are never edited in place. The helpers below return a new
    snapshot, so a reader holding the old one keeps a consistent view.
    """
    model_config = ConfigDict(frozen=True)

    groups: dict[str, tuple[Transaction, ...]] = Field(default_factory=dict)

    @model_validator(mode='after')
    def validate_membership(self) -> 'Snapshot':
        """Every transaction must sit under its own group key."""
        for key, transactions in self.groups.items():
            for transaction in transactions:
                if transaction.group_key != key:
                    raise ValueError(
                        f"Transaction {transaction.id} belongs to "
                        f"'{transaction.group_key}', not '{key}'"
                    )
        return self

    def for_group(self, group_key: str) -> tuple[Transaction, ...]:
        return self.groups.get(group_key, ())

    def all_transactions(self) -> list[Transaction]:
        return [t for transactions in self.groups.values() for t in transactions]

    def find(self, transaction_id: TransactionId) -> Optional[Transaction]:
        for transaction in self.all_transactions():
            if transaction.id == transaction_id:
                return transaction
        return None

    @property
    def is_empty(self) -> bool:
        return not any(self.groups.values())

    def with_group(
        self,
        group_key: str,
        transactions: Iterable[Transaction],
    ) -> "Snapshot":
        """Replace one group's entries wholesale (e.g. after a reload)."""
        groups = dict(self.groups)
        groups[group_key] = tuple(transactions)
        return Snapshot(groups=groups)

    def with_added(
        self,
        group_key: str,
        transactions: Iterable[Transaction],
    ) -> "Snapshot":
        """Merge newly stored entries into a group, most recent first."""
        merged = list(transactions) + list(self.for_group(group_key))
        return self.with_group(group_key, most_recent_first(merged))

    def without(self, transaction_id: TransactionId) -> "Snapshot":
        groups = {
            key: tuple(t for t in transactions if t.id != transaction_id)
            for key, transactions in self.groups.items()
        }
        return Snapshot(groups=groups)

    def with_paid(self, transaction_id: TransactionId, is_paid: bool) -> "Snapshot":
        """Reflect a paid toggle the store has already confirmed."""
        groups = {
            key: tuple(
                t.model_copy(update={"is_paid": is_paid})
                if t.id == transaction_id else t
                for t in transactions
            )
            for key, transactions in self.groups.items()
        }
        return Snapshot(groups=groups)
