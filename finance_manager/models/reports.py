"""
Derived Report Models

Everything here is computed from a Snapshot on demand and owned by the
caller that asked for it. Nothing in this module is ever persisted.

All models are frozen: the Aggregator hands out its cached AnnualSummary
to every caller, so nobody may be able to edit it.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from finance_manager.models.transaction import SemanticType, Transaction


MONTH_NAMES = (
    "Janeiro", "Fevereiro", "Março", "Abril",
    "Maio", "Junho", "Julho", "Agosto",
    "Setembro", "Outubro", "Novembro", "Dezembro",
)

ZERO = Decimal("0")


# =============================================================================
# AGGREGATION MODELS
# =============================================================================

class MonthlyBucket(BaseModel):
    """Income, expense and entry count for one month of one year."""
    model_config = ConfigDict(frozen=True)

    month_index: int = Field(..., ge=0, le=11, description="0 = January")
    month_name: str
    income: Decimal = ZERO
    expense: Decimal = ZERO
    balance: Decimal = ZERO
    transaction_count: int = Field(default=0, ge=0)

    @property
    def has_data(self) -> bool:
        return self.transaction_count > 0


class YearTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    income: Decimal = ZERO
    expense: Decimal = ZERO
    balance: Decimal = ZERO


class AnnualSummary(BaseModel):
    """
    Twelve monthly buckets plus their year-level totals.

    The totals always equal the sum of the buckets' fields.
    """
    model_config = ConfigDict(frozen=True)

    year: int
    months: tuple[MonthlyBucket, ...]
    totals: YearTotals

    @model_validator(mode='after')
    def validate_months(self) -> 'AnnualSummary':
        if len(self.months) != 12:
            raise ValueError("An annual summary needs exactly 12 monthly buckets")
        return self


class CurrentMonthTotals(BaseModel):
    """Totals for the calendar month containing `today`."""
    model_config = ConfigDict(frozen=True)

    year: int
    month_index: int = Field(..., ge=0, le=11)
    month_name: str
    by_group: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Sum of this month's amounts per group key"
    )
    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    balance: Decimal = ZERO


# =============================================================================
# QUERY MODELS
# =============================================================================

class QueryFilter(BaseModel):
    """
    Criteria for an ad-hoc report.

    Every criterion is optional; an empty filter matches everything in
    the non-excluded groups.
    """
    model_config = ConfigDict(frozen=True)

    start_date: Optional[dt.date] = Field(
        default=None,
        description="Inclusive lower bound"
    )
    end_date: Optional[dt.date] = Field(
        default=None,
        description="Inclusive upper bound"
    )
    group_keys: frozenset[str] = Field(
        default=frozenset(),
        description="Groups to search; empty means every non-excluded group"
    )
    category: Optional[str] = Field(
        default=None,
        description="Exact category label; None matches any"
    )

    @model_validator(mode='after')
    def validate_range(self) -> 'QueryFilter':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self

    @property
    def is_date_bounded(self) -> bool:
        return self.start_date is not None or self.end_date is not None


class AnnotatedTransaction(BaseModel):
    """A matching transaction together with the group it came from."""
    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    group_key: str
    group_label: str
    semantic_type: SemanticType


class GroupSubtotal(BaseModel):
    model_config = ConfigDict(frozen=True)

    group_key: str
    label: str
    semantic_type: SemanticType
    total: Decimal = ZERO
    count: int = Field(default=0, ge=0)


class QueryTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    balance: Decimal = ZERO


class QueryCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = Field(default=0, ge=0)
    income: int = Field(default=0, ge=0)
    expense: int = Field(default=0, ge=0)


class QueryResult(BaseModel):
    """
    Result of executing a QueryFilter against a snapshot.

    `transactions` is sorted most recent first; entries sharing a date
    keep the order in which they were scanned (group order, then the
    group's own order).
    """
    model_config = ConfigDict(frozen=True)

    query_id: UUID = Field(default_factory=uuid4)
    executed_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))

    filter: QueryFilter
    transactions: tuple[AnnotatedTransaction, ...] = ()
    groups: dict[str, GroupSubtotal] = Field(
        default_factory=dict,
        description="Sub-totals for every searched group, including empty ones"
    )
    totals: QueryTotals = Field(default_factory=QueryTotals)
    counts: QueryCounts = Field(default_factory=QueryCounts)

    query_description: str = Field(
        ...,
        description="Human-readable description of what was queried"
    )

    @property
    def data_found(self) -> bool:
        return self.counts.total > 0


# =============================================================================
# SCHEDULING MODELS
# =============================================================================

class SchedulePreview(BaseModel):
    """What a recurring entry would create, for the form hint."""
    model_config = ConfigDict(frozen=True)

    count: int = Field(..., ge=1)
    first_date: dt.date
    last_date: dt.date
