"""
Data Models Package

This package contains all Pydantic models used in the Finance Manager system.
All data flowing through the system must conform to these schemas.
"""

from finance_manager.models.transaction import (
    CategoryGroup,
    NewTransaction,
    RecurrenceMode,
    RecurrenceRequest,
    SemanticType,
    Snapshot,
    Transaction,
    TransactionId,
    most_recent_first,
)
from finance_manager.models.reports import (
    MONTH_NAMES,
    AnnotatedTransaction,
    AnnualSummary,
    CurrentMonthTotals,
    GroupSubtotal,
    MonthlyBucket,
    QueryCounts,
    QueryFilter,
    QueryResult,
    QueryTotals,
    SchedulePreview,
    YearTotals,
)
from finance_manager.models.validation import ValidationIssue, ValidationResult
from finance_manager.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CategoryGroup",
    "NewTransaction",
    "RecurrenceMode",
    "RecurrenceRequest",
    "SemanticType",
    "Snapshot",
    "Transaction",
    "TransactionId",
    "most_recent_first",
    # Report models
    "MONTH_NAMES",
    "AnnotatedTransaction",
    "AnnualSummary",
    "CurrentMonthTotals",
    "GroupSubtotal",
    "MonthlyBucket",
    "QueryCounts",
    "QueryFilter",
    "QueryResult",
    "QueryTotals",
    "SchedulePreview",
    "YearTotals",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
