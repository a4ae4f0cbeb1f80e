"""
Two-Stage Entry Validation

Raw form input becomes a NewTransaction here, or is rejected here.
Nothing past this module re-validates.

STAGE 1 - SCHEMA VALIDATION:
- Required fields present and parsable
- Amount strictly positive with at most two decimal places
- Description non-empty and within the length limit

STAGE 2 - SEMANTIC VALIDATION:
- Dates far in the future
- Unusually large amounts
These only produce warnings.

IMPORTANT: Validation NEVER silently fixes issues. An amount that does
not parse is an error, not zero.
"""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

import structlog

from finance_manager.config import get_settings
from finance_manager.groups import CategoryGroupRegistry, get_default_registry
from finance_manager.models.transaction import NewTransaction
from finance_manager.models.validation import ValidationIssue, ValidationResult


logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")
ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# Checkbox values the entry form can post
PAID_TOKENS = {
    "on": True, "true": True, "1": True,
    "off": False, "false": False, "0": False, "": False,
}


class TransactionValidationError(ValueError):
    """Base class for rejected entry input."""

    field = "transaction"


class InvalidAmountError(TransactionValidationError):
    """Amount missing, unparsable, non-positive or too precise."""

    field = "amount"


class InvalidDateError(TransactionValidationError):
    """Date missing or not a real calendar date."""

    field = "date"


class InvalidDescriptionError(TransactionValidationError):
    """Description empty or too long."""

    field = "description"


class InvalidPaidStatusError(TransactionValidationError):
    """Paid flag that is neither a bool nor a known checkbox value."""

    field = "is_paid"


def parse_amount(raw: Any) -> Decimal:
    """
    Parse a user-supplied amount.

    Accepts Decimal, int or numeric text. Floats go through str() so
    0.1 stays 0.1. Raises InvalidAmountError instead of defaulting.
    """
    if raw is None or isinstance(raw, bool):
        raise InvalidAmountError("Amount is required")
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            raise InvalidAmountError("Amount is required")
    try:
        amount = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(f"Amount is not a number: {raw!r}") from None

    if not amount.is_finite():
        raise InvalidAmountError(f"Amount is not a finite number: {raw!r}")
    if amount <= 0:
        raise InvalidAmountError("Amount must be greater than zero")
    try:
        cents = amount.quantize(CENT)
    except InvalidOperation:
        raise InvalidAmountError(f"Amount is too large: {raw!r}") from None
    if cents != amount:
        raise InvalidAmountError("Amount cannot have more than two decimal places")
    return cents


def parse_entry_date(raw: Any) -> date:
    """Parse an ISO (YYYY-MM-DD) date or pass a date through."""
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise InvalidDateError("Date is required")
    if not isinstance(raw, str):
        raise InvalidDateError(f"Date must be YYYY-MM-DD text, got {type(raw).__name__}")
    text = raw.strip()
    if not ISO_DATE.fullmatch(text):
        raise InvalidDateError(f"Date must be YYYY-MM-DD: {raw!r}")
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise InvalidDateError(f"Not a valid calendar date: {raw!r}") from None


def parse_description(raw: Any, max_length: int) -> str:
    if raw is not None and not isinstance(raw, str):
        raise InvalidDescriptionError(
            f"Description must be text, got {type(raw).__name__}"
        )
    description = (raw or "").strip()
    if not description:
        raise InvalidDescriptionError("Description is required")
    if len(description) > max_length:
        raise InvalidDescriptionError(
            f"Description is longer than {max_length} characters"
        )
    return description


def parse_paid(raw: Any) -> bool:
    """
    Parse the paid checkbox.

    Missing means unpaid. Anything other than a bool or one of the
    checkbox values is rejected rather than read as truthy.
    """
    if raw is None:
        return False
    if isinstance(raw, bool):
        return raw
    token = raw.strip().lower() if isinstance(raw, str) else None
    if token in PAID_TOKENS:
        return PAID_TOKENS[token]
    raise InvalidPaidStatusError(f"Paid status must be on or off, got {raw!r}")


def parse_category(raw: Any) -> Optional[str]:
    """Blank form input means uncategorized."""
    if raw is None:
        return None
    category = str(raw).strip()
    return category or None


class TransactionValidator:
    """
    Validates raw entry input through a two-stage pipeline.

    Raw input is a mapping with the keys "date", "description",
    "category", "amount" and optionally "is_paid", as posted by the
    entry form.
    """

    def __init__(self, registry: Optional[CategoryGroupRegistry] = None):
        self._registry = registry or get_default_registry()
        self._settings = get_settings().app

    @property
    def max_description_length(self) -> int:
        return self._settings.description_max_length

    def to_new_transaction(
        self,
        raw: Mapping[str, Any],
        group_key: str,
        today: Optional[date] = None,
    ) -> NewTransaction:
        """
        Build a NewTransaction or raise the typed error for the first problem.

        Raises UnknownGroupError, InvalidDescriptionError, InvalidAmountError,
        InvalidDateError or InvalidPaidStatusError. Semantic warnings are
        logged, not raised.
        """
        group = self._registry.get(group_key)
        description = parse_description(
            raw.get("description"), self._settings.description_max_length
        )
        amount = parse_amount(raw.get("amount"))
        entry_date = parse_entry_date(raw.get("date"))
        category = parse_category(raw.get("category"))

        # Paid status only means something for expenses
        is_paid = parse_paid(raw.get("is_paid")) and not group.is_income

        transaction = NewTransaction(
            group_key=group.key,
            date=entry_date,
            description=description,
            category=category,
            amount=amount,
            is_paid=is_paid,
        )

        for issue in self._semantic_issues(entry_date, amount, today or date.today()):
            logger.warning(
                "transaction_warning",
                group_key=group_key,
                field=issue.field,
                message=issue.message,
            )
        return transaction

    def validate(
        self,
        raw: Mapping[str, Any],
        group_key: str,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run the full pipeline and report every issue without raising.

        Stage 2 only runs when stage 1 passes.
        """
        schema_valid, issues, parsed = self._validate_schema(raw, group_key)

        semantic_valid = False
        if schema_valid:
            semantic_issues = self._semantic_issues(
                parsed["date"], parsed["amount"], today or date.today()
            )
            issues.extend(semantic_issues)
            semantic_valid = not any(i.severity == "error" for i in semantic_issues)

        return ValidationResult(
            group_key=group_key,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )

    def _validate_schema(
        self,
        raw: Mapping[str, Any],
        group_key: str,
    ) -> tuple[bool, list[ValidationIssue], dict[str, Any]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues, parsed_values)
        """
        issues = []
        parsed: dict[str, Any] = {}

        if group_key not in self._registry:
            issues.append(ValidationIssue(
                field="group_key",
                issue_type="unknown",
                message=f"Unknown category-group: {group_key}",
                severity="error",
            ))

        checks = [
            ("description", lambda: parse_description(
                raw.get("description"), self._settings.description_max_length
            ), "Enter a short description"),
            ("amount", lambda: parse_amount(raw.get("amount")),
             "Enter a value greater than zero, e.g. 12.50"),
            ("date", lambda: parse_entry_date(raw.get("date")),
             "Use the YYYY-MM-DD format"),
            ("is_paid", lambda: parse_paid(raw.get("is_paid")),
             "Leave the box ticked or unticked"),
        ]
        for field, parse, suggested_fix in checks:
            try:
                parsed[field] = parse()
            except TransactionValidationError as e:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="invalid_value",
                    message=str(e),
                    severity="error",
                    suggested_fix=suggested_fix,
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues, parsed

    def _semantic_issues(
        self,
        entry_date: date,
        amount: Decimal,
        today: date,
    ) -> list[ValidationIssue]:
        """Stage 2: plausibility checks. Warnings only."""
        issues = []

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if entry_date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({entry_date}) is far in the future",
                severity="warning",
                suggested_fix="Please verify the year is correct",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount (R${amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return issues

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Short message for the entry form."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []
        if not result.schema_valid:
            lines.append("Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
