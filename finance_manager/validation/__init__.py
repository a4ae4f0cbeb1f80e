"""Entry validation package."""

from finance_manager.validation.validator import (
    InvalidAmountError,
    InvalidDateError,
    InvalidDescriptionError,
    InvalidPaidStatusError,
    TransactionValidationError,
    TransactionValidator,
    parse_amount,
    parse_description,
    parse_entry_date,
    parse_paid,
)

__all__ = [
    "InvalidAmountError",
    "InvalidDateError",
    "InvalidDescriptionError",
    "InvalidPaidStatusError",
    "TransactionValidationError",
    "TransactionValidator",
    "parse_amount",
    "parse_description",
    "parse_entry_date",
    "parse_paid",
]
