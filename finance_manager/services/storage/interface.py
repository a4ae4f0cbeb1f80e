"""
Abstract Storage Interface

DESIGN DECISION: The ledger core never talks to storage. The service
layer loads a snapshot through this interface and writes through it.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep aggregation and querying free of I/O

Store methods do not raise on backend failures. A failed read returns an
empty list, a failed insert returns None and a failed delete or update
returns False; the reason is reported out-of-band (structlog, plus
`last_error` for the caller that wants to audit it).

Reads also come as a FetchResult carrying their own error, so concurrent
fetches never read each other's failure.
"""

from abc import ABC, abstractmethod
from typing import NamedTuple, Optional
from uuid import UUID

import structlog

from finance_manager.models.audit import AuditEvent
from finance_manager.models.transaction import NewTransaction, Transaction, TransactionId


class FetchResult(NamedTuple):
    """Rows of one group fetch, and the failure if the read failed."""

    rows: list[Transaction]
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class TransactionStoreInterface(ABC):
    """
    Abstract interface for transaction storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    last_error: Optional[str] = None

    def _report_failure(self, operation: str, error: Exception) -> str:
        """Record a backend failure without raising it."""
        message = f"{operation}: {error}"
        self.last_error = message
        structlog.get_logger(__name__).error(
            "transaction_store_failed",
            store=type(self).__name__,
            operation=operation,
            error=str(error),
        )
        return message

    @abstractmethod
    async def _read_group(self, group_key: str) -> list[Transaction]:
        """
        Every transaction of one category-group, most recent first.

        Raises on backend failure; callers go through fetch_group.
        """
        pass

    async def fetch_group(self, group_key: str) -> FetchResult:
        """
        Fetch one category-group.

        Returns:
            FetchResult with the rows, or [] and the error on failure
        """
        try:
            rows = await self._read_group(group_key)
        except Exception as e:
            return FetchResult([], self._report_failure("fetch_by_group", e))
        return FetchResult(rows)

    async def fetch_by_group(self, group_key: str) -> list[Transaction]:
        """
        Every transaction of one category-group.

        Returns:
            Transactions ordered most recent first; [] on failure
        """
        return (await self.fetch_group(group_key)).rows

    @abstractmethod
    async def insert_one(self, transaction: NewTransaction) -> Optional[Transaction]:
        """
        Persist one entry.

        Returns:
            The stored transaction with its new id; None on failure
        """
        pass

    @abstractmethod
    async def insert_many(
        self,
        transactions: list[NewTransaction],
    ) -> Optional[list[Transaction]]:
        """
        Persist several entries in one batch.

        Returns:
            The stored transactions in input order; None on failure
        """
        pass

    @abstractmethod
    async def delete_by_id(self, transaction_id: TransactionId) -> bool:
        """
        Delete an entry by id.

        Returns:
            True if deleted; False if not found or on failure
        """
        pass

    @abstractmethod
    async def set_paid(self, transaction_id: TransactionId, is_paid: bool) -> bool:
        """
        Update the paid flag of an entry.

        Returns:
            True if updated; False if not found or on failure
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one recurring entry).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
