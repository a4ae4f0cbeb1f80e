"""
In-Memory Storage

Process-local stores used when no backend is configured, and in tests.
Ids are increasing integers and are never handed out twice, even after
a delete.
"""

from itertools import count
from typing import Optional
from uuid import UUID

from finance_manager.models.audit import AuditEvent
from finance_manager.models.transaction import (
    NewTransaction,
    Transaction,
    TransactionId,
    most_recent_first,
)
from finance_manager.services.storage.interface import (
    AuditStorageInterface,
    TransactionStoreInterface,
)


class InMemoryTransactionStore(TransactionStoreInterface):
    """Dict-backed transaction store."""

    def __init__(self):
        self._rows: dict[int, Transaction] = {}
        self._ids = count(1)

    def __len__(self) -> int:
        return len(self._rows)

    def _store(self, new: NewTransaction) -> Transaction:
        transaction = Transaction.from_new(next(self._ids), new)
        self._rows[transaction.id] = transaction
        return transaction

    async def _read_group(self, group_key: str) -> list[Transaction]:
        # Newest ids first so entries sharing a date come back latest-created first
        rows = [t for t in reversed(self._rows.values()) if t.group_key == group_key]
        return list(most_recent_first(rows))

    async def insert_one(self, transaction: NewTransaction) -> Optional[Transaction]:
        return self._store(transaction)

    async def insert_many(
        self,
        transactions: list[NewTransaction],
    ) -> Optional[list[Transaction]]:
        return [self._store(t) for t in transactions]

    async def delete_by_id(self, transaction_id: TransactionId) -> bool:
        return self._rows.pop(transaction_id, None) is not None

    async def set_paid(self, transaction_id: TransactionId, is_paid: bool) -> bool:
        transaction = self._rows.get(transaction_id)
        if transaction is None:
            return False
        self._rows[transaction_id] = transaction.model_copy(update={"is_paid": is_paid})
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed audit log."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
