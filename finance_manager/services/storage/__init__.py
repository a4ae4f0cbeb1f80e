"""
Storage Services Package

Provides the abstract store contract and its implementations.
Google Sheets is the hosted backend; the in-memory stores back tests
and offline use.
"""

from finance_manager.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    FetchResult,
    StorageError,
    TransactionStoreInterface,
)
from finance_manager.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
)
from finance_manager.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryTransactionStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "TransactionStoreInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Results
    "FetchResult",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryTransactionStore",
]
