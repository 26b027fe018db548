"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the
transaction store and the audit log. Google Sheets is the hosted
backend; the in-memory backend serves tests and local runs.
"""

from bank_import.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StorageError,
    TransactionStoreInterface,
)
from bank_import.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryTransactionStore,
)
from bank_import.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "TransactionStoreInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryTransactionStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
]
