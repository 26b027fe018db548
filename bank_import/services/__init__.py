"""Services package."""

from bank_import.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    InMemoryAuditStorage,
    InMemoryTransactionStore,
    StorageError,
    TransactionStoreInterface,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
    "InMemoryAuditStorage",
    "InMemoryTransactionStore",
    "StorageError",
    "TransactionStoreInterface",
]
