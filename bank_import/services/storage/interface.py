"""
Abstract Storage Interface

DESIGN DECISION: The import pipeline only ever talks to storage through
these interfaces. This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the pipeline decoupled from the hosted data store

The pipeline only READS accounts and fingerprints and APPENDS transactions.
It never updates or deletes stored records.
"""

from abc import ABC, abstractmethod
from typing import Sequence
from uuid import UUID

from bank_import.models.audit import AuditEvent
from bank_import.models.transaction import ImportedTransaction


class TransactionStoreInterface(ABC):
    """
    Abstract interface for the bank transaction store.

    Every operation is one request per batch, never one per row.
    """

    @abstractmethod
    async def account_exists(self, account_id: str) -> bool:
        """
        Whether an account is known to the store and active.

        Args:
            account_id: The target bank account

        Returns:
            True only for an existing, active account

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def list_fingerprints(self, account_id: str) -> set[str]:
        """
        Fingerprints of every transaction already stored for an account.

        Args:
            account_id: The target bank account

        Returns:
            Set of fingerprints (empty for a new account)

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def append_transactions(
        self,
        account_id: str,
        transactions: Sequence[ImportedTransaction],
        batch_id: UUID,
    ) -> bool:
        """
        Append a batch of transactions in one write.

        Args:
            account_id: The target bank account
            transactions: Accepted transactions, in source row order
            batch_id: The import batch they came from

        Returns:
            True if all transactions were written, False if none were

        Raises:
            StorageError: If the write fails
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
        Get all events for a correlation ID (e.g., one upload-preview-import flow).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity (e.g., one import batch).

        Returns:
            List of events in chronological order
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
