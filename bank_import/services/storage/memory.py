"""
In-Memory Storage Implementation

Used by tests and local runs without a hosted store. Same contract as
the Google Sheets backend: account lookups, fingerprint reads and
all-or-nothing appends.
"""

from typing import Iterable, Optional, Sequence
from uuid import UUID

from bank_import.models.audit import AuditEvent
from bank_import.models.transaction import ImportedTransaction
from bank_import.services.storage.interface import (
    AuditStorageInterface,
    StorageError,
    TransactionStoreInterface,
)


class InMemoryTransactionStore(TransactionStoreInterface):
    """
    Transactions kept per account in insertion order.

    Only the accounts passed in `accounts` (or added with add_account)
    can be imported into. Set `fail_with` to an exception to make the
    next appends fail, which is how tests simulate an unreachable store.
    """

    def __init__(
        self,
        accounts: Optional[Iterable[str]] = None,
        fail_with: Optional[Exception] = None,
    ):
        self._accounts: dict[str, bool] = {a: True for a in accounts or ()}
        self._transactions: dict[str, list[tuple[UUID, ImportedTransaction]]] = {}
        self.fail_with = fail_with
        self.append_calls = 0

    def add_account(self, account_id: str, active: bool = True) -> None:
        self._accounts[account_id] = active

    async def account_exists(self, account_id: str) -> bool:
        return self._accounts.get(account_id, False)

    async def list_fingerprints(self, account_id: str) -> set[str]:
        return {t.fingerprint for _, t in self._transactions.get(account_id, [])}

    async def append_transactions(
        self,
        account_id: str,
        transactions: Sequence[ImportedTransaction],
        batch_id: UUID,
    ) -> bool:
        self.append_calls += 1
        if self.fail_with is not None:
            raise StorageError(f"Failed to append transactions: {self.fail_with}")

        # Build the new list first so a failure leaves nothing behind
        stored = list(self._transactions.get(account_id, []))
        stored.extend((batch_id, t) for t in transactions)
        self._transactions[account_id] = stored
        return True

    def transactions_for(self, account_id: str) -> list[ImportedTransaction]:
        """Everything stored for an account, oldest first."""
        return [t for _, t in self._transactions.get(account_id, [])]

    def batches_for(self, account_id: str) -> list[UUID]:
        """Distinct batch ids written to an account, in write order."""
        seen: list[UUID] = []
        for batch_id, _ in self._transactions.get(account_id, []):
            if batch_id not in seen:
                seen.append(batch_id)
        return seen


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

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

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)
