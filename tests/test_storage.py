"""Tests for storage backends and the audit logger."""

import asyncio
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

from bank_import.audit import AuditLogger, create_correlation_id
from bank_import.models.audit import AuditEventBuilder, AuditEventType
from bank_import.models.transaction import ImportedTransaction
from bank_import.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsTransactionStore,
    InMemoryAuditStorage,
    InMemoryTransactionStore,
    StorageError,
)
from bank_import.services.storage.google_sheets import ACCOUNT_COLUMNS, TRANSACTION_COLUMNS


def make_transaction(row_index: int, fingerprint: str) -> ImportedTransaction:
    return ImportedTransaction(
        date=date(2024, 3, 1),
        description="Coffee",
        amount=Decimal("-4.50"),
        category="Food & Dining",
        fingerprint=fingerprint,
        source_row_index=row_index,
    )


class TestInMemoryTransactionStore:
    """Tests for InMemoryTransactionStore."""

    def test_append_and_list(self):
        """Test that appended fingerprints are listed for the account."""
        store = InMemoryTransactionStore()
        batch_id = uuid4()

        written = asyncio.run(store.append_transactions(
            "acc-1", [make_transaction(0, "a"), make_transaction(1, "b")], batch_id
        ))

        assert written is True
        assert asyncio.run(store.list_fingerprints("acc-1")) == {"a", "b"}
        assert store.batches_for("acc-1") == [batch_id]

    def test_accounts_are_separate(self):
        """Test that fingerprints do not leak across accounts."""
        store = InMemoryTransactionStore()
        asyncio.run(store.append_transactions("acc-1", [make_transaction(0, "a")], uuid4()))

        assert asyncio.run(store.list_fingerprints("acc-2")) == set()

    def test_account_exists(self):
        """Test that only registered, active accounts exist."""
        store = InMemoryTransactionStore(accounts=["acc-1"])
        store.add_account("acc-closed", active=False)

        assert asyncio.run(store.account_exists("acc-1")) is True
        assert asyncio.run(store.account_exists("acc-closed")) is False
        assert asyncio.run(store.account_exists("acc-unknown")) is False

    def test_failure_writes_nothing(self):
        """Test that a failing append leaves the store unchanged."""
        store = InMemoryTransactionStore(fail_with=RuntimeError("offline"))

        with pytest.raises(StorageError, match="offline"):
            asyncio.run(store.append_transactions("acc-1", [make_transaction(0, "a")], uuid4()))

        assert store.transactions_for("acc-1") == []
        assert store.append_calls == 1


class TestGoogleSheetsTransactionStore:
    """Tests for the Sheets store with a mocked client."""

    def test_append_is_one_request(self):
        """Test that a batch becomes a single append_rows call."""
        client = MagicMock()
        sheet = client.get_transactions_sheet.return_value
        store = GoogleSheetsTransactionStore(client)
        batch_id = uuid4()

        written = asyncio.run(store.append_transactions(
            "acc-1", [make_transaction(0, "a"), make_transaction(1, "b")], batch_id
        ))

        assert written is True
        sheet.append_rows.assert_called_once()
        rows = sheet.append_rows.call_args.args[0]
        assert len(rows) == 2
        assert len(rows[0]) == len(TRANSACTION_COLUMNS)
        assert rows[0][0] == "acc-1"
        assert rows[0][1] == str(batch_id)
        assert rows[0][5] == "-4.50"
        assert rows[0][6] == "debit"
        assert rows[1][11] == "b"
        assert sheet.append_rows.call_args.kwargs["value_input_option"] == "RAW"
        assert datetime.fromisoformat(rows[0][2]).tzinfo is not None

    def test_empty_batch_makes_no_request(self):
        """Test that nothing is sent for an empty batch."""
        client = MagicMock()
        store = GoogleSheetsTransactionStore(client)

        assert asyncio.run(store.append_transactions("acc-1", [], uuid4())) is True
        client.get_transactions_sheet.assert_not_called()

    def test_list_fingerprints_filters_account(self):
        """Test that only the requested account's fingerprints are returned."""
        client = MagicMock()
        store = GoogleSheetsTransactionStore(client)
        imported_at = datetime(2024, 3, 1)
        row_a = store._transaction_to_row("acc-1", uuid4(), imported_at, make_transaction(0, "a"))
        row_b = store._transaction_to_row("acc-2", uuid4(), imported_at, make_transaction(0, "b"))
        client.get_transactions_sheet.return_value.get_all_values.return_value = [
            TRANSACTION_COLUMNS,
            [str(cell) for cell in row_a],
            [str(cell) for cell in row_b],
        ]

        assert asyncio.run(store.list_fingerprints("acc-1")) == {"a"}

    def test_account_exists_reads_accounts_sheet(self):
        """Test the active flag on the accounts sheet."""
        client = MagicMock()
        client.get_accounts_sheet.return_value.get_all_values.return_value = [
            ACCOUNT_COLUMNS,
            ["acc-1", "Everyday", "TRUE"],
            ["acc-2", "Old savings", "false"],
            ["acc-3"],
        ]
        store = GoogleSheetsTransactionStore(client)

        assert asyncio.run(store.account_exists("acc-1")) is True
        assert asyncio.run(store.account_exists("acc-2")) is False
        assert asyncio.run(store.account_exists("acc-3")) is False
        assert asyncio.run(store.account_exists("acc-9")) is False


class TestGoogleSheetsAuditStorage:
    """Tests for the Sheets audit storage with a mocked client."""

    def test_events_round_trip(self):
        """Test that stored rows are read back as events."""
        correlation_id = create_correlation_id()
        event = AuditEventBuilder.duplicates_skipped(
            batch_id=uuid4(),
            count=2,
            row_indices=[3, 4],
            correlation_id=correlation_id,
        )
        client = MagicMock()
        client.get_audit_sheet.return_value.get_all_values.return_value = [
            ["header"],
            event.to_sheets_row(),
        ]
        storage = GoogleSheetsAuditStorage(client)

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))

        assert len(events) == 1
        assert events[0].event_type == AuditEventType.DUPLICATES_SKIPPED
        assert events[0].details == {"row_indices": [3, 4]}
        assert events[0].timestamp == event.timestamp

    def test_naive_timestamp_read_as_utc(self):
        """Test that a stored timestamp without an offset is taken as UTC."""
        event = AuditEventBuilder.file_parsed(uuid4(), 5, 10, uuid4())
        row = event.to_sheets_row()
        row[1] = "2024-03-01T09:30:00"
        client = MagicMock()
        client.get_audit_sheet.return_value.get_all_values.return_value = [["header"], row]
        storage = GoogleSheetsAuditStorage(client)

        events = asyncio.run(storage.get_events_by_correlation_id(event.correlation_id))

        assert events[0].timestamp == datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)

    def test_append_failure_returns_false(self):
        """Test that a failed audit write is reported, not raised."""
        client = MagicMock()
        client.get_audit_sheet.return_value.append_row.side_effect = RuntimeError("quota")
        storage = GoogleSheetsAuditStorage(client)
        event = AuditEventBuilder.file_parsed(uuid4(), 5, 10, uuid4())

        assert asyncio.run(storage.append_event(event)) is False


class BrokenAuditStorage(AuditStorageInterface):
    """Audit storage that always fails."""

    async def append_event(self, event):
        raise RuntimeError("disk full")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_events_by_entity(self, entity_type, entity_id):
        return []


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_logs_to_storage(self):
        """Test that events reach the configured storage."""
        storage = InMemoryAuditStorage()
        audit_logger = AuditLogger(storage)
        batch_id = uuid4()

        asyncio.run(audit_logger.log_import_started(batch_id, "acc-1", 120, uuid4()))

        assert len(storage.events) == 1
        assert storage.events[0].entity_id == batch_id

    def test_local_only(self):
        """Test that no storage is not an error."""
        event = AuditEventBuilder.file_parsed(uuid4(), 5, 10, uuid4())
        assert asyncio.run(AuditLogger().log(event)) is True

    def test_storage_failure_does_not_raise(self):
        """Test that audit failures never break an import."""
        audit_logger = AuditLogger(BrokenAuditStorage())
        event = AuditEventBuilder.file_parsed(uuid4(), 5, 10, uuid4())

        assert asyncio.run(audit_logger.log(event)) is False

    def test_events_by_entity(self):
        """Test lookup of one batch's events."""
        storage = InMemoryAuditStorage()
        audit_logger = AuditLogger(storage)
        batch_id = uuid4()
        correlation_id = uuid4()

        asyncio.run(audit_logger.log_file_parsed(batch_id, 5, 10, correlation_id))
        asyncio.run(audit_logger.log_file_parsed(uuid4(), 5, 10, correlation_id))

        events = asyncio.run(storage.get_events_by_entity("import_batch", batch_id))
        assert len(events) == 1
