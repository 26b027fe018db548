"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the hosted store because:
1. The bookkeeper can view imported transactions directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- No transactions: we rely on a single append_rows call per batch,
  which the Sheets API applies as one request
- Limited query capabilities (we filter by account in Python)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing the pipeline.
"""

import json
from datetime import datetime, timezone
from typing import Optional, Sequence
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from bank_import.config import GoogleSheetsSettings, get_settings
from bank_import.models.audit import AuditEvent, AuditEventType, AuditSeverity
from bank_import.models.transaction import ImportedTransaction
from bank_import.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StorageError,
    TransactionStoreInterface,
)


logger = structlog.get_logger(__name__)


# Column layout of the transactions sheet
TRANSACTION_COLUMNS = [
    "account_id",
    "batch_id",
    "imported_at",
    "transaction_date",
    "description",
    "amount",
    "type",
    "balance",
    "reference",
    "category",
    "merchant",
    "fingerprint",
    "source_row_index",
]

_ACCOUNT_COL = TRANSACTION_COLUMNS.index("account_id")
_FINGERPRINT_COL = TRANSACTION_COLUMNS.index("fingerprint")

# Column layout of the accounts sheet, maintained by the bookkeeper
ACCOUNT_COLUMNS = [
    "account_id",
    "name",
    "is_active",
]

_ACTIVE_VALUES = {"true", "1", "yes"}

# Column layout of the audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=5000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,
        )

    def get_accounts_sheet(self) -> gspread.Worksheet:
        """Get or create the bank accounts worksheet."""
        return self._get_or_create_sheet(
            self._settings.accounts_sheet_name,
            ACCOUNT_COLUMNS,
            rows=100,
        )


class GoogleSheetsTransactionStore(TransactionStoreInterface):
    """
    Google Sheets implementation of the transaction store.

    One transaction per row, all accounts in one worksheet.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _transaction_to_row(
        account_id: str,
        batch_id: UUID,
        imported_at: datetime,
        transaction: ImportedTransaction,
    ) -> list:
        """Convert an ImportedTransaction to a spreadsheet row."""
        return [
            account_id,
            str(batch_id),
            imported_at.isoformat(),
            transaction.date.isoformat(),
            transaction.description,
            str(transaction.amount),
            transaction.transaction_type.value,
            str(transaction.balance) if transaction.balance is not None else "",
            transaction.reference or "",
            transaction.category or "",
            transaction.merchant or "",
            transaction.fingerprint,
            transaction.source_row_index,
        ]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def account_exists(self, account_id: str) -> bool:
        """Look the account up in the accounts sheet."""
        try:
            sheet = self._client.get_accounts_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to read bank accounts: {e}")

        for row in all_rows:
            if len(row) < len(ACCOUNT_COLUMNS) or row[0] != account_id:
                continue
            return row[2].strip().lower() in _ACTIVE_VALUES
        return False

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def list_fingerprints(self, account_id: str) -> set[str]:
        """Fingerprints stored for one account."""
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to read transactions: {e}")

        return {
            row[_FINGERPRINT_COL]
            for row in all_rows
            if len(row) > _FINGERPRINT_COL
            and row[_ACCOUNT_COL] == account_id
            and row[_FINGERPRINT_COL]
        }

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_transactions(
        self,
        account_id: str,
        transactions: Sequence[ImportedTransaction],
        batch_id: UUID,
    ) -> bool:
        """Append the whole batch with a single append_rows request."""
        if not transactions:
            return True

        imported_at = datetime.now(timezone.utc)
        rows = [
            self._transaction_to_row(account_id, batch_id, imported_at, t)
            for t in transactions
        ]
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_rows(rows, value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to append transactions: {e}")

        logger.info(
            "sheets_transactions_appended",
            account_id=account_id,
            batch_id=str(batch_id),
            count=len(rows),
        )
        return True


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        timestamp = datetime.fromisoformat(safe_get(1))
        if timestamp.tzinfo is None:
            # Rows written before timestamps carried an offset are UTC
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=timestamp,
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break an import
            logger.warning("audit_sheet_write_failed", error=str(e))
            return False

    def _matching_events(self, predicate) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and predicate(row):
                try:
                    events.append(self._row_to_event(row))
                except ValueError as e:
                    logger.warning("audit_row_unreadable", error=str(e), row=row[:1])
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        return self._matching_events(
            lambda row: len(row) > 6 and row[6] == str(correlation_id)
        )

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        return self._matching_events(
            lambda row: len(row) > 5 and row[4] == entity_type and row[5] == str(entity_id)
        )
