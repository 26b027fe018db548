"""
Main Orchestrator for Bank Import

This module ties together all the components and defines the
end-to-end flow for one statement:

    text → tokenize → map columns → build rows → deduplicate
         → categorize → persist (one write) → ImportResult

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only four things abort a batch: an unreadable file, an incomplete
  column mapping, an unknown or inactive account, and a failed store
  read or write
- Everything else (bad dates, bad amounts, duplicates) is counted and
  reported alongside the successes
- Nothing is written until the whole batch has been processed, and
  then it is written with a single call
- Every step is audited
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from bank_import.audit import AuditLogger, create_correlation_id
from bank_import.categorization import Categorizer
from bank_import.config import get_settings
from bank_import.dedup import DuplicateDetector
from bank_import.errors import (
    AccountNotFoundError,
    FormatError,
    MappingIncompleteError,
    PersistenceError,
    TransactionImportError,
)
from bank_import.models.transaction import (
    BatchState,
    ColumnMapping,
    DateFormat,
    DetectedMapping,
    ImportConfig,
    ImportedTransaction,
    ImportResult,
    RowError,
)
from bank_import.parsing import detect_column_mapping, tokenize
from bank_import.reporting import summarize
from bank_import.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    InMemoryTransactionStore,
    StorageError,
    TransactionStoreInterface,
)
from bank_import.validation import TransactionBuilder


logger = structlog.get_logger(__name__)


# Allowed state changes within one batch.
# FAILED is only reachable where a batch-fatal condition can occur.
_TRANSITIONS: dict[Optional[BatchState], frozenset[BatchState]] = {
    None: frozenset({BatchState.PARSING}),
    BatchState.PARSING: frozenset({BatchState.MAPPING, BatchState.FAILED}),
    BatchState.MAPPING: frozenset({BatchState.VALIDATING, BatchState.FAILED}),
    BatchState.VALIDATING: frozenset({BatchState.DEDUPLICATING}),
    BatchState.DEDUPLICATING: frozenset({BatchState.CATEGORIZING}),
    BatchState.CATEGORIZING: frozenset({BatchState.PERSISTING, BatchState.COMPLETED}),
    BatchState.PERSISTING: frozenset({BatchState.COMPLETED, BatchState.FAILED}),
    BatchState.COMPLETED: frozenset(),
    BatchState.FAILED: frozenset(),
}


class _BatchRun:
    """Identity and current state of one preview or import."""

    def __init__(self, account_id: str, correlation_id: UUID):
        self.batch_id = uuid4()
        self.account_id = account_id
        self.correlation_id = correlation_id
        self.state: Optional[BatchState] = None

    def enter(self, state: BatchState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid batch transition: {self.state} -> {state}")
        self.state = state


class ImportBatchProcessor:
    """
    Orchestrates the statement import flow.

    Flow:
    1. Detect → headers, best-guess mapping, sample rows (no batch yet)
    2. Preview → every stage except the write (committed=False)
    3. Import → every stage, then one append to the transaction store

    The processor holds no data between runs; each run is fully
    described by its ImportConfig and the statement text, and keeps its
    state in its own _BatchRun. One processor can serve concurrent runs.
    The state a run reached is reported on the ImportResult, or on the
    TransactionImportError it raised.
    """

    def __init__(
        self,
        store: Optional[TransactionStoreInterface] = None,
        categorizer: Optional[Categorizer] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store or InMemoryTransactionStore()
        self._categorizer = categorizer or Categorizer()
        self._audit_logger = audit_logger
        self._settings = get_settings().importer

    async def _fail(self, run: _BatchRun, error: TransactionImportError) -> None:
        failed_in = run.state
        run.enter(BatchState.FAILED)
        error.state = run.state
        error.failed_in = failed_in

        logger.error(
            "import_failed",
            batch_id=str(run.batch_id),
            state=failed_in.value,
            error=str(error),
        )
        if self._audit_logger:
            await self._audit_logger.log_import_failed(
                batch_id=run.batch_id,
                state=failed_in.value,
                error_message=str(error),
                correlation_id=run.correlation_id,
            )

    async def detect_mapping(
        self,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> DetectedMapping:
        """
        Tokenize the statement and guess the column mapping.

        This is the review step before a batch is configured, so no
        batch is started.

        Raises:
            FormatError: If the file is empty
        """
        correlation_id = correlation_id or create_correlation_id()

        headers, rows = tokenize(text)
        mapping = detect_column_mapping(headers)

        if self._audit_logger:
            await self._audit_logger.log_mapping_detected(
                headers=list(headers),
                mapping=mapping.as_field_map(),
                correlation_id=correlation_id,
            )

        return DetectedMapping(
            headers=headers,
            mapping=mapping,
            sample_rows=tuple(rows[:self._settings.preview_sample_size]),
            row_count=len(rows),
        )

    def make_config(
        self,
        account_id: str,
        mapping: ColumnMapping,
        date_format: Optional[DateFormat] = None,
        skip_duplicates: bool = True,
        categorize_transactions: bool = True,
    ) -> ImportConfig:
        """ImportConfig with the deployment's default date format filled in."""
        return ImportConfig(
            target_account_id=account_id,
            column_mapping=mapping,
            date_format=date_format or DateFormat(self._settings.default_date_format),
            skip_duplicates=skip_duplicates,
            categorize_transactions=categorize_transactions,
        )

    async def preview(
        self,
        text: str,
        config: ImportConfig,
        correlation_id: Optional[UUID] = None,
    ) -> ImportResult:
        """
        Run the batch without writing anything.

        Raises:
            FormatError: If the file is empty
            MappingIncompleteError: If a required column is not mapped
            AccountNotFoundError: If the account is unknown or inactive
            PersistenceError: If the store cannot be read
        """
        return await self._run(text, config, correlation_id, commit=False)

    async def import_statement(
        self,
        text: str,
        config: ImportConfig,
        correlation_id: Optional[UUID] = None,
    ) -> ImportResult:
        """
        Run the batch and append the accepted transactions in one write.

        Raises:
            FormatError: If the file is empty
            MappingIncompleteError: If a required column is not mapped
            AccountNotFoundError: If the account is unknown or inactive
            PersistenceError: If the store cannot be read or written.
                Nothing is imported in that case.
        """
        return await self._run(text, config, correlation_id, commit=True)

    async def _run(
        self,
        text: str,
        config: ImportConfig,
        correlation_id: Optional[UUID],
        commit: bool,
    ) -> ImportResult:
        run = _BatchRun(config.target_account_id, correlation_id or create_correlation_id())

        logger.info(
            "import_started",
            batch_id=str(run.batch_id),
            account_id=run.account_id,
            commit=commit,
        )
        if self._audit_logger:
            await self._audit_logger.log_import_started(
                batch_id=run.batch_id,
                account_id=run.account_id,
                file_size=len(text.encode("utf-8")),
                correlation_id=run.correlation_id,
            )

        # Step 1: Parse
        run.enter(BatchState.PARSING)
        try:
            headers, rows = tokenize(text)
        except FormatError as e:
            await self._fail(run, e)
            raise

        if self._audit_logger:
            await self._audit_logger.log_file_parsed(
                batch_id=run.batch_id,
                header_count=len(headers),
                row_count=len(rows),
                correlation_id=run.correlation_id,
            )

        # Step 2: Check the mapping and the account, and load what the
        # account already holds
        run.enter(BatchState.MAPPING)
        missing = config.column_mapping.missing_fields(headers)
        if missing:
            error = MappingIncompleteError(missing)
            if self._audit_logger:
                await self._audit_logger.log_mapping_incomplete(
                    batch_id=run.batch_id,
                    missing_fields=missing,
                    correlation_id=run.correlation_id,
                )
            await self._fail(run, error)
            raise error

        try:
            account_ok = await self._store.account_exists(run.account_id)
        except StorageError as e:
            error = PersistenceError(f"Could not look up bank account: {e}")
            await self._fail(run, error)
            raise error from e
        if not account_ok:
            error = AccountNotFoundError(run.account_id)
            await self._fail(run, error)
            raise error

        prior_fingerprints: set[str] = set()
        if config.skip_duplicates:
            try:
                prior_fingerprints = await self._store.list_fingerprints(run.account_id)
            except StorageError as e:
                error = PersistenceError(f"Could not read existing transactions: {e}")
                await self._fail(run, error)
                raise error from e

        # Step 3: Build each row (never raises for a bad row)
        run.enter(BatchState.VALIDATING)
        builder = TransactionBuilder(headers, config.column_mapping, config.date_format)
        accepted: list[ImportedTransaction] = []
        row_errors: list[RowError] = []
        for index, row in enumerate(rows):
            outcome = builder.build(row, index)
            if isinstance(outcome, RowError):
                row_errors.append(outcome)
            else:
                accepted.append(outcome)

        if row_errors and self._audit_logger:
            await self._audit_logger.log_rows_rejected(
                batch_id=run.batch_id,
                rejected=[
                    {"row_index": e.row_index, "reason": e.reason.value, "detail": e.detail}
                    for e in row_errors
                ],
                correlation_id=run.correlation_id,
            )

        # Step 4: Deduplicate (first occurrence wins)
        run.enter(BatchState.DEDUPLICATING)
        duplicates: list[ImportedTransaction] = []
        if config.skip_duplicates:
            accepted, duplicates = DuplicateDetector(prior_fingerprints).partition(accepted)
            if duplicates and self._audit_logger:
                await self._audit_logger.log_duplicates_skipped(
                    batch_id=run.batch_id,
                    row_indices=[t.source_row_index for t in duplicates],
                    correlation_id=run.correlation_id,
                )

        # Step 5: Categorize
        run.enter(BatchState.CATEGORIZING)
        if config.categorize_transactions:
            accepted = [self._categorizer.categorize(t) for t in accepted]

        warnings = [w for t in accepted for w in builder.warnings_for(t)]

        # Step 6: Persist, once, with the whole accepted set
        if commit:
            run.enter(BatchState.PERSISTING)
            if accepted:
                await self._persist(run, accepted)
        elif self._audit_logger:
            await self._audit_logger.log_preview_generated(
                batch_id=run.batch_id,
                total=len(rows),
                importable=len(accepted),
                correlation_id=run.correlation_id,
            )

        run.enter(BatchState.COMPLETED)

        result = ImportResult(
            batch_id=run.batch_id,
            account_id=run.account_id,
            state=run.state,
            committed=commit,
            total=len(rows),
            imported=len(accepted),
            skipped=len(duplicates),
            errors=len(row_errors),
            summary=summarize(accepted),
            transactions=tuple(accepted),
            duplicates=tuple(duplicates),
            row_errors=tuple(row_errors),
            warnings=tuple(warnings),
        )

        counts = {
            "total": result.total,
            "imported": result.imported,
            "skipped": result.skipped,
            "errors": result.errors,
        }
        logger.info("import_completed", batch_id=str(run.batch_id), committed=commit, **counts)
        if commit and self._audit_logger:
            await self._audit_logger.log_import_completed(
                batch_id=run.batch_id,
                counts=counts,
                correlation_id=run.correlation_id,
            )

        return result

    async def _persist(
        self,
        run: _BatchRun,
        transactions: list[ImportedTransaction],
    ) -> None:
        try:
            written = await self._store.append_transactions(
                run.account_id,
                transactions,
                run.batch_id,
            )
        except StorageError as e:
            written = False
            reason = str(e)
        else:
            reason = "Transaction store rejected the batch"

        if not written:
            error = PersistenceError(f"Failed to save transactions: {reason}")
            if self._audit_logger:
                await self._audit_logger.log_persistence_failed(
                    batch_id=run.batch_id,
                    account_id=run.account_id,
                    error_message=reason,
                    correlation_id=run.correlation_id,
                )
            await self._fail(run, error)
            raise error

        if self._audit_logger:
            await self._audit_logger.log_transactions_persisted(
                batch_id=run.batch_id,
                account_id=run.account_id,
                count=len(transactions),
                correlation_id=run.correlation_id,
            )


def create_app_components(
    use_storage: bool = True,
) -> tuple[ImportBatchProcessor, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for testing without storage.

    Returns:
        (processor, sheets_client)
    """
    sheets_client = None
    store: Optional[TransactionStoreInterface] = None
    audit_logger = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsTransactionStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue with in-memory storage
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            store = None
            audit_logger = AuditLogger()  # Local-only logging
    else:
        audit_logger = AuditLogger()  # Local-only logging

    processor = ImportBatchProcessor(
        store=store,
        audit_logger=audit_logger,
    )

    return processor, sheets_client
