"""
Audit Logger

DESIGN DECISION: Every import batch is logged step by step.
This provides:
1. A record of which file went into which account
2. Debugging capability when a statement imports oddly
3. The bookkeeper can see why rows were skipped or rejected

The audit logger:
- Always logs locally through structlog
- Gracefully handles storage failures (never breaks an import)
- Supports correlation IDs to trace a detect-preview-import flow
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from bank_import.models.audit import AuditEvent, AuditEventBuilder
from bank_import.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        self._storage = storage
        self._logger = structlog.get_logger("bank_import.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_import_started(
        self,
        batch_id: UUID,
        account_id: str,
        file_size: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.import_started(
            batch_id=batch_id,
            account_id=account_id,
            file_size=file_size,
            correlation_id=correlation_id,
        ))

    async def log_file_parsed(
        self,
        batch_id: UUID,
        header_count: int,
        row_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.file_parsed(
            batch_id=batch_id,
            header_count=header_count,
            row_count=row_count,
            correlation_id=correlation_id,
        ))

    async def log_mapping_detected(
        self,
        headers: list[str],
        mapping: dict[str, str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.mapping_detected(
            headers=headers,
            mapping=mapping,
            correlation_id=correlation_id,
        ))

    async def log_mapping_incomplete(
        self,
        batch_id: UUID,
        missing_fields: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.mapping_incomplete(
            batch_id=batch_id,
            missing_fields=missing_fields,
            correlation_id=correlation_id,
        ))

    async def log_rows_rejected(
        self,
        batch_id: UUID,
        rejected: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.rows_rejected(
            batch_id=batch_id,
            rejected=rejected,
            correlation_id=correlation_id,
        ))

    async def log_duplicates_skipped(
        self,
        batch_id: UUID,
        row_indices: list[int],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.duplicates_skipped(
            batch_id=batch_id,
            count=len(row_indices),
            row_indices=row_indices,
            correlation_id=correlation_id,
        ))

    async def log_preview_generated(
        self,
        batch_id: UUID,
        total: int,
        importable: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.preview_generated(
            batch_id=batch_id,
            total=total,
            importable=importable,
            correlation_id=correlation_id,
        ))

    async def log_transactions_persisted(
        self,
        batch_id: UUID,
        account_id: str,
        count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transactions_persisted(
            batch_id=batch_id,
            account_id=account_id,
            count=count,
            correlation_id=correlation_id,
        ))

    async def log_persistence_failed(
        self,
        batch_id: UUID,
        account_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.persistence_failed(
            batch_id=batch_id,
            account_id=account_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_import_completed(
        self,
        batch_id: UUID,
        counts: dict[str, int],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.import_completed(
            batch_id=batch_id,
            counts=counts,
            correlation_id=correlation_id,
        ))

    async def log_import_failed(
        self,
        batch_id: UUID,
        state: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.import_failed(
            batch_id=batch_id,
            state=state,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use one per user flow (detect mapping, preview, import) and pass
    it to every call in that flow.
    """
    return uuid4()
