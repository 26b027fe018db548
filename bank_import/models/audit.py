"""
Audit Models for Bank Import

Every batch leaves a trail: when it started, what the file looked like,
which rows were rejected or skipped, and whether the write succeeded.
Events for one batch share the batch id as entity id and a correlation id.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit, one per pipeline milestone."""
    # Parsing and mapping
    IMPORT_STARTED = "import_started"
    FILE_PARSED = "file_parsed"
    MAPPING_DETECTED = "mapping_detected"
    MAPPING_INCOMPLETE = "mapping_incomplete"

    # Row outcomes
    ROWS_REJECTED = "rows_rejected"
    DUPLICATES_SKIPPED = "duplicates_skipped"

    # Review and persistence
    PREVIEW_GENERATED = "preview_generated"
    TRANSACTIONS_PERSISTED = "transactions_persisted"
    PERSISTENCE_FAILED = "persistence_failed"

    # Batch end
    IMPORT_COMPLETED = "import_completed"
    IMPORT_FAILED = "import_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - which batch is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'import_batch')"
    )
    entity_id: Optional[UUID] = None
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


_BATCH = "import_batch"


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.import_started(batch_id, account_id, 120, cid)
        await audit_logger.log(event)
    """

    @staticmethod
    def import_started(
        batch_id: UUID,
        account_id: str,
        file_size: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_STARTED,
            entity_type=_BATCH,
            entity_id=batch_id,
            correlation_id=correlation_id,
            description=f"Import started for account {account_id}",
            details={"account_id": account_id, "file_size": file_size},
        )

    @staticmethod
    def file_parsed(
        batch_id: UUID,
        header_count: int,
        row_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FILE_PARSED,
            entity_type=_BATCH,
            entity_id=batch_id,
            correlation_id=correlation_id,
            description=f"Statement parsed: {row_count} data rows",
            details={"header_count": header_count, "row_count": row_count},
        )

    @staticmethod
    def mapping_detected(
        headers: list[str],
        mapping: dict[str, str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MAPPING_DETECTED,
            correlation_id=correlation_id,
            description=f"Auto-detected {len(mapping)} of 5 columns",
            details={"headers": headers, "mapping": mapping},
        )

    @staticmethod
    def mapping_incomplete(
        batch_id: UUID,
        missing_fields: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MAPPING_INCOMPLETE,
            severity=AuditSeverity.ERROR,
            entity_type=_BATCH,
            entity_id=batch_id,
            correlation_id=correlation_id,
            description="Required columns are not mapped",
            details={"missing_fields": missing_fields},
        )

    @staticmethod
    def rows_rejected(
        batch_id: UUID,
        rejected: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROWS_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=_BATCH,
            entity_id=batch_id,
            correlation_id=correlation_id,
            description=f"{len(rejected)} rows could not be imported",
            details={"rows": rejected},
        )

    @staticmethod
    def duplicates_skipped(
        batch_id: UUID,
        count: int,
        row_indices: list[int],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATES_SKIPPED,
            entity_type=_BATCH,
            entity_id=batch_id,
            correlation_id=correlation_id,
            description=f"{count} duplicate transactions skipped",
            details={"row_indices": row_indices},
        )

    @staticmethod
    def preview_generated(
        batch_id: UUID,
        total: int,
        importable: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREVIEW_GENERATED,
            entity_type=_BATCH,
            entity_id=batch_id,
            correlation_id=correlation_id,
            description=f"Preview: {importable} of {total} rows importable",
            details={"total": total, "importable": importable},
        )

    @staticmethod
    def transactions_persisted(
        batch_id: UUID,
        account_id: str,
        count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_PERSISTED,
            entity_type=_BATCH,
            entity_id=batch_id,
            correlation_id=correlation_id,
            description=f"{count} transactions written to account {account_id}",
            details={"account_id": account_id, "count": count},
        )

    @staticmethod
    def persistence_failed(
        batch_id: UUID,
        account_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=_BATCH,
            entity_id=batch_id,
            correlation_id=correlation_id,
            description=f"Could not write transactions to account {account_id}",
            details={"account_id": account_id},
            error_message=error_message,
        )

    @staticmethod
    def import_completed(
        batch_id: UUID,
        counts: dict[str, int],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            entity_type=_BATCH,
            entity_id=batch_id,
            correlation_id=correlation_id,
            description=(
                f"Import completed: {counts.get('imported', 0)} imported, "
                f"{counts.get('skipped', 0)} skipped, {counts.get('errors', 0)} errors"
            ),
            details=counts,
        )

    @staticmethod
    def import_failed(
        batch_id: UUID,
        state: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=_BATCH,
            entity_id=batch_id,
            correlation_id=correlation_id,
            description=f"Import failed while {state}",
            details={"state": state},
            error_message=error_message,
        )
