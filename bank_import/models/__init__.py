"""
Data Models Package

This package contains all Pydantic models used by the import pipeline.
All data flowing through the pipeline must conform to these schemas.
"""

from bank_import.models.transaction import (
    BatchState,
    CalendarDate,
    ColumnMapping,
    DateFormat,
    DetectedMapping,
    ImportConfig,
    ImportedTransaction,
    ImportResult,
    ImportSummary,
    RawRow,
    RowError,
    RowErrorReason,
    RowOutcome,
    RowWarning,
    TransactionType,
)
from bank_import.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "BatchState",
    "CalendarDate",
    "ColumnMapping",
    "DateFormat",
    "DetectedMapping",
    "ImportConfig",
    "ImportedTransaction",
    "ImportResult",
    "ImportSummary",
    "RawRow",
    "RowError",
    "RowErrorReason",
    "RowOutcome",
    "RowWarning",
    "TransactionType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
