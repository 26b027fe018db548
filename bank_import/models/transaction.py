"""
Core Data Models for Bank Import

These models define the schemas for everything flowing through the
import pipeline: the column mapping, the per-batch configuration, the
transactions built from rows, the row-level errors, and the final result.

DESIGN DECISION: Transactions, row errors and results are frozen.
A stage that wants to change a transaction (e.g. categorization) makes
a copy, so an earlier stage's output can never be mutated behind its back.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional, Sequence, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


CalendarDate = date

# One data row of the statement, positionally aligned to the header row
RawRow = tuple[str, ...]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class DateFormat(str, Enum):
    """
    Supported statement date formats.

    The caller picks one for the whole file. We never guess it from content.
    """
    DD_MM_YYYY = "DD/MM/YYYY"
    MM_DD_YYYY = "MM/DD/YYYY"
    YYYY_MM_DD = "YYYY-MM-DD"


class TransactionType(str, Enum):
    """Direction of money movement, derived from the amount sign."""
    CREDIT = "credit"
    DEBIT = "debit"


class RowErrorReason(str, Enum):
    """Why a row was rejected."""
    INVALID_DATE = "invalid date"
    INVALID_AMOUNT = "invalid amount"
    MISSING_DESCRIPTION = "missing description"


class BatchState(str, Enum):
    """
    Import batch lifecycle.

    FAILED is reachable from PARSING, MAPPING and PERSISTING only.
    Everything between degrades per row.
    """
    PARSING = "parsing"
    MAPPING = "mapping"
    VALIDATING = "validating"
    DEDUPLICATING = "deduplicating"
    CATEGORIZING = "categorizing"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# COLUMN MAPPING AND CONFIGURATION
# =============================================================================

class ColumnMapping(BaseModel):
    """
    Which header holds which transaction field.

    Required fields start out empty when auto-detection finds no
    matching header; the user fills them in before the batch runs.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("date", "description", "amount")

    date: str = Field(default="", description="Header of the date column")
    description: str = Field(default="", description="Header of the description column")
    amount: str = Field(default="", description="Header of the signed amount column")
    balance: Optional[str] = Field(default=None, description="Header of the running balance column")
    reference: Optional[str] = Field(default=None, description="Header of the reference column")

    @property
    def is_complete(self) -> bool:
        """True when every required field names a header."""
        return all(getattr(self, name) for name in self.REQUIRED_FIELDS)

    def missing_fields(self, headers: Optional[Sequence[str]] = None) -> list[str]:
        """
        Required fields that are empty, or not among `headers` when given.
        """
        missing = []
        for name in self.REQUIRED_FIELDS:
            value = getattr(self, name)
            if not value or (headers is not None and value not in headers):
                missing.append(name)
        return missing

    def override(self, **fields: Optional[str]) -> "ColumnMapping":
        """Return a copy with the user's choices applied."""
        return ColumnMapping.model_validate({**self.model_dump(), **fields})

    def as_field_map(self) -> dict[str, str]:
        """Mapped fields only: {field_name: header}."""
        return {name: header for name, header in self.model_dump().items() if header}


class ImportConfig(BaseModel):
    """
    Caller-supplied settings for one batch.

    Owned by a single import run and never persisted.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    target_account_id: str = Field(
        ...,
        min_length=1,
        description="Bank account the transactions are imported into"
    )
    column_mapping: ColumnMapping
    date_format: DateFormat = Field(
        default=DateFormat.DD_MM_YYYY,
        description="Format of every date cell in the file"
    )
    skip_duplicates: bool = Field(
        default=True,
        description="Exclude transactions already seen in this batch or the account"
    )
    categorize_transactions: bool = Field(
        default=True,
        description="Run the categorizer over accepted transactions"
    )


# =============================================================================
# ROW OUTCOMES
# =============================================================================

class ImportedTransaction(BaseModel):
    """
    A transaction built from one statement row.

    The sign of `amount` is the debit/credit direction.
    `fingerprint` depends only on date, amount, normalized description
    and reference, so it is stable across re-imports.
    """
    model_config = ConfigDict(frozen=True)

    date: CalendarDate
    description: str = Field(..., min_length=1)
    amount: Decimal
    balance: Optional[Decimal] = None
    reference: Optional[str] = None
    category: Optional[str] = None
    merchant: Optional[str] = None
    fingerprint: str = Field(..., min_length=1)
    source_row_index: int = Field(
        ...,
        ge=0,
        description="Zero-based position of the row among the file's data rows"
    )

    @field_validator("amount")
    @classmethod
    def amount_not_zero(cls, v: Decimal) -> Decimal:
        """A zero amount moves no money and has no direction."""
        if v == 0:
            raise ValueError("Amount must not be zero")
        return v

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType.CREDIT if self.amount > 0 else TransactionType.DEBIT


class RowError(BaseModel):
    """A row that could not be turned into a transaction. Never fatal."""
    model_config = ConfigDict(frozen=True)

    row_index: int = Field(..., ge=0)
    raw_cells: RawRow
    reason: RowErrorReason
    detail: Optional[str] = Field(
        default=None,
        description="The offending value or parser message"
    )


class RowWarning(BaseModel):
    """Something worth a second look on an accepted row."""
    model_config = ConfigDict(frozen=True)

    row_index: int = Field(..., ge=0)
    field: str
    message: str


# Tagged outcome of building one row
RowOutcome = Union[ImportedTransaction, RowError]


# =============================================================================
# RESULTS
# =============================================================================

class DetectedMapping(BaseModel):
    """Headers, best-guess mapping and sample rows for the review step."""
    model_config = ConfigDict(frozen=True)

    headers: tuple[str, ...]
    mapping: ColumnMapping
    sample_rows: tuple[RawRow, ...] = ()
    row_count: int = Field(..., ge=0)

    @property
    def is_complete(self) -> bool:
        return not self.mapping.missing_fields(self.headers)


class ImportSummary(BaseModel):
    """Totals over the accepted transactions, for the summary screen."""
    model_config = ConfigDict(frozen=True)

    total_credits: Decimal = Decimal("0")
    total_debits: Decimal = Decimal("0")
    net_amount: Decimal = Decimal("0")
    category_counts: dict[str, int] = Field(default_factory=dict)
    categorized_count: int = Field(default=0, ge=0)
    earliest: Optional[date] = None
    latest: Optional[date] = None


class ImportResult(BaseModel):
    """
    Outcome of one batch.

    Produced once, at the end of the run. `committed` is False for a
    preview, where nothing was written.
    """
    model_config = ConfigDict(frozen=True)

    batch_id: UUID = Field(default_factory=uuid4)
    account_id: str
    state: BatchState = BatchState.COMPLETED
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    committed: bool

    total: int = Field(..., ge=0)
    imported: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    errors: int = Field(..., ge=0)
    summary: ImportSummary

    transactions: tuple[ImportedTransaction, ...] = ()
    duplicates: tuple[ImportedTransaction, ...] = ()
    row_errors: tuple[RowError, ...] = ()
    warnings: tuple[RowWarning, ...] = ()

    @property
    def has_errors(self) -> bool:
        return self.errors > 0
