"""
Transaction Builder

Turns one raw statement row into an ImportedTransaction or a RowError.

HARD FIELDS (reject the row):
- date: must parse in the batch's date format
- description: must be non-empty after trimming
- amount: must be a plain, non-zero decimal (optional leading minus,
  ASCII digits, optional single decimal point)

SOFT FIELDS (dropped on failure, row still accepted):
- balance: same number format as amount
- reference: any non-empty text

IMPORTANT: Nothing in here raises for a bad row. Parser exceptions are
caught at this boundary and returned as RowError data, so one broken
line can never stop the rest of the statement.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from bank_import.config import get_settings
from bank_import.dedup import compute_fingerprint
from bank_import.errors import AmountParseError, DateParseError
from bank_import.models.transaction import (
    ColumnMapping,
    DateFormat,
    ImportedTransaction,
    RawRow,
    RowError,
    RowErrorReason,
    RowOutcome,
    RowWarning,
)
from bank_import.parsing.column_mapper import column_indices
from bank_import.parsing.dates import parse_date


_PLAIN_DECIMAL = re.compile(r"^-?(\d+(\.\d*)?|\.\d+)$", re.ASCII)


def parse_amount(value: str) -> Decimal:
    """
    Parse a locale-invariant decimal number.

    Rejects thousands separators, currency symbols, exponents, NaN and
    Infinity - anything Decimal() would accept that a bank amount is not.

    Raises:
        AmountParseError: If the value is not a plain decimal
    """
    cleaned = value.strip()
    if not _PLAIN_DECIMAL.match(cleaned):
        raise AmountParseError(f"Not a decimal amount: {value!r}")
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        raise AmountParseError(f"Not a decimal amount: {value!r}")


class TransactionBuilder:
    """
    Builds transactions from rows of one statement.

    Bound to the statement's headers, the column mapping and the date
    format, so the column lookup is done once per batch.
    """

    def __init__(
        self,
        headers: Sequence[str],
        mapping: ColumnMapping,
        date_format: DateFormat,
    ):
        self._indices = column_indices(headers, mapping)
        self._date_format = DateFormat(date_format)
        self._settings = get_settings().importer

    def _cell(self, row: RawRow, field_name: str) -> str:
        """Mapped cell, or empty for an unmapped field or a short row."""
        index = self._indices.get(field_name)
        if index is None or index >= len(row):
            return ""
        return row[index].strip()

    def build(self, row: RawRow, row_index: int) -> RowOutcome:
        """Build one row. Returns ImportedTransaction or RowError."""
        row = tuple(row)

        def reject(reason: RowErrorReason, detail: Optional[str] = None) -> RowError:
            return RowError(row_index=row_index, raw_cells=row, reason=reason, detail=detail)

        try:
            txn_date = parse_date(self._cell(row, "date"), self._date_format)
        except DateParseError as e:
            return reject(RowErrorReason.INVALID_DATE, str(e))

        description = self._cell(row, "description")
        if not description:
            return reject(RowErrorReason.MISSING_DESCRIPTION)

        try:
            amount = parse_amount(self._cell(row, "amount"))
        except AmountParseError as e:
            return reject(RowErrorReason.INVALID_AMOUNT, str(e))
        if amount == 0:
            return reject(RowErrorReason.INVALID_AMOUNT, "Amount must not be zero")

        balance = None
        balance_cell = self._cell(row, "balance")
        if balance_cell:
            try:
                balance = parse_amount(balance_cell)
            except AmountParseError:
                balance = None

        reference = self._cell(row, "reference") or None

        return ImportedTransaction(
            date=txn_date,
            description=description,
            amount=amount,
            balance=balance,
            reference=reference,
            fingerprint=compute_fingerprint(txn_date, amount, description, reference),
            source_row_index=row_index,
        )

    def warnings_for(self, transaction: ImportedTransaction) -> list[RowWarning]:
        """Non-blocking checks on an accepted transaction."""
        warnings = []

        threshold = Decimal(str(self._settings.large_amount_threshold))
        if abs(transaction.amount) > threshold:
            warnings.append(RowWarning(
                row_index=transaction.source_row_index,
                field="amount",
                message=f"Large transaction amount ({transaction.amount}) - please verify",
            ))

        if len(transaction.description) > self._settings.max_description_length:
            warnings.append(RowWarning(
                row_index=transaction.source_row_index,
                field="description",
                message="Description is very long and may be truncated",
            ))

        return warnings
