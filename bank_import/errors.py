"""
Import Exceptions

Only batch-level problems are exceptions that reach the caller.
Row-level problems are raised by the leaf parsers below and turned
into RowError data by the transaction builder.
"""

from typing import Sequence


class TransactionImportError(Exception):
    """
    Base exception for a batch that could not be imported.

    The batch processor sets `state` to the state the run reached
    (always FAILED) and `failed_in` to the state it failed from.
    """
    state = None
    failed_in = None


class FormatError(TransactionImportError):
    """The statement file is empty or unreadable."""
    pass


class MappingIncompleteError(TransactionImportError):
    """A required column (date, description, amount) is not mapped."""

    def __init__(self, missing_fields: Sequence[str]):
        self.missing_fields = tuple(missing_fields)
        super().__init__(
            "Column mapping is incomplete, missing: " + ", ".join(self.missing_fields)
        )


class PersistenceError(TransactionImportError):
    """The final write of the batch failed. Nothing was imported."""
    pass


class AccountNotFoundError(TransactionImportError):
    """The target bank account does not exist or is not active."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Bank account not found or inactive: {account_id}")


class DateParseError(ValueError):
    """A cell is not a valid date in the configured format."""
    pass


class AmountParseError(ValueError):
    """A cell is not a plain decimal number."""
    pass
