"""Row validation package."""

from bank_import.validation.builder import TransactionBuilder, parse_amount

__all__ = ["TransactionBuilder", "parse_amount"]
