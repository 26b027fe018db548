"""Statement parsing package: tokenizer, column mapper, date normalizer."""

from bank_import.parsing.column_mapper import (
    FIELD_KEYWORDS,
    column_indices,
    detect_column_mapping,
)
from bank_import.parsing.dates import format_date, parse_date
from bank_import.parsing.tokenizer import read_statement_file, split_line, tokenize

__all__ = [
    "FIELD_KEYWORDS",
    "column_indices",
    "detect_column_mapping",
    "format_date",
    "parse_date",
    "read_statement_file",
    "split_line",
    "tokenize",
]
