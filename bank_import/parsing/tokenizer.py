"""
Statement Tokenizer

Splits raw statement text into a header row and data rows of string cells.

KNOWN LIMITATION: cells are split on every comma. Quoted cells with an
embedded comma ("Smith, J") are NOT supported. Bank exports we target
never produce them, and a full CSV dialect parser is out of scope.
"""

import re
from pathlib import Path
from typing import Optional

import structlog

from bank_import.config import get_settings
from bank_import.errors import FormatError
from bank_import.models.transaction import RawRow


logger = structlog.get_logger(__name__)

_BOM = "\ufeff"
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _clean_cell(cell: str) -> str:
    """Trim whitespace and one pair of surrounding double quotes."""
    value = cell.strip()
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        value = value[1:-1].strip()
    return value


def split_line(line: str) -> RawRow:
    """Split one line into cleaned cells."""
    return tuple(_clean_cell(cell) for cell in line.split(","))


def tokenize(text: str) -> tuple[RawRow, list[RawRow]]:
    """
    Split statement text into (headers, rows).

    Lines end at CRLF, CR or LF only. Other Unicode line separators
    stay inside their cell. Blank lines are discarded. The first
    remaining line is the header row.

    Raises:
        FormatError: If the text has no non-blank lines
    """
    if text.startswith(_BOM):
        text = text[len(_BOM):]

    lines = [line for line in _LINE_BREAK.split(text) if line.strip()]
    if not lines:
        raise FormatError("Statement file is empty")

    headers = split_line(lines[0])
    rows = [split_line(line) for line in lines[1:]]

    logger.debug("statement_tokenized", header_count=len(headers), row_count=len(rows))
    return headers, rows


def read_statement_file(path: Path, max_size_bytes: Optional[int] = None) -> str:
    """
    Read a statement file from disk as UTF-8 text.

    Raises:
        FormatError: If the file is missing, too large, or not valid UTF-8
    """
    if max_size_bytes is None:
        max_size_bytes = get_settings().importer.max_upload_size_bytes

    try:
        size = path.stat().st_size
    except FileNotFoundError:
        raise FormatError(f"Statement file not found: {path}")

    if size > max_size_bytes:
        raise FormatError(
            f"Statement file is {size} bytes, larger than the {max_size_bytes} byte limit"
        )

    try:
        return path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise FormatError(f"Statement file is not valid UTF-8: {e}")
