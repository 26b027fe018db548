"""
Column Mapper

Guesses which header holds which transaction field.

Each header is lower-cased and checked against the keyword sets below,
field by field in table order. The header goes to the first field it
matches whose slot is still empty; a header is never assigned twice and
a filled slot is never overwritten. Detection never raises - an
unmatched required field simply stays empty for the user to fill in.
"""

from typing import Sequence

import structlog

from bank_import.models.transaction import ColumnMapping


logger = structlog.get_logger(__name__)


# Ordered: earlier fields win a header that matches several
FIELD_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("date", ("date",)),
    ("description", ("description", "narrative", "details", "memo")),
    ("amount", ("amount", "credit", "debit")),
    ("balance", ("balance",)),
    ("reference", ("reference", "ref", "cheque")),
)


def detect_column_mapping(headers: Sequence[str]) -> ColumnMapping:
    """Build a best-guess ColumnMapping from the header row."""
    assigned: dict[str, str] = {}

    for header in headers:
        lowered = header.lower()
        for field_name, keywords in FIELD_KEYWORDS:
            if field_name in assigned:
                continue
            if any(keyword in lowered for keyword in keywords):
                assigned[field_name] = header
                break

    mapping = ColumnMapping(**assigned)
    logger.debug(
        "column_mapping_detected",
        mapping=mapping.as_field_map(),
        complete=mapping.is_complete,
    )
    return mapping


def column_indices(headers: Sequence[str], mapping: ColumnMapping) -> dict[str, int]:
    """
    Position of each mapped field's header.

    Fields whose header is not present are left out. With repeated
    header names the first occurrence is used.
    """
    indices = {}
    for field_name, header in mapping.as_field_map().items():
        if header in headers:
            indices[field_name] = list(headers).index(header)
    return indices
