"""Fingerprinting and duplicate detection."""

from bank_import.dedup.detector import (
    DuplicateDetector,
    compute_fingerprint,
    is_duplicate,
    normalize_description,
)

__all__ = [
    "DuplicateDetector",
    "compute_fingerprint",
    "is_duplicate",
    "normalize_description",
]
