"""
Duplicate Detection

A fingerprint is a SHA-256 digest over the fields that identify a bank
transaction: date, amount, normalized description and reference.
Category and merchant are left out, so re-categorizing never changes
a transaction's identity.

A transaction is a duplicate when its fingerprint is already known,
either from the account's stored transactions or from an earlier row
of the same batch. Within a batch the first occurrence wins.
"""

import hashlib
import re
from datetime import date
from decimal import Decimal
from typing import AbstractSet, Iterable, Optional

from bank_import.models.transaction import ImportedTransaction


_WHITESPACE = re.compile(r"\s+")


def normalize_description(description: str) -> str:
    """Lower-case, trim, and collapse runs of whitespace."""
    return _WHITESPACE.sub(" ", description.strip().lower())


def _canonical_amount(amount: Decimal) -> str:
    # 45.60 and 45.6 are the same money
    if amount == 0:
        return "0"
    return format(amount.normalize(), "f")


def compute_fingerprint(
    txn_date: date,
    amount: Decimal,
    description: str,
    reference: Optional[str] = None,
) -> str:
    """Stable identity of a transaction, as a 64-char hex string."""
    parts = "|".join((
        txn_date.isoformat(),
        _canonical_amount(amount),
        normalize_description(description),
        (reference or "").strip().lower(),
    ))
    return hashlib.sha256(parts.encode("utf-8")).hexdigest()


def is_duplicate(
    transaction: ImportedTransaction,
    prior_fingerprints: AbstractSet[str],
    batch_fingerprints: AbstractSet[str],
) -> bool:
    """True if the fingerprint is already stored or already seen this batch."""
    return (
        transaction.fingerprint in prior_fingerprints
        or transaction.fingerprint in batch_fingerprints
    )


class DuplicateDetector:
    """
    Splits a batch into kept and duplicate transactions.

    Holds the fingerprints seen so far for one batch only; create a
    new detector per batch.
    """

    def __init__(self, prior_fingerprints: Optional[Iterable[str]] = None):
        self._prior = frozenset(prior_fingerprints or ())
        self._seen: set[str] = set()

    def check(self, transaction: ImportedTransaction) -> bool:
        """
        Record the transaction and report whether it is a duplicate.

        Must be called in source row order for first-occurrence-wins.
        """
        duplicate = is_duplicate(transaction, self._prior, self._seen)
        self._seen.add(transaction.fingerprint)
        return duplicate

    def partition(
        self,
        transactions: Iterable[ImportedTransaction],
    ) -> tuple[list[ImportedTransaction], list[ImportedTransaction]]:
        """
        Returns (kept, duplicates), both in source row order.
        """
        ordered = sorted(transactions, key=lambda t: t.source_row_index)
        kept: list[ImportedTransaction] = []
        duplicates: list[ImportedTransaction] = []
        for transaction in ordered:
            if self.check(transaction):
                duplicates.append(transaction)
            else:
                kept.append(transaction)
        return kept, duplicates
