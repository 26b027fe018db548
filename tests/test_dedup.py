"""Tests for fingerprints and duplicate detection."""

from datetime import date
from decimal import Decimal

from bank_import.dedup import (
    DuplicateDetector,
    compute_fingerprint,
    is_duplicate,
    normalize_description,
)
from bank_import.models.transaction import ImportedTransaction


def make_transaction(row_index: int, description: str = "Coffee", amount: str = "-4.50"):
    txn_date = date(2024, 3, 1)
    return ImportedTransaction(
        date=txn_date,
        description=description,
        amount=Decimal(amount),
        fingerprint=compute_fingerprint(txn_date, Decimal(amount), description),
        source_row_index=row_index,
    )


class TestFingerprint:
    """Tests for compute_fingerprint."""

    def test_deterministic(self):
        """Test that the same inputs give the same fingerprint."""
        first = compute_fingerprint(date(2024, 3, 1), Decimal("-4.50"), "Coffee", "R1")
        second = compute_fingerprint(date(2024, 3, 1), Decimal("-4.50"), "Coffee", "R1")
        assert first == second
        assert len(first) == 64

    def test_description_normalized(self):
        """Test that case and surrounding whitespace are ignored."""
        assert compute_fingerprint(date(2024, 3, 1), Decimal("5"), "  Coffee  Shop ") == \
            compute_fingerprint(date(2024, 3, 1), Decimal("5"), "coffee shop")

    def test_amount_scale_ignored(self):
        """Test that 45.6 and 45.60 are the same amount."""
        assert compute_fingerprint(date(2024, 3, 1), Decimal("45.6"), "x") == \
            compute_fingerprint(date(2024, 3, 1), Decimal("45.60"), "x")

    def test_sign_matters(self):
        """Test that a refund is not a duplicate of the purchase."""
        assert compute_fingerprint(date(2024, 3, 1), Decimal("45.60"), "x") != \
            compute_fingerprint(date(2024, 3, 1), Decimal("-45.60"), "x")

    def test_reference_matters(self):
        """Test that two cheques for the same amount on one day stay distinct."""
        assert compute_fingerprint(date(2024, 3, 1), Decimal("100"), "Cheque", "000123") != \
            compute_fingerprint(date(2024, 3, 1), Decimal("100"), "Cheque", "000124")

    def test_missing_reference_equals_empty(self):
        """Test that no reference and a blank reference are the same."""
        assert compute_fingerprint(date(2024, 3, 1), Decimal("1"), "x", None) == \
            compute_fingerprint(date(2024, 3, 1), Decimal("1"), "x", "  ")

    def test_date_matters(self):
        """Test that the same purchase on another day is new."""
        assert compute_fingerprint(date(2024, 3, 1), Decimal("1"), "x") != \
            compute_fingerprint(date(2024, 3, 2), Decimal("1"), "x")

    def test_normalize_description(self):
        """Test whitespace collapsing."""
        assert normalize_description("  EFTPOS\tCOUNTDOWN   4412 ") == "eftpos countdown 4412"


class TestDuplicateDetector:
    """Tests for in-batch and cross-batch duplicate detection."""

    def test_is_duplicate(self):
        """Test both fingerprint sets are consulted."""
        txn = make_transaction(0)
        assert is_duplicate(txn, {txn.fingerprint}, set()) is True
        assert is_duplicate(txn, set(), {txn.fingerprint}) is True
        assert is_duplicate(txn, set(), set()) is False

    def test_first_occurrence_kept(self):
        """Test that the lowest row index wins within a batch."""
        kept, duplicates = DuplicateDetector().partition(
            [make_transaction(0), make_transaction(1), make_transaction(2, "Tea")]
        )
        assert [t.source_row_index for t in kept] == [0, 2]
        assert [t.source_row_index for t in duplicates] == [1]

    def test_order_by_row_index_not_input(self):
        """Test that the tie-break uses source_row_index."""
        kept, duplicates = DuplicateDetector().partition(
            [make_transaction(5), make_transaction(3)]
        )
        assert kept[0].source_row_index == 3
        assert duplicates[0].source_row_index == 5

    def test_prior_fingerprints(self):
        """Test that stored transactions are recognised."""
        stored = make_transaction(0)
        kept, duplicates = DuplicateDetector({stored.fingerprint}).partition(
            [make_transaction(0), make_transaction(1, "Tea")]
        )
        assert [t.description for t in kept] == ["Tea"]
        assert len(duplicates) == 1

    def test_check_records_fingerprint(self):
        """Test that check remembers what it has seen."""
        detector = DuplicateDetector()
        assert detector.check(make_transaction(0)) is False
        assert detector.check(make_transaction(1)) is True
