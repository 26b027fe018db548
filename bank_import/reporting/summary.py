"""
Import Summary Aggregation

DESIGN DECISION: The summary is a pure reduction over the accepted
transactions. It holds no state and can be recomputed at any time,
e.g. after the user edits categories on the summary screen.
"""

from collections import Counter
from decimal import Decimal
from typing import Iterable

from bank_import.models.transaction import ImportedTransaction, ImportSummary


UNCATEGORIZED = "Uncategorized"


def summarize(transactions: Iterable[ImportedTransaction]) -> ImportSummary:
    """
    Credit/debit totals, category histogram and date range.

    total_debits is a positive magnitude, so net = credits - debits.
    An empty set gives all-zero totals and no date range.
    """
    total_credits = Decimal("0")
    total_debits = Decimal("0")
    category_counts: Counter[str] = Counter()
    categorized = 0
    dates = []

    for transaction in transactions:
        if transaction.amount > 0:
            total_credits += transaction.amount
        else:
            total_debits += -transaction.amount

        if transaction.category:
            categorized += 1
            category_counts[transaction.category] += 1
        else:
            category_counts[UNCATEGORIZED] += 1

        dates.append(transaction.date)

    return ImportSummary(
        total_credits=total_credits,
        total_debits=total_debits,
        net_amount=total_credits - total_debits,
        category_counts=dict(category_counts),
        categorized_count=categorized,
        earliest=min(dates) if dates else None,
        latest=max(dates) if dates else None,
    )
