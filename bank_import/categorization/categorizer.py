"""
Transaction Categorizer

Best-effort category and merchant labels for imported transactions.

A pure function of the description and the amount sign against an
ordered rule table. No match is a normal outcome: the category stays
empty and the summary counts the row as "Uncategorized".
"""

import re
from typing import Optional, Sequence

from pydantic import BaseModel

from bank_import.categorization.rules import CategoryRule, configured_rules
from bank_import.models.transaction import ImportedTransaction


# Card-terminal prefixes banks put before the merchant name
_NOISE_PREFIXES = (
    "eftpos ", "pos w/d ", "pos ", "visa purchase ", "debit card purchase ",
    "card purchase ", "dc ",
)

# A merchant name ends at a store number, a card reference or a channel word
_STOP_TOKEN = re.compile(r"^(#?\d.*|web|online|card|nz|au|aus|ltd)$", re.IGNORECASE | re.ASCII)

_MAX_MERCHANT_WORDS = 3


def extract_merchant(description: str) -> Optional[str]:
    """
    Guess the merchant from the start of a bank description.

    "EFTPOS COUNTDOWN PONSONBY 4412" -> "COUNTDOWN PONSONBY"
    """
    text = description.strip()
    lowered = text.lower()
    for prefix in _NOISE_PREFIXES:
        if lowered.startswith(prefix):
            text = text[len(prefix):].lstrip()
            break

    words: list[str] = []
    for token in text.split():
        if _STOP_TOKEN.match(token) or not token[0].isalpha():
            break
        words.append(token)
        if len(words) == _MAX_MERCHANT_WORDS:
            break

    merchant = " ".join(words).strip(" -*.,")
    return merchant if len(merchant) > 2 else None


class CategorySuggestion(BaseModel):
    """Categorizer output for one transaction."""

    category: Optional[str] = None
    merchant: Optional[str] = None
    rule_name: Optional[str] = None


class Categorizer:
    """
    Applies an ordered rule table to transactions.

    Stateless between calls; the rule table is injected so it can be
    swapped or extended without changing the pipeline.
    """

    def __init__(self, rules: Optional[Sequence[CategoryRule]] = None):
        self._rules = tuple(rules) if rules is not None else tuple(configured_rules())

    @property
    def rules(self) -> tuple[CategoryRule, ...]:
        return self._rules

    def suggest(self, transaction: ImportedTransaction) -> CategorySuggestion:
        """First matching rule wins; no match leaves the category empty."""
        for rule in self._rules:
            if rule.matches(transaction.description, transaction.amount):
                return CategorySuggestion(
                    category=rule.category,
                    merchant=rule.merchant or extract_merchant(transaction.description),
                    rule_name=rule.name,
                )
        return CategorySuggestion(merchant=extract_merchant(transaction.description))

    def categorize(self, transaction: ImportedTransaction) -> ImportedTransaction:
        """Copy of the transaction with category and merchant filled in."""
        suggestion = self.suggest(transaction)
        return transaction.model_copy(update={
            "category": suggestion.category,
            "merchant": suggestion.merchant,
        })
