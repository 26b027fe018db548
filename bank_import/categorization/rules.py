"""
Category Rule Table

An ordered list of predicate -> category rules. The first matching rule
wins. Rules are data: the default table below can be replaced by a JSON
file (BANK_IMPORT_CATEGORY_RULES_PATH) without touching the pipeline.

JSON format - a list of objects with the CategoryRule fields:
    [{"name": "groceries", "category": "Groceries",
      "keywords": ["countdown", "new world"], "amount_sign": "debit"}]
"""

from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from bank_import.config import get_settings


class AmountSign(str, Enum):
    """Which transactions a rule applies to."""
    ANY = "any"
    CREDIT = "credit"
    DEBIT = "debit"


class CategoryRule(BaseModel):
    """
    One row of the rule table.

    Matches when the amount sign fits and the lower-cased description
    contains any keyword. A rule with no keywords matches on sign alone.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    keywords: tuple[str, ...] = ()
    amount_sign: AmountSign = AmountSign.ANY
    merchant: Optional[str] = Field(
        default=None,
        description="Fixed merchant label for this rule (e.g. a known biller)"
    )

    def matches(self, description: str, amount: Decimal) -> bool:
        if self.amount_sign is AmountSign.CREDIT and amount < 0:
            return False
        if self.amount_sign is AmountSign.DEBIT and amount >= 0:
            return False
        if not self.keywords:
            return True
        lowered = description.lower()
        return any(keyword.lower() in lowered for keyword in self.keywords)


DEFAULT_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        name="salary",
        category="Income",
        keywords=("salary", "wages", "payroll"),
        amount_sign=AmountSign.CREDIT,
    ),
    CategoryRule(
        name="interest",
        category="Interest Income",
        keywords=("interest",),
        amount_sign=AmountSign.CREDIT,
    ),
    CategoryRule(
        name="tax",
        category="Tax",
        keywords=("inland revenue", "gst payment", "ird paye"),
    ),
    CategoryRule(
        name="groceries",
        category="Groceries",
        keywords=(
            "countdown", "woolworths", "new world", "pak n save", "paknsave",
            "four square", "supermarket",
        ),
        amount_sign=AmountSign.DEBIT,
    ),
    CategoryRule(
        name="utilities",
        category="Utilities",
        keywords=(
            "mercury", "genesis", "contact energy", "meridian", "powershop",
            "electric", "water", "gas company", "spark", "vodafone", "one nz",
            "2degrees", "internet", "phone",
        ),
        amount_sign=AmountSign.DEBIT,
    ),
    CategoryRule(
        name="transport",
        category="Transportation",
        keywords=(
            "z energy", "bp connect", "caltex", "mobil", "fuel", "petrol",
            "uber", "taxi", "parking",
        ),
        amount_sign=AmountSign.DEBIT,
    ),
    CategoryRule(
        name="dining",
        category="Food & Dining",
        keywords=(
            "cafe", "coffee", "restaurant", "starbucks", "mcdonald", "kfc",
            "burger", "pizza",
        ),
        amount_sign=AmountSign.DEBIT,
    ),
    CategoryRule(
        name="healthcare",
        category="Healthcare",
        keywords=("pharmacy", "chemist", "doctor", "medical", "hospital", "clinic"),
        amount_sign=AmountSign.DEBIT,
    ),
    CategoryRule(
        name="shopping",
        category="Shopping",
        keywords=("amazon", "kmart", "the warehouse", "bunnings", "mitre 10", "store", "shop"),
        amount_sign=AmountSign.DEBIT,
    ),
    CategoryRule(
        name="banking",
        category="Banking",
        keywords=("bank fee", "account fee", "transfer", "withdrawal"),
    ),
    # Anything else coming in is treated as income
    CategoryRule(
        name="credit-default",
        category="Income",
        amount_sign=AmountSign.CREDIT,
    ),
)


_RULES_ADAPTER = TypeAdapter(list[CategoryRule])


def load_rules(path: Path) -> tuple[CategoryRule, ...]:
    """
    Load a rule table from a JSON file, keeping file order.

    Raises:
        pydantic.ValidationError: If the file is not a valid rule list
    """
    return tuple(_RULES_ADAPTER.validate_json(Path(path).read_bytes()))


def configured_rules() -> Sequence[CategoryRule]:
    """The rule table from settings, or the built-in one."""
    rules_path = get_settings().importer.category_rules_path
    if rules_path:
        return load_rules(Path(rules_path))
    return DEFAULT_RULES
