"""Rule-based transaction categorization."""

from bank_import.categorization.categorizer import (
    Categorizer,
    CategorySuggestion,
    extract_merchant,
)
from bank_import.categorization.rules import (
    DEFAULT_RULES,
    AmountSign,
    CategoryRule,
    configured_rules,
    load_rules,
)

__all__ = [
    "AmountSign",
    "Categorizer",
    "CategoryRule",
    "CategorySuggestion",
    "DEFAULT_RULES",
    "configured_rules",
    "extract_merchant",
    "load_rules",
]
