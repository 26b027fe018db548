"""Tests for the rule table and categorizer."""

import json
import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from bank_import.categorization import (
    DEFAULT_RULES,
    AmountSign,
    Categorizer,
    CategoryRule,
    configured_rules,
    extract_merchant,
    load_rules,
)
from bank_import.models.transaction import ImportedTransaction


def make_transaction(description: str, amount: str) -> ImportedTransaction:
    return ImportedTransaction(
        date=date(2024, 3, 1),
        description=description,
        amount=Decimal(amount),
        fingerprint="f" * 64,
        source_row_index=0,
    )


class TestCategoryRule:
    """Tests for a single rule."""

    def test_keyword_match_is_case_insensitive(self):
        """Test keyword matching against the description."""
        rule = CategoryRule(name="gym", category="Fitness", keywords=("Les Mills",))
        assert rule.matches("LES MILLS AUCKLAND", Decimal("-20")) is True
        assert rule.matches("Cafe", Decimal("-20")) is False

    def test_sign_filter(self):
        """Test that a debit-only rule ignores credits."""
        rule = CategoryRule(
            name="groceries",
            category="Groceries",
            keywords=("countdown",),
            amount_sign=AmountSign.DEBIT,
        )
        assert rule.matches("Countdown refund", Decimal("12.00")) is False
        assert rule.matches("Countdown", Decimal("-12.00")) is True

    def test_no_keywords_matches_on_sign(self):
        """Test a sign-only fallback rule."""
        rule = CategoryRule(name="in", category="Income", amount_sign=AmountSign.CREDIT)
        assert rule.matches("anything", Decimal("1")) is True
        assert rule.matches("anything", Decimal("-1")) is False


class TestCategorizer:
    """Tests for Categorizer with the built-in rules."""

    @pytest.mark.parametrize("description,amount,category", [
        ("EFTPOS COUNTDOWN PONSONBY", "-45.67", "Groceries"),
        ("SALARY ACME LTD", "2500.00", "Income"),
        ("Mercury Energy", "-120.50", "Utilities"),
        ("Z ENERGY GREENLANE", "-80.00", "Transportation"),
        ("Inland Revenue GST", "-900.00", "Tax"),
        ("Credit Interest", "1.20", "Interest Income"),
        ("Monthly account fee", "-5.00", "Banking"),
    ])
    def test_default_rules(self, description, amount, category):
        """Test representative descriptions."""
        categorizer = Categorizer(DEFAULT_RULES)
        assert categorizer.suggest(make_transaction(description, amount)).category == category

    def test_unknown_credit_defaults_to_income(self):
        """Test the credit fallback rule."""
        suggestion = Categorizer(DEFAULT_RULES).suggest(make_transaction("J SMITH", "50.00"))
        assert suggestion.category == "Income"
        assert suggestion.rule_name == "credit-default"

    def test_unknown_debit_is_uncategorized(self):
        """Test that no match leaves the category empty."""
        suggestion = Categorizer(DEFAULT_RULES).suggest(make_transaction("XYZ 123", "-5.00"))
        assert suggestion.category is None
        assert suggestion.rule_name is None

    def test_first_rule_wins(self):
        """Test that rule order decides overlaps."""
        categorizer = Categorizer([
            CategoryRule(name="a", category="First", keywords=("coffee",)),
            CategoryRule(name="b", category="Second", keywords=("coffee",)),
        ])
        assert categorizer.suggest(make_transaction("Coffee", "-4")).category == "First"

    def test_fixed_merchant_on_rule(self):
        """Test that a rule can name the merchant."""
        categorizer = Categorizer([
            CategoryRule(name="power", category="Utilities", keywords=("mercury",), merchant="Mercury"),
        ])
        suggestion = categorizer.suggest(make_transaction("MERCURY NZ DD 1234", "-120"))
        assert suggestion.merchant == "Mercury"

    def test_categorize_returns_copy(self):
        """Test that the original transaction is untouched."""
        original = make_transaction("EFTPOS COUNTDOWN PONSONBY 4412", "-45.67")
        categorized = Categorizer(DEFAULT_RULES).categorize(original)

        assert original.category is None
        assert categorized.category == "Groceries"
        assert categorized.merchant == "COUNTDOWN PONSONBY"
        assert categorized.fingerprint == original.fingerprint

    def test_empty_rule_table(self):
        """Test that an empty table categorizes nothing."""
        categorizer = Categorizer([])
        assert categorizer.rules == ()
        assert categorizer.categorize(make_transaction("Countdown", "-5")).category is None


class TestMerchantExtraction:
    """Tests for extract_merchant."""

    @pytest.mark.parametrize("description,merchant", [
        ("EFTPOS COUNTDOWN PONSONBY 4412", "COUNTDOWN PONSONBY"),
        ("POS W/D Z ENERGY", "Z ENERGY"),
        ("Starbucks Coffee Queen Street Auckland", "Starbucks Coffee Queen"),
        ("Spark NZ Online", "Spark"),
        ("1234 5678", None),
        ("AB", None),
    ])
    def test_extract(self, description, merchant):
        """Test merchant guesses from bank descriptions."""
        assert extract_merchant(description) == merchant


class TestRuleLoading:
    """Tests for loading rule tables from JSON."""

    def test_load_rules_keeps_order(self, tmp_path):
        """Test that file order is rule order."""
        path = tmp_path / "rules.json"
        path.write_text(json.dumps([
            {"name": "gym", "category": "Fitness", "keywords": ["les mills"]},
            {"name": "pets", "category": "Pets", "keywords": ["animates"], "amount_sign": "debit"},
        ]))

        rules = load_rules(path)
        assert [r.name for r in rules] == ["gym", "pets"]
        assert rules[1].amount_sign is AmountSign.DEBIT

    def test_load_rules_rejects_bad_file(self, tmp_path):
        """Test that a rule without a category is rejected."""
        path = tmp_path / "rules.json"
        path.write_text(json.dumps([{"name": "gym"}]))

        with pytest.raises(ValidationError):
            load_rules(path)

    def test_configured_rules_default(self, monkeypatch):
        """Test the built-in table when no file is configured."""
        monkeypatch.delenv("BANK_IMPORT_CATEGORY_RULES_PATH", raising=False)
        assert tuple(configured_rules()) == DEFAULT_RULES

    def test_configured_rules_from_env(self, tmp_path, monkeypatch):
        """Test that the settings path replaces the built-in table."""
        path = tmp_path / "rules.json"
        path.write_text(json.dumps([{"name": "gym", "category": "Fitness", "keywords": ["gym"]}]))
        monkeypatch.setenv("BANK_IMPORT_CATEGORY_RULES_PATH", str(path))

        categorizer = Categorizer()
        assert [r.name for r in categorizer.rules] == ["gym"]
