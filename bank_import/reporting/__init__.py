"""Reporting package."""

from bank_import.reporting.summary import UNCATEGORIZED, summarize

__all__ = ["UNCATEGORIZED", "summarize"]
