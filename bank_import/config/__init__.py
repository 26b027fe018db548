"""Configuration package."""

from bank_import.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    ImportSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "ImportSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
