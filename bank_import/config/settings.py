"""
Configuration Management for Bank Import

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Per-batch choices (target account, column mapping, date format) live on
ImportConfig instead; these settings only hold deployment-wide knobs.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    transactions_sheet_name: str = Field(
        default="BankTransactions",
        description="Name of the sheet for imported bank transactions"
    )
    audit_sheet_name: str = Field(
        default="ImportAudit",
        description="Name of the sheet for the import audit log"
    )
    accounts_sheet_name: str = Field(
        default="BankAccounts",
        description="Name of the sheet listing the bank accounts that can be imported into"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running an import."
            )
        return v


class ImportSettings(BaseSettings):
    """Bank statement import pipeline configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BANK_IMPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_date_format: str = Field(
        default="DD/MM/YYYY",
        pattern="^(DD/MM/YYYY|MM/DD/YYYY|YYYY-MM-DD)$",
        description="Date format offered first when configuring an import"
    )
    preview_sample_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Number of data rows returned with a detected mapping"
    )
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum statement file size in MB"
    )

    # Row warning thresholds (warnings never reject a row)
    large_amount_threshold: float = Field(
        default=10000.0,
        gt=0,
        description="Amounts larger than this (either sign) get a warning"
    )
    max_description_length: int = Field(
        default=255,
        ge=1,
        description="Descriptions longer than this get a warning"
    )

    category_rules_path: Optional[str] = Field(
        default=None,
        description="Optional JSON file replacing the built-in category rules"
    )

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so an import can run without
    # Google Sheets credentials configured

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def importer(self) -> ImportSettings:
        return ImportSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus an
    {setting_name}_error entry for each failure.
    """
    results: dict[str, object] = {}
    settings = get_settings()

    for name in ("google_sheets", "importer", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
