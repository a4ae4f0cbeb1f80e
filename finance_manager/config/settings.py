"""
Configuration Management for Finance Manager

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Limits that the ledger enforces (installment bounds, description length)
live next to the storage credentials so a deployment can see every knob
in one place.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
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
        default="Transactions",
        description="Name of the sheet holding one transaction per row"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Recurrence limits
    max_installments: int = Field(
        default=60,
        ge=1,
        le=600,
        description="Largest number of installments one recurring entry may create"
    )
    default_installments: int = Field(
        default=2,
        ge=1,
        description="Installment count offered by the fixed recurrence mode"
    )
    monthly_recurrence_count: int = Field(
        default=12,
        ge=1,
        description="Installments created by the 'every month' recurrence mode"
    )

    # Input limits
    description_max_length: int = Field(
        default=200,
        ge=1,
        le=200,
        description="Maximum length of a transaction description"
    )

    # Validation thresholds (warnings only)
    max_transaction_amount: float = Field(
        default=1000000.0,
        gt=0,
        description="Amount above which an entry is flagged as suspicious"
    )
    future_date_tolerance_days: int = Field(
        default=5 * 365,
        ge=0,
        description="How many days ahead an entry date can be before it is flagged"
    )

    @model_validator(mode='after')
    def validate_recurrence_bounds(self) -> 'AppSettings':
        """Recurrence defaults must fit under the installment ceiling."""
        if self.default_installments > self.max_installments:
            raise ValueError("default_installments cannot exceed max_installments")
        if self.monthly_recurrence_count > self.max_installments:
            raise ValueError("monthly_recurrence_count cannot exceed max_installments")
        return self


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for every section that failed to load.
    """
    results = {}

    settings = get_settings()

    sections = {
        "google_sheets": lambda: settings.google_sheets,
        "app": lambda: settings.app,
    }
    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
