"""
Configuration Management for IronWallet

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Which storage backend holds the wallet data."""

    model_config = SettingsConfigDict(
        env_prefix="IRONWALLET_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["memory", "sqlite", "google_sheets"] = Field(
        default="memory",
        description="Storage backend: memory, sqlite or google_sheets"
    )
    sqlite_path: str = Field(
        default="ironwallet.db",
        description="Path to the SQLite database file"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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

    # One worksheet per table
    profiles_sheet_name: str = Field(default="Profiles")
    categories_sheet_name: str = Field(default="BudgetCategories")
    splits_sheet_name: str = Field(default="IncomeSplits")
    transactions_sheet_name: str = Field(default="Transactions")
    locked_savings_sheet_name: str = Field(default="LockedSavings")
    treat_wallet_sheet_name: str = Field(default="TreatWallet")
    reports_sheet_name: str = Field(default="MonthlyReports")
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


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (monthly report narration only)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=256,
        ge=32,
        le=2048,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.9,
        ge=0.0,
        le=1.0,
        description="Model temperature (higher = more varied sarcasm)"
    )


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
    log_level: str = Field(
        default="INFO",
        description="Minimum level for the local structured log"
    )

    default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Currency for new profiles"
    )

    # Report thresholds
    savings_goal_rate: int = Field(
        default=20,
        ge=0,
        le=100,
        description="Savings rate (percent) at which monthly goals count as met"
    )

    # Listing sizes
    transaction_page_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="How many transactions a listing returns"
    )
    treat_history_size: int = Field(
        default=20,
        ge=1,
        le=200,
        description="How many treat transactions the wallet overview shows"
    )

    # Validation thresholds
    max_transaction_amount_cents: int = Field(
        default=10_000_000,
        ge=1,
        description="Amount above which a transaction is flagged as suspicious"
    )
    future_date_tolerance_days: int = Field(
        default=1,
        ge=0,
        description="How many days in the future a transaction date can be"
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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

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
    "<name>_error" entry for each section that failed.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("storage", "google_sheets", "gemini", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
