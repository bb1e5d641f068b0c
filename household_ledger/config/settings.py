"""
Configuration Management for Household Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The allocation and settlement engines never read settings themselves;
the orchestrator hands them the values they need.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Settlement, validation and storage-retry configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    currency: str = Field(
        default="EUR",
        min_length=3,
        max_length=3,
        description="ISO currency code used when rendering amounts"
    )
    settlement_epsilon: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Net balances below this are treated as settled"
    )

    # Validation thresholds
    max_expense_amount: Decimal = Field(
        default=Decimal("100000"),
        gt=0,
        description="Amounts above this are flagged for review"
    )
    max_description_length: int = Field(
        default=500,
        ge=1,
        le=500,
        description="Maximum expense description length (the stored models cap it at 500)"
    )

    # Storage retries
    storage_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a ledger write that hits a connection error"
    )
    storage_retry_wait_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Base backoff between storage retries (exponential)"
    )

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()


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
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
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

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

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

    Returns a dict of {setting_name: is_valid}, with an extra
    "<name>_error" entry describing each failure.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
