"""
Configuration Management for Split Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All tunable thresholds of the engine live here: the percentage tolerance,
the currencies accepted on top of the built-in ISO table, and logging output.
The engine reads them through get_settings() so tests can reset the cache.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """
    Engine settings.

    Loads configuration from SPLITLEDGER_* environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SPLITLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Split validation
    percentage_epsilon: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        le=1,
        description="Tolerance when checking that percentages sum to 100"
    )
    max_participants: int = Field(
        default=100,
        ge=2,
        description="Largest participant set accepted for one expense"
    )

    # Currency reference data
    default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Currency used when a caller does not name one"
    )
    extra_currencies: str = Field(
        default="",
        description="Comma-separated ISO codes accepted on top of the built-in table"
    )

    # Settlement
    default_payment_method: str = Field(
        default="manual",
        description="Method stamped on payments proposed by the settlement planner"
    )

    @field_validator('default_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Currency codes are always upper case."""
        return v.strip().upper()

    @property
    def extra_currency_codes(self) -> list[str]:
        """Get extra currencies as a list of upper-case codes."""
        return [
            code.strip().upper()
            for code in self.extra_currencies.split(",")
            if code.strip()
        ]


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SPLITLEDGER_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    json_output: bool = Field(
        default=True,
        description="Render log lines as JSON (console rendering otherwise)"
    )

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Unsupported log level: {v}. Allowed: {sorted(allowed)}")
        return v.upper()


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
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


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

    Returns a dict of {setting_name: is_valid}, with an `<name>_error`
    entry holding the message for each failing section.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "logging"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
