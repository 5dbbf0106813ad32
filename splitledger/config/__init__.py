"""Configuration package."""

from splitledger.config.settings import (
    LedgerSettings,
    LoggingSettings,
    Settings,
    get_settings,
    validate_all_settings,
)
from splitledger.config.currencies import (
    CURRENCIES,
    CurrencyInfo,
    get_currency,
    is_recognized_currency,
    minor_unit_exponent,
)

__all__ = [
    "CURRENCIES",
    "CurrencyInfo",
    "LedgerSettings",
    "LoggingSettings",
    "Settings",
    "get_currency",
    "get_settings",
    "is_recognized_currency",
    "minor_unit_exponent",
    "validate_all_settings",
]
