"""Configuration package."""

from calm_expenses.config.settings import (
    DEFAULT_NAMESPACE_KEY,
    AppSettings,
    LedgerSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "DEFAULT_NAMESPACE_KEY",
    "AppSettings",
    "LedgerSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
