"""
Configuration Management for Calm Expenses

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The ledger itself has no required configuration; every setting has a
default so the app runs with an empty environment.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_NAMESPACE_KEY = "calm-expenses:mobile-first"


def _default_storage_path() -> Path:
    return Path.home() / ".calm-expenses" / "storage.json"


class StorageSettings(BaseSettings):
    """Durable key-value slot configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CALM_EXPENSES_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["file", "memory"] = Field(
        default="file",
        description="Where the ledger is kept: a JSON file or process memory"
    )
    path: Path = Field(
        default_factory=_default_storage_path,
        description="JSON file used by the file backend"
    )
    namespace_key: str = Field(
        default=DEFAULT_NAMESPACE_KEY,
        min_length=1,
        description="Key under which the ledger is stored in the slot"
    )

    @field_validator("path")
    @classmethod
    def expand_path(cls, v: Path) -> Path:
        return v.expanduser()


class LedgerSettings(BaseSettings):
    """Ledger behaviour configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CALM_EXPENSES_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    seed_account_name: str = Field(
        default="Cash",
        min_length=1,
        description="Name of the account created on first run"
    )
    recent_transactions_limit: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="How many transactions the list view shows"
    )
    currency_symbol: str = Field(
        default="€",
        description="Symbol appended to formatted amounts"
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

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )
    audit_history_size: int = Field(
        default=200,
        ge=0,
        description="How many audit events are kept in memory for display"
    )

    @property
    def effective_log_level(self) -> str:
        """Debug mode overrides the configured level."""
        return "DEBUG" if self.debug_mode else self.log_level


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
    def storage(self) -> StorageSettings:
        return StorageSettings()

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

    Returns a dict of {setting_name: is_valid}, plus
    `<setting_name>_error` entries for the ones that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "ledger", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
