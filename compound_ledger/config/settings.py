"""
Configuration Management for Compound Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All tunable business constants (credit throttle, dust threshold, seed
balance) live here so they are validated once at startup. The 30-day
withdrawal lock is fixed policy and lives in engine.lifecycle.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Accounting rules for the investment ledger."""
    
    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )
    
    growth_credit_interval_hours: float = Field(
        default=1.0,
        ge=0.0,
        description="Minimum time between app opens before unrealized growth is credited"
    )
    payout_dust_threshold: float = Field(
        default=0.01,
        ge=0.0,
        description="Consolidated growth payouts at or below this USD amount are not posted"
    )
    initial_balance: float = Field(
        default=12700.0,
        ge=0.0,
        description="Balance of a freshly initialized (or logged out) account"
    )
    seed_demo_data: bool = Field(
        default=True,
        description="Start new accounts with the demo transaction history"
    )
    fixed_daily_rate_percent: float = Field(
        default=0.05479,
        gt=0.0,
        description="Daily rate used by the legacy fixed-rate projection"
    )
    base_currency: str = Field(
        default="USD",
        description="System of record currency"
    )
    account_name: str = Field(
        default="Alex Doe",
        description="Display name of the seeded account"
    )
    
    @field_validator('base_currency')
    @classmethod
    def validate_base_currency(cls, v: str) -> str:
        """Accounting is USD-only; other currencies are a view transform."""
        if v.upper() != "USD":
            raise ValueError(f"Unsupported base currency: {v}. Ledger accounting is USD-only")
        return v.upper()


class StorageSettings(BaseSettings):
    """Key-value persistence configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )
    
    backend: Literal["memory", "json_file"] = Field(
        default="memory",
        description="Which key-value store implementation to use"
    )
    path: str = Field(
        default="compound_ledger_state.json",
        description="File used by the json_file backend"
    )
    write_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a file write before giving up"
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
    
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )
    
    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Invalid log level: {v}. Allowed: {sorted(allowed)}")
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
    def storage(self) -> StorageSettings:
        return StorageSettings()
    
    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).
    
    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
