"""Configuration package."""

from compound_ledger.config.settings import (
    AppSettings,
    LedgerSettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "LedgerSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
