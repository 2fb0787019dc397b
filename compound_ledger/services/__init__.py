"""Services package."""

from compound_ledger.services.currency import (
    CurrencyInfo,
    format_amount,
    from_usd,
    to_usd,
)
from compound_ledger.services.storage import (
    AuditStorageInterface,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    KeyValueStoreInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

__all__ = [
    # Currency
    "CurrencyInfo",
    "format_amount",
    "from_usd",
    "to_usd",
    # Storage services
    "AuditStorageInterface",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueAuditStorage",
    "KeyValueStoreInterface",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
]
