"""
Storage Services Package

Provides the abstract key-value interface the ledger persists through,
plus in-memory and JSON-file implementations.
"""

from compound_ledger.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStoreInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from compound_ledger.services.storage.memory import InMemoryKeyValueStore
from compound_ledger.services.storage.json_file import JsonFileKeyValueStore
from compound_ledger.services.storage.audit_trail import (
    AUDIT_LOG_KEY,
    KeyValueAuditStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "AUDIT_LOG_KEY",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueAuditStorage",
]
