"""
Abstract Storage Interface

The ledger persists its state through an opaque key-value store with
get/set/clear. This allows us to:
1. Use in-memory storage for tests and ephemeral sessions
2. Use a JSON file on disk for local durability
3. Swap in any other backend without touching accounting code

Values are JSON-encoded by the interface itself, so every backend stores
plain strings and shares the same tolerance for missing keys and
malformed payloads: both return the caller's fallback instead of raising.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

import structlog

from compound_ledger.models.audit import AuditEvent


logger = structlog.get_logger(__name__)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageWriteError(StorageError):
    """A value could not be written to the backend."""
    pass


class StorageReadError(StorageError):
    """The backend could not be read at all."""
    pass


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for key-value persistence.
    
    Subclasses implement raw string access; decoding and fallback
    handling live here.
    """
    
    async def get(self, key: str, fallback: Any = None) -> Any:
        """
        Read and decode a value.
        
        Args:
            key: The storage key
            fallback: Returned when the key is missing, the payload is
                not valid JSON, or the backend read fails
        
        Returns:
            The decoded value or fallback
        """
        try:
            raw = await self.get_raw(key)
        except Exception as e:
            logger.error("storage_read_failed", key=key, error=str(e))
            return fallback
        
        if raw is None or raw == "":
            return fallback
        
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error("storage_malformed_value", key=key, error=str(e))
            return fallback
        
        return fallback if value is None else value
    
    async def set(self, key: str, value: Any) -> None:
        """
        Encode and write a value.
        
        Raises:
            StorageWriteError: if the value cannot be encoded or written
        """
        try:
            raw = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            raise StorageWriteError(f"Value for key {key} is not serializable: {e}") from e
        await self.set_raw(key, raw)
    
    @abstractmethod
    async def get_raw(self, key: str) -> Optional[str]:
        """Return the stored string for key, or None if absent."""
        pass
    
    @abstractmethod
    async def set_raw(self, key: str, raw: str) -> None:
        """Store a string under key, replacing any previous value."""
        pass
    
    @abstractmethod
    async def clear(self, keep: Iterable[str] = ()) -> None:
        """Remove every key except those named in keep."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.
    
    Audit logs are append-only - we never delete or modify them. Callers
    clearing a shared key-value store must keep the audit key.
    """
    
    @abstractmethod
    async def append_events(self, events: list[AuditEvent]) -> bool:
        """
        Append audit events to the log.
        
        Returns:
            True if logged successfully
        """
        pass
    
    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[dict]:
        """
        Get the most recent audit events.
        
        Returns:
            List of recent events (newest first) as log dicts
        """
        pass
