"""
Audit trail kept inside the key-value store.

Events are appended to a JSON list under a single key, trimmed to the
most recent ``max_events`` so the trail cannot grow without bound.
"""

from compound_ledger.models.audit import AuditEvent
from compound_ledger.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStoreInterface,
)


AUDIT_LOG_KEY = "app_audit_log"


class KeyValueAuditStorage(AuditStorageInterface):
    """Append-only audit log stored as one key in a KeyValueStoreInterface."""
    
    def __init__(
        self,
        store: KeyValueStoreInterface,
        key: str = AUDIT_LOG_KEY,
        max_events: int = 1000,
    ):
        self._store = store
        self._key = key
        self._max_events = max_events
    
    async def append_events(self, events: list[AuditEvent]) -> bool:
        if not events:
            return True
        existing = await self._store.get(self._key, [])
        if not isinstance(existing, list):
            existing = []
        existing.extend(event.to_log_dict() for event in events)
        await self._store.set(self._key, existing[-self._max_events:])
        return True
    
    async def get_recent_events(self, limit: int = 100) -> list[dict]:
        existing = await self._store.get(self._key, [])
        if not isinstance(existing, list):
            return []
        return list(reversed(existing[-limit:]))
