"""
In-memory key-value store.

Stores JSON strings exactly like the file backend, so malformed payloads
behave the same way in tests as they do on disk.
"""

from typing import Iterable, Optional

from compound_ledger.services.storage.interface import KeyValueStoreInterface


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Dict-backed store. State lives only as long as the process."""
    
    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
    
    async def get_raw(self, key: str) -> Optional[str]:
        return self._data.get(key)
    
    async def set_raw(self, key: str, raw: str) -> None:
        self._data[key] = raw
    
    async def clear(self, keep: Iterable[str] = ()) -> None:
        kept = set(keep)
        self._data = {k: v for k, v in self._data.items() if k in kept}
    
    def keys(self) -> list[str]:
        return list(self._data)
