"""
JSON File Storage Implementation

The whole store is one JSON object on disk mapping key -> encoded value.
Writes go to a temporary file that atomically replaces the original, so
a crash mid-write leaves the previous document intact.

TRADEOFFS:
- Every write rewrites the whole file (fine for one user's ledger)
- Single process only; there is no file locking
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional, Union

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from compound_ledger.services.storage.interface import (
    KeyValueStoreInterface,
    StorageReadError,
    StorageWriteError,
)


logger = structlog.get_logger(__name__)


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """
    File-backed store.
    
    A corrupt file is moved aside to ``<path>.corrupt`` and the store
    starts empty rather than failing the app.
    """
    
    def __init__(self, path: Union[str, Path], write_retries: int = 3):
        self._path = Path(path)
        self._write_retries = write_retries
        self._data: Optional[dict[str, str]] = None
    
    @property
    def path(self) -> Path:
        return self._path
    
    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data
        
        if not self._path.exists():
            self._data = {}
            return self._data
        
        try:
            content = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageReadError(f"Failed to read {self._path}: {e}") from e
        
        try:
            document = json.loads(content) if content.strip() else {}
            if not isinstance(document, dict):
                raise ValueError("top-level JSON value is not an object")
        except ValueError as e:
            corrupt_path = self._path.with_name(self._path.name + ".corrupt")
            logger.error(
                "storage_file_corrupt",
                path=str(self._path),
                moved_to=str(corrupt_path),
                error=str(e),
            )
            os.replace(self._path, corrupt_path)
            document = {}
        
        self._data = {str(k): v if isinstance(v, str) else json.dumps(v) for k, v in document.items()}
        return self._data
    
    def _write(self, data: dict[str, str]) -> None:
        @retry(
            stop=stop_after_attempt(self._write_retries),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )
        def write_atomically() -> None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=self._path.name + ".",
                suffix=".tmp",
                dir=self._path.parent,
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2, sort_keys=True)
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        
        try:
            write_atomically()
        except OSError as e:
            raise StorageWriteError(f"Failed to write {self._path}: {e}") from e
    
    async def get_raw(self, key: str) -> Optional[str]:
        return self._load().get(key)
    
    async def set_raw(self, key: str, raw: str) -> None:
        data = dict(self._load())
        data[key] = raw
        self._write(data)
        self._data = data
    
    async def clear(self, keep: Iterable[str] = ()) -> None:
        kept = set(keep)
        data = {k: v for k, v in self._load().items() if k in kept}
        self._write(data)
        self._data = data
