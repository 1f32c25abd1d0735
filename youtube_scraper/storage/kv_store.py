"""Key-value storage for the API credential and the latest analysis results."""

import asyncio
import json
import logging
import os
from typing import Any, Dict, Optional, Protocol

from youtube_scraper.exceptions import StorageError

logger = logging.getLogger(__name__)

API_KEY = "ytApiKey"
ANALYSIS_RESULTS_KEY = "analysisResults"
LAST_FETCHED_AT_KEY = "lastFetchedAt"


class KeyValueStore(Protocol):
    """
    A protocol for the asynchronous key-value store shared by ingestion and display.

    A missing key is not an error: ``get`` returns ``None``. Read or write failures
    raise ``StorageError``.
    """

    async def get(self, key: str) -> Optional[Any]:
        """Return the value stored under ``key`` or None if absent."""
        ...

    async def set(self, values: Dict[str, Any]) -> None:
        """Store every key/value pair of ``values`` (last write wins)."""
        ...


class MemoryStore(KeyValueStore):
    """In-process store, used for tests and one-shot CLI runs."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    async def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    async def set(self, values: Dict[str, Any]) -> None:
        self._data.update(values)


class JsonFileStore(KeyValueStore):
    """JSON file implementation of the KeyValueStore interface."""

    def __init__(self, path: str):
        """
        Initialize the store with a file path.

        Args:
            path: Path to the JSON file; created on first write
        """
        self.path = path
        self._lock = asyncio.Lock()
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path) or os.path.getsize(self.path) == 0:
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as file:
                data = json.load(file)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"{self.path} does not contain a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as file:
                json.dump(data, file, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set(self, values: Dict[str, Any]) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data.update(values)
            await asyncio.to_thread(self._write, data)
        logger.debug(f"Stored keys {sorted(values)} in {self.path}")
