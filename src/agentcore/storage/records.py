# src/agentcore/storage/records.py
"""
JSON record layer over a :class:`PersistenceBackend`.

Components never talk to a backend directly. They load and save plain
JSON-compatible structures through a :class:`RecordStore`, which is the
single place where persistence failures are caught: a failed read looks
like an absent record, a failed write returns False, and both are logged.
The caller's in-memory state stays authoritative until the next
successful write.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..exceptions import PersistenceFailure
from .base import PersistenceBackend, StorageKey

logger = logging.getLogger(__name__)


class RecordStore:
    """Encodes records as UTF-8 JSON and swallows storage failures."""

    def __init__(self, backend: PersistenceBackend) -> None:
        self._backend = backend
        self._failures = 0
        self._bytes_by_key: dict[StorageKey, int] = {}

    @property
    def backend(self) -> PersistenceBackend:
        return self._backend

    @property
    def failure_count(self) -> int:
        """Number of reads and writes that failed since construction."""
        return self._failures

    @property
    def bytes_written(self) -> int:
        """Size of the latest successful write of every key, summed."""
        return sum(self._bytes_by_key.values())

    async def load(self, key: StorageKey) -> Any | None:
        """Return the decoded record, or None if absent, unreadable or corrupt."""
        try:
            raw = await self._backend.get(key)
        except PersistenceFailure as e:
            self._failures += 1
            logger.warning(f"Persistence read failed for '{key}': {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self._failures += 1
            logger.error(f"Discarding corrupt record '{key}': {e}")
            return None

    async def save(self, key: StorageKey, record: Any) -> bool:
        """Encode and write ``record``. Returns False if the write failed."""
        payload = json.dumps(record, ensure_ascii=False, sort_keys=True, default=str).encode("utf-8")
        try:
            await self._backend.set(key, payload)
        except PersistenceFailure as e:
            self._failures += 1
            logger.warning(f"Persistence write failed for '{key}': {e}")
            return False
        self._bytes_by_key[key] = len(payload)
        return True

    async def delete(self, key: StorageKey) -> bool:
        try:
            await self._backend.delete(key)
        except PersistenceFailure as e:
            self._failures += 1
            logger.warning(f"Persistence delete failed for '{key}': {e}")
            return False
        self._bytes_by_key.pop(key, None)
        return True

    async def identifiers(self, namespace: str) -> list[str]:
        try:
            return await self._backend.list_identifiers(namespace)
        except PersistenceFailure as e:
            self._failures += 1
            logger.warning(f"Persistence listing failed for '{namespace}': {e}")
            return []
