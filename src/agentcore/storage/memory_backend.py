# src/agentcore/storage/memory_backend.py
"""
In-process persistence backend, used for tests and ephemeral agents.
"""

from __future__ import annotations

from .base import PersistenceBackend, StorageKey


class InMemoryBackend(PersistenceBackend):
    """Dict-backed backend. Values are copied bytes, so callers cannot mutate them."""

    def __init__(self) -> None:
        self._data: dict[StorageKey, bytes] = {}

    async def get(self, key: StorageKey) -> bytes | None:
        return self._data.get(key)

    async def set(self, key: StorageKey, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def delete(self, key: StorageKey) -> None:
        self._data.pop(key, None)

    async def list_identifiers(self, namespace: str) -> list[str]:
        return sorted(k.identifier for k in self._data if k.namespace == namespace)

    async def close(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)
