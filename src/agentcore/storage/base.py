# src/agentcore/storage/base.py
"""
Abstract persistence port for the autonomous core.

The core only needs a byte-oriented key-value contract. Keys are
structured (:class:`StorageKey`) so that backends can map namespaces onto
directories, tables or prefixes as they see fit.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_.@:-]+$")


@dataclass(frozen=True, order=True)
class StorageKey:
    """
    Structured persistence key.

    Examples:
        >>> str(StorageKey("memory", "user_1"))
        'memory/user_1'
    """

    namespace: str
    identifier: str

    def __post_init__(self) -> None:
        if not _SEGMENT_RE.match(self.namespace):
            raise ValueError(f"Invalid storage namespace: {self.namespace!r}")
        if not self.identifier:
            raise ValueError("Storage identifier must not be empty")

    def __str__(self) -> str:
        return f"{self.namespace}/{self.identifier}"

    @classmethod
    def goals(cls) -> StorageKey:
        return cls("goals", "all")

    @classmethod
    def memory(cls, user_id: str) -> StorageKey:
        return cls("memory", user_id)

    @classmethod
    def suggestions(cls, user_id: str) -> StorageKey:
        return cls("suggestions", user_id)

    @classmethod
    def decisions(cls) -> StorageKey:
        return cls("decisions", "state")


class PersistenceBackend(ABC):
    """
    Abstract base class for persistence backends.

    Implementations raise :class:`~agentcore.exceptions.PersistenceFailure`
    when the underlying store cannot be read or written. Absence of a key
    is not an error: ``get`` returns None.
    """

    async def initialize(self) -> None:
        """Prepare the backend (create directories, open connections)."""

    @abstractmethod
    async def get(self, key: StorageKey) -> bytes | None:
        """Return the stored bytes for ``key`` or None if absent."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: StorageKey, value: bytes) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: StorageKey) -> None:
        """Remove ``key``; deleting an absent key is a no-op."""
        raise NotImplementedError

    @abstractmethod
    async def list_identifiers(self, namespace: str) -> list[str]:
        """List identifiers stored under ``namespace``."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release resources held by the backend."""
