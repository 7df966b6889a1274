# src/agentcore/storage/__init__.py
"""
Persistence port and backends for the autonomous core.

Use :func:`create_backend` to build the backend named by a
:class:`~agentcore.config.autonomous_config.StorageConfig`, and wrap it in a
:class:`RecordStore` before handing it to the components.
"""

import os

from ..config.autonomous_config import StorageConfig
from ..exceptions import ConfigError
from .base import PersistenceBackend, StorageKey
from .json_backend import JsonFileBackend
from .memory_backend import InMemoryBackend
from .records import RecordStore
from .sqlite_backend import SqliteBackend


def create_backend(config: StorageConfig | None = None) -> PersistenceBackend:
    """Instantiate the backend selected in ``config`` (in-memory by default)."""
    config = config or StorageConfig()
    if config.backend == "memory":
        return InMemoryBackend()
    if config.backend == "json":
        return JsonFileBackend(config.path)
    if config.backend == "sqlite":
        path = config.path
        if not os.path.splitext(path)[1]:
            path = os.path.join(path, "agentcore.db")
        return SqliteBackend(path)
    raise ConfigError(f"Unsupported storage backend: '{config.backend}'")


__all__ = [
    "InMemoryBackend",
    "JsonFileBackend",
    "PersistenceBackend",
    "RecordStore",
    "SqliteBackend",
    "StorageKey",
    "create_backend",
]
