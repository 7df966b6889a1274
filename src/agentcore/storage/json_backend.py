# src/agentcore/storage/json_backend.py
"""
File-based persistence backend.

Each key is stored as one file, ``<root>/<namespace>/<identifier>.json``.
Identifiers are percent-encoded so arbitrary user ids map to safe file
names. Writes go to a temporary file that is then renamed over the target,
so a crash mid-write never leaves a truncated record behind.
It uses aiofiles for asynchronous file operations.
"""

from __future__ import annotations

import logging
import os
import pathlib
import uuid
from urllib.parse import quote, unquote

import aiofiles
import aiofiles.os as aios

from ..exceptions import ConfigError, PersistenceFailure
from .base import PersistenceBackend, StorageKey

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


class JsonFileBackend(PersistenceBackend):
    """Stores every key as a separate file below a root directory."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        if not str(path):
            raise ConfigError("JSON storage 'path' not specified in configuration.")
        self._root = pathlib.Path(os.path.expanduser(str(path)))

    @property
    def root(self) -> pathlib.Path:
        return self._root

    def _path_for(self, key: StorageKey) -> pathlib.Path:
        return self._root / key.namespace / f"{quote(key.identifier, safe='')}{_SUFFIX}"

    async def initialize(self) -> None:
        try:
            await aios.makedirs(self._root, exist_ok=True)
        except OSError as e:
            raise PersistenceFailure(str(self._root), f"Cannot create storage directory: {e}") from e
        logger.info(f"JSON file storage initialized at: {self._root.resolve()}")

    async def get(self, key: StorageKey) -> bytes | None:
        path = self._path_for(key)
        if not await aios.path.exists(path):
            return None
        try:
            async with aiofiles.open(path, mode="rb") as f:
                return await f.read()
        except OSError as e:
            raise PersistenceFailure(str(key), f"Failed to read {path}: {e}") from e

    async def set(self, key: StorageKey, value: bytes) -> None:
        path = self._path_for(key)
        tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            await aios.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, mode="wb") as f:
                await f.write(value)
            await aios.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceFailure(str(key), f"Failed to write {path}: {e}") from e
        logger.debug(f"Wrote {len(value)} bytes to {path}")

    async def delete(self, key: StorageKey) -> None:
        path = self._path_for(key)
        try:
            await aios.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceFailure(str(key), f"Failed to delete {path}: {e}") from e

    async def list_identifiers(self, namespace: str) -> list[str]:
        directory = self._root / namespace
        if not await aios.path.isdir(directory):
            return []
        try:
            names = await aios.listdir(directory)
        except OSError as e:
            raise PersistenceFailure(namespace, f"Failed to list {directory}: {e}") from e
        return sorted(unquote(n[: -len(_SUFFIX)]) for n in names if n.endswith(_SUFFIX))
