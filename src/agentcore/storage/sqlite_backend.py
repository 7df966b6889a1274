# src/agentcore/storage/sqlite_backend.py
"""
SQLite persistence backend using aiosqlite.

All keys live in a single ``agent_records`` table keyed by
``(namespace, identifier)``.
"""

from __future__ import annotations

import logging
import os
import pathlib
from datetime import datetime, timezone

import aiosqlite

from ..exceptions import ConfigError, PersistenceFailure
from .base import PersistenceBackend, StorageKey

logger = logging.getLogger(__name__)

DEFAULT_RECORDS_TABLE = "agent_records"


class SqliteBackend(PersistenceBackend):
    """Key-value records in one SQLite table."""

    def __init__(self, path: str | os.PathLike[str], table_name: str = DEFAULT_RECORDS_TABLE) -> None:
        if not str(path):
            raise ConfigError("SQLite storage 'path' not specified in configuration.")
        if not table_name.isidentifier():
            raise ConfigError(f"Invalid SQLite table name: {table_name!r}")
        self._db_path = pathlib.Path(os.path.expanduser(str(path)))
        self._table = table_name
        self._conn: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._conn is not None:
            return
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(self._db_path)
            await self._conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    namespace TEXT NOT NULL, identifier TEXT NOT NULL,
                    value BLOB NOT NULL, updated_at TEXT NOT NULL,
                    PRIMARY KEY (namespace, identifier)
                )
            """)
            await self._conn.commit()
        except (aiosqlite.Error, OSError) as e:
            raise PersistenceFailure(str(self._db_path), f"Failed to initialize SQLite storage: {e}") from e
        logger.info(f"SQLite storage initialized at: {self._db_path.resolve()}")

    async def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            await self.initialize()
        assert self._conn is not None
        return self._conn

    async def get(self, key: StorageKey) -> bytes | None:
        conn = await self._connection()
        try:
            async with conn.execute(
                f"SELECT value FROM {self._table} WHERE namespace = ? AND identifier = ?",
                (key.namespace, key.identifier),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise PersistenceFailure(str(key), f"SQLite read failed: {e}") from e
        return bytes(row[0]) if row else None

    async def set(self, key: StorageKey, value: bytes) -> None:
        conn = await self._connection()
        try:
            await conn.execute(
                f"INSERT OR REPLACE INTO {self._table} (namespace, identifier, value, updated_at) "
                "VALUES (?, ?, ?, ?)",
                (key.namespace, key.identifier, value, datetime.now(timezone.utc).isoformat()),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            raise PersistenceFailure(str(key), f"SQLite write failed: {e}") from e

    async def delete(self, key: StorageKey) -> None:
        conn = await self._connection()
        try:
            await conn.execute(
                f"DELETE FROM {self._table} WHERE namespace = ? AND identifier = ?",
                (key.namespace, key.identifier),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            raise PersistenceFailure(str(key), f"SQLite delete failed: {e}") from e

    async def list_identifiers(self, namespace: str) -> list[str]:
        conn = await self._connection()
        try:
            async with conn.execute(
                f"SELECT identifier FROM {self._table} WHERE namespace = ? ORDER BY identifier",
                (namespace,),
            ) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise PersistenceFailure(namespace, f"SQLite list failed: {e}") from e
        return [row[0] for row in rows]

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.debug("SQLite storage connection closed.")
