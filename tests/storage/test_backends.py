# tests/storage/test_backends.py
"""
Tests for the persistence backends.

Covers:
- The shared key-value contract on every backend (parametrized)
- JsonFileBackend file layout, identifier quoting, atomic writes
- SqliteBackend initialization and reopen
- create_backend selection from StorageConfig
- StorageKey validation
"""

import pytest

from agentcore.config.autonomous_config import StorageConfig
from agentcore.exceptions import ConfigError
from agentcore.storage import (
    InMemoryBackend,
    JsonFileBackend,
    SqliteBackend,
    StorageKey,
    create_backend,
)


@pytest.fixture(params=["memory", "json", "sqlite"])
async def backend(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryBackend()
    elif request.param == "json":
        backend = JsonFileBackend(tmp_path / "state")
    else:
        backend = SqliteBackend(tmp_path / "db" / "agent.db")
    await backend.initialize()
    yield backend
    await backend.close()


class TestBackendContract:
    """Behaviour every backend shares."""

    @pytest.mark.asyncio
    async def test_get_absent_key(self, backend):
        assert await backend.get(StorageKey.memory("nobody")) is None

    @pytest.mark.asyncio
    async def test_set_get_overwrite(self, backend):
        key = StorageKey.memory("u1")
        await backend.set(key, b'{"v": 1}')
        await backend.set(key, b'{"v": 2}')
        assert await backend.get(key) == b'{"v": 2}'

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, backend):
        key = StorageKey.suggestions("u1")
        await backend.set(key, b"[]")
        await backend.delete(key)
        await backend.delete(key)
        assert await backend.get(key) is None

    @pytest.mark.asyncio
    async def test_list_identifiers_per_namespace(self, backend):
        await backend.set(StorageKey.memory("b"), b"{}")
        await backend.set(StorageKey.memory("a"), b"{}")
        await backend.set(StorageKey.goals(), b"[]")

        assert await backend.list_identifiers("memory") == ["a", "b"]
        assert await backend.list_identifiers("suggestions") == []

    @pytest.mark.asyncio
    async def test_awkward_identifiers(self, backend):
        key = StorageKey.memory("alice@example.com/../x y")
        await backend.set(key, b"{}")
        assert await backend.get(key) == b"{}"
        assert await backend.list_identifiers("memory") == ["alice@example.com/../x y"]


class TestJsonFileBackend:
    """Tests specific to the file backend."""

    @pytest.mark.asyncio
    async def test_layout_and_no_temp_files(self, tmp_path):
        backend = JsonFileBackend(tmp_path)
        await backend.initialize()

        await backend.set(StorageKey.memory("user/1"), b"{}")

        assert [p.name for p in (tmp_path / "memory").iterdir()] == ["user%2F1.json"]

    @pytest.mark.asyncio
    async def test_values_survive_a_new_instance(self, tmp_path):
        await JsonFileBackend(tmp_path).set(StorageKey.goals(), b"[1]")
        assert await JsonFileBackend(tmp_path).get(StorageKey.goals()) == b"[1]"

    def test_empty_path_rejected(self):
        with pytest.raises(ConfigError):
            JsonFileBackend("")


class TestSqliteBackend:
    """Tests specific to the SQLite backend."""

    @pytest.mark.asyncio
    async def test_values_survive_reopen(self, tmp_path):
        path = tmp_path / "agent.db"
        first = SqliteBackend(path)
        await first.initialize()
        await first.set(StorageKey.decisions(), b'{"independence_score": 0.4}')
        await first.close()

        second = SqliteBackend(path)
        await second.initialize()
        try:
            assert await second.get(StorageKey.decisions()) == b'{"independence_score": 0.4}'
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_lazy_connection(self, tmp_path):
        backend = SqliteBackend(tmp_path / "lazy.db")
        try:
            await backend.set(StorageKey.goals(), b"[]")
            assert await backend.get(StorageKey.goals()) == b"[]"
        finally:
            await backend.close()

    def test_invalid_table_name(self, tmp_path):
        with pytest.raises(ConfigError):
            SqliteBackend(tmp_path / "x.db", table_name="records; DROP TABLE x")


class TestCreateBackend:
    """Tests for create_backend."""

    def test_default_is_in_memory(self):
        assert isinstance(create_backend(), InMemoryBackend)

    def test_json(self, tmp_path):
        backend = create_backend(StorageConfig(backend="json", path=str(tmp_path)))
        assert isinstance(backend, JsonFileBackend)
        assert backend.root == tmp_path

    def test_sqlite_directory_gets_default_file_name(self, tmp_path):
        backend = create_backend(StorageConfig(backend="sqlite", path=str(tmp_path / "state")))
        assert isinstance(backend, SqliteBackend)
        assert backend._db_path == tmp_path / "state" / "agentcore.db"

    def test_sqlite_file_path_kept(self, tmp_path):
        backend = create_backend(StorageConfig(backend="SQLite", path=str(tmp_path / "my.db")))
        assert backend._db_path == tmp_path / "my.db"


class TestStorageKey:
    """Tests for StorageKey."""

    def test_str(self):
        assert str(StorageKey("memory", "user_1")) == "memory/user_1"

    @pytest.mark.parametrize("namespace", ["", "a/b", "has space"])
    def test_invalid_namespace(self, namespace):
        with pytest.raises(ValueError):
            StorageKey(namespace, "x")

    def test_empty_identifier(self):
        with pytest.raises(ValueError):
            StorageKey("memory", "")
