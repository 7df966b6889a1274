# src/agentcore/autonomous/memory.py
"""
Per-user agent memory.

The :class:`MemoryStore` is the only writer of :class:`AgentMemory`
records. It keeps an in-process cache that is authoritative for the
lifetime of the process and mirrors every mutation to durable storage
through a :class:`~agentcore.storage.RecordStore`.

Writes for a single user are serialized with a per-user ``asyncio.Lock``:
all mutation goes through :meth:`MemoryStore.update`, which loads (or
creates) the record, applies the mutation and persists it while holding
the lock. Two goals of the same user executing concurrently therefore
never lose each other's updates.

Example::

    store = MemoryStore(RecordStore(InMemoryBackend()))
    memory = await store.get_or_create("user_1")

    await store.update("user_1", lambda m: m.long_term.user_preferences.update(tone="brief"))
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from datetime import timedelta
from typing import Any, Awaitable, Callable, TypeVar

from ..config.autonomous_config import MemoryConfig
from ..storage import RecordStore, StorageKey
from .clock import Clock, SystemClock
from .models import AgentMemory, Interaction

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MEMORY_NAMESPACE = "memory"


class MemoryStore:
    """
    Owns every user's :class:`AgentMemory`.

    Args:
        records: Record layer over the persistence backend.
        clock: Time source used to stamp ``last_updated``.
        config: Memory settings.
    """

    def __init__(
        self,
        records: RecordStore,
        clock: Clock | None = None,
        config: MemoryConfig | None = None,
    ) -> None:
        self._records = records
        self._clock = clock or SystemClock()
        self._config = config or MemoryConfig()
        self._cache: dict[str, AgentMemory] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    async def load_user_memory(self, user_id: str) -> AgentMemory | None:
        """
        Return the user's memory, or None if it was never created.

        The cache wins when populated. Otherwise the durable record is
        read and fully rehydrated (timestamps back to ``datetime``).
        """
        cached = self._cache.get(user_id)
        if cached is not None:
            return cached

        data = await self._records.load(StorageKey.memory(user_id))
        if data is None:
            return None
        try:
            memory = AgentMemory.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Discarding unreadable memory record for user '{user_id}': {e}")
            return None
        # A locked writer may have populated the cache while we were reading.
        return self._cache.setdefault(user_id, memory)

    async def save_user_memory(self, user_id: str, memory: AgentMemory) -> AgentMemory:
        """Stamp ``last_updated``, cache and persist ``memory``."""
        async with self._locks[user_id]:
            return await self._save_locked(user_id, memory)

    async def _save_locked(self, user_id: str, memory: AgentMemory) -> AgentMemory:
        previous = self._cache.get(user_id)
        stamp = self._clock.now()
        floor = max(memory.last_updated, previous.last_updated if previous else memory.last_updated)
        if stamp <= floor:
            stamp = floor + timedelta(microseconds=1)
        memory.last_updated = stamp
        memory.user_id = user_id
        self._cache[user_id] = memory

        if await self._records.save(StorageKey.memory(user_id), memory.to_dict()):
            logger.debug(f"Memory for user '{user_id}' persisted at {stamp.isoformat()}")
        return memory

    async def get_or_create(self, user_id: str) -> AgentMemory:
        """Return the user's memory, creating and persisting an empty one if needed."""
        async with self._locks[user_id]:
            return await self._get_or_create_locked(user_id)

    async def _get_or_create_locked(self, user_id: str) -> AgentMemory:
        memory = await self.load_user_memory(user_id)
        if memory is None:
            memory = AgentMemory.empty(user_id, now=self._clock.now())
            await self._save_locked(user_id, memory)
            logger.info(f"Created agent memory for user '{user_id}'")
        return memory

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    async def update(
        self,
        user_id: str,
        mutate: Callable[[AgentMemory], T | Awaitable[T]],
    ) -> T:
        """
        Apply ``mutate`` to the user's memory and persist it, holding the
        user's lock for the whole read-modify-write.

        ``mutate`` may be a plain function or a coroutine function; its
        return value is passed through.
        """
        async with self._locks[user_id]:
            memory = await self._get_or_create_locked(user_id)
            outcome = mutate(memory)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            await self._save_locked(user_id, memory)
            return outcome

    async def record_interaction(
        self, user_id: str, kind: str, payload: dict[str, Any] | None = None
    ) -> Interaction:
        """Append to the user's recent-interaction window (bounded)."""
        interaction = Interaction(kind=kind, payload=dict(payload or {}), timestamp=self._clock.now())
        limit = self._config.max_recent_interactions

        def _append(memory: AgentMemory) -> Interaction:
            recent = memory.working.recent_interactions
            recent.append(interaction)
            if len(recent) > limit:
                del recent[: len(recent) - limit]
            return interaction

        return await self.update(user_id, _append)

    # ------------------------------------------------------------------
    # Enumeration / export
    # ------------------------------------------------------------------

    async def known_users(self) -> list[str]:
        """Users present in the cache or in durable storage."""
        durable = await self._records.identifiers(_MEMORY_NAMESPACE)
        return sorted(set(durable) | set(self._cache))

    async def all_memories(self) -> list[AgentMemory]:
        memories = []
        for user_id in await self.known_users():
            memory = await self.load_user_memory(user_id)
            if memory is not None:
                memories.append(memory)
        return memories

    async def export_user(self, user_id: str) -> dict[str, Any] | None:
        memory = await self.load_user_memory(user_id)
        return memory.to_dict() if memory is not None else None

    async def import_user(self, user_id: str, data: dict[str, Any]) -> AgentMemory:
        """Replace the user's memory with an exported record."""
        memory = AgentMemory.from_dict({**data, "user_id": user_id})
        async with self._locks[user_id]:
            self._cache.pop(user_id, None)
            return await self._save_locked(user_id, memory)
