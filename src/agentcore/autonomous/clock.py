# src/agentcore/autonomous/clock.py
"""
Clock abstraction for the autonomous core.

Components read the time and sleep only through a :class:`Clock`. The
production :class:`SystemClock` uses wall-clock time and ``asyncio.sleep``;
:class:`ManualClock` lets tests drive the thinking loop and retry backoff
deterministically without real waits.

Example:
    clock = ManualClock()
    loop = ThinkingLoop(..., clock=clock)
    await loop.start()
    await clock.advance(30)   # exactly one tick fires
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from datetime import datetime, timedelta, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Protocol for time sources."""

    def now(self) -> datetime: ...
    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Real time: aware UTC ``now`` and ``asyncio.sleep``."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class ManualClock:
    """
    A clock that only moves when told to.

    ``sleep`` parks the caller on a future that is resolved once
    :meth:`advance` moves the clock past its deadline. Sleepers wake in
    deadline order, and ``advance`` yields to the event loop after each
    wake-up so that woken tasks run before the next one is released.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self._sleepers: list[tuple[datetime, int, asyncio.Future[None]]] = []
        self._counter = itertools.count()

    def now(self) -> datetime:
        return self._now

    def set(self, when: datetime) -> None:
        """Jump to ``when`` without waking sleepers (use for fixtures)."""
        self._now = when

    @property
    def pending_sleepers(self) -> int:
        return sum(1 for _, _, fut in self._sleepers if not fut.done())

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        deadline = self._now + timedelta(seconds=seconds)
        heapq.heappush(self._sleepers, (deadline, next(self._counter), future))
        await future

    async def advance(self, seconds: float) -> None:
        """Move the clock forward, waking every sleeper that falls due."""
        target = self._now + timedelta(seconds=seconds)
        while self._sleepers and self._sleepers[0][0] <= target:
            deadline, _, future = heapq.heappop(self._sleepers)
            self._now = max(self._now, deadline)
            if not future.done():
                future.set_result(None)
            await self._settle()
        self._now = target
        await self._settle()

    @staticmethod
    async def _settle(rounds: int = 10) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)
