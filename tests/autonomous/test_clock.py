# tests/autonomous/test_clock.py
"""Tests for the ManualClock used to drive time-dependent components."""

import asyncio
from datetime import timedelta

import pytest

from agentcore.autonomous.clock import Clock, ManualClock, SystemClock


class TestManualClock:
    """Tests for ManualClock."""

    def test_satisfies_protocol(self):
        assert isinstance(ManualClock(), Clock)
        assert isinstance(SystemClock(), Clock)

    @pytest.mark.asyncio
    async def test_sleep_waits_for_advance(self, clock):
        """A sleeper is released only once the clock passes its deadline."""
        start = clock.now()
        task = asyncio.create_task(clock.sleep(10))
        await asyncio.sleep(0)
        assert clock.pending_sleepers == 1

        await clock.advance(5)
        assert not task.done()

        await clock.advance(5)
        assert task.done()
        assert clock.now() == start + timedelta(seconds=10)

    @pytest.mark.asyncio
    async def test_sleepers_wake_in_deadline_order(self, clock):
        woke: list[str] = []

        async def sleeper(name: str, seconds: float) -> None:
            await clock.sleep(seconds)
            woke.append(name)

        tasks = [
            asyncio.create_task(sleeper("late", 20)),
            asyncio.create_task(sleeper("early", 5)),
        ]
        await asyncio.sleep(0)
        await clock.advance(30)
        await asyncio.gather(*tasks)
        assert woke == ["early", "late"]

    @pytest.mark.asyncio
    async def test_zero_sleep_returns_immediately(self, clock):
        await clock.sleep(0)
        assert clock.pending_sleepers == 0

    def test_set_jumps_without_waking(self, clock):
        target = clock.now() + timedelta(hours=3)
        clock.set(target)
        assert clock.now() == target
