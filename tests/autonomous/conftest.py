# tests/autonomous/conftest.py
"""
Shared fixtures for autonomous module tests.

Every component is wired over an in-memory backend and a ManualClock so
that time only moves when a test advances it.
"""

import random
from typing import Any

import pytest

from agentcore.autonomous.clock import ManualClock
from agentcore.autonomous.decisions import DecisionEngine
from agentcore.autonomous.goals import GoalStore
from agentcore.autonomous.memory import MemoryStore
from agentcore.autonomous.scheduler import StepScheduler
from agentcore.autonomous.suggestions import SuggestionRegistry
from agentcore.autonomous.tools import ToolRegistry, register_builtin_tools
from agentcore.config.autonomous_config import DecisionConfig
from agentcore.exceptions import PersistenceFailure
from agentcore.storage import InMemoryBackend, RecordStore


class RecordingExecutor:
    """AI executor double: records calls, fails on request."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.results: dict[str, Any] = {}
        self.failing: set[str] = set()
        self.return_none: set[str] = set()

    async def execute(self, action, parameters, goal):
        self.calls.append((action, parameters))
        if action in self.failing:
            raise RuntimeError(f"{action} exploded")
        if action in self.return_none:
            return None
        return self.results.get(action, {"action": action, "ok": True})


class FlakyBackend(InMemoryBackend):
    """In-memory backend whose reads or writes can be switched off."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key):
        if self.fail_reads:
            raise PersistenceFailure(str(key), "read disabled")
        return await super().get(key)

    async def set(self, key, value):
        if self.fail_writes:
            raise PersistenceFailure(str(key), "write disabled")
        await super().set(key, value)


class FirstChoiceRandom(random.Random):
    """Deterministic stand-in for pattern-less choices."""

    def choice(self, seq):
        return seq[0]


@pytest.fixture
def clock():
    """A manual clock at 2024-01-01 12:00 UTC."""
    return ManualClock()


@pytest.fixture
def backend():
    return FlakyBackend()


@pytest.fixture
def records(backend):
    return RecordStore(backend)


@pytest.fixture
def memory_store(records, clock):
    return MemoryStore(records, clock)


@pytest.fixture
def tool_registry(memory_store):
    registry = ToolRegistry()
    register_builtin_tools(registry, memory_store)
    return registry


@pytest.fixture
def ai_executor():
    return RecordingExecutor()


@pytest.fixture
def scheduler(tool_registry, ai_executor, clock):
    return StepScheduler(tool_registry, ai_executor, clock)


@pytest.fixture
def goal_store(records, memory_store, scheduler, clock):
    """GoalStore without a planner: every goal gets the default step."""
    return GoalStore(records, memory_store, scheduler, planner=None, clock=clock)


@pytest.fixture
def suggestion_registry(records, clock):
    return SuggestionRegistry(records, clock)


@pytest.fixture
def decision_engine(records, clock):
    """Engine at the default (gated) independence level."""
    return DecisionEngine(records, clock, rng=FirstChoiceRandom())


@pytest.fixture
def trusted_engine(records, clock):
    """Engine that starts above the independence threshold."""
    return DecisionEngine(
        records, clock, DecisionConfig(initial_independence=0.6), rng=FirstChoiceRandom()
    )
