# tests/autonomous/test_tools.py
"""
Tests for the tool registry and built-in tools.

Covers:
- Registration, replacement and resolution (conditional availability)
- Approval gating for user_approval_required tools
- Parameter validation with pydantic models
- The analyze_goal, analyze_user_pattern and suggest_optimization tools
"""

import pytest
from pydantic import BaseModel, ValidationError

from agentcore.autonomous.models import Goal, GoalStatus, StepStatus, TaskStep
from agentcore.autonomous.tools import (
    ToolAvailability,
    ToolCapability,
    ToolContext,
    ToolRegistry,
)


def make_context(goal: Goal, clock) -> ToolContext:
    step = goal.steps[0] if goal.steps else TaskStep(id="step_1", action="x")
    return ToolContext(goal=goal, step=step, now=clock.now())


class EchoParams(BaseModel):
    text: str


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_builtins_registered(self, tool_registry):
        assert tool_registry.names() == ["analyze_goal", "analyze_user_pattern", "suggest_optimization"]
        assert "analyze_goal" in tool_registry

    def test_resolve_unknown_is_none(self, tool_registry):
        assert tool_registry.resolve("research_topic") is None

    def test_conditional_tool(self):
        available = {"flag": False}
        registry = ToolRegistry()
        registry.register(ToolCapability(
            name="search",
            description="web search",
            func=lambda params, ctx: "ok",
            availability=ToolAvailability.CONDITIONAL,
            is_available=lambda: available["flag"],
        ))
        assert registry.resolve("search") is None
        available["flag"] = True
        assert registry.resolve("search").name == "search"

    def test_register_replaces_and_unregister(self):
        registry = ToolRegistry()
        registry.register(ToolCapability(name="t", description="one", func=lambda p, c: 1))
        registry.register(ToolCapability(name="t", description="two", func=lambda p, c: 2))
        assert registry.get("t").description == "two"
        assert registry.unregister("t") is True
        assert registry.unregister("t") is False

    @pytest.mark.asyncio
    async def test_approval(self):
        capability = ToolCapability(
            name="send_email",
            description="sends mail",
            func=lambda p, c: "sent",
            availability=ToolAvailability.USER_APPROVAL_REQUIRED,
        )
        goal = Goal.create("Send the report", user_id="u1")
        step = TaskStep(id="step_1", action="send_email")
        registry = ToolRegistry()

        assert await registry.approve(capability, goal, step) is False

        async def approve_all(cap, g, s):
            return True

        registry.set_approval_handler(approve_all)
        assert await registry.approve(capability, goal, step) is True

    @pytest.mark.asyncio
    async def test_unrestricted_tools_need_no_approval(self):
        capability = ToolCapability(name="t", description="", func=lambda p, c: 1)
        goal = Goal.create("x", user_id="u1")
        assert await ToolRegistry().approve(capability, goal, TaskStep(id="s", action="t")) is True


class TestToolInvocation:
    """Tests for ToolCapability.invoke."""

    @pytest.mark.asyncio
    async def test_validated_parameters(self, clock):
        async def echo(params: EchoParams, context):
            return params.text.upper()

        capability = ToolCapability(name="echo", description="", func=echo, parameters_model=EchoParams)
        goal = Goal.create("x", user_id="u1")

        assert await capability.invoke({"text": "hi"}, make_context(goal, clock)) == "HI"
        with pytest.raises(ValidationError):
            await capability.invoke({"wrong": 1}, make_context(goal, clock))

    @pytest.mark.asyncio
    async def test_raw_parameters_without_model(self, clock):
        capability = ToolCapability(name="raw", description="", func=lambda p, c: sorted(p))
        goal = Goal.create("x", user_id="u1")
        assert await capability.invoke({"b": 1, "a": 2}, make_context(goal, clock)) == ["a", "b"]


class TestBuiltinTools:
    """Tests for the built-in tools."""

    @pytest.mark.asyncio
    async def test_analyze_goal(self, tool_registry, clock):
        goal = Goal.create("Research the history of the Rust compiler", user_id="u1")
        result = await tool_registry.get("analyze_goal").invoke(
            {"goal": goal.description}, make_context(goal, clock)
        )
        assert result["keywords"][:3] == ["research", "history", "rust"]
        assert result["complexity"] == "low"
        assert result["priority"] == "medium"

    @pytest.mark.asyncio
    async def test_analyze_user_pattern(self, tool_registry, memory_store, clock):
        await memory_store.record_interaction("u1", "research", {"topic": "a"})
        await memory_store.record_interaction("u1", "research", {"topic": "b"})
        await memory_store.record_interaction("u1", "chat")
        goal = Goal.create("Find patterns", user_id="u1")

        result = await tool_registry.get("analyze_user_pattern").invoke(
            {"timeframe": "day"}, make_context(goal, clock)
        )

        assert result["user_id"] == "u1"
        assert result["interaction_counts"] == {"research": 2, "chat": 1}
        assert result["most_common"] == "research"

    @pytest.mark.asyncio
    async def test_analyze_user_pattern_rejects_unknown_timeframe(self, tool_registry, clock):
        goal = Goal.create("Find patterns", user_id="u1")
        with pytest.raises(ValidationError):
            await tool_registry.get("analyze_user_pattern").invoke(
                {"timeframe": "decade"}, make_context(goal, clock)
            )

    @pytest.mark.asyncio
    async def test_suggest_optimization(self, tool_registry, clock):
        goal = Goal.create("Ship", user_id="u1", deadline=clock.now())
        goal.status = GoalStatus.IN_PROGRESS
        goal.steps = [
            TaskStep(id="a", action="x"),
            TaskStep(id="b", action="y", status=StepStatus.FAILED),
        ]
        result = await tool_registry.get("suggest_optimization").invoke({}, make_context(goal, clock))
        assert result["optimizations"] == [
            "workflow_improvement",
            "batch_independent_steps",
            "review_failed_steps",
            "prioritize_before_deadline",
        ]
