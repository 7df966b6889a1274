# tests/autonomous/test_planner.py
"""Tests for plan parsing, the default plan and the static planner."""

import json

import pytest

from agentcore.autonomous.models import GoalPriority, StepStatus
from agentcore.autonomous.planner import (
    DEFAULT_ACTION,
    StaticPlanner,
    build_planning_prompt,
    default_plan,
    parse_plan,
)
from agentcore.exceptions import PlanningFailure


class TestParsePlan:
    """Tests for parse_plan."""

    def test_json_text(self):
        raw = json.dumps({
            "steps": [
                {"id": "s1", "action": "research_topic", "parameters": {"query": "x"}},
                {"id": "s2", "action": "summarize", "dependencies": ["s1"]},
            ]
        })
        steps = parse_plan(raw, "goal")
        assert [s.id for s in steps] == ["s1", "s2"]
        assert steps[0].parameters == {"query": "x"}
        assert steps[1].dependencies == ["s1"]
        assert all(s.status == StepStatus.PENDING for s in steps)

    def test_fenced_json(self):
        raw = 'Here is the plan:\n```json\n{"steps": [{"action": "research_topic"}]}\n```'
        steps = parse_plan(raw, "goal")
        assert steps[0].id == "step_1"
        assert steps[0].action == "research_topic"

    def test_plain_list(self):
        steps = parse_plan([{"action": "a"}, {"action": "b"}], "goal")
        assert [s.id for s in steps] == ["step_1", "step_2"]

    @pytest.mark.parametrize(
        "raw",
        [
            "not json at all",
            {"plan": []},
            {"steps": []},
            {"steps": ["just a string"]},
            {"steps": [{"id": "s1"}]},
            {"steps": [{"id": "s1", "action": "a"}, {"id": "s1", "action": "b"}]},
            {"steps": [{"id": "s1", "action": "a", "dependencies": "s0"}]},
        ],
    )
    def test_invalid_plans(self, raw):
        with pytest.raises(PlanningFailure):
            parse_plan(raw, "goal")


class TestDefaults:
    """Tests for the fallback plan, prompt and StaticPlanner."""

    def test_default_plan(self):
        steps = default_plan("Learn Go")
        assert len(steps) == 1
        assert steps[0].id == "step_1"
        assert steps[0].action == DEFAULT_ACTION
        assert steps[0].parameters == {"goal": "Learn Go"}
        assert steps[0].dependencies == []

    def test_prompt_mentions_goal_and_priority(self):
        prompt = build_planning_prompt("Learn Go", GoalPriority.HIGH)
        assert "Learn Go" in prompt
        assert "high" in prompt

    @pytest.mark.asyncio
    async def test_static_planner(self):
        planner = StaticPlanner([{"id": "a", "action": "x"}])
        raw = await planner.plan("anything", GoalPriority.LOW)
        assert [s.id for s in parse_plan(raw, "anything")] == ["a"]

        fallback = await StaticPlanner().plan("Learn Go", GoalPriority.LOW)
        assert parse_plan(fallback, "Learn Go")[0].action == DEFAULT_ACTION
