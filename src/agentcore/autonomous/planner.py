# src/agentcore/autonomous/planner.py
"""
Planner and AI-execution boundary.

The language-model backend lives outside the core. It is consumed
through two small protocols:

- :class:`Planner` turns a goal description into a plan. It may return
  the raw model text (a JSON document with a ``"steps"`` array), an
  already-decoded dict, or a list of step dicts.
- :class:`AIExecutor` executes a step whose action has no registered
  tool. It must return a result or raise; returning None counts as a
  failure.

:func:`parse_plan` normalizes whatever the planner returned into
:class:`TaskStep` objects and raises :class:`PlanningFailure` when it
cannot. :func:`default_plan` is the single-step fallback used in that
case.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol, runtime_checkable

from ..exceptions import PlanningFailure
from .models import Goal, GoalPriority, TaskStep

logger = logging.getLogger(__name__)

DEFAULT_ACTION = "analyze_goal"

# Models often wrap JSON in a fenced code block.
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


@runtime_checkable
class Planner(Protocol):
    """Protocol for goal planners."""

    async def plan(self, goal_description: str, priority: GoalPriority) -> Any: ...


@runtime_checkable
class AIExecutor(Protocol):
    """Protocol for the generic AI-execution path."""

    async def execute(self, action: str, parameters: dict[str, Any], goal: Goal) -> Any: ...


def build_planning_prompt(goal_description: str, priority: GoalPriority) -> str:
    """Prompt a model-backed planner can send as-is."""
    return (
        "Create an execution plan for this goal.\n\n"
        f"Goal: {goal_description}\n"
        f"Priority: {priority.value}\n\n"
        "Break it into concrete, measurable steps. Respond with JSON only:\n"
        '{"steps": [{"id": "step_1", "action": "research_topic", '
        '"parameters": {"query": "..."}, "dependencies": []}, '
        '{"id": "step_2", "action": "analyze_findings", '
        '"parameters": {}, "dependencies": ["step_1"]}]}'
    )


def default_plan(goal_description: str) -> list[TaskStep]:
    """The single fallback step used when planning fails."""
    return [
        TaskStep(
            id="step_1",
            action=DEFAULT_ACTION,
            parameters={"goal": goal_description},
            dependencies=[],
        )
    ]


def _decode(raw: Any, goal_description: str) -> list[Any]:
    if isinstance(raw, str):
        text = raw.strip()
        fenced = _FENCE_RE.search(text)
        if fenced:
            text = fenced.group(1).strip()
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise PlanningFailure(goal_description, f"Planner output is not valid JSON: {e}") from e

    if isinstance(raw, dict):
        raw = raw.get("steps")
    if not isinstance(raw, list):
        raise PlanningFailure(goal_description, "Planner output has no 'steps' list.")
    return raw


def parse_plan(raw: Any, goal_description: str) -> list[TaskStep]:
    """
    Convert planner output into pending steps.

    Steps without an id get ``step_<n>`` (1-based position). Duplicate ids,
    missing actions and non-list dependencies are planning failures.

    Raises:
        PlanningFailure: If the output cannot be turned into a step list.
    """
    items = _decode(raw, goal_description)
    if not items:
        raise PlanningFailure(goal_description, "Planner returned an empty plan.")

    steps: list[TaskStep] = []
    seen: set[str] = set()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise PlanningFailure(goal_description, f"Step #{index + 1} is not an object.")
        step_id = str(item.get("id") or f"step_{index + 1}")
        action = item.get("action")
        if not action or not isinstance(action, str):
            raise PlanningFailure(goal_description, f"Step '{step_id}' has no action.")
        if step_id in seen:
            raise PlanningFailure(goal_description, f"Duplicate step id '{step_id}'.")
        parameters = item.get("parameters") or {}
        dependencies = item.get("dependencies") or []
        if not isinstance(parameters, dict) or not isinstance(dependencies, list):
            raise PlanningFailure(goal_description, f"Step '{step_id}' is malformed.")
        seen.add(step_id)
        steps.append(TaskStep(
            id=step_id,
            action=action,
            parameters=dict(parameters),
            dependencies=[str(d) for d in dependencies],
        ))
    return steps


class StaticPlanner:
    """
    Planner that always returns the same plan.

    Useful for hosts without a model-backed planner, and in tests.
    """

    def __init__(self, steps: list[dict[str, Any]] | None = None) -> None:
        self._steps = steps

    async def plan(self, goal_description: str, priority: GoalPriority) -> Any:
        if self._steps is None:
            return {"steps": [s.to_dict() for s in default_plan(goal_description)]}
        return {"steps": [dict(s) for s in self._steps]}
