# src/agentcore/autonomous/tools.py
"""
Tool registry for step execution.

A step's ``action`` is resolved against the :class:`ToolRegistry`. A
registered, available tool executes the step; anything else falls through
to the generic AI-execution path (see :mod:`agentcore.autonomous.planner`).

Each :class:`ToolCapability` carries an availability tag:

- ``always``: used whenever registered;
- ``conditional``: used only while its ``is_available`` predicate holds;
- ``user_approval_required``: the registry's approval handler must
  return True before every execution, otherwise the step fails.

Tools may declare a pydantic ``parameters_model``; step parameters are
validated against it before the tool runs and the tool receives the
validated model instance.
"""

from __future__ import annotations

import inspect
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from pydantic import BaseModel, Field

from .models import Goal, GoalStatus, StepStatus, TaskStep

if TYPE_CHECKING:
    from .memory import MemoryStore

logger = logging.getLogger(__name__)


class ToolAvailability(Enum):
    ALWAYS = "always"
    CONDITIONAL = "conditional"
    USER_APPROVAL_REQUIRED = "user_approval_required"


@dataclass
class ToolContext:
    """What a tool gets to see besides its parameters."""

    goal: Goal
    step: TaskStep
    now: datetime


ToolFunc = Callable[[Any, ToolContext], Union[Any, Awaitable[Any]]]
ApprovalHandler = Callable[["ToolCapability", Goal, TaskStep], Union[bool, Awaitable[bool]]]


@dataclass
class ToolCapability:
    """
    A registered tool.

    Attributes:
        name: Action name the tool answers to.
        description: Human-readable description.
        func: ``func(parameters, context)``; sync or async.
        availability: When the tool may be used.
        parameters_model: Optional pydantic model validating parameters.
        is_available: Predicate consulted for ``conditional`` tools.
        timeout_seconds: Per-call timeout; overrides the retry policy's.
    """

    name: str
    description: str
    func: ToolFunc
    availability: ToolAvailability = ToolAvailability.ALWAYS
    parameters_model: type[BaseModel] | None = None
    is_available: Callable[[], bool] | None = None
    timeout_seconds: float | None = None

    def usable(self) -> bool:
        if self.availability is ToolAvailability.CONDITIONAL:
            return bool(self.is_available and self.is_available())
        return True

    async def invoke(self, parameters: dict[str, Any], context: ToolContext) -> Any:
        """
        Validate parameters and run the tool.

        Raises:
            pydantic.ValidationError: If parameters do not match the model.
        """
        payload: Any = parameters
        if self.parameters_model is not None:
            payload = self.parameters_model.model_validate(parameters)
        result = self.func(payload, context)
        if inspect.isawaitable(result):
            result = await result
        return result


class ToolRegistry:
    """Mapping from action name to :class:`ToolCapability`."""

    def __init__(self, approval_handler: ApprovalHandler | None = None) -> None:
        self._tools: dict[str, ToolCapability] = {}
        self._approval_handler = approval_handler

    def register(self, capability: ToolCapability) -> None:
        if capability.name in self._tools:
            logger.info(f"Replacing registered tool '{capability.name}'")
        self._tools[capability.name] = capability

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> ToolCapability | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return sorted(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def resolve(self, action: str) -> ToolCapability | None:
        """The tool to execute ``action`` with, or None for the AI path."""
        capability = self._tools.get(action)
        if capability is None:
            return None
        if not capability.usable():
            logger.debug(f"Tool '{action}' is currently unavailable, using AI execution")
            return None
        return capability

    def set_approval_handler(self, handler: ApprovalHandler | None) -> None:
        self._approval_handler = handler

    async def approve(self, capability: ToolCapability, goal: Goal, step: TaskStep) -> bool:
        """Ask for approval; tools without the tag are always approved."""
        if capability.availability is not ToolAvailability.USER_APPROVAL_REQUIRED:
            return True
        if self._approval_handler is None:
            logger.warning(f"Tool '{capability.name}' needs approval but no handler is set")
            return False
        decision = self._approval_handler(capability, goal, step)
        if inspect.isawaitable(decision):
            decision = await decision
        return bool(decision)


# =============================================================================
# Built-in tools
# =============================================================================


class AnalyzeGoalParams(BaseModel):
    goal: str = Field(min_length=1)


class AnalyzeUserPatternParams(BaseModel):
    user_id: str | None = None
    timeframe: str = Field(default="week", pattern="^(day|week|month)$")


class SuggestOptimizationParams(BaseModel):
    context: dict[str, Any] = Field(default_factory=dict)


_TIMEFRAMES = {"day": timedelta(days=1), "week": timedelta(weeks=1), "month": timedelta(days=30)}

_STOPWORDS = frozenset(
    "a an and are as at be by for from how i in into is it me my of on or so the this to we what with".split()
)


def analyze_goal(params: AnalyzeGoalParams, context: ToolContext) -> dict[str, Any]:
    """Break the goal text into keywords and a rough size estimate."""
    words = [w.strip(".,:;!?()[]\"'").lower() for w in params.goal.split()]
    keywords = []
    for word in words:
        if word and word not in _STOPWORDS and word not in keywords:
            keywords.append(word)
    return {
        "goal": params.goal,
        "keywords": keywords[:10],
        "word_count": len(words),
        "complexity": "high" if len(words) > 40 else "medium" if len(words) > 12 else "low",
        "priority": context.goal.priority.value,
    }


def _analyze_user_pattern_tool(memory_store: MemoryStore) -> ToolFunc:
    async def analyze_user_pattern(params: AnalyzeUserPatternParams, context: ToolContext) -> dict[str, Any]:
        user_id = params.user_id or context.goal.user_id
        memory = await memory_store.load_user_memory(user_id)
        since = context.now - _TIMEFRAMES[params.timeframe]
        counts: Counter[str] = Counter()
        active_goals = completed_goals = 0
        if memory is not None:
            counts.update(i.kind for i in memory.working.recent_interactions if i.timestamp >= since)
            active_goals = len(memory.working.current_goals)
            completed_goals = len(memory.long_term.completed_goals)
        return {
            "user_id": user_id,
            "timeframe": params.timeframe,
            "interaction_counts": dict(counts),
            "most_common": counts.most_common(1)[0][0] if counts else None,
            "active_goals": active_goals,
            "completed_goals": completed_goals,
        }

    return analyze_user_pattern


def suggest_optimization(params: SuggestOptimizationParams, context: ToolContext) -> dict[str, Any]:
    """Heuristic workflow hints for the goal being executed."""
    goal = context.goal
    optimizations = ["workflow_improvement"]
    roots = [s for s in goal.steps if not s.dependencies]
    if len(roots) > 1:
        optimizations.append("batch_independent_steps")
    if any(s.status == StepStatus.FAILED or s.attempts > 1 for s in goal.steps):
        optimizations.append("review_failed_steps")
    if goal.deadline is not None and goal.status != GoalStatus.COMPLETED:
        optimizations.append("prioritize_before_deadline")
    return {"optimizations": optimizations, "context": params.context}


def register_builtin_tools(registry: ToolRegistry, memory_store: MemoryStore) -> None:
    """Register ``analyze_goal``, ``analyze_user_pattern`` and ``suggest_optimization``."""
    registry.register(ToolCapability(
        name="analyze_goal",
        description="Extract keywords and a complexity estimate from a goal description",
        func=analyze_goal,
        parameters_model=AnalyzeGoalParams,
    ))
    registry.register(ToolCapability(
        name="analyze_user_pattern",
        description="Summarize a user's recent interactions and goals",
        func=_analyze_user_pattern_tool(memory_store),
        parameters_model=AnalyzeUserPatternParams,
    ))
    registry.register(ToolCapability(
        name="suggest_optimization",
        description="Suggest workflow optimizations for the current goal",
        func=suggest_optimization,
        parameters_model=SuggestOptimizationParams,
    ))
