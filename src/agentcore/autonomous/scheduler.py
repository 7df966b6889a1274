# src/agentcore/autonomous/scheduler.py
"""
Step scheduler.

Orders a goal's steps by their dependencies and executes them one at a
time. Steps never run in parallel: step N+1 starts only after the
previous one finished, and never before all of its own dependencies are
``completed``.

Execution contract:

1. the step is marked ``in_progress`` and stamped with ``executed_at``;
2. its action resolves to a registered tool, or falls back to the AI
   executor;
3. on success the result is stored and the step marked ``completed``;
4. on failure the step and the goal are marked ``failed`` and
   :class:`~agentcore.exceptions.StepExecutionFailure` propagates;
5. after each step the goal status is checked; a concurrent
   ``pause_goal`` stops execution at that boundary.

Every state change is handed to a checkpoint callback so that the owner
of the goal can persist it.

Retries follow :class:`~agentcore.config.autonomous_config.RetryPolicyConfig`:
one attempt by default, bounded exponential backoff when configured.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from ..config.autonomous_config import RetryPolicyConfig
from ..exceptions import PlanningFailure, StepExecutionFailure
from .clock import Clock, SystemClock
from .models import Goal, GoalStatus, StepStatus, TaskStep
from .planner import AIExecutor
from .tools import ToolContext, ToolRegistry

logger = logging.getLogger(__name__)

Checkpoint = Callable[[Goal], Awaitable[None]]

_VISITING = 1
_DONE = 2


def sort_steps(steps: list[TaskStep], goal_description: str = "") -> list[TaskStep]:
    """
    Stable topological sort over ``dependencies``.

    Steps are visited depth-first in their original order; each step is
    emitted right after its dependencies. Steps without an ordering
    constraint between them keep their relative order.

    Raises:
        PlanningFailure: On a dependency cycle, or a dependency naming a
            step that is not part of the same goal.
    """
    index = {step.id: step for step in steps}
    for step in steps:
        for dep in step.dependencies:
            if dep not in index:
                raise PlanningFailure(
                    goal_description,
                    f"Step '{step.id}' depends on unknown step '{dep}'.",
                )

    marks: dict[str, int] = {}
    ordered: list[TaskStep] = []

    def visit(step: TaskStep, path: list[str]) -> None:
        mark = marks.get(step.id)
        if mark == _DONE:
            return
        if mark == _VISITING:
            cycle = " -> ".join(path[path.index(step.id):] + [step.id])
            raise PlanningFailure(goal_description, f"Dependency cycle detected: {cycle}")
        marks[step.id] = _VISITING
        path.append(step.id)
        for dep in step.dependencies:
            visit(index[dep], path)
        path.pop()
        marks[step.id] = _DONE
        ordered.append(step)

    for step in steps:
        visit(step, [])
    return ordered


class StepScheduler:
    """
    Executes a goal's steps sequentially in dependency order.

    Args:
        tools: Registry resolving step actions to tools.
        ai_executor: Fallback for actions without a usable tool.
        clock: Time source for ``executed_at`` stamps and backoff sleeps.
        retry: Retry / timeout policy.
    """

    def __init__(
        self,
        tools: ToolRegistry,
        ai_executor: AIExecutor | None = None,
        clock: Clock | None = None,
        retry: RetryPolicyConfig | None = None,
    ) -> None:
        self._tools = tools
        self._ai_executor = ai_executor
        self._clock = clock or SystemClock()
        self._retry = retry or RetryPolicyConfig()

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    async def execute(self, goal: Goal, checkpoint: Checkpoint) -> GoalStatus:
        """
        Run every non-completed step of ``goal``.

        Returns:
            ``COMPLETED`` when all steps finished, ``PAUSED`` when a pause
            was observed at a step boundary.

        Raises:
            PlanningFailure: If the goal's dependency graph is invalid.
            StepExecutionFailure: If a step failed (after retries).
        """
        try:
            ordered = sort_steps(goal.steps, goal.description)
        except PlanningFailure:
            goal.status = GoalStatus.FAILED
            goal.touch(self._clock.now())
            await checkpoint(goal)
            raise

        goal.status = GoalStatus.IN_PROGRESS
        goal.touch(self._clock.now())
        await checkpoint(goal)
        logger.info(f"Starting goal execution: {goal.title} ({goal.id})")

        for step in ordered:
            if goal.status == GoalStatus.PAUSED:
                logger.info(f"Goal execution paused: {goal.title}")
                return GoalStatus.PAUSED
            if step.status == StepStatus.COMPLETED:
                continue

            step.status = StepStatus.IN_PROGRESS
            step.executed_at = self._clock.now()
            step.error = None
            goal.touch(step.executed_at)
            await checkpoint(goal)

            try:
                result = await self._run_with_retry(goal, step)
            except StepExecutionFailure as e:
                step.status = StepStatus.FAILED
                step.error = str(e)
                goal.status = GoalStatus.FAILED
                goal.touch(self._clock.now())
                await checkpoint(goal)
                logger.error(f"Goal '{goal.id}' failed at step '{step.id}': {e}")
                raise

            step.result = result
            step.status = StepStatus.COMPLETED
            goal.touch(self._clock.now())
            await checkpoint(goal)
            logger.debug(f"Step '{step.id}' ({step.action}) completed for goal '{goal.id}'")

        if goal.status == GoalStatus.PAUSED:
            return GoalStatus.PAUSED
        goal.status = GoalStatus.COMPLETED
        goal.touch(self._clock.now())
        logger.info(f"Goal completed: {goal.title}")
        return GoalStatus.COMPLETED

    async def _run_with_retry(self, goal: Goal, step: TaskStep) -> Any:
        capability = self._tools.resolve(step.action)
        if capability is not None and not await self._tools.approve(capability, goal, step):
            step.attempts += 1
            raise StepExecutionFailure(step.id, step.action, "user approval was not granted")

        attempts = self._retry.max_attempts
        for attempt in range(1, attempts + 1):
            step.attempts += 1
            try:
                return await self.execute_step(goal, step)
            except StepExecutionFailure as e:
                if attempt >= attempts:
                    raise
                delay = self._retry.delay_for_attempt(attempt)
                logger.warning(
                    "Step %s attempt %d/%d failed (%s); retrying in %.1fs",
                    step.id, attempt, attempts, e, delay,
                )
                await self._clock.sleep(delay)
        raise StepExecutionFailure(step.id, step.action, "no attempts were made")

    async def execute_step(self, goal: Goal, step: TaskStep) -> Any:
        """
        Execute one step once, through its tool or the AI path.

        Raises:
            StepExecutionFailure: Wrapping whatever went wrong.
        """
        capability = self._tools.resolve(step.action)
        timeout = self._retry.step_timeout_seconds
        if capability is not None:
            if capability.timeout_seconds is not None:
                timeout = capability.timeout_seconds
            context = ToolContext(goal=goal, step=step, now=self._clock.now())
            operation = capability.invoke(step.parameters, context)
        else:
            operation = self._execute_with_ai(goal, step)

        try:
            if timeout is not None:
                return await asyncio.wait_for(operation, timeout)
            return await operation
        except StepExecutionFailure:
            raise
        except asyncio.TimeoutError as e:
            raise StepExecutionFailure(step.id, step.action, f"timed out after {timeout}s") from e
        except ValidationError as e:
            raise StepExecutionFailure(step.id, step.action, f"invalid parameters: {e}") from e
        except Exception as e:
            raise StepExecutionFailure(step.id, step.action, str(e) or type(e).__name__) from e

    async def _execute_with_ai(self, goal: Goal, step: TaskStep) -> Any:
        if self._ai_executor is None:
            raise StepExecutionFailure(
                step.id, step.action, "no tool registered for this action and no AI executor configured"
            )
        logger.debug(f"Executing step '{step.id}' ({step.action}) through the AI path")
        result = await self._ai_executor.execute(step.action, dict(step.parameters), goal)
        if result is None:
            raise StepExecutionFailure(step.id, step.action, "AI execution returned no result")
        return result
