# src/agentcore/autonomous/goals.py
"""
Goal management.

:class:`GoalStore` owns the goal table. It creates goals (asking the
planner for steps), drives their execution through the
:class:`~agentcore.autonomous.scheduler.StepScheduler`, and implements the
pause/resume control operations.

Every state change is a checkpoint: the whole goal table is written to
durable storage and the goal is mirrored into its owner's working memory.
A completed goal moves from working memory to ``completed_goals`` in
long-term memory; goals are never deleted.

Example::

    store = GoalStore(records, memory, scheduler, planner=my_planner)
    await store.initialize()

    goal = await store.set_goal("user_1", "Prepare the quarterly report", "high")
    await store.pause_goal(goal.id)
    await store.resume_goal(goal.id)
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

from ..config.autonomous_config import GoalsConfig
from ..exceptions import PlanningFailure, StepExecutionFailure
from ..logging_config import log_display
from ..storage import RecordStore, StorageKey
from .clock import Clock, SystemClock
from .memory import MemoryStore
from .models import AgentMemory, Goal, GoalPriority, GoalStatus, StepStatus, TaskStep
from .planner import Planner, default_plan, parse_plan
from .scheduler import StepScheduler, sort_steps

logger = logging.getLogger(__name__)


def coerce_priority(priority: GoalPriority | str) -> GoalPriority:
    """Accept a ``GoalPriority`` or its (case-insensitive) string value."""
    if isinstance(priority, GoalPriority):
        return priority
    try:
        return GoalPriority(str(priority).lower())
    except ValueError:
        raise ValueError(
            f"Invalid priority: {priority!r}. Valid: {[p.value for p in GoalPriority]}"
        ) from None


def _sync_goal_into_memory(memory: AgentMemory, goal: Goal) -> None:
    current = memory.working.current_goals
    if goal.status == GoalStatus.COMPLETED:
        current[:] = [g for g in current if g.id != goal.id]
        completed = memory.long_term.completed_goals
        completed[:] = [g for g in completed if g.id != goal.id]
        completed.append(goal)
        return
    for index, existing in enumerate(current):
        if existing.id == goal.id:
            current[index] = goal
            return
    current.append(goal)


class GoalStore:
    """
    Goal table, state machine and control operations.

    Args:
        records: Record layer for the goal table.
        memory: Per-user memory, mirrored on every checkpoint.
        scheduler: Executes goal steps.
        planner: Produces steps for new goals; None means every goal
            gets the single default step.
        clock: Time source.
        config: Goal settings.
    """

    def __init__(
        self,
        records: RecordStore,
        memory: MemoryStore,
        scheduler: StepScheduler,
        planner: Planner | None = None,
        clock: Clock | None = None,
        config: GoalsConfig | None = None,
    ) -> None:
        self._records = records
        self._memory = memory
        self._scheduler = scheduler
        self._planner = planner
        self._clock = clock or SystemClock()
        self._config = config or GoalsConfig()
        self._goals: dict[str, Goal] = {}
        self._executing: set[str] = set()
        self._table_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """
        Load the goal table from durable storage.

        Goals recorded as ``in_progress`` were interrupted by a restart;
        they are loaded as ``paused`` so they can be resumed explicitly.
        """
        data = await self._records.load(StorageKey.goals())
        interrupted = 0
        for item in data or []:
            try:
                goal = Goal.from_dict(item)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable goal record: {e}")
                continue
            if goal.status == GoalStatus.IN_PROGRESS:
                goal.status = GoalStatus.PAUSED
                for step in goal.steps:
                    if step.status == StepStatus.IN_PROGRESS:
                        step.status = StepStatus.PENDING
                interrupted += 1
            self._goals[goal.id] = goal
        logger.info(f"Loaded {len(self._goals)} goals ({interrupted} interrupted, now paused)")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_goal(self, goal_id: str) -> Goal | None:
        return self._goals.get(goal_id)

    def all_goals(self) -> list[Goal]:
        return list(self._goals.values())

    def goals_for_user(self, user_id: str, statuses: set[GoalStatus] | None = None) -> list[Goal]:
        return [
            g for g in self._goals.values()
            if g.user_id == user_id and (statuses is None or g.status in statuses)
        ]

    def is_executing(self, goal_id: str) -> bool:
        return goal_id in self._executing

    async def get_active_goals(self, user_id: str) -> list[Goal]:
        """The user's working-memory goals (everything not yet completed)."""
        memory = await self._memory.load_user_memory(user_id)
        if memory is None:
            return []
        # The table holds the live objects after a restart.
        return [self._goals.get(g.id, g) for g in memory.working.current_goals]

    def count_by_status(self) -> dict[str, int]:
        counts = {status.value: 0 for status in GoalStatus}
        for goal in self._goals.values():
            counts[goal.status.value] += 1
        return counts

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _checkpoint(self, goal: Goal) -> None:
        self._goals[goal.id] = goal
        async with self._table_lock:
            await self._records.save(
                StorageKey.goals(), [g.to_dict() for g in self._goals.values()]
            )
        if goal.user_id:
            await self._memory.update(goal.user_id, lambda m: _sync_goal_into_memory(m, goal))

    async def adopt_goals(self, goals: list[Goal]) -> None:
        """Register goals that arrived through a memory import."""
        for goal in goals:
            if goal.status == GoalStatus.IN_PROGRESS and goal.id not in self._executing:
                goal.status = GoalStatus.PAUSED
            self._goals[goal.id] = goal
        async with self._table_lock:
            await self._records.save(
                StorageKey.goals(), [g.to_dict() for g in self._goals.values()]
            )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def _plan(self, goal: Goal) -> list[TaskStep]:
        if self._planner is None:
            return default_plan(goal.description)
        try:
            raw = await self._planner.plan(goal.description, goal.priority)
            steps = parse_plan(raw, goal.description)
            sort_steps(steps, goal.description)
            return steps
        except PlanningFailure as e:
            logger.warning(f"Planning failed for '{goal.title}', using default step: {e}")
        except Exception as e:
            logger.error(f"Planner raised for '{goal.title}', using default step: {e}", exc_info=True)
        return default_plan(goal.description)

    async def set_goal(
        self,
        user_id: str,
        description: str,
        priority: GoalPriority | str | None = None,
        deadline: datetime | None = None,
        context: dict[str, Any] | None = None,
    ) -> Goal:
        """
        Create a goal, plan its steps and store it.

        High and critical goals (per ``auto_execute_priorities``) are
        executed before this returns. A step failure during that run is
        logged and reflected in the returned goal's ``failed`` status
        rather than raised.
        """
        if not description or not description.strip():
            raise ValueError("Goal description must not be empty")
        resolved = coerce_priority(priority or self._config.default_priority)

        goal = Goal.create(
            description,
            user_id=user_id,
            priority=resolved,
            title_max_length=self._config.title_max_length,
            now=self._clock.now(),
            deadline=deadline,
            context=context,
        )
        goal.steps = await self._plan(goal)
        await self._checkpoint(goal)
        logger.info(f"New goal set: {goal.title} ({goal.id}, {len(goal.steps)} steps)")

        if resolved.value in self._config.auto_execute_priorities:
            try:
                await self.execute_goal(goal.id)
            except (StepExecutionFailure, PlanningFailure) as e:
                logger.warning(f"Immediate execution of goal '{goal.id}' failed: {e}")
        return goal

    # ------------------------------------------------------------------
    # Execution and control
    # ------------------------------------------------------------------

    async def execute_goal(self, goal_id: str) -> Goal | None:
        """
        Execute the goal's remaining steps.

        Unknown ids return None. Completed goals and goals already being
        executed are returned unchanged.

        Raises:
            StepExecutionFailure: If a step fails; the goal is ``failed``.
            PlanningFailure: If the goal's dependency graph is invalid.
        """
        goal = self._goals.get(goal_id)
        if goal is None:
            logger.debug(f"execute_goal: unknown goal '{goal_id}'")
            return None
        if goal.status == GoalStatus.COMPLETED:
            return goal
        if goal_id in self._executing:
            logger.info(f"Goal '{goal_id}' is already executing")
            return goal

        self._executing.add(goal_id)
        try:
            status = await self._scheduler.execute(goal, self._checkpoint)
        finally:
            self._executing.discard(goal_id)

        await self._checkpoint(goal)
        if status == GoalStatus.COMPLETED:
            log_display(logger, logging.INFO, "Goal completed: %s", goal.title)
        return goal

    async def pause_goal(self, goal_id: str) -> bool:
        """
        Pause an ``in_progress`` goal at the next step boundary.

        Returns:
            True if the goal was paused; False for unknown ids and goals
            in any other status.
        """
        goal = self._goals.get(goal_id)
        if goal is None or goal.status != GoalStatus.IN_PROGRESS:
            return False
        goal.status = GoalStatus.PAUSED
        goal.touch(self._clock.now())
        await self._checkpoint(goal)
        logger.info(f"Goal paused: {goal.title}")
        return True

    async def resume_goal(self, goal_id: str) -> Goal | None:
        """
        Resume a goal from its first non-completed step.

        - unknown ids return None;
        - completed goals are returned unchanged;
        - a goal whose execution is still running (paused mid-step) only
          flips back to ``in_progress``, so no second executor starts;
        - a failed goal has its failed steps reset to ``pending`` and is
          retried.

        A step failure during the resumed run is logged and reflected in
        the goal's status.
        """
        goal = self._goals.get(goal_id)
        if goal is None:
            return None
        if goal.status == GoalStatus.COMPLETED:
            return goal

        goal.status = GoalStatus.IN_PROGRESS
        goal.touch(self._clock.now())
        if goal_id in self._executing:
            await self._checkpoint(goal)
            logger.info(f"Goal resumed while its execution is still running: {goal.title}")
            return goal

        for step in goal.steps:
            if step.status in (StepStatus.FAILED, StepStatus.IN_PROGRESS):
                step.status = StepStatus.PENDING
        logger.info(f"Resuming goal: {goal.title}")
        try:
            await self.execute_goal(goal_id)
        except (StepExecutionFailure, PlanningFailure) as e:
            logger.warning(f"Resumed goal '{goal_id}' failed again: {e}")
        return goal
