# src/agentcore/autonomous/heartbeat.py
"""
Thinking loop for autonomous operation.

:class:`ThinkingLoop` is a fixed-interval ticker with a single-flight
guarantee: when the timer fires while a cycle is still running, that tick
is skipped entirely (no queuing, no overlap). The timer keeps firing
regardless of how long a cycle takes, because each cycle runs as its own
task. An exception escaping a cycle is logged as a
:class:`~agentcore.exceptions.CycleFailure` and never stops the loop.

:class:`ThinkingCycle` is the body of one tick. For every known user it:

1. analyzes current state (recent interactions, paused/failed goals,
   deadlines);
2. generates proactive suggestions and stores them;
3. prunes expired suggestions;
4. puts high-confidence suggestions to the decision engine and starts
   the resulting actions as background tasks;
5. writes an activity summary into the user's long-term memory.

Example:
    cycle = ThinkingCycle(memory, goals, suggestions, decisions, clock=clock)
    loop = ThinkingLoop(cycle, interval_seconds=30, clock=clock)
    await loop.start()
    ...
    await loop.stop()
    await cycle.shutdown()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Coroutine

from ..config.autonomous_config import SuggestionsConfig, ThinkingConfig
from ..exceptions import CycleFailure, IndependenceGuardRejection
from .clock import Clock, SystemClock
from .decisions import DecisionEngine
from .goals import GoalStore
from .memory import MemoryStore
from .models import AgentMemory, GoalStatus, ProactiveSuggestion
from .suggestions import SuggestionRegistry, UserActivity, generate_suggestions

logger = logging.getLogger(__name__)

ACT_ON_SUGGESTION = "act_on_suggestion"
WAIT_FOR_USER = "wait_for_user"


# =============================================================================
# ThinkingLoop
# =============================================================================


class ThinkingLoop:
    """
    Periodic, single-flight driver for a cycle callable.

    Args:
        cycle: ``async cycle(cycle_number)``; the work of one tick.
        interval_seconds: Fixed time between timer firings.
        clock: Time source; inject a ManualClock to drive it in tests.
    """

    def __init__(
        self,
        cycle: Callable[[int], Awaitable[Any]],
        interval_seconds: float = 30.0,
        clock: Clock | None = None,
    ) -> None:
        self._cycle = cycle
        self.interval_seconds = interval_seconds
        self._clock = clock or SystemClock()

        self._running = False
        self._cycle_running = False
        self._loop_task: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[bool]] = set()

        self.cycle_count = 0
        self.completed_count = 0
        self.skipped_count = 0
        self.failure_count = 0
        self.last_error: str | None = None
        self.last_completed_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_cycle_running(self) -> bool:
        return self._cycle_running

    async def start(self) -> None:
        """
        Start the timer.

        Idempotent: a second call is a no-op.
        """
        if self._running:
            return
        self._running = True
        self._loop_task = asyncio.create_task(self._timer_loop())
        logger.info(f"Thinking loop started (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the timer and cancel a cycle that is still running."""
        self._running = False
        tasks = list(self._inflight)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._loop_task = None
        self._inflight.clear()
        logger.info("Thinking loop stopped")

    async def tick(self) -> bool:
        """
        Run one cycle now unless one is already running.

        Returns:
            True if a cycle ran (successfully or not), False if skipped.
        """
        if self._cycle_running:
            self.skipped_count += 1
            logger.debug("Thinking cycle still running, tick skipped")
            return False

        self._cycle_running = True
        self.cycle_count += 1
        cycle_number = self.cycle_count
        try:
            await self._cycle(cycle_number)
            self.completed_count += 1
            self.last_completed_at = self._clock.now()
        except Exception as e:
            failure = CycleFailure(cycle_number, f"{type(e).__name__}: {e}")
            self.failure_count += 1
            self.last_error = str(failure)
            logger.error(f"Thinking cycle error: {failure}", exc_info=True)
        finally:
            self._cycle_running = False
        return True

    async def _timer_loop(self) -> None:
        while self._running:
            await self._clock.sleep(self.interval_seconds)
            if not self._running:
                break
            if self._cycle_running:
                self.skipped_count += 1
                logger.debug("Timer fired during a running cycle, tick skipped")
                continue
            task = asyncio.create_task(self.tick())
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    def get_status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "cycle_running": self._cycle_running,
            "interval_seconds": self.interval_seconds,
            "cycles": self.cycle_count,
            "completed": self.completed_count,
            "skipped": self.skipped_count,
            "failures": self.failure_count,
            "last_error": self.last_error,
            "last_completed_at": self.last_completed_at.isoformat() if self.last_completed_at else None,
        }


# =============================================================================
# ThinkingCycle
# =============================================================================


@dataclass
class CycleReport:
    """What one thinking cycle did."""

    cycle_number: int
    users: int = 0
    suggestions_added: int = 0
    suggestions_pruned: int = 0
    decisions: list[str] = field(default_factory=list)
    actions_started: list[str] = field(default_factory=list)
    failed_users: list[str] = field(default_factory=list)


class ThinkingCycle:
    """
    The work done on every thinking tick.

    Only reads and writes state through the owning components.
    """

    def __init__(
        self,
        memory: MemoryStore,
        goals: GoalStore,
        suggestions: SuggestionRegistry,
        decisions: DecisionEngine,
        clock: Clock | None = None,
        thinking_config: ThinkingConfig | None = None,
        suggestions_config: SuggestionsConfig | None = None,
    ) -> None:
        self._memory = memory
        self._goals = goals
        self._suggestions = suggestions
        self._decisions = decisions
        self._clock = clock or SystemClock()
        self._thinking_config = thinking_config or ThinkingConfig()
        self._suggestions_config = suggestions_config or SuggestionsConfig()
        self._background: set[asyncio.Task[None]] = set()
        self.last_report: CycleReport | None = None

    @property
    def background_tasks(self) -> set[asyncio.Task[None]]:
        return set(self._background)

    async def __call__(self, cycle_number: int) -> CycleReport:
        report = CycleReport(cycle_number=cycle_number)
        now = self._clock.now()

        for memory in await self._memory.all_memories():
            report.users += 1
            try:
                await self._think_about_user(memory, now, report)
            except Exception as e:
                report.failed_users.append(memory.user_id)
                logger.error(f"Thinking cycle #{cycle_number} failed for user '{memory.user_id}': {e}", exc_info=True)

        self.last_report = report
        logger.info(
            "Thinking cycle #%d completed: %d users, %d suggestions, %d decisions",
            cycle_number, report.users, report.suggestions_added, len(report.decisions),
        )
        return report

    async def _think_about_user(self, memory: AgentMemory, now: datetime, report: CycleReport) -> None:
        activity = UserActivity.from_state(memory, self._goals.goals_for_user(memory.user_id), now)

        candidates = generate_suggestions(activity, now, self._suggestions_config)
        added = await self._suggestions.add_suggestions(memory.user_id, candidates)
        report.suggestions_added += len(added)
        report.suggestions_pruned += await self._suggestions.clear_old_suggestions(memory.user_id)

        await self._act_on_suggestions(memory.user_id, added, report)
        await self._update_learning_memory(memory, activity, now)

    async def _act_on_suggestions(
        self, user_id: str, suggestions: list[ProactiveSuggestion], report: CycleReport
    ) -> None:
        threshold = self._thinking_config.autonomous_action_threshold
        for suggestion in suggestions:
            if suggestion.confidence <= threshold:
                continue
            context = (
                f"{suggestion.type.value}: {suggestion.title} "
                f"[{suggestion.suggested_action.type}] options: {ACT_ON_SUGGESTION}, {WAIT_FOR_USER}"
            )
            try:
                decision = await self._decisions.make_autonomous_decision(
                    context, [ACT_ON_SUGGESTION, WAIT_FOR_USER]
                )
            except IndependenceGuardRejection as e:
                logger.debug(f"Not acting on '{suggestion.title}': {e}")
                return
            await self._suggestions.link_decision(user_id, suggestion.id, decision.decision_id)
            report.decisions.append(decision.decision_id)
            if decision.decision == ACT_ON_SUGGESTION and self._start_action(suggestion):
                report.actions_started.append(suggestion.id)

    def _start_action(self, suggestion: ProactiveSuggestion) -> bool:
        action = suggestion.suggested_action
        goal_id = action.parameters.get("goal_id")
        goal = self._goals.get_goal(goal_id) if goal_id else None
        if goal is None or self._goals.is_executing(goal.id):
            logger.info(f"Autonomous suggestion surfaced to user: {suggestion.title}")
            return False

        if action.type in ("resume_goal", "retry_goal"):
            self._spawn(self._goals.resume_goal(goal.id), f"{action.type}:{goal.id}")
            return True
        if action.type == "prioritize_goal" and goal.status == GoalStatus.PENDING:
            self._spawn(self._goals.execute_goal(goal.id), f"execute_goal:{goal.id}")
            return True
        return False

    def _spawn(self, operation: Coroutine[Any, Any, Any], label: str) -> None:
        async def runner() -> None:
            try:
                await operation
            except Exception as e:
                logger.error(f"Autonomous action '{label}' failed: {e}", exc_info=True)

        task = asyncio.create_task(runner())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        logger.info(f"Executing autonomous action: {label}")

    async def _update_learning_memory(self, memory: AgentMemory, activity: UserActivity, now: datetime) -> None:
        summary = {
            "activity": activity.summary(),
            "recent_topics": list(activity.recent_topics),
            "independence_score": self._decisions.independence_score,
        }
        if memory.long_term.learned_patterns.get("thinking_summary") == summary:
            return

        def _write(m: AgentMemory) -> None:
            m.long_term.learned_patterns["thinking_summary"] = summary
            m.long_term.learned_patterns["thinking_updated_at"] = now.isoformat()

        await self._memory.update(memory.user_id, _write)

    async def shutdown(self) -> None:
        """Cancel actions still running in the background."""
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._background.clear()
