# src/agentcore/autonomous/agent.py
"""
Autonomous agent facade.

:class:`AutonomousAgent` wires the components together and exposes the
public control API to the hosting application. There is no module-level
instance: the host constructs one agent per process, passes it to its
callers, and calls :meth:`AutonomousAgent.shutdown` on exit.

Example::

    agent = AutonomousAgent.from_config(config_path="~/.config/assistant/agent.toml",
                                        planner=my_planner, ai_executor=my_executor)
    await agent.start()

    goal = await agent.set_goal("user_1", "Research vector databases", "high")
    suggestions = await agent.get_proactive_suggestions("user_1")

    await agent.shutdown()
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from pathlib import Path
from typing import Any

from ..config.autonomous_config import AutonomousConfig, load_autonomous_config
from ..exceptions import SuggestionNotFound
from ..logging_config import log_display
from ..storage import PersistenceBackend, RecordStore, create_backend
from .clock import Clock, SystemClock
from .decisions import ConversationLearning, DecisionEngine
from .goals import GoalStore
from .heartbeat import ThinkingCycle, ThinkingLoop
from .memory import MemoryStore
from .models import AutonomousDecision, Goal, GoalPriority, Interaction, ProactiveSuggestion
from .planner import AIExecutor, Planner
from .scheduler import StepScheduler
from .suggestions import SuggestionRegistry
from .tools import ApprovalHandler, ToolCapability, ToolRegistry, register_builtin_tools

logger = logging.getLogger(__name__)


class AutonomousAgent:
    """
    The autonomous goal-execution core, fully wired.

    Args:
        config: Settings; defaults everywhere when omitted.
        backend: Persistence backend; built from ``config.storage`` when omitted.
        planner: Goal planner; without one every goal gets the default step.
        ai_executor: Fallback for step actions without a registered tool.
        clock: Time source shared by every component.
        rng: Random source for pattern-less decisions.
        approval_handler: Consulted before running approval-gated tools.
    """

    def __init__(
        self,
        config: AutonomousConfig | None = None,
        backend: PersistenceBackend | None = None,
        planner: Planner | None = None,
        ai_executor: AIExecutor | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        approval_handler: ApprovalHandler | None = None,
    ) -> None:
        self.config = config or AutonomousConfig()
        self.clock = clock or SystemClock()
        self._backend = backend or create_backend(self.config.storage)
        self.records = RecordStore(self._backend)

        self.memory = MemoryStore(self.records, self.clock, self.config.memory)
        self.tools = ToolRegistry(approval_handler)
        register_builtin_tools(self.tools, self.memory)
        self.scheduler = StepScheduler(self.tools, ai_executor, self.clock, self.config.retry)
        self.goals = GoalStore(
            self.records, self.memory, self.scheduler, planner, self.clock, self.config.goals
        )
        self.suggestions = SuggestionRegistry(self.records, self.clock, self.config.suggestions)
        self.decisions = DecisionEngine(self.records, self.clock, self.config.decisions, rng)
        self.cycle = ThinkingCycle(
            self.memory,
            self.goals,
            self.suggestions,
            self.decisions,
            clock=self.clock,
            thinking_config=self.config.thinking,
            suggestions_config=self.config.suggestions,
        )
        self.loop = ThinkingLoop(self.cycle, self.config.thinking.interval_seconds, self.clock)
        self._started = False

    @classmethod
    def from_config(
        cls,
        config_path: Path | str | None = None,
        config_dict: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> AutonomousAgent:
        """Build an agent from a TOML file or a dict (``[autonomous]`` section)."""
        config = load_autonomous_config(config_dict=config_dict, config_path=config_path)
        return cls(config=config, **kwargs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Open storage, restore state and start the thinking loop (if enabled)."""
        if self._started:
            return
        await self._backend.initialize()
        await self.goals.initialize()
        await self.decisions.initialize()
        if self.config.thinking.enabled:
            await self.loop.start()
        self._started = True
        log_display(logger, logging.INFO, "Autonomous agent started")

    async def shutdown(self) -> None:
        """Stop the timer, cancel background actions and release storage."""
        await self.loop.stop()
        await self.cycle.shutdown()
        await self._backend.close()
        self._started = False
        log_display(logger, logging.INFO, "Autonomous agent stopped")

    async def __aenter__(self) -> AutonomousAgent:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.shutdown()

    async def think_now(self) -> bool:
        """Run one thinking cycle immediately (skipped if one is running)."""
        return await self.loop.tick()

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    async def set_goal(
        self,
        user_id: str,
        description: str,
        priority: GoalPriority | str | None = None,
        deadline: datetime | None = None,
        context: dict[str, Any] | None = None,
    ) -> Goal:
        return await self.goals.set_goal(user_id, description, priority, deadline, context)

    async def execute_goal(self, goal_id: str) -> Goal | None:
        return await self.goals.execute_goal(goal_id)

    async def pause_goal(self, goal_id: str) -> bool:
        return await self.goals.pause_goal(goal_id)

    async def resume_goal(self, goal_id: str) -> Goal | None:
        return await self.goals.resume_goal(goal_id)

    async def get_active_goals(self, user_id: str) -> list[Goal]:
        return await self.goals.get_active_goals(user_id)

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    async def get_proactive_suggestions(self, user_id: str) -> list[ProactiveSuggestion]:
        return await self.suggestions.get_proactive_suggestions(user_id)

    async def remove_suggestion(self, user_id: str, suggestion_id: str) -> bool:
        return await self.suggestions.remove_suggestion(user_id, suggestion_id) is not None

    async def promote_suggestion_to_goal(
        self,
        user_id: str,
        suggestion_id: str,
        priority: GoalPriority | str | None = None,
    ) -> Goal:
        """
        Accept a suggestion: create a goal from its title, then remove it.

        The suggestion is removed exactly once even if goal creation
        raises; the error then propagates. A linked autonomous decision
        is recorded as a positive outcome.

        Raises:
            SuggestionNotFound: If the user has no such suggestion.
        """
        suggestion = await self.suggestions.get_suggestion(user_id, suggestion_id)
        if suggestion is None:
            raise SuggestionNotFound(user_id, suggestion_id)

        try:
            goal = await self.goals.set_goal(
                user_id,
                suggestion.title,
                priority,
                context={
                    "suggestion_id": suggestion.id,
                    "suggested_action": suggestion.suggested_action.to_dict(),
                },
            )
        finally:
            await self.suggestions.remove_suggestion(user_id, suggestion_id)

        await self._record_suggestion_outcome(suggestion, success=True, quality=1.0)
        return goal

    async def dismiss_suggestion(self, user_id: str, suggestion_id: str) -> bool:
        """Remove a suggestion; a linked decision is recorded as a negative outcome."""
        removed = await self.suggestions.remove_suggestion(user_id, suggestion_id)
        if removed is None:
            return False
        await self._record_suggestion_outcome(removed, success=False, quality=0.0)
        return True

    async def _record_suggestion_outcome(
        self, suggestion: ProactiveSuggestion, success: bool, quality: float
    ) -> None:
        if not suggestion.decision_id:
            return
        try:
            await self.decisions.record_outcome(suggestion.decision_id, success, quality)
        except ValueError:
            logger.debug(f"Decision '{suggestion.decision_id}' no longer in the log")

    # ------------------------------------------------------------------
    # Decisions and learning
    # ------------------------------------------------------------------

    async def make_autonomous_decision(self, context: str, options: list[str]) -> AutonomousDecision:
        return await self.decisions.make_autonomous_decision(context, options)

    async def record_decision_outcome(
        self, decision_id: str, success: bool, quality: float | None = None
    ) -> AutonomousDecision:
        return await self.decisions.record_outcome(decision_id, success, quality)

    async def learn_from_conversation(
        self,
        user_input: str,
        ai_response: str,
        user_reaction: str = "neutral",
        context: dict[str, Any] | None = None,
    ) -> ConversationLearning:
        return await self.decisions.learn_from_conversation(user_input, ai_response, user_reaction, context)

    def can_operate_independently(self) -> bool:
        return self.decisions.can_operate_independently()

    def get_learning_insights(self) -> dict[str, Any]:
        return self.decisions.get_learning_insights()

    # ------------------------------------------------------------------
    # Memory
    # ------------------------------------------------------------------

    async def record_interaction(
        self, user_id: str, kind: str, payload: dict[str, Any] | None = None
    ) -> Interaction:
        return await self.memory.record_interaction(user_id, kind, payload)

    def register_tool(self, capability: ToolCapability) -> None:
        self.tools.register(capability)

    async def get_memory_stats(self) -> dict[str, Any]:
        users = await self.memory.known_users()
        by_status = self.goals.count_by_status()
        return {
            "total_users": len(users),
            "total_goals": sum(by_status.values()),
            "completed_goals": by_status["completed"],
            "active_goals": by_status["pending"] + by_status["in_progress"] + by_status["paused"],
            "failed_goals": by_status["failed"],
            "goals_by_status": by_status,
            "suggestions": self.suggestions.cached_count(),
            "learned_patterns": len(self.decisions.patterns()),
            "independence_score": self.decisions.independence_score,
            "storage_used": self.records.bytes_written,
            "persistence_failures": self.records.failure_count,
            "thinking_loop": self.loop.get_status(),
        }

    async def export_user_data(self, user_id: str) -> dict[str, Any] | None:
        """Memory and suggestions of one user, JSON-compatible."""
        memory = await self.memory.export_user(user_id)
        if memory is None:
            return None
        suggestions = await self.suggestions.get_proactive_suggestions(user_id)
        return {
            "user_id": user_id,
            "memory": memory,
            "suggestions": [s.to_dict() for s in suggestions],
            "exported_at": self.clock.now().isoformat(),
        }

    async def import_user_data(self, user_id: str, data: dict[str, Any]) -> None:
        """
        Replace a user's memory and suggestions with an export.

        Raises:
            ValueError: If ``data`` has no memory record.
        """
        if not isinstance(data.get("memory"), dict):
            raise ValueError("Import data must contain a 'memory' record")
        memory = await self.memory.import_user(user_id, data["memory"])
        await self.goals.adopt_goals(memory.working.current_goals + memory.long_term.completed_goals)
        suggestions = [ProactiveSuggestion.from_dict(s) for s in data.get("suggestions", [])]
        await self.suggestions.replace_all(user_id, suggestions)
        logger.info(f"Imported data for user '{user_id}'")
