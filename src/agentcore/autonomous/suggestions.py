# src/agentcore/autonomous/suggestions.py
"""
Proactive suggestion lifecycle.

:class:`SuggestionRegistry` owns every user's suggestion list: a bounded
collection (most recent ``max_per_user``), sorted newest first, whose
entries expire after ``ttl_hours``. Lists are loaded lazily from durable
storage on first access in the process, pruned on load, and persisted
after every change.

:func:`generate_suggestions` holds the rules that turn a
:class:`UserActivity` snapshot into candidate suggestions; the thinking
loop calls it once per user per cycle.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable

from ..config.autonomous_config import SuggestionsConfig
from ..storage import RecordStore, StorageKey
from .clock import Clock, SystemClock
from .models import (
    AgentMemory,
    Goal,
    GoalStatus,
    ProactiveSuggestion,
    SuggestedAction,
    SuggestionType,
)

logger = logging.getLogger(__name__)

_SuggestionKey = tuple[SuggestionType, str]


def _dedupe_key(suggestion: ProactiveSuggestion) -> _SuggestionKey:
    return suggestion.type, suggestion.title.strip().lower()


# =============================================================================
# Registry
# =============================================================================


class SuggestionRegistry:
    """
    Per-user suggestion lists with lazy loading, capping and expiry.

    A suggestion that was removed (accepted or dismissed) is not
    re-added with the same type and title until ``ttl_hours`` have
    passed, so the thinking loop does not resurface it on the next tick.
    """

    def __init__(
        self,
        records: RecordStore,
        clock: Clock | None = None,
        config: SuggestionsConfig | None = None,
    ) -> None:
        self._records = records
        self._clock = clock or SystemClock()
        self._config = config or SuggestionsConfig()
        self._cache: dict[str, list[ProactiveSuggestion]] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._suppressed: defaultdict[str, dict[_SuggestionKey, datetime]] = defaultdict(dict)

    @property
    def ttl(self) -> timedelta:
        return timedelta(hours=self._config.ttl_hours)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _ensure_loaded(self, user_id: str) -> list[ProactiveSuggestion]:
        """Load the user's list on first access and prune expired entries."""
        if user_id in self._cache:
            return self._cache[user_id]

        data = await self._records.load(StorageKey.suggestions(user_id))
        suggestions: list[ProactiveSuggestion] = []
        for item in data or []:
            try:
                suggestions.append(ProactiveSuggestion.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable suggestion for user '{user_id}': {e}")
        self._cache[user_id] = suggestions
        logger.debug(f"Loaded {len(suggestions)} suggestions for user '{user_id}'")
        await self._prune_locked(user_id)
        return self._cache[user_id]

    async def _persist(self, user_id: str) -> None:
        await self._records.save(
            StorageKey.suggestions(user_id),
            [s.to_dict() for s in self._cache.get(user_id, [])],
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_proactive_suggestions(self, user_id: str) -> list[ProactiveSuggestion]:
        """Current suggestions for the user, newest first."""
        async with self._locks[user_id]:
            return list(await self._ensure_loaded(user_id))

    async def get_suggestion(self, user_id: str, suggestion_id: str) -> ProactiveSuggestion | None:
        async with self._locks[user_id]:
            for suggestion in await self._ensure_loaded(user_id):
                if suggestion.id == suggestion_id:
                    return suggestion
        return None

    def cached_count(self) -> int:
        """Number of suggestions currently held in memory across users."""
        return sum(len(v) for v in self._cache.values())

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    async def add_suggestions(
        self, user_id: str, new_suggestions: Iterable[ProactiveSuggestion]
    ) -> list[ProactiveSuggestion]:
        """
        Merge new suggestions into the user's list.

        Entries duplicating an existing (type, title) pair, or one that
        was recently removed, are dropped. The result is sorted by
        ``created_at`` descending and truncated to ``max_per_user``.

        Returns:
            The suggestions that were actually added (and survived the cap).
        """
        async with self._locks[user_id]:
            current = await self._ensure_loaded(user_id)
            now = self._clock.now()
            suppressed = self._suppressed[user_id]
            for key, removed_at in list(suppressed.items()):
                if removed_at <= now - self.ttl:
                    del suppressed[key]

            seen = {_dedupe_key(s) for s in current}
            accepted = []
            for suggestion in new_suggestions:
                key = _dedupe_key(suggestion)
                if key in seen or key in suppressed:
                    continue
                seen.add(key)
                accepted.append(suggestion)

            if not accepted:
                return []

            merged = sorted(current + accepted, key=lambda s: s.created_at, reverse=True)
            kept = merged[: self._config.max_per_user]
            self._cache[user_id] = kept
            await self._persist(user_id)

            kept_ids = {s.id for s in kept}
            added = [s for s in accepted if s.id in kept_ids]
            logger.debug(f"Added {len(added)} suggestions for user '{user_id}' ({len(kept)} total)")
            return added

    async def clear_old_suggestions(self, user_id: str) -> int:
        """Drop suggestions older than the TTL. Returns the number removed."""
        async with self._locks[user_id]:
            await self._ensure_loaded(user_id)
            return await self._prune_locked(user_id)

    async def _prune_locked(self, user_id: str) -> int:
        cutoff = self._clock.now() - self.ttl
        current = self._cache.get(user_id, [])
        fresh = [s for s in current if s.created_at >= cutoff]
        removed = len(current) - len(fresh)
        if removed:
            self._cache[user_id] = fresh
            await self._persist(user_id)
            logger.info(f"Pruned {removed} expired suggestions for user '{user_id}'")
        return removed

    async def remove_suggestion(self, user_id: str, suggestion_id: str) -> ProactiveSuggestion | None:
        """
        Remove a suggestion (accepted or dismissed).

        Returns:
            The removed suggestion, or None if it was not present.
        """
        async with self._locks[user_id]:
            current = await self._ensure_loaded(user_id)
            for index, suggestion in enumerate(current):
                if suggestion.id == suggestion_id:
                    break
            else:
                return None
            del current[index]
            self._suppressed[user_id][_dedupe_key(suggestion)] = self._clock.now()
            await self._persist(user_id)
            logger.info(f"Suggestion removed: {suggestion_id}")
            return suggestion

    async def link_decision(self, user_id: str, suggestion_id: str, decision_id: str) -> bool:
        """Record which autonomous decision was taken about a suggestion."""
        async with self._locks[user_id]:
            for suggestion in await self._ensure_loaded(user_id):
                if suggestion.id == suggestion_id:
                    suggestion.decision_id = decision_id
                    await self._persist(user_id)
                    return True
        return False

    async def replace_all(self, user_id: str, suggestions: list[ProactiveSuggestion]) -> None:
        """Overwrite the user's list (import path); still capped and pruned."""
        async with self._locks[user_id]:
            ordered = sorted(suggestions, key=lambda s: s.created_at, reverse=True)
            self._cache[user_id] = ordered[: self._config.max_per_user]
            await self._persist(user_id)
            await self._prune_locked(user_id)


# =============================================================================
# Generation rules
# =============================================================================


@dataclass
class UserActivity:
    """What the thinking loop knows about one user at the start of a cycle."""

    user_id: str
    research_queries: int = 0
    recent_topics: list[str] = field(default_factory=list)
    paused_goals: list[Goal] = field(default_factory=list)
    failed_goals: list[Goal] = field(default_factory=list)
    upcoming_deadlines: list[Goal] = field(default_factory=list)

    @classmethod
    def from_state(
        cls,
        memory: AgentMemory,
        goals: list[Goal],
        now: datetime,
        deadline_window: timedelta = timedelta(hours=24),
    ) -> UserActivity:
        research = [i for i in memory.working.recent_interactions if i.kind == "research"]
        topics: list[str] = []
        for interaction in reversed(research):
            topic = interaction.payload.get("topic") or interaction.payload.get("query")
            if topic and topic not in topics:
                topics.append(str(topic))
            if len(topics) == 5:
                break

        open_goals = [
            g for g in goals if g.status not in (GoalStatus.COMPLETED, GoalStatus.FAILED)
        ]
        return cls(
            user_id=memory.user_id,
            research_queries=len(research),
            recent_topics=topics,
            paused_goals=[g for g in goals if g.status == GoalStatus.PAUSED],
            failed_goals=[g for g in goals if g.status == GoalStatus.FAILED],
            upcoming_deadlines=[
                g for g in open_goals if g.deadline is not None and now <= g.deadline <= now + deadline_window
            ],
        )

    def summary(self) -> dict[str, Any]:
        return {
            "research_queries": self.research_queries,
            "paused_goals": len(self.paused_goals),
            "failed_goals": len(self.failed_goals),
            "upcoming_deadlines": len(self.upcoming_deadlines),
        }


def generate_suggestions(
    activity: UserActivity,
    now: datetime,
    config: SuggestionsConfig | None = None,
) -> list[ProactiveSuggestion]:
    """Apply the suggestion rules to one user's activity snapshot."""
    config = config or SuggestionsConfig()
    suggestions: list[ProactiveSuggestion] = []

    if activity.research_queries > config.research_query_threshold:
        suggestions.append(ProactiveSuggestion.create(
            type=SuggestionType.INSIGHT,
            title="Research Pattern Detected",
            description=(
                "You have been doing a lot of research lately. I could compile "
                "related topics or set up automated research alerts."
            ),
            confidence=0.8,
            reasoning=f"User made {activity.research_queries} research queries in recent interactions",
            suggested_action=SuggestedAction(
                type="offer_research_automation",
                parameters={"topics": list(activity.recent_topics)},
            ),
            now=now,
        ))

    if config.business_hours_start <= now.hour <= config.business_hours_end:
        suggestions.append(ProactiveSuggestion.create(
            type=SuggestionType.OPPORTUNITY,
            title="Productivity Optimization",
            description=(
                "It is peak productivity time. I could help organize your tasks "
                "or provide focused research assistance."
            ),
            confidence=0.6,
            reasoning="Current time is within the productivity window",
            suggested_action=SuggestedAction(
                type="offer_productivity_boost",
                parameters={"timeframe": "current_session"},
            ),
            now=now,
        ))

    for goal in activity.paused_goals:
        suggestions.append(ProactiveSuggestion.create(
            type=SuggestionType.REMINDER,
            title=f"Resume: {goal.title}",
            description=f"The goal '{goal.title}' is paused with {goal.progress():.0%} of its steps done.",
            confidence=0.65,
            reasoning="Goal has been paused and is resumable",
            suggested_action=SuggestedAction(type="resume_goal", parameters={"goal_id": goal.id}),
            now=now,
        ))

    for goal in activity.failed_goals:
        failed_step = next((s for s in goal.steps if s.error), None)
        detail = f" Step '{failed_step.id}' failed: {failed_step.error}" if failed_step else ""
        suggestions.append(ProactiveSuggestion.create(
            type=SuggestionType.IMPROVEMENT,
            title=f"Retry: {goal.title}",
            description=f"The goal '{goal.title}' failed.{detail}",
            confidence=0.75,
            reasoning="A failed goal can be retried from its first unfinished step",
            suggested_action=SuggestedAction(type="retry_goal", parameters={"goal_id": goal.id}),
            now=now,
        ))

    for goal, deadline in ((g, g.deadline) for g in activity.upcoming_deadlines if g.deadline is not None):
        hours_left = max(0.0, (deadline - now).total_seconds() / 3600)
        suggestions.append(ProactiveSuggestion.create(
            type=SuggestionType.REMINDER,
            title=f"Deadline approaching: {goal.title}",
            description=f"'{goal.title}' is due in {hours_left:.1f} hours.",
            confidence=0.85,
            reasoning="Goal deadline falls within the next 24 hours",
            suggested_action=SuggestedAction(
                type="prioritize_goal",
                parameters={"goal_id": goal.id, "deadline": deadline.isoformat()},
            ),
            now=now,
        ))

    return suggestions
