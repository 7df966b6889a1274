# src/agentcore/autonomous/decisions.py
"""
Decision engine.

Makes pattern-informed choices between options once enough positive
feedback has accumulated, and learns from the outcomes.

Independence score
    A process-wide gate in [0, 1]. It starts at ``initial_independence``
    (0.3), rises by ``independence_increment`` (0.01) for every positive
    outcome rated above ``positive_quality_threshold`` (0.8), and is
    capped at ``independence_cap`` (0.95). Below
    ``independence_threshold`` (0.5) every decision request is refused
    with :class:`~agentcore.exceptions.IndependenceGuardRejection`.

Learning patterns
    Keyed by ``pattern_<normalized context prefix>``. A successful
    decision reinforces the pattern for its context (or creates one whose
    ``pattern`` text is the chosen option); a failed one halves the
    pattern's success rate. Patterns whose text occurs in a new context
    inform its confidence and option scoring.

The score, patterns, and bounded decision and conversation logs are
persisted under ``decisions/state``.
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..config.autonomous_config import DecisionConfig
from ..exceptions import IndependenceGuardRejection
from ..storage import RecordStore, StorageKey
from .clock import Clock, SystemClock
from .models import AutonomousDecision, LearningPattern, parse_datetime

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")

_REACTIONS = ("positive", "negative", "neutral")
_REQUEST_WORDS = ("can you", "please", "help me", "could you", "would you")
_TECHNICAL_WORDS = ("code", "algorithm", "function", "error", "debug")
_CREATIVE_WORDS = ("create", "design", "imagine", "story", "idea")


def normalize_context(context: str) -> str:
    return _WHITESPACE_RE.sub(" ", context.strip().lower())


# =============================================================================
# Conversation learning
# =============================================================================


@dataclass
class ConversationLearning:
    """What was learned from one user/assistant exchange."""

    topic: str
    user_intent: str
    response_quality: float
    user_feedback: str
    patterns_identified: list[str] = field(default_factory=list)
    improvement_areas: list[str] = field(default_factory=list)
    timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "user_intent": self.user_intent,
            "response_quality": self.response_quality,
            "user_feedback": self.user_feedback,
            "patterns_identified": list(self.patterns_identified),
            "improvement_areas": list(self.improvement_areas),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationLearning:
        return cls(
            topic=data.get("topic", "general"),
            user_intent=data.get("user_intent", "general_conversation"),
            response_quality=float(data.get("response_quality", 0.5)),
            user_feedback=data.get("user_feedback", "neutral"),
            patterns_identified=list(data.get("patterns_identified") or []),
            improvement_areas=list(data.get("improvement_areas") or []),
            timestamp=parse_datetime(data.get("timestamp")),
        )


def identify_patterns(user_input: str, context: dict[str, Any] | None = None) -> list[str]:
    """Interaction patterns present in a user message."""
    text = user_input.lower()
    patterns = []
    if "?" in user_input:
        patterns.append("question_response")
    if any(w in text for w in _REQUEST_WORDS):
        patterns.append("request_fulfillment")
    if context and context.get("previous_messages"):
        patterns.append("conversation_continuation")
    if any(w in text for w in _TECHNICAL_WORDS):
        patterns.append("technical_expertise")
    if any(w in text for w in _CREATIVE_WORDS):
        patterns.append("creative_assistance")
    return patterns


def analyze_user_intent(user_input: str) -> str:
    text = user_input.lower()
    if "?" in text or any(w in text for w in ("what", "how", "why")):
        return "information_seeking"
    if any(w in text for w in ("help", "assist", "support")):
        return "assistance_request"
    if any(w in text for w in ("create", "make", "generate")):
        return "creation_request"
    if any(w in text for w in ("explain", "understand", "clarify")):
        return "explanation_request"
    return "general_conversation"


def extract_topic(user_input: str) -> str:
    text = user_input.lower()
    if any(w in text for w in ("code", "programming", "bug")):
        return "technical"
    if any(w in text for w in ("story", "creative", "art")):
        return "creative"
    return "general"


def assess_response_quality(ai_response: str, user_reaction: str) -> float:
    """
    Heuristic quality in [0, 1].

    Base 0.5; +0.1 for a length strictly between 50 and 1000 characters;
    +0.1 for structure (line breaks, bullets, numbered items); +0.3 for a
    positive and -0.2 for a negative reaction.
    """
    quality = 0.5
    if 50 < len(ai_response) < 1000:
        quality += 0.1
    if "\n" in ai_response or "•" in ai_response or "1." in ai_response:
        quality += 0.1
    if user_reaction == "positive":
        quality += 0.3
    elif user_reaction == "negative":
        quality -= 0.2
    return max(0.0, min(1.0, round(quality, 4)))


def identify_improvement_areas(quality: float, user_reaction: str) -> list[str]:
    areas = []
    if quality < 0.6:
        areas.append("response_relevance")
    if user_reaction == "negative":
        areas.extend(["user_satisfaction", "response_accuracy"])
    if quality < 0.4:
        areas.append("understanding_context")
    return areas


# =============================================================================
# Engine
# =============================================================================


class DecisionEngine:
    """
    Pattern-based autonomous decisions with an independence gate.

    Args:
        records: Record layer for the engine state.
        clock: Time source.
        config: Decision settings.
        rng: Random source used when no pattern informs the choice.
    """

    def __init__(
        self,
        records: RecordStore,
        clock: Clock | None = None,
        config: DecisionConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._records = records
        self._clock = clock or SystemClock()
        self._config = config or DecisionConfig()
        self._rng = rng or random.Random()
        self._independence = self._config.initial_independence
        self._patterns: dict[str, LearningPattern] = {}
        self._decisions: list[AutonomousDecision] = []
        self._conversations: list[ConversationLearning] = []
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Restore score, patterns and logs from durable storage."""
        data = await self._records.load(StorageKey.decisions())
        if not data:
            return
        try:
            self._independence = min(
                self._config.independence_cap, float(data.get("independence_score", self._independence))
            )
            self._patterns = {
                p["id"]: LearningPattern.from_dict(p) for p in data.get("patterns", [])
            }
            self._decisions = [AutonomousDecision.from_dict(d) for d in data.get("decisions", [])]
            self._conversations = [
                ConversationLearning.from_dict(c) for c in data.get("conversations", [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Ignoring unreadable decision engine state: {e}")
            return
        logger.info(
            f"Decision engine restored: independence {self._independence:.2f}, "
            f"{len(self._patterns)} patterns, {len(self._decisions)} decisions"
        )

    async def persist(self) -> bool:
        limit = self._config.decision_log_limit
        state = {
            "independence_score": self._independence,
            "patterns": [p.to_dict() for p in self._patterns.values()],
            "decisions": [d.to_dict() for d in self._decisions[-limit:]],
            "conversations": [c.to_dict() for c in self._conversations[-limit:]],
        }
        return await self._records.save(StorageKey.decisions(), state)

    @property
    def independence_score(self) -> float:
        return self._independence

    def patterns(self) -> list[LearningPattern]:
        return list(self._patterns.values())

    def decisions(self) -> list[AutonomousDecision]:
        return list(self._decisions)

    def get_decision(self, decision_id: str) -> AutonomousDecision | None:
        for decision in reversed(self._decisions):
            if decision.decision_id == decision_id:
                return decision
        return None

    def can_operate_independently(self) -> bool:
        return self._independence > self._config.independent_operation_threshold

    def _raise_independence(self) -> None:
        raised = round(self._independence + self._config.independence_increment, 4)
        self._independence = min(self._config.independence_cap, raised)

    # ------------------------------------------------------------------
    # Deciding
    # ------------------------------------------------------------------

    def find_relevant_patterns(self, context: str) -> list[LearningPattern]:
        """Patterns whose text occurs in ``context``, most effective first."""
        haystack = context.lower()
        matching = [p for p in self._patterns.values() if p.pattern.lower() in haystack]
        matching.sort(key=lambda p: p.effectiveness, reverse=True)
        return matching[: self._config.max_relevant_patterns]

    def calculate_confidence(self, patterns: list[LearningPattern]) -> float:
        if patterns:
            base = sum(p.success_rate * p.effectiveness for p in patterns) / len(patterns)
        else:
            base = 0.3
        return min(self._config.independence_cap, round(base + self._independence * 0.2, 6))

    @staticmethod
    def score_option(option: str, patterns: list[LearningPattern]) -> float:
        score = 0.5
        lowered = option.lower()
        for pattern in patterns:
            if pattern.pattern.lower() in lowered:
                score += pattern.effectiveness * 0.3
        return min(1.0, score)

    def _select_option(self, options: list[str], patterns: list[LearningPattern]) -> str:
        if not patterns:
            return self._rng.choice(options)
        best, best_score = options[0], self.score_option(options[0], patterns)
        for option in options[1:]:
            score = self.score_option(option, patterns)
            if score > best_score:
                best, best_score = option, score
        return best

    def _reasoning(self, patterns: list[LearningPattern], options: list[str]) -> list[str]:
        reasoning = []
        if patterns:
            reasoning.append(f"Found {len(patterns)} relevant learned patterns")
            reasoning.append(f"Best pattern has {patterns[0].success_rate * 100:.1f}% success rate")
        reasoning.append(f"Current autonomy level: {self._independence * 100:.1f}%")
        reasoning.append(f"Evaluated {len(options)} possible options")
        return reasoning

    async def make_autonomous_decision(self, context: str, options: list[str]) -> AutonomousDecision:
        """
        Choose one of ``options`` for ``context``.

        Raises:
            IndependenceGuardRejection: If the independence score is below
                the threshold.
            ValueError: If ``options`` is empty.
        """
        if self._independence < self._config.independence_threshold:
            raise IndependenceGuardRejection(self._independence, self._config.independence_threshold)
        if not options:
            raise ValueError("At least one option is required for a decision")

        async with self._lock:
            patterns = self.find_relevant_patterns(context)
            chosen = self._select_option(options, patterns)
            decision = AutonomousDecision(
                decision_id=f"auto_{uuid.uuid4().hex[:12]}",
                context=context,
                decision=chosen,
                confidence=self.calculate_confidence(patterns),
                reasoning=self._reasoning(patterns, options),
                fallback_plan=[o for o in options if o != chosen][:2],
                execution_time=self._clock.now(),
            )
            self._decisions.append(decision)
            limit = self._config.decision_log_limit
            if len(self._decisions) > limit:
                del self._decisions[: len(self._decisions) - limit]
            await self.persist()

        logger.info(f"Autonomous decision made: '{chosen}' (confidence: {decision.confidence:.1%})")
        return decision

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def _pattern_id(self, context: str) -> str:
        return f"pattern_{normalize_context(context)[: self._config.pattern_key_length]}"

    def _learn(self, decision: AutonomousDecision) -> None:
        pattern_id = self._pattern_id(decision.context)
        existing = self._patterns.get(pattern_id)
        now = self._clock.now()

        if decision.success:
            if existing is not None:
                existing.frequency += 1
                existing.success_rate = (existing.success_rate + 1) / 2
                existing.effectiveness = min(1.0, round(existing.effectiveness + 0.1, 4))
                if decision.quality is not None:
                    existing.user_satisfaction = (existing.user_satisfaction + decision.quality) / 2
                existing.timestamp = now
            else:
                self._patterns[pattern_id] = LearningPattern(
                    id=pattern_id,
                    pattern=decision.decision,
                    context=decision.context,
                    frequency=1,
                    success_rate=1.0,
                    user_satisfaction=0.8,
                    effectiveness=self._config.new_pattern_effectiveness,
                    timestamp=now,
                )
        elif existing is not None:
            existing.frequency += 1
            existing.success_rate = existing.success_rate / 2
            existing.timestamp = now

    async def record_outcome(
        self, decision_id: str, success: bool, quality: float | None = None
    ) -> AutonomousDecision:
        """
        Feed the outcome of a decision back into learning.

        Recording a second outcome for the same decision is a no-op.

        Raises:
            ValueError: If the decision id is unknown.
        """
        async with self._lock:
            decision = self.get_decision(decision_id)
            if decision is None:
                raise ValueError(f"Unknown decision id: {decision_id!r}")
            if decision.learned_from_outcome:
                logger.debug(f"Outcome for decision '{decision_id}' was already recorded")
                return decision

            decision.success = success
            decision.quality = quality
            self._learn(decision)
            decision.learned_from_outcome = True
            if success and quality is not None and quality > self._config.positive_quality_threshold:
                self._raise_independence()
            await self.persist()

        logger.debug(
            "Outcome recorded for %s: success=%s quality=%s independence=%.2f",
            decision_id, success, quality, self._independence,
        )
        return decision

    async def learn_from_conversation(
        self,
        user_input: str,
        ai_response: str,
        user_reaction: str = "neutral",
        context: dict[str, Any] | None = None,
    ) -> ConversationLearning:
        """Learn from one exchange; positive, high-quality ones raise independence."""
        if user_reaction not in _REACTIONS:
            raise ValueError(f"Invalid reaction: {user_reaction!r}. Valid: {list(_REACTIONS)}")

        quality = assess_response_quality(ai_response, user_reaction)
        learning = ConversationLearning(
            topic=extract_topic(user_input),
            user_intent=analyze_user_intent(user_input),
            response_quality=quality,
            user_feedback=user_reaction,
            patterns_identified=identify_patterns(user_input, context),
            improvement_areas=identify_improvement_areas(quality, user_reaction),
            timestamp=self._clock.now(),
        )
        async with self._lock:
            self._conversations.append(learning)
            limit = self._config.decision_log_limit
            if len(self._conversations) > limit:
                del self._conversations[: len(self._conversations) - limit]
            if user_reaction == "positive" and quality > self._config.positive_quality_threshold:
                self._raise_independence()
            await self.persist()

        logger.info(f"Learned from interaction. Independence score: {self._independence * 100:.1f}%")
        return learning

    def get_learning_insights(self) -> dict[str, Any]:
        recent = self._conversations[-20:]
        positive = sum(1 for c in recent if c.user_feedback == "positive")
        decided = [d for d in self._decisions if d.learned_from_outcome]
        return {
            "total_interactions": len(self._conversations),
            "recent_success_rate": positive / len(recent) if recent else 0.0,
            "independence_score": self._independence,
            "can_operate_independently": self.can_operate_independently(),
            "autonomous_decisions": len(self._decisions),
            "decision_success_rate": (
                sum(1 for d in decided if d.success) / len(decided) if decided else 0.0
            ),
            "learned_patterns": len(self._patterns),
        }
