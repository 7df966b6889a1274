# src/agentcore/autonomous/models.py
"""
Data model for the autonomous goal-execution core.

All records are plain dataclasses with ``to_dict`` / ``from_dict`` codecs.
Timestamps are timezone-aware UTC datetimes and serialize as ISO-8601
strings; ``from_dict(x.to_dict()) == x`` holds for every record type, which
is what lets per-user memory survive a save/load round trip unchanged.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

# =============================================================================
# Enums
# =============================================================================


class GoalPriority(Enum):
    """Goal priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class GoalStatus(Enum):
    """Goal lifecycle states."""

    PENDING = "pending"
    """Created, not yet executed."""

    IN_PROGRESS = "in_progress"
    """Steps are being executed (or will be, after a resume)."""

    COMPLETED = "completed"
    """Every step completed. Terminal; the goal moves to long-term memory."""

    PAUSED = "paused"
    """Execution stopped at a step boundary by ``pause_goal``."""

    FAILED = "failed"
    """A step failed. Resumable as a manual retry."""


class StepStatus(Enum):
    """TaskStep lifecycle states."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class SuggestionType(Enum):
    """Kinds of proactive suggestion."""

    TASK = "task"
    IMPROVEMENT = "improvement"
    INSIGHT = "insight"
    REMINDER = "reminder"
    OPPORTUNITY = "opportunity"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-format string or pass through a datetime unchanged."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# =============================================================================
# Goals and steps
# =============================================================================


@dataclass
class TaskStep:
    """
    One unit of work within a goal.

    Attributes:
        id: Identifier, unique within the owning goal.
        action: Symbolic operation name, resolved against the tool registry.
        parameters: Opaque parameter bag handed to the tool.
        status: Current lifecycle state.
        result: Tool output once completed.
        executed_at: When the step last moved to ``in_progress``.
        dependencies: Ids of steps in the same goal that must complete first.
        error: Failure message of the last failed attempt.
        attempts: Number of execution attempts made.
    """

    id: str
    action: str
    parameters: dict[str, Any] = field(default_factory=dict)
    status: StepStatus = StepStatus.PENDING
    result: Any = None
    executed_at: datetime | None = None
    dependencies: list[str] = field(default_factory=list)
    error: str | None = None
    attempts: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "parameters": self.parameters,
            "status": self.status.value,
            "result": self.result,
            "executed_at": format_datetime(self.executed_at),
            "dependencies": list(self.dependencies),
            "error": self.error,
            "attempts": self.attempts,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskStep:
        return cls(
            id=str(data["id"]),
            action=str(data["action"]),
            parameters=dict(data.get("parameters") or {}),
            status=StepStatus(data.get("status", "pending")),
            result=data.get("result"),
            executed_at=parse_datetime(data.get("executed_at")),
            dependencies=[str(d) for d in data.get("dependencies") or []],
            error=data.get("error"),
            attempts=int(data.get("attempts", 0)),
        )


@dataclass
class Goal:
    """
    A user- or system-initiated objective decomposed into ordered steps.

    ``context`` is an opaque key-value bag; it always carries the owning
    user under ``"user_id"``.

    Example:
        >>> goal = Goal.create("Summarize this week's notes", user_id="u1")
        >>> goal.status, goal.user_id
        (<GoalStatus.PENDING: 'pending'>, 'u1')
    """

    id: str
    title: str
    description: str
    priority: GoalPriority = GoalPriority.MEDIUM
    status: GoalStatus = GoalStatus.PENDING
    steps: list[TaskStep] = field(default_factory=list)
    deadline: datetime | None = None
    context: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        description: str,
        user_id: str,
        priority: GoalPriority = GoalPriority.MEDIUM,
        title_max_length: int = 50,
        now: datetime | None = None,
        **kwargs: Any,
    ) -> Goal:
        """Factory with generated id and a title cut from the description."""
        now = now or utcnow()
        context = dict(kwargs.pop("context", None) or {})
        context["user_id"] = user_id
        if "deadline" in kwargs:
            kwargs["deadline"] = parse_datetime(kwargs["deadline"])
        return cls(
            id=f"goal_{uuid.uuid4().hex[:12]}",
            title=description[:title_max_length],
            description=description,
            priority=priority,
            context=context,
            created_at=now,
            updated_at=now,
            **kwargs,
        )

    @property
    def user_id(self) -> str:
        return str(self.context.get("user_id", ""))

    def get_step(self, step_id: str) -> TaskStep | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def progress(self) -> float:
        """Fraction of completed steps (0.0 for a goal without steps)."""
        if not self.steps:
            return 0.0
        done = sum(1 for s in self.steps if s.status == StepStatus.COMPLETED)
        return done / len(self.steps)

    def touch(self, now: datetime) -> None:
        self.updated_at = now

    def to_dict(self) -> dict[str, Any]:
        """Serialize goal to dictionary for storage."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "status": self.status.value,
            "steps": [s.to_dict() for s in self.steps],
            "deadline": format_datetime(self.deadline),
            "context": self.context,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Goal:
        """Deserialize goal from dictionary."""
        return cls(
            id=data["id"],
            title=data.get("title", data["description"][:50]),
            description=data["description"],
            priority=GoalPriority(data.get("priority", "medium")),
            status=GoalStatus(data.get("status", "pending")),
            steps=[TaskStep.from_dict(s) for s in data.get("steps", [])],
            deadline=parse_datetime(data.get("deadline")),
            context=dict(data.get("context") or {}),
            created_at=parse_datetime(data.get("created_at")) or utcnow(),
            updated_at=parse_datetime(data.get("updated_at")) or utcnow(),
        )


# =============================================================================
# Per-user memory
# =============================================================================


@dataclass
class Interaction:
    """A single entry in a user's recent-interaction window."""

    kind: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "payload": self.payload, "timestamp": self.timestamp.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Interaction:
        return cls(
            kind=data["kind"],
            payload=dict(data.get("payload") or {}),
            timestamp=parse_datetime(data.get("timestamp")) or utcnow(),
        )


@dataclass
class LongTermMemory:
    user_preferences: dict[str, Any] = field(default_factory=dict)
    learned_patterns: dict[str, Any] = field(default_factory=dict)
    completed_goals: list[Goal] = field(default_factory=list)
    user_context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_preferences": self.user_preferences,
            "learned_patterns": self.learned_patterns,
            "completed_goals": [g.to_dict() for g in self.completed_goals],
            "user_context": self.user_context,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LongTermMemory:
        return cls(
            user_preferences=dict(data.get("user_preferences") or {}),
            learned_patterns=dict(data.get("learned_patterns") or {}),
            completed_goals=[Goal.from_dict(g) for g in data.get("completed_goals", [])],
            user_context=dict(data.get("user_context") or {}),
        )


@dataclass
class WorkingMemory:
    current_goals: list[Goal] = field(default_factory=list)
    active_context: dict[str, Any] = field(default_factory=dict)
    recent_interactions: list[Interaction] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_goals": [g.to_dict() for g in self.current_goals],
            "active_context": self.active_context,
            "recent_interactions": [i.to_dict() for i in self.recent_interactions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkingMemory:
        return cls(
            current_goals=[Goal.from_dict(g) for g in data.get("current_goals", [])],
            active_context=dict(data.get("active_context") or {}),
            recent_interactions=[
                Interaction.from_dict(i) for i in data.get("recent_interactions", [])
            ],
        )


@dataclass
class AgentMemory:
    """
    Durable per-user state: accumulated long-term memory plus the
    short-lived working set. Owned exclusively by the MemoryStore.
    """

    user_id: str
    session_id: str
    long_term: LongTermMemory = field(default_factory=LongTermMemory)
    working: WorkingMemory = field(default_factory=WorkingMemory)
    last_updated: datetime = field(default_factory=utcnow)

    @classmethod
    def empty(cls, user_id: str, now: datetime | None = None) -> AgentMemory:
        return cls(
            user_id=user_id,
            session_id=f"session_{uuid.uuid4().hex[:12]}",
            last_updated=now or utcnow(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "session_id": self.session_id,
            "long_term": self.long_term.to_dict(),
            "working": self.working.to_dict(),
            "last_updated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentMemory:
        return cls(
            user_id=data["user_id"],
            session_id=data.get("session_id", ""),
            long_term=LongTermMemory.from_dict(data.get("long_term") or {}),
            working=WorkingMemory.from_dict(data.get("working") or {}),
            last_updated=parse_datetime(data.get("last_updated")) or utcnow(),
        )


# =============================================================================
# Suggestions
# =============================================================================


@dataclass
class SuggestedAction:
    type: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "parameters": self.parameters}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SuggestedAction:
        return cls(type=data["type"], parameters=dict(data.get("parameters") or {}))


@dataclass
class ProactiveSuggestion:
    """
    A system-generated candidate goal or insight awaiting the user.

    ``decision_id`` links the suggestion to the autonomous decision taken
    about it, if any, so that the user's later accept/dismiss feeds back
    into learning.
    """

    id: str
    type: SuggestionType
    title: str
    description: str
    confidence: float
    reasoning: str
    suggested_action: SuggestedAction
    created_at: datetime = field(default_factory=utcnow)
    decision_id: str | None = None

    @classmethod
    def create(
        cls,
        type: SuggestionType,
        title: str,
        description: str,
        confidence: float,
        reasoning: str,
        suggested_action: SuggestedAction,
        now: datetime | None = None,
    ) -> ProactiveSuggestion:
        return cls(
            id=f"suggestion_{uuid.uuid4().hex[:12]}",
            type=type,
            title=title,
            description=description,
            confidence=max(0.0, min(1.0, confidence)),
            reasoning=reasoning,
            suggested_action=suggested_action,
            created_at=now or utcnow(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "suggested_action": self.suggested_action.to_dict(),
            "created_at": self.created_at.isoformat(),
            "decision_id": self.decision_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProactiveSuggestion:
        return cls(
            id=data["id"],
            type=SuggestionType(data["type"]),
            title=data["title"],
            description=data.get("description", ""),
            confidence=float(data.get("confidence", 0.0)),
            reasoning=data.get("reasoning", ""),
            suggested_action=SuggestedAction.from_dict(data["suggested_action"]),
            created_at=parse_datetime(data.get("created_at")) or utcnow(),
            decision_id=data.get("decision_id"),
        )


# =============================================================================
# Learning
# =============================================================================


@dataclass
class LearningPattern:
    """A reinforced record correlating a context signature with decision success."""

    id: str
    pattern: str
    context: str
    frequency: int = 1
    success_rate: float = 1.0
    user_satisfaction: float = 0.8
    effectiveness: float = 0.7
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pattern": self.pattern,
            "context": self.context,
            "frequency": self.frequency,
            "success_rate": self.success_rate,
            "user_satisfaction": self.user_satisfaction,
            "effectiveness": self.effectiveness,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LearningPattern:
        return cls(
            id=data["id"],
            pattern=data["pattern"],
            context=data.get("context", ""),
            frequency=int(data.get("frequency", 1)),
            success_rate=float(data.get("success_rate", 1.0)),
            user_satisfaction=float(data.get("user_satisfaction", 0.8)),
            effectiveness=float(data.get("effectiveness", 0.7)),
            timestamp=parse_datetime(data.get("timestamp")) or utcnow(),
        )


@dataclass
class AutonomousDecision:
    """An entry in the append-only decision log."""

    decision_id: str
    context: str
    decision: str
    confidence: float
    reasoning: list[str] = field(default_factory=list)
    fallback_plan: list[str] = field(default_factory=list)
    execution_time: datetime = field(default_factory=utcnow)
    success: bool | None = None
    learned_from_outcome: bool = False
    quality: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision_id": self.decision_id,
            "context": self.context,
            "decision": self.decision,
            "confidence": self.confidence,
            "reasoning": list(self.reasoning),
            "fallback_plan": list(self.fallback_plan),
            "execution_time": self.execution_time.isoformat(),
            "success": self.success,
            "learned_from_outcome": self.learned_from_outcome,
            "quality": self.quality,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AutonomousDecision:
        return cls(
            decision_id=data["decision_id"],
            context=data.get("context", ""),
            decision=data["decision"],
            confidence=float(data.get("confidence", 0.0)),
            reasoning=list(data.get("reasoning") or []),
            fallback_plan=list(data.get("fallback_plan") or []),
            execution_time=parse_datetime(data.get("execution_time")) or utcnow(),
            success=data.get("success"),
            learned_from_outcome=bool(data.get("learned_from_outcome", False)),
            quality=data.get("quality"),
        )
