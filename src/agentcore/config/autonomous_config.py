# src/agentcore/config/autonomous_config.py
"""
Autonomous core configuration models.

This module defines Pydantic models for every configuration section of
the autonomous goal-execution core. These models are used for:
1. Type-safe configuration loading
2. Validation with sensible defaults
3. Documentation of every tunable constant in one place

The configuration hierarchy:
    AutonomousConfig (root)
    ├── GoalsConfig         - Goal creation and auto-execution settings
    ├── RetryPolicyConfig   - Step retry / timeout policy
    ├── ThinkingConfig      - Periodic thinking loop settings
    ├── SuggestionsConfig   - Proactive suggestion lifecycle settings
    ├── DecisionConfig      - Independence gate and pattern learning
    ├── MemoryConfig        - Per-user memory settings
    └── StorageConfig       - Persistence backend selection

Usage:
    >>> from agentcore.config.autonomous_config import AutonomousConfig
    >>> config = AutonomousConfig()  # All defaults
    >>> config.thinking.interval_seconds
    30.0

    >>> # Override specific settings
    >>> config = AutonomousConfig(
    ...     retry=RetryPolicyConfig(max_attempts=3)
    ... )
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

_PRIORITIES = {"low", "medium", "high", "critical"}


# =============================================================================
# GOALS CONFIGURATION
# =============================================================================


class GoalsConfig(BaseModel):
    """
    Configuration for goal creation.

    Examples:
        >>> config = GoalsConfig()
        >>> config.auto_execute_priorities
        ['high', 'critical']
    """

    auto_execute_priorities: list[str] = Field(
        default_factory=lambda: ["high", "critical"],
        description="Goals created with one of these priorities are executed immediately",
    )
    default_priority: str = Field(
        default="medium",
        description="Priority used when the caller does not give one",
    )
    title_max_length: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Goal titles are the description truncated to this many characters",
    )

    @field_validator("auto_execute_priorities")
    @classmethod
    def validate_priorities(cls, v: list[str]) -> list[str]:
        """Validate every entry is a known priority."""
        lowered = [p.lower() for p in v]
        unknown = sorted(set(lowered) - _PRIORITIES)
        if unknown:
            raise ValueError(f"Unknown priorities: {unknown}. Valid: {sorted(_PRIORITIES)}")
        return lowered

    @field_validator("default_priority")
    @classmethod
    def validate_default_priority(cls, v: str) -> str:
        """Validate the default priority string."""
        if v.lower() not in _PRIORITIES:
            raise ValueError(f"Invalid priority: {v!r}. Valid: {sorted(_PRIORITIES)}")
        return v.lower()


# =============================================================================
# RETRY POLICY CONFIGURATION
# =============================================================================


class RetryPolicyConfig(BaseModel):
    """
    Retry and timeout policy for individual step execution.

    The default is a single attempt with no core-imposed timeout: a failing
    step fails its goal straight away. Raising ``max_attempts`` enables
    bounded exponential backoff between attempts.

    Examples:
        >>> policy = RetryPolicyConfig(max_attempts=3)
        >>> policy.delay_for_attempt(1), policy.delay_for_attempt(2)
        (1.0, 2.0)
    """

    max_attempts: int = Field(
        default=1,
        ge=1,
        le=20,
        description="Total attempts per step (1 = no automatic retry)",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Delay before the second attempt",
    )
    backoff_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="Multiplier applied to the delay after each failed attempt",
    )
    max_delay_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Upper bound for any single backoff delay",
    )
    step_timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description=(
            "Per-step timeout applied when the tool declares none. "
            "None leaves timing entirely to the tool layer."
        ),
    )

    def delay_for_attempt(self, attempt: int) -> float:
        """Backoff delay after the given (1-based) failed attempt."""
        delay = self.base_delay_seconds * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_delay_seconds)


# =============================================================================
# THINKING LOOP CONFIGURATION
# =============================================================================


class ThinkingConfig(BaseModel):
    """
    Configuration for the periodic thinking loop.

    Examples:
        >>> config = ThinkingConfig()
        >>> config.interval_seconds
        30.0
    """

    enabled: bool = Field(
        default=True,
        description="Start the thinking loop together with the agent",
    )
    interval_seconds: float = Field(
        default=30.0,
        gt=0.0,
        le=86400.0,
        description="Fixed interval between thinking ticks in seconds",
    )
    autonomous_action_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Suggestions above this confidence are put to the decision engine",
    )


# =============================================================================
# SUGGESTION CONFIGURATION
# =============================================================================


class SuggestionsConfig(BaseModel):
    """
    Configuration for the proactive suggestion lifecycle.

    Examples:
        >>> config = SuggestionsConfig()
        >>> config.max_per_user, config.ttl_hours
        (10, 24.0)
    """

    max_per_user: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Only the most recent N suggestions are kept per user",
    )
    ttl_hours: float = Field(
        default=24.0,
        gt=0.0,
        description="Suggestions older than this are pruned",
    )
    business_hours_start: int = Field(
        default=9,
        ge=0,
        le=23,
        description="First hour (inclusive) of the productivity window",
    )
    business_hours_end: int = Field(
        default=17,
        ge=0,
        le=23,
        description="Last hour (inclusive) of the productivity window",
    )
    research_query_threshold: int = Field(
        default=3,
        ge=0,
        description="More research interactions than this trigger a research insight",
    )

    @model_validator(mode="after")
    def check_business_hours(self) -> SuggestionsConfig:
        """Reject an inverted productivity window."""
        if self.business_hours_start > self.business_hours_end:
            raise ValueError("business_hours_start must not be after business_hours_end")
        return self


# =============================================================================
# DECISION ENGINE CONFIGURATION
# =============================================================================


class DecisionConfig(BaseModel):
    """
    Configuration for the decision engine and its independence gate.

    Examples:
        >>> config = DecisionConfig()
        >>> config.initial_independence, config.independence_threshold
        (0.3, 0.5)
    """

    initial_independence: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Independence score at process start (before any restored state)",
    )
    independence_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Minimum independence score to make unsupervised decisions",
    )
    independence_increment: float = Field(
        default=0.01,
        ge=0.0,
        le=1.0,
        description="Score gained per qualifying positive outcome",
    )
    independence_cap: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Upper bound for the independence score",
    )
    positive_quality_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Positive outcomes must exceed this quality to raise independence",
    )
    independent_operation_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Score above which the engine reports it can operate independently",
    )
    max_relevant_patterns: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Number of learning patterns consulted per decision",
    )
    new_pattern_effectiveness: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Starting effectiveness for newly learned patterns",
    )
    pattern_key_length: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Length of the normalized context prefix that keys a pattern",
    )
    decision_log_limit: int = Field(
        default=500,
        ge=1,
        description="Number of most recent decisions and conversation learnings kept",
    )

    @model_validator(mode="after")
    def check_cap(self) -> DecisionConfig:
        """The starting score cannot exceed the cap."""
        if self.initial_independence > self.independence_cap:
            raise ValueError("initial_independence must not exceed independence_cap")
        return self


# =============================================================================
# MEMORY CONFIGURATION
# =============================================================================


class MemoryConfig(BaseModel):
    """
    Configuration for per-user agent memory.

    Examples:
        >>> MemoryConfig().max_recent_interactions
        50
    """

    max_recent_interactions: int = Field(
        default=50,
        ge=1,
        le=10_000,
        description="Working memory keeps only the most recent N interactions",
    )


# =============================================================================
# STORAGE CONFIGURATION
# =============================================================================


class StorageConfig(BaseModel):
    """
    Persistence backend selection.

    Examples:
        >>> StorageConfig().backend
        'memory'
        >>> StorageConfig(backend="sqlite", path="/tmp/agent.db").backend
        'sqlite'
    """

    backend: str = Field(
        default="memory",
        description="Backend type. Options: 'memory', 'json', 'sqlite'",
    )
    path: str = Field(
        default="~/.local/share/agentcore/state",
        description=(
            "Directory (json) or database file (sqlite). "
            "Tilde and environment variable expansion is applied."
        ),
    )

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate backend type string."""
        valid = {"memory", "json", "sqlite"}
        if v.lower() not in valid:
            raise ValueError(f"Invalid storage backend: {v!r}. Valid: {sorted(valid)}")
        return v.lower()

    @field_validator("path")
    @classmethod
    def expand_path(cls, v: str) -> str:
        """Expand ~ and environment variables in path."""
        return os.path.expanduser(os.path.expandvars(v))


# =============================================================================
# ROOT AUTONOMOUS CONFIGURATION
# =============================================================================


class AutonomousConfig(BaseModel):
    """
    Root configuration for the autonomous goal-execution core.

    Usage:
        >>> config = AutonomousConfig()
        >>> config.storage.backend
        'memory'

        >>> # From TOML dict
        >>> config = AutonomousConfig(**toml_dict["autonomous"])
    """

    goals: GoalsConfig = Field(
        default_factory=GoalsConfig,
        description="Goal creation configuration",
    )
    retry: RetryPolicyConfig = Field(
        default_factory=RetryPolicyConfig,
        description="Step retry and timeout policy",
    )
    thinking: ThinkingConfig = Field(
        default_factory=ThinkingConfig,
        description="Thinking loop configuration",
    )
    suggestions: SuggestionsConfig = Field(
        default_factory=SuggestionsConfig,
        description="Proactive suggestion configuration",
    )
    decisions: DecisionConfig = Field(
        default_factory=DecisionConfig,
        description="Decision engine configuration",
    )
    memory: MemoryConfig = Field(
        default_factory=MemoryConfig,
        description="Per-user memory configuration",
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Persistence backend configuration",
    )


# =============================================================================
# HELPER: LOAD FROM TOML DICT
# =============================================================================


def load_autonomous_config(
    config_dict: dict[str, Any] | None = None,
    config_path: Path | str | None = None,
) -> AutonomousConfig:
    """
    Load autonomous configuration from a dictionary or TOML file.

    Args:
        config_dict: Pre-parsed configuration dictionary. If provided,
            extracts the ``"autonomous"`` key if present.
        config_path: Path to a TOML file. If provided, reads and parses
            it, then extracts the ``"autonomous"`` section.

    Returns:
        Validated AutonomousConfig instance with defaults for
        any unspecified settings.

    Raises:
        FileNotFoundError: If config_path does not exist.
        pydantic.ValidationError: If validation fails on any config value.

    Examples:
        >>> config = load_autonomous_config(config_dict={
        ...     "autonomous": {"thinking": {"interval_seconds": 10}}
        ... })
        >>> config.thinking.interval_seconds
        10.0
    """
    data: dict[str, Any] = {}

    if config_path is not None:
        import tomllib

        path = Path(config_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        data = raw.get("autonomous", {})

    if config_dict is not None:
        if "autonomous" in config_dict:
            data = config_dict["autonomous"]
        else:
            data = config_dict

    return AutonomousConfig(**data)
