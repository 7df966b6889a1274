# src/agentcore/__init__.py
"""
agentcore - An autonomous goal-execution core for personal assistants.

The core accepts goals from users, plans them into dependency-ordered
steps, executes the steps through registered tools or an AI fallback,
keeps per-user memory, and runs a periodic thinking loop that produces
proactive suggestions and learns from the outcome of its own decisions.
"""

from importlib.metadata import PackageNotFoundError, version

from .autonomous import (
    AutonomousAgent,
    Goal,
    GoalPriority,
    GoalStatus,
    ManualClock,
    ProactiveSuggestion,
    SystemClock,
    TaskStep,
    ToolCapability,
)
from .config import AutonomousConfig, load_autonomous_config
from .exceptions import (
    AgentCoreError,
    ConfigError,
    CycleFailure,
    IndependenceGuardRejection,
    PersistenceFailure,
    PlanningFailure,
    StepExecutionFailure,
    StorageError,
    SuggestionNotFound,
)
from .logging_config import configure_logging, log_display

try:
    __version__ = version("agentcore")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "AutonomousAgent",
    "AutonomousConfig",
    "load_autonomous_config",
    "Goal",
    "GoalPriority",
    "GoalStatus",
    "ManualClock",
    "ProactiveSuggestion",
    "SystemClock",
    "TaskStep",
    "ToolCapability",
    # Exceptions
    "AgentCoreError",
    "ConfigError",
    "CycleFailure",
    "IndependenceGuardRejection",
    "PersistenceFailure",
    "PlanningFailure",
    "StepExecutionFailure",
    "StorageError",
    "SuggestionNotFound",
    # Logging
    "configure_logging",
    "log_display",
    "__version__",
]
