# src/agentcore/config/__init__.py
"""
Configuration module for the agentcore library.

All settings are pydantic models rooted at
:class:`~agentcore.config.autonomous_config.AutonomousConfig`. They can be
built directly, from a dict, or from the ``[autonomous]`` table of a TOML
file with :func:`~agentcore.config.autonomous_config.load_autonomous_config`.
"""

from .autonomous_config import (
    AutonomousConfig,
    DecisionConfig,
    GoalsConfig,
    MemoryConfig,
    RetryPolicyConfig,
    StorageConfig,
    SuggestionsConfig,
    ThinkingConfig,
    load_autonomous_config,
)

__all__ = [
    "AutonomousConfig",
    "DecisionConfig",
    "GoalsConfig",
    "MemoryConfig",
    "RetryPolicyConfig",
    "StorageConfig",
    "SuggestionsConfig",
    "ThinkingConfig",
    "load_autonomous_config",
]
