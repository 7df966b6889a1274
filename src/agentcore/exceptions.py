# src/agentcore/exceptions.py
"""
Custom exceptions for the agentcore library.

This module defines a hierarchy of custom exception classes so that the
hosting application can tell planning problems, step failures, storage
outages and autonomy refusals apart, and handle each one where it belongs.
"""

class AgentCoreError(Exception):
    """Base class for all agentcore specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in agentcore."):
        super().__init__(message)

class ConfigError(AgentCoreError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class StorageError(AgentCoreError):
    """Base class for errors related to storage operations."""
    def __init__(self, message: str = "Storage error."):
        super().__init__(message)

class PersistenceFailure(StorageError):
    """
    Raised by a persistence backend when a read or write fails.

    Components never let this escape to callers: the record layer logs it
    and the in-memory cache stays authoritative until the next successful
    write.
    """
    def __init__(self, key: str = "unknown", message: str = "Persistence failure."):
        self.key = key
        super().__init__(f"{message} Key: '{key}'")

class PlanningFailure(AgentCoreError):
    """Raised when a plan is unparsable or its dependency graph is invalid (cyclic or dangling)."""
    def __init__(self, goal_description: str = "", message: str = "Planning failed."):
        self.goal_description = goal_description
        super().__init__(message)

class StepExecutionFailure(AgentCoreError):
    """Raised when a tool or the AI-execution path fails to produce a result for a step."""
    def __init__(self, step_id: str = "unknown", action: str = "unknown", message: str = "Step execution failed."):
        self.step_id = step_id
        self.action = action
        super().__init__(f"Step '{step_id}' ({action}) failed: {message}")

class CycleFailure(AgentCoreError):
    """Wraps an exception that escaped a single thinking cycle."""
    def __init__(self, cycle_number: int = 0, message: str = "Thinking cycle failed."):
        self.cycle_number = cycle_number
        super().__init__(f"Cycle #{cycle_number}: {message}")

class IndependenceGuardRejection(AgentCoreError):
    """Raised when an autonomous decision is requested before enough positive feedback has accrued."""
    def __init__(self, score: float = 0.0, threshold: float = 0.5):
        self.score = score
        self.threshold = threshold
        super().__init__(
            f"Insufficient autonomy level for independent decision making "
            f"(independence {score:.2f} < required {threshold:.2f})."
        )

class SuggestionNotFound(AgentCoreError):
    """Raised when a suggestion id does not exist for the given user."""
    def __init__(self, user_id: str, suggestion_id: str, message: str = "Suggestion not found."):
        self.user_id = user_id
        self.suggestion_id = suggestion_id
        super().__init__(f"{message} User: '{user_id}', Suggestion ID: '{suggestion_id}'")
