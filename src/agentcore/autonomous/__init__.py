"""
Autonomous goal-execution core.

Provides:
- Goal management with planner-produced, dependency-ordered steps
- Step scheduling over a tool registry with an AI fallback
- Per-user agent memory (long-term and working)
- Proactive suggestions generated from user activity
- Autonomous decisions that learn from their outcomes
- A periodic, single-flight thinking loop

Example:
    from agentcore.autonomous import AutonomousAgent
    from agentcore.config import AutonomousConfig

    agent = AutonomousAgent(AutonomousConfig(), planner=my_planner)
    await agent.start()
    goal = await agent.set_goal("user_1", "Summarize this week's meetings", "high")
    await agent.shutdown()
"""

# Facade
from .agent import AutonomousAgent

# Time
from .clock import Clock, ManualClock, SystemClock

# Decisions
from .decisions import ConversationLearning, DecisionEngine

# Goals
from .goals import GoalStore, coerce_priority

# Thinking loop
from .heartbeat import ACT_ON_SUGGESTION, WAIT_FOR_USER, CycleReport, ThinkingCycle, ThinkingLoop

# Memory
from .memory import MemoryStore

# Records
from .models import (
    AgentMemory,
    AutonomousDecision,
    Goal,
    GoalPriority,
    GoalStatus,
    Interaction,
    LearningPattern,
    LongTermMemory,
    ProactiveSuggestion,
    StepStatus,
    SuggestedAction,
    SuggestionType,
    TaskStep,
    WorkingMemory,
)

# Planning
from .planner import AIExecutor, Planner, StaticPlanner, build_planning_prompt, default_plan, parse_plan

# Scheduling
from .scheduler import StepScheduler, sort_steps

# Suggestions
from .suggestions import SuggestionRegistry, UserActivity, generate_suggestions

# Tools
from .tools import ToolAvailability, ToolCapability, ToolContext, ToolRegistry, register_builtin_tools

__all__ = [
    # Facade
    "AutonomousAgent",
    # Time
    "Clock",
    "ManualClock",
    "SystemClock",
    # Decisions
    "ConversationLearning",
    "DecisionEngine",
    # Goals
    "GoalStore",
    "coerce_priority",
    # Thinking loop
    "ACT_ON_SUGGESTION",
    "WAIT_FOR_USER",
    "CycleReport",
    "ThinkingCycle",
    "ThinkingLoop",
    # Memory
    "MemoryStore",
    # Records
    "AgentMemory",
    "AutonomousDecision",
    "Goal",
    "GoalPriority",
    "GoalStatus",
    "Interaction",
    "LearningPattern",
    "LongTermMemory",
    "ProactiveSuggestion",
    "StepStatus",
    "SuggestedAction",
    "SuggestionType",
    "TaskStep",
    "WorkingMemory",
    # Planning
    "AIExecutor",
    "Planner",
    "StaticPlanner",
    "build_planning_prompt",
    "default_plan",
    "parse_plan",
    # Scheduling
    "StepScheduler",
    "sort_steps",
    # Suggestions
    "SuggestionRegistry",
    "UserActivity",
    "generate_suggestions",
    # Tools
    "ToolAvailability",
    "ToolCapability",
    "ToolContext",
    "ToolRegistry",
    "register_builtin_tools",
]
