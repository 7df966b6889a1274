# examples/autonomous_agent.py
"""
Example demonstrating the autonomous goal-execution core.

This script shows how to:
1. Build an AutonomousAgent with a simple planner and AI executor.
2. Register a custom tool.
3. Set goals and inspect their steps.
4. Run a thinking cycle on demand and read the proactive suggestions.
5. Promote one suggestion to a goal and print memory statistics.

To run this example:
- Ensure you have agentcore installed (`pip install .` from the project root).
- No model backend is needed: the planner and executor below are stand-ins
  for the hosting application's language-model integration.
"""

import asyncio
import logging

from agentcore import AgentCoreError, AutonomousAgent, AutonomousConfig, ToolCapability, configure_logging
from agentcore.config import StorageConfig, ThinkingConfig

logger = logging.getLogger(__name__)


class KeywordPlanner:
    """Plans every goal as collect -> summarize."""

    async def plan(self, goal_description, priority):
        return {
            "steps": [
                {"id": "collect", "action": "collect_sources", "parameters": {"query": goal_description}},
                {"id": "summarize", "action": "summarize", "dependencies": ["collect"]},
            ]
        }


class EchoExecutor:
    """Answers every step the tool registry cannot."""

    async def execute(self, action, parameters, goal):
        return {"action": action, "goal": goal.title}


def collect_sources(parameters, context):
    return [f"https://example.org/search?q={parameters['query'].replace(' ', '+')}"]


async def main():
    """Runs the autonomous agent walkthrough."""
    configure_logging(app_name="agentcore_example", config={"console_enabled": True, "console_level": "INFO"})

    config = AutonomousConfig(
        thinking=ThinkingConfig(enabled=False),
        storage=StorageConfig(backend="memory"),
    )
    agent = AutonomousAgent(config, planner=KeywordPlanner(), ai_executor=EchoExecutor())
    agent.register_tool(ToolCapability(
        name="collect_sources",
        description="Build search URLs for a query",
        func=collect_sources,
    ))

    try:
        await agent.start()

        goal = await agent.set_goal("demo_user", "Research vector databases", "high")
        logger.info(f"Goal '{goal.title}' finished as {goal.status.value}")
        for step in goal.steps:
            logger.info(f"  {step.id}: {step.status.value} -> {step.result}")

        await agent.set_goal("demo_user", "Plan the quarterly review")
        for topic in ["embeddings", "ann indexes", "hnsw", "pgvector"]:
            await agent.record_interaction("demo_user", "research", {"topic": topic})

        await agent.think_now()
        suggestions = await agent.get_proactive_suggestions("demo_user")
        for suggestion in suggestions:
            logger.info(f"Suggestion [{suggestion.type.value}] {suggestion.title} ({suggestion.confidence:.2f})")

        if suggestions:
            promoted = await agent.promote_suggestion_to_goal("demo_user", suggestions[0].id)
            logger.info(f"Promoted suggestion to goal {promoted.id}")

        logger.info(f"Memory stats: {await agent.get_memory_stats()}")

    except AgentCoreError as e:
        logger.error(f"An agentcore error occurred: {e}")
    finally:
        await agent.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
