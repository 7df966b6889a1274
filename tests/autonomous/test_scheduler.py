# tests/autonomous/test_scheduler.py
"""
Tests for dependency ordering and step execution.

Covers:
- sort_steps: stable order, dependencies first, cycles and dangling ids
- Sequential execution through tools and the AI fallback
- Failure handling: step and goal marked failed, later steps untouched
- Retry with backoff on the injected clock
- Approval denial, timeouts, missing executor, None results
- Pausing at a step boundary
"""

import asyncio

import pytest

from agentcore.autonomous.models import Goal, GoalStatus, StepStatus, TaskStep
from agentcore.autonomous.scheduler import StepScheduler, sort_steps
from agentcore.autonomous.tools import ToolAvailability, ToolCapability
from agentcore.config.autonomous_config import RetryPolicyConfig
from agentcore.exceptions import PlanningFailure, StepExecutionFailure


def make_goal(*steps: TaskStep) -> Goal:
    goal = Goal.create("Test goal", user_id="u1")
    goal.steps = list(steps)
    return goal


class CheckpointRecorder:
    def __init__(self) -> None:
        self.snapshots: list[dict] = []

    async def __call__(self, goal: Goal) -> None:
        self.snapshots.append(goal.to_dict())


async def wait_for_sleeper(clock, count: int = 1) -> None:
    for _ in range(100):
        if clock.pending_sleepers >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError("no task went to sleep on the clock")


# =============================================================================
# sort_steps
# =============================================================================


class TestSortSteps:
    """Tests for the topological sort."""

    def test_independent_steps_keep_order(self):
        steps = [TaskStep(id=i, action="x") for i in ("c", "a", "b")]
        assert [s.id for s in sort_steps(steps)] == ["c", "a", "b"]

    def test_dependencies_come_first(self):
        steps = [
            TaskStep(id="report", action="x", dependencies=["analyze"]),
            TaskStep(id="collect", action="x"),
            TaskStep(id="analyze", action="x", dependencies=["collect"]),
        ]
        assert [s.id for s in sort_steps(steps)] == ["collect", "analyze", "report"]

    def test_cycle_is_rejected(self):
        steps = [
            TaskStep(id="a", action="x", dependencies=["b"]),
            TaskStep(id="b", action="x", dependencies=["a"]),
        ]
        with pytest.raises(PlanningFailure, match="cycle"):
            sort_steps(steps)

    def test_self_dependency_is_a_cycle(self):
        with pytest.raises(PlanningFailure, match="cycle"):
            sort_steps([TaskStep(id="a", action="x", dependencies=["a"])])

    def test_dangling_dependency_is_rejected(self):
        with pytest.raises(PlanningFailure, match="unknown step 'ghost'"):
            sort_steps([TaskStep(id="a", action="x", dependencies=["ghost"])])


# =============================================================================
# Execution
# =============================================================================


class TestExecute:
    """Tests for StepScheduler.execute."""

    @pytest.mark.asyncio
    async def test_runs_tools_and_ai_path_in_order(self, scheduler, ai_executor):
        goal = make_goal(
            TaskStep(id="s2", action="research_topic", parameters={"q": "x"}, dependencies=["s1"]),
            TaskStep(id="s1", action="analyze_goal", parameters={"goal": "Test goal"}),
        )
        checkpoint = CheckpointRecorder()

        status = await scheduler.execute(goal, checkpoint)

        assert status == GoalStatus.COMPLETED
        assert goal.status == GoalStatus.COMPLETED
        assert all(s.status == StepStatus.COMPLETED for s in goal.steps)
        assert goal.get_step("s1").result["keywords"] == ["test", "goal"]
        assert ai_executor.calls == [("research_topic", {"q": "x"})]
        assert goal.get_step("s1").executed_at is not None
        assert checkpoint.snapshots[0]["status"] == "in_progress"

    @pytest.mark.asyncio
    async def test_completed_steps_are_skipped(self, scheduler, ai_executor):
        goal = make_goal(
            TaskStep(id="s1", action="done_already", status=StepStatus.COMPLETED, result="r"),
            TaskStep(id="s2", action="next"),
        )
        await scheduler.execute(goal, CheckpointRecorder())
        assert [c[0] for c in ai_executor.calls] == ["next"]

    @pytest.mark.asyncio
    async def test_failure_marks_step_and_goal(self, scheduler, ai_executor):
        ai_executor.failing.add("explode")
        goal = make_goal(
            TaskStep(id="s1", action="explode"),
            TaskStep(id="s2", action="never", dependencies=["s1"]),
        )

        with pytest.raises(StepExecutionFailure) as exc_info:
            await scheduler.execute(goal, CheckpointRecorder())

        assert exc_info.value.step_id == "s1"
        assert goal.status == GoalStatus.FAILED
        assert goal.get_step("s1").status == StepStatus.FAILED
        assert "explode exploded" in goal.get_step("s1").error
        assert goal.get_step("s2").status == StepStatus.PENDING
        assert [c[0] for c in ai_executor.calls] == ["explode"]

    @pytest.mark.asyncio
    async def test_invalid_graph_fails_goal(self, scheduler):
        goal = make_goal(TaskStep(id="a", action="x", dependencies=["a"]))
        checkpoint = CheckpointRecorder()
        with pytest.raises(PlanningFailure):
            await scheduler.execute(goal, checkpoint)
        assert goal.status == GoalStatus.FAILED
        assert checkpoint.snapshots[-1]["status"] == "failed"

    @pytest.mark.asyncio
    async def test_none_result_is_a_failure(self, scheduler, ai_executor):
        ai_executor.return_none.add("silent")
        with pytest.raises(StepExecutionFailure, match="no result"):
            await scheduler.execute(make_goal(TaskStep(id="s1", action="silent")), CheckpointRecorder())

    @pytest.mark.asyncio
    async def test_no_executor_configured(self, tool_registry, clock):
        scheduler = StepScheduler(tool_registry, ai_executor=None, clock=clock)
        with pytest.raises(StepExecutionFailure, match="no AI executor"):
            await scheduler.execute(make_goal(TaskStep(id="s1", action="unknown")), CheckpointRecorder())

    @pytest.mark.asyncio
    async def test_invalid_tool_parameters(self, scheduler):
        goal = make_goal(TaskStep(id="s1", action="analyze_goal", parameters={"goal": ""}))
        with pytest.raises(StepExecutionFailure, match="invalid parameters"):
            await scheduler.execute(goal, CheckpointRecorder())

    @pytest.mark.asyncio
    async def test_pause_stops_at_step_boundary(self, tool_registry, ai_executor, clock):
        async def pausing(params, context):
            context.goal.status = GoalStatus.PAUSED
            return "paused myself"

        tool_registry.register(ToolCapability(name="pause_now", description="", func=pausing))
        scheduler = StepScheduler(tool_registry, ai_executor, clock)
        goal = make_goal(TaskStep(id="s1", action="pause_now"), TaskStep(id="s2", action="later"))

        status = await scheduler.execute(goal, CheckpointRecorder())

        assert status == GoalStatus.PAUSED
        assert goal.get_step("s1").status == StepStatus.COMPLETED
        assert goal.get_step("s2").status == StepStatus.PENDING
        assert ai_executor.calls == []


class TestRetryAndGating:
    """Tests for retries, timeouts and approval."""

    @pytest.mark.asyncio
    async def test_retry_with_backoff(self, tool_registry, clock):
        attempts = {"n": 0}

        async def flaky(params, context):
            attempts["n"] += 1
            if attempts["n"] < 3:
                raise ConnectionError("upstream unavailable")
            return "finally"

        tool_registry.register(ToolCapability(name="flaky", description="", func=flaky))
        retry = RetryPolicyConfig(max_attempts=3, base_delay_seconds=1.0, backoff_multiplier=2.0)
        scheduler = StepScheduler(tool_registry, clock=clock, retry=retry)
        goal = make_goal(TaskStep(id="s1", action="flaky"))

        task = asyncio.create_task(scheduler.execute(goal, CheckpointRecorder()))
        await wait_for_sleeper(clock)
        await clock.advance(1.0)
        await wait_for_sleeper(clock)
        await clock.advance(2.0)

        assert await task == GoalStatus.COMPLETED
        assert goal.get_step("s1").attempts == 3
        assert goal.get_step("s1").result == "finally"

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self, scheduler, ai_executor):
        ai_executor.failing.add("explode")
        goal = make_goal(TaskStep(id="s1", action="explode"))
        with pytest.raises(StepExecutionFailure):
            await scheduler.execute(goal, CheckpointRecorder())
        assert goal.get_step("s1").attempts == 1

    @pytest.mark.asyncio
    async def test_tool_timeout(self, tool_registry, clock):
        async def hang(params, context):
            await asyncio.sleep(10)

        tool_registry.register(ToolCapability(name="hang", description="", func=hang, timeout_seconds=0.01))
        scheduler = StepScheduler(tool_registry, clock=clock)

        with pytest.raises(StepExecutionFailure, match="timed out"):
            await scheduler.execute(make_goal(TaskStep(id="s1", action="hang")), CheckpointRecorder())

    @pytest.mark.asyncio
    async def test_approval_denied_is_not_retried(self, tool_registry, clock):
        calls = {"n": 0}

        def send(params, context):
            calls["n"] += 1
            return "sent"

        tool_registry.register(ToolCapability(
            name="send_email",
            description="",
            func=send,
            availability=ToolAvailability.USER_APPROVAL_REQUIRED,
        ))
        tool_registry.set_approval_handler(lambda cap, goal, step: False)
        scheduler = StepScheduler(tool_registry, clock=clock, retry=RetryPolicyConfig(max_attempts=3))
        goal = make_goal(TaskStep(id="s1", action="send_email"))

        with pytest.raises(StepExecutionFailure, match="approval"):
            await scheduler.execute(goal, CheckpointRecorder())
        assert calls["n"] == 0
        assert goal.get_step("s1").attempts == 1
        assert clock.pending_sleepers == 0
