"""Fixtures wiring the two threshold tasks onto the test database."""

from zoneinfo import ZoneInfo

import pytest

from tracker_batch.services.executor import ThresholdExecutor
from tracker_batch.tasks.base import TaskRegistry
from tracker_batch.tasks.budget_check import BudgetCheckTask
from tracker_batch.tasks.goal_check import GoalCheckTask


@pytest.fixture
def registry(db, gateway, goal_locks):
    registry = TaskRegistry()
    registry.register(BudgetCheckTask(db, gateway, tz=ZoneInfo("America/New_York")))
    registry.register(GoalCheckTask(db, gateway, goal_locks=goal_locks))
    return registry


@pytest.fixture
def executor(registry, clock):
    return ThresholdExecutor(registry, clock=clock)


@pytest.fixture
def run_pass(executor):
    def _run(job_name: str):
        return executor.run(job_name)

    return _run
