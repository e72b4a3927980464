"""Threshold tasks and their registry."""

from tracker_batch.tasks.base import TaskRegistry, ThresholdTask
from tracker_batch.tasks.budget_check import BudgetCheckTask
from tracker_batch.tasks.goal_check import GoalCheckTask

__all__ = [
    "BudgetCheckTask",
    "GoalCheckTask",
    "TaskRegistry",
    "ThresholdTask",
]
