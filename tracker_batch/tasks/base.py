"""
ThresholdTask protocol and TaskRegistry.

Contract:
    ``ThresholdTask`` defines the interface each scheduled pass implements.
    ``TaskRegistry`` stores registered tasks keyed by ``job_name``.

Architecture:
    tracker_batch/tasks.  Tasks own their units of work: each item is
    evaluated in its own ``session_scope()`` and alerts are sent outside
    any database transaction or goal lock.  The executor supplies per-item
    failure isolation, not transactions.

Invariants enforced:
    - One task per ``job_name``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from tracker_kernel.exceptions import JobNotRegisteredError

from tracker_batch.domain.types import TaskOutcome, ThresholdItem


@runtime_checkable
class ThresholdTask(Protocol):
    """Interface for a threshold pass.

    Contract:
        - ``job_name``: unique key registered in TaskRegistry (e.g.
          "budget-check").
        - ``prepare_items()``: enumerate the entities to evaluate.
        - ``execute_item()``: evaluate ONE entity and deliver its alert.
          Raises NotificationDeliveryFailedError when the gateway reports a
          failed send.

    Non-goals:
        - Does NOT retry -- a failed alert is either re-evaluated on the
          next pass or lost, depending on the alert kind.
    """

    @property
    def job_name(self) -> str: ...

    @property
    def description(self) -> str: ...

    def prepare_items(self, as_of: datetime) -> tuple[ThresholdItem, ...]: ...

    def execute_item(self, item: ThresholdItem, as_of: datetime) -> TaskOutcome: ...


class TaskRegistry:
    """Registry mapping job names to ThresholdTask implementations."""

    def __init__(self) -> None:
        self._tasks: dict[str, ThresholdTask] = {}

    def register(self, task: ThresholdTask) -> None:
        """
        Raises:
            ValueError: If a task with the same job_name is already registered.
        """
        if task.job_name in self._tasks:
            raise ValueError(f"Job '{task.job_name}' is already registered")
        self._tasks[task.job_name] = task

    def get(self, job_name: str) -> ThresholdTask:
        """
        Raises:
            JobNotRegisteredError: If no task is registered under job_name.
        """
        try:
            return self._tasks[job_name]
        except KeyError:
            raise JobNotRegisteredError(job_name, self.list_jobs()) from None

    def list_jobs(self) -> tuple[str, ...]:
        return tuple(sorted(self._tasks))

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, job_name: str) -> bool:
        return job_name in self._tasks
