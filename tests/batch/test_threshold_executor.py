"""ThresholdExecutor -- status rollup, per-item isolation, cancellation."""

import threading
from uuid import uuid4

import pytest

from tracker_kernel.exceptions import GoalNotFoundError, JobNotRegisteredError

from tracker_batch.domain.types import (
    AlertKind,
    ItemStatus,
    JobRunStatus,
    TaskOutcome,
    ThresholdItem,
)
from tracker_batch.services.executor import ThresholdExecutor
from tracker_batch.tasks.base import TaskRegistry, ThresholdTask


class ScriptedTask:
    """Task whose items behave as scripted: 'sent', 'quiet', 'missing' or 'boom'."""

    job_name = "scripted"
    description = "Scripted outcomes"

    def __init__(self, script, on_item=None):
        self.script = list(script)
        self.on_item = on_item
        self.executed: list[str] = []

    def prepare_items(self, as_of):
        return tuple(
            ThresholdItem(item_index=i, item_key=f"item:{i}", entity_id=uuid4(), payload={"do": s})
            for i, s in enumerate(self.script)
        )

    def execute_item(self, item, as_of):
        self.executed.append(item.item_key)
        if self.on_item is not None:
            self.on_item(item)
        action = item.payload["do"]
        if action == "sent":
            return TaskOutcome(status=ItemStatus.SENT, alert=AlertKind.BUDGET_WARNING)
        if action == "quiet":
            return TaskOutcome(status=ItemStatus.NO_ALERT)
        if action == "missing":
            raise GoalNotFoundError("gone")
        raise ZeroDivisionError("boom")


class BrokenPrepareTask:
    job_name = "broken"
    description = "Cannot enumerate"

    def prepare_items(self, as_of):
        raise RuntimeError("database unreachable")

    def execute_item(self, item, as_of):
        raise AssertionError("never called")


def make_executor(clock, *tasks):
    registry = TaskRegistry()
    for task in tasks:
        registry.register(task)
    return ThresholdExecutor(registry, clock=clock)


def test_scripted_task_satisfies_protocol():
    assert isinstance(ScriptedTask([]), ThresholdTask)


def test_all_good_is_completed(clock):
    result = make_executor(clock, ScriptedTask(["sent", "quiet"])).run("scripted")

    assert result.status == JobRunStatus.COMPLETED
    assert (result.total_items, result.sent, result.no_alert, result.failed) == (2, 1, 1, 0)
    assert result.started_at == clock.now()
    assert result.error_summary is None


def test_empty_pass_is_completed(clock):
    result = make_executor(clock, ScriptedTask([])).run("scripted")
    assert result.status == JobRunStatus.COMPLETED
    assert result.total_items == 0


def test_failures_are_isolated(clock, captured_logs):
    task = ScriptedTask(["missing", "sent", "boom", "quiet"])

    result = make_executor(clock, task).run("scripted")

    assert task.executed == ["item:0", "item:1", "item:2", "item:3"]
    assert result.status == JobRunStatus.PARTIALLY_COMPLETED
    assert [r.error_code for r in result.item_results] == [
        "GOAL_NOT_FOUND",
        None,
        "UNHANDLED_EXCEPTION",
        None,
    ]
    assert result.error_summary == "2 item(s) failed"

    messages = [r["message"] for r in captured_logs()]
    assert "job_item_failed" in messages
    assert "job_item_crashed" in messages


def test_every_item_failing_is_failed(clock):
    result = make_executor(clock, ScriptedTask(["boom", "missing"])).run("scripted")
    assert result.status == JobRunStatus.FAILED


def test_prepare_failure(clock, captured_logs):
    result = make_executor(clock, BrokenPrepareTask()).run("broken")

    assert result.status == JobRunStatus.FAILED
    assert result.total_items == 0
    assert "database unreachable" in result.error_summary
    assert any(r["message"] == "job_prepare_failed" for r in captured_logs())


def test_cancel_between_items(clock):
    cancel = threading.Event()

    def cancel_after_first(item):
        if item.item_index == 0:
            cancel.set()

    task = ScriptedTask(["sent", "sent", "sent"], on_item=cancel_after_first)
    result = make_executor(clock, task).run("scripted", cancel_event=cancel)

    assert result.status == JobRunStatus.CANCELLED
    assert task.executed == ["item:0"]
    assert result.total_items == 3
    assert result.sent == 1


def test_unknown_job(clock):
    with pytest.raises(JobNotRegisteredError) as exc_info:
        make_executor(clock, ScriptedTask([])).run("nope")
    assert exc_info.value.available == ("scripted",)


def test_run_logs_carry_job_context(clock, captured_logs):
    result = make_executor(clock, ScriptedTask(["quiet"])).run("scripted")

    records = {r["message"]: r for r in captured_logs()}
    assert records["job_run_started"]["job_name"] == "scripted"
    assert records["job_run_completed"]["run_id"] == str(result.run_id)
    assert records["job_run_completed"]["status"] == "completed"


def test_duplicate_registration_rejected():
    registry = TaskRegistry()
    registry.register(ScriptedTask([]))
    with pytest.raises(ValueError):
        registry.register(ScriptedTask([]))
    assert "scripted" in registry
    assert len(registry) == 1
