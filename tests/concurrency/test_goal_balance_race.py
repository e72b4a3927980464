"""
Concurrent ledger writes against one goal.

Threads release together on a Barrier so their read-modify-write cycles
overlap; the goal lock plus the version check must still produce the sum
of every applied effect.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from tracker_kernel.domain.dtos import GoalStatus, TransactionPatch

from tracker_batch.domain.types import AlertKind
from tracker_batch.services.executor import ThresholdExecutor
from tracker_batch.tasks.base import TaskRegistry
from tracker_batch.tasks.goal_check import GoalCheckTask

pytestmark = pytest.mark.slow


def run_together(*calls):
    barrier = threading.Barrier(len(calls))

    def gated(fn):
        barrier.wait(timeout=10)
        return fn()

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        futures = [pool.submit(gated, fn) for fn in calls]
        return [f.result(timeout=60) for f in futures]


def test_two_linked_incomes(user, goals, make_goal, make_income):
    goal = make_goal(user.id)

    run_together(
        lambda: make_income(user.id, 200, goal.id),
        lambda: make_income(user.id, 300, goal.id),
    )

    stored = goals.get_goal(user.id, goal.id)
    assert stored.current_amount == Decimal("500.00")
    assert stored.status == GoalStatus.ACTIVE


def test_many_writers_complete_once(user, goals, make_goal, make_income, captured_logs):
    goal = make_goal(user.id)

    run_together(*[lambda: make_income(user.id, 100, goal.id) for _ in range(10)])

    stored = goals.get_goal(user.id, goal.id)
    assert stored.current_amount == Decimal("1000.00")
    assert stored.status == GoalStatus.COMPLETED
    completions = [r for r in captured_logs() if r["message"] == "goal_completed"]
    assert len(completions) == 1


def test_amend_and_remove_interleave(user, ledger, goals, make_goal, make_income):
    goal = make_goal(user.id, target="5000.00")
    a = make_income(user.id, 100, goal.id)
    b = make_income(user.id, 200, goal.id)
    c = make_income(user.id, 300, goal.id)

    run_together(
        lambda: ledger.amend(user.id, a.id, TransactionPatch(amount=150)),
        lambda: ledger.remove(user.id, b.id),
        lambda: make_income(user.id, 400, goal.id),
        lambda: ledger.amend(user.id, c.id, TransactionPatch(amount=50)),
    )

    assert goals.get_goal(user.id, goal.id).current_amount == Decimal("600.00")


def test_relink_races_with_writes_on_both_goals(user, ledger, goals, make_goal, make_income):
    first = make_goal(user.id, name="First", target="5000.00")
    second = make_goal(user.id, name="Second", target="5000.00")
    moving = make_income(user.id, 250, first.id)

    run_together(
        lambda: ledger.amend(user.id, moving.id, TransactionPatch(goal_id=second.id)),
        lambda: make_income(user.id, 10, first.id),
        lambda: make_income(user.id, 20, second.id),
    )

    assert goals.get_goal(user.id, first.id).current_amount == Decimal("10.00")
    assert goals.get_goal(user.id, second.id).current_amount == Decimal("270.00")


def test_goal_pass_during_writes_announces_once(
    db, user, goal_locks, goals, make_goal, make_income, gateway, clock
):
    goal = make_goal(user.id)
    make_income(user.id, 900, goal.id)
    registry = TaskRegistry()
    registry.register(GoalCheckTask(db, gateway, goal_locks=goal_locks))
    executor = ThresholdExecutor(registry, clock=clock)

    first, _ = run_together(
        lambda: executor.run("goal-check"),
        lambda: make_income(user.id, 100, goal.id),
    )
    second = executor.run("goal-check")

    alerts = first.alerts + second.alerts
    assert alerts.count(AlertKind.GOAL_ACHIEVED) == 1
    assert goals.get_goal(user.id, goal.id).achievement_notified
