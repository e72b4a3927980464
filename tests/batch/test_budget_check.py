"""
budget-check pass: warning/exceeded per budget, no suppression, per-item isolation.
"""

from datetime import date, datetime, timezone

import pytest

from tracker_kernel.domain.dtos import BudgetInput

from tracker_batch.domain.types import AlertKind, ItemStatus, JobRunStatus


@pytest.fixture
def food_budget(user, budgets):
    return budgets.create_budget(
        user.id, BudgetInput(category="food", amount=500, month=6, year=2025)
    )


def test_warning_repeats_then_escalates(user, food_budget, make_expense, gateway, run_pass):
    make_expense(user.id, 480, "food", date(2025, 6, 10))

    first = run_pass("budget-check")
    assert first.status == JobRunStatus.COMPLETED
    assert first.alerts == (AlertKind.BUDGET_WARNING,)

    second = run_pass("budget-check")
    assert second.alerts == (AlertKind.BUDGET_WARNING,)

    make_expense(user.id, 40, "food", date(2025, 6, 11))
    third = run_pass("budget-check")
    assert third.alerts == (AlertKind.BUDGET_EXCEEDED,)

    assert gateway.subjects == [
        "Budget Warning: food",
        "Budget Warning: food",
        "Budget Exceeded: food",
    ]
    assert all(to == "ada@example.com" for to, _, _ in gateway.sent)


def test_below_warning_sends_nothing(user, food_budget, make_expense, gateway, run_pass):
    make_expense(user.id, 449, "food", date(2025, 6, 10))

    result = run_pass("budget-check")

    assert result.no_alert == 1
    assert gateway.sent == []


def test_only_current_local_month(user, budgets, make_expense, gateway, run_pass, clock):
    budgets.create_budget(user.id, BudgetInput(category="food", amount=100, month=5, year=2025))
    make_expense(user.id, 500, "food", date(2025, 5, 10))

    assert run_pass("budget-check").total_items == 0

    # 2025-06-01 02:00 UTC is still May 31 in New York
    clock.set_time(datetime(2025, 6, 1, 2, 0, tzinfo=timezone.utc))
    assert run_pass("budget-check").alerts == (AlertKind.BUDGET_EXCEEDED,)


def test_zero_cap(user, budgets, make_expense, gateway, run_pass):
    budgets.create_budget(user.id, BudgetInput(category="fun", amount=0, month=6, year=2025))
    assert run_pass("budget-check").alerts == ()

    make_expense(user.id, 1, "fun", date(2025, 6, 10))
    assert run_pass("budget-check").alerts == (AlertKind.BUDGET_EXCEEDED,)


def test_failed_delivery_does_not_stop_pass(
    user, other_user, budgets, food_budget, make_expense, gateway, run_pass, captured_logs
):
    budgets.create_budget(
        other_user.id, BudgetInput(category="food", amount=100, month=6, year=2025)
    )
    make_expense(user.id, 500, "food", date(2025, 6, 10))
    make_expense(other_user.id, 100, "food", date(2025, 6, 10))
    gateway.failing.add("ada@example.com")

    result = run_pass("budget-check")

    assert result.status == JobRunStatus.PARTIALLY_COMPLETED
    assert (result.sent, result.failed) == (1, 1)
    failed = [r for r in result.item_results if r.status == ItemStatus.FAILED]
    assert failed[0].error_code == "NOTIFICATION_DELIVERY_FAILED"
    assert [to for to, _, _ in gateway.sent] == ["grace@example.com"]
    assert any(r["message"] == "notification_delivery_failed" for r in captured_logs())


def test_raising_gateway_is_isolated(
    user, other_user, budgets, food_budget, make_expense, gateway, run_pass
):
    budgets.create_budget(
        other_user.id, BudgetInput(category="food", amount=100, month=6, year=2025)
    )
    make_expense(user.id, 500, "food", date(2025, 6, 10))
    make_expense(other_user.id, 100, "food", date(2025, 6, 10))
    gateway.raising.add("ada@example.com")

    result = run_pass("budget-check")

    codes = {r.item_key: r.error_code for r in result.item_results}
    assert "UNHANDLED_EXCEPTION" in codes.values()
    assert result.sent == 1
