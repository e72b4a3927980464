"""Alert message templates."""

from decimal import Decimal

from tracker_batch.domain import messages


def test_budget_exceeded():
    msg = messages.budget_exceeded("Ada", "food", 6, 2025, 500, 520)
    assert msg.subject == "Budget Exceeded: food"
    assert "Dear Ada" in msg.body
    assert "6/2025" in msg.body
    assert "$520" in msg.body
    assert msg.body.endswith("Finance Manager")


def test_budget_warning_includes_percent():
    msg = messages.budget_warning("Ada", "food", 6, 2025, 500, 480, Decimal("96.00"))
    assert msg.subject == "Budget Warning: food"
    assert "96.00%" in msg.body


def test_goal_achieved():
    msg = messages.goal_achieved("Ada", "Emergency fund", Decimal("1000.00"))
    assert msg.subject == "Goal Achieved: Emergency fund"
    assert "$1000.00" in msg.body


def test_goal_milestone():
    msg = messages.goal_milestone(
        "Ada", "Emergency fund", Decimal("600.00"), Decimal("1000.00"), Decimal("60.00")
    )
    assert msg.subject == "Goal Milestone: Emergency fund"
    assert "$600.00 of $1000.00 (60.00%)" in msg.body
