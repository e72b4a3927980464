"""
Pure threshold rules for the budget and goal passes.

ZERO I/O.  Comparisons are done on exact integers/Decimals, never floats,
so a spend of exactly 90% or a balance of exactly half the target lands on
the intended side of the boundary.

Budget pass:
    pct >= 100       -> BUDGET_EXCEEDED
    90 <= pct < 100  -> BUDGET_WARNING
    otherwise        -> no alert
    A zero cap is exceeded as soon as anything is spent.

Goal pass:
    COMPLETED and not yet announced         -> GOAL_ACHIEVED
    ACTIVE, pct >= 100                      -> GOAL_ACHIEVED
    ACTIVE, 50 <= pct < 100, latch not set  -> GOAL_MILESTONE
    otherwise                               -> no alert
    pct is 0 when the target is 0.
"""

from __future__ import annotations

from decimal import Decimal

from tracker_kernel.domain.dtos import CENT, GoalRecord, GoalStatus

from tracker_batch.domain.types import AlertKind

BUDGET_WARNING_PERCENT = 90
BUDGET_EXCEEDED_PERCENT = 100
GOAL_MILESTONE_PERCENT = 50
GOAL_ACHIEVED_PERCENT = 100


def budget_percent(spent: int, amount: int) -> Decimal:
    """Spend as a percentage of the cap, 2dp (display only)."""
    if amount <= 0:
        return Decimal("0.00")
    return (Decimal(spent) * 100 / Decimal(amount)).quantize(CENT)


def classify_budget(spent: int, amount: int) -> AlertKind | None:
    if amount <= 0:
        return AlertKind.BUDGET_EXCEEDED if spent > 0 else None
    if spent * 100 >= amount * BUDGET_EXCEEDED_PERCENT:
        return AlertKind.BUDGET_EXCEEDED
    if spent * 100 >= amount * BUDGET_WARNING_PERCENT:
        return AlertKind.BUDGET_WARNING
    return None


def goal_reached(current: Decimal, target: Decimal) -> bool:
    return target > 0 and current * 100 >= target * GOAL_ACHIEVED_PERCENT


def goal_halfway(current: Decimal, target: Decimal) -> bool:
    return target > 0 and current * 100 >= target * GOAL_MILESTONE_PERCENT


def classify_goal(goal: GoalRecord) -> AlertKind | None:
    # Zero target: nothing to achieve, whatever the stored status says.
    if goal.target_amount <= 0:
        return None
    if goal.status == GoalStatus.COMPLETED:
        return None if goal.achievement_notified else AlertKind.GOAL_ACHIEVED
    if goal.status != GoalStatus.ACTIVE:
        return None
    if goal_reached(goal.current_amount, goal.target_amount):
        return AlertKind.GOAL_ACHIEVED
    if not goal.milestone_notified and goal_halfway(goal.current_amount, goal.target_amount):
        return AlertKind.GOAL_MILESTONE
    return None
