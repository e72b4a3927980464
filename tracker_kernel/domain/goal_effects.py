"""
Goal effects -- pure rules for how ledger entries move goal balances.

Responsibility:
    Decides WHICH effect a transaction state contributes to a goal, plans the
    reverse-then-apply pair for a mutation, and computes the resulting goal
    record.  The Goal Tracker performs I/O; everything here is pure.

Architecture position:
    Kernel > Domain -- zero I/O.

Rules:
    - Only income transactions linked to a goal contribute an effect.
    - A mutation whose (goal_id, type, amount) triple did not change is a
      no-op; otherwise the prior effect is reversed and the new one applied.
    - Effects reach any goal that is not cancelled.  A completed goal keeps
      accumulating (and un-accumulating) but never leaves COMPLETED.
    - ACTIVE -> COMPLETED happens when the applied balance reaches target.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from uuid import UUID

from tracker_kernel.domain.dtos import (
    CENT,
    GoalRecord,
    GoalStatus,
    TransactionType,
    to_money,
)


@dataclass(frozen=True)
class GoalEffect:
    """Signed contribution of one income transaction to one goal."""

    goal_id: UUID
    amount: int


@dataclass(frozen=True)
class EffectPlan:
    """Reverse-then-apply pair for one ledger mutation."""

    reverse: GoalEffect | None = None
    apply: GoalEffect | None = None

    @property
    def is_noop(self) -> bool:
        return self.reverse is None and self.apply is None

    @property
    def goal_ids(self) -> tuple[UUID, ...]:
        """Distinct goal ids touched, sorted (lock acquisition order)."""
        ids = {e.goal_id for e in (self.reverse, self.apply) if e is not None}
        return tuple(sorted(ids))


def effect_of(
    goal_id: UUID | None,
    txn_type: TransactionType,
    amount: int,
) -> GoalEffect | None:
    if goal_id is None or TransactionType(txn_type) != TransactionType.INCOME:
        return None
    return GoalEffect(goal_id=goal_id, amount=amount)


def plan_effects(prior: GoalEffect | None, new: GoalEffect | None) -> EffectPlan:
    if prior == new:
        return EffectPlan()
    return EffectPlan(reverse=prior, apply=new)


def accepts_effects(goal: GoalRecord) -> bool:
    return goal.status != GoalStatus.CANCELLED


def reaches_target(current: Decimal, target: Decimal) -> bool:
    return current >= target


def with_effect_applied(goal: GoalRecord, amount: int) -> GoalRecord:
    current = to_money(goal.current_amount + amount)
    status = goal.status
    if goal.status == GoalStatus.ACTIVE and reaches_target(current, goal.target_amount):
        status = GoalStatus.COMPLETED
    return replace(goal, current_amount=current, status=status)


def with_effect_reversed(goal: GoalRecord, amount: int) -> GoalRecord:
    # COMPLETED never reverts to ACTIVE.
    return replace(goal, current_amount=to_money(goal.current_amount - amount))


def progress_percent(current: Decimal, target: Decimal) -> Decimal:
    """Percent of target reached, 2dp; 0 when target is 0."""
    if target <= 0:
        return Decimal("0.00")
    return (current / target * 100).quantize(CENT)
