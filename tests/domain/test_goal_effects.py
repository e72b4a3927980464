"""
Tests for tracker_kernel.domain.goal_effects -- the pure reverse/apply rules.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from tracker_kernel.domain.dtos import GoalStatus, TransactionPatch, TransactionType
from tracker_kernel.domain.goal_effects import (
    EffectPlan,
    GoalEffect,
    accepts_effects,
    effect_of,
    plan_effects,
    progress_percent,
    with_effect_applied,
    with_effect_reversed,
)


class TestEffectOf:
    def test_income_linked_to_goal_has_effect(self):
        gid = uuid4()
        assert effect_of(gid, TransactionType.INCOME, 600) == GoalEffect(gid, 600)

    def test_expense_has_no_effect(self):
        assert effect_of(uuid4(), TransactionType.EXPENSE, 600) is None

    def test_unlinked_income_has_no_effect(self):
        assert effect_of(None, TransactionType.INCOME, 600) is None

    def test_accepts_raw_type_strings(self):
        gid = uuid4()
        assert effect_of(gid, "income", 5) == GoalEffect(gid, 5)


class TestPlanEffects:
    def test_unchanged_triple_is_noop(self):
        gid = uuid4()
        plan = plan_effects(GoalEffect(gid, 600), GoalEffect(gid, 600))
        assert plan.is_noop
        assert plan.goal_ids == ()

    def test_amount_change_reverses_then_applies(self):
        gid = uuid4()
        plan = plan_effects(GoalEffect(gid, 600), GoalEffect(gid, 100))
        assert plan.reverse == GoalEffect(gid, 600)
        assert plan.apply == GoalEffect(gid, 100)
        assert plan.goal_ids == (gid,)

    def test_relink_touches_both_goals_in_sorted_order(self):
        a, b = sorted([uuid4(), uuid4()])
        plan = plan_effects(GoalEffect(b, 10), GoalEffect(a, 10))
        assert plan.goal_ids == (a, b)

    def test_delete_is_reverse_only(self):
        gid = uuid4()
        plan = plan_effects(GoalEffect(gid, 300), None)
        assert plan == EffectPlan(reverse=GoalEffect(gid, 300), apply=None)

    def test_type_flip_to_expense_reverses_only(self):
        gid = uuid4()
        plan = plan_effects(
            effect_of(gid, TransactionType.INCOME, 50),
            effect_of(gid, TransactionType.EXPENSE, 50),
        )
        assert plan.reverse == GoalEffect(gid, 50)
        assert plan.apply is None


class TestBalanceUpdates:
    def test_apply_below_target_stays_active(self, goal_record):
        updated = with_effect_applied(goal_record(), 600)
        assert updated.current_amount == Decimal("600.00")
        assert updated.status == GoalStatus.ACTIVE

    def test_apply_reaching_target_completes(self, goal_record):
        updated = with_effect_applied(goal_record(current="600.00"), 400)
        assert updated.current_amount == Decimal("1000.00")
        assert updated.status == GoalStatus.COMPLETED

    def test_reverse_never_leaves_completed(self, goal_record):
        goal = goal_record(current="1100.00", status=GoalStatus.COMPLETED)
        updated = with_effect_reversed(goal, 600)
        assert updated.current_amount == Decimal("500.00")
        assert updated.status == GoalStatus.COMPLETED

    def test_apply_on_completed_keeps_accumulating(self, goal_record):
        goal = goal_record(current="500.00", status=GoalStatus.COMPLETED)
        assert with_effect_applied(goal, 100).current_amount == Decimal("600.00")

    def test_cancelled_goals_refuse_effects(self, goal_record):
        assert not accepts_effects(goal_record(status=GoalStatus.CANCELLED))
        assert accepts_effects(goal_record(status=GoalStatus.COMPLETED))
        assert accepts_effects(goal_record())


class TestProgressPercent:
    @pytest.mark.parametrize(
        "current, target, expected",
        [
            ("600.00", "1000.00", "60.00"),
            ("1100.00", "1000.00", "110.00"),
            ("1.00", "3.00", "33.33"),
            ("5.00", "0.00", "0.00"),
        ],
    )
    def test_percent(self, current, target, expected):
        assert progress_percent(Decimal(current), Decimal(target)) == Decimal(expected)


class TestTransactionPatch:
    def test_unlink_and_goal_id_are_exclusive(self):
        with pytest.raises(ValueError):
            TransactionPatch(goal_id=uuid4(), unlink_goal=True)

    def test_clear_and_description_are_exclusive(self):
        with pytest.raises(ValueError):
            TransactionPatch(description="rent", clear_description=True)

    def test_resolve_goal_id(self):
        current, new = uuid4(), uuid4()
        assert TransactionPatch().resolve_goal_id(current) == current
        assert TransactionPatch(goal_id=new).resolve_goal_id(current) == new
        assert TransactionPatch(unlink_goal=True).resolve_goal_id(current) is None

    def test_non_positive_amount_rejected(self):
        with pytest.raises(ValueError):
            TransactionPatch(amount=0)
