"""
GoalOrchestrator -- owner edits, deletion and the SQL compare-and-set.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from tracker_kernel.domain.dtos import GoalPatch, GoalStatus, TransactionFilter
from tracker_kernel.exceptions import (
    ConcurrentUpdateConflictError,
    GoalNotFoundError,
    InvalidGoalTransitionError,
)
from tracker_kernel.services.goal_repository import SqlGoalRepository
from tracker_kernel.services.goal_tracker import GoalTracker


class TestCrud:
    def test_create_starts_active_and_empty(self, user, make_goal):
        goal = make_goal(user.id, target="250.50")
        assert goal.status == GoalStatus.ACTIVE
        assert goal.current_amount == Decimal("0.00")
        assert goal.target_amount == Decimal("250.50")
        assert not goal.milestone_notified
        assert not goal.achievement_notified

    def test_get_is_owner_scoped(self, user, other_user, goals, make_goal):
        goal = make_goal(user.id)
        with pytest.raises(GoalNotFoundError):
            goals.get_goal(other_user.id, goal.id)

    def test_list_filters_by_status(self, user, goals, make_goal):
        keep = make_goal(user.id, name="keep")
        drop = make_goal(user.id, name="drop")
        goals.update_goal(user.id, drop.id, GoalPatch(status=GoalStatus.CANCELLED))

        active = goals.list_goals(user.id, status=GoalStatus.ACTIVE)
        assert [g.id for g in active] == [keep.id]
        assert len(goals.list_goals(user.id)) == 2

    def test_field_edits(self, user, goals, make_goal):
        goal = make_goal(user.id)
        updated = goals.update_goal(
            user.id,
            goal.id,
            GoalPatch(name="House", target_amount=Decimal("5000"), deadline=date(2026, 1, 1)),
        )
        assert updated.name == "House"
        assert updated.target_amount == Decimal("5000.00")
        assert updated.deadline == date(2026, 1, 1)

    def test_lowering_target_does_not_complete(self, user, goals, make_goal, make_income):
        goal = make_goal(user.id)
        make_income(user.id, 600, goal.id)

        updated = goals.update_goal(user.id, goal.id, GoalPatch(target_amount=Decimal("500")))

        assert updated.status == GoalStatus.ACTIVE


class TestTransitions:
    def test_active_to_cancelled(self, user, goals, make_goal):
        goal = make_goal(user.id)
        updated = goals.update_goal(user.id, goal.id, GoalPatch(status=GoalStatus.CANCELLED))
        assert updated.status == GoalStatus.CANCELLED

    def test_completed_to_cancelled(self, user, goals, make_goal, make_income):
        goal = make_goal(user.id, target="100.00")
        make_income(user.id, 100, goal.id)
        updated = goals.update_goal(user.id, goal.id, GoalPatch(status=GoalStatus.CANCELLED))
        assert updated.status == GoalStatus.CANCELLED

    @pytest.mark.parametrize("target", [GoalStatus.COMPLETED, GoalStatus.ACTIVE])
    def test_owner_cannot_complete_or_reopen(self, user, goals, make_goal, target):
        goal = make_goal(user.id)
        goals.update_goal(user.id, goal.id, GoalPatch(status=GoalStatus.CANCELLED))
        with pytest.raises(InvalidGoalTransitionError):
            goals.update_goal(user.id, goal.id, GoalPatch(status=target))

    def test_owner_cannot_mark_completed(self, user, goals, make_goal):
        goal = make_goal(user.id)
        with pytest.raises(InvalidGoalTransitionError):
            goals.update_goal(user.id, goal.id, GoalPatch(status=GoalStatus.COMPLETED))


class TestDelete:
    def test_delete_unlinks_without_reversal(self, user, ledger, goals, make_goal, make_income):
        goal = make_goal(user.id)
        txn = make_income(user.id, 300, goal.id)

        unlinked = goals.delete_goal(user.id, goal.id)

        assert unlinked == 1
        assert ledger.get(user.id, txn.id).goal_id is None
        with pytest.raises(GoalNotFoundError):
            goals.get_goal(user.id, goal.id)

        # Later edits of the former link touch nothing
        ledger.remove(user.id, txn.id)
        assert ledger.list(TransactionFilter(user_id=user.id)) == []

    def test_delete_foreign_goal(self, user, other_user, goals, make_goal):
        goal = make_goal(user.id)
        with pytest.raises(GoalNotFoundError):
            goals.delete_goal(other_user.id, goal.id)


class TestProgress:
    def test_progress_with_owner_check(self, user, other_user, goals, make_goal, make_income):
        goal = make_goal(user.id)
        make_income(user.id, 250, goal.id)

        progress = goals.get_progress(goal.id, user_id=user.id)
        assert progress.percent == Decimal("25.00")
        with pytest.raises(GoalNotFoundError):
            goals.get_progress(goal.id, user_id=other_user.id)
        with pytest.raises(GoalNotFoundError):
            goals.get_progress(uuid4())


class TestSqlCompareAndSet:
    def test_stale_record_is_rejected(self, db, user, make_goal):
        goal = make_goal(user.id)

        with db.session_scope() as session:
            stale = SqlGoalRepository(session).get(goal.id)

        with db.session_scope() as session:
            GoalTracker(SqlGoalRepository(session)).apply_effect(goal.id, 10)

        with pytest.raises(ConcurrentUpdateConflictError):
            with db.session_scope() as session:
                SqlGoalRepository(session).save(stale)

    def test_version_advances_on_save(self, db, user, make_goal):
        goal = make_goal(user.id)
        with db.session_scope() as session:
            saved = GoalTracker(SqlGoalRepository(session)).apply_effect(goal.id, 10)
        assert saved.version == goal.version + 1
