"""
Module: tracker_kernel.selectors.goal_selector
Responsibility: Goal reads for owners and for the goal-check pass.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import and_, or_, select

from tracker_kernel.domain.dtos import GoalRecord, GoalStatus
from tracker_kernel.models.goal import Goal
from tracker_kernel.selectors.base import BaseSelector


class GoalSelector(BaseSelector[Goal]):

    def get(self, user_id: UUID, goal_id: UUID) -> GoalRecord | None:
        goal = self.session.execute(
            select(Goal).where(Goal.id == goal_id, Goal.user_id == user_id)
        ).scalar_one_or_none()
        return GoalRecord.from_model(goal) if goal is not None else None

    def list(self, user_id: UUID, status: GoalStatus | None = None) -> list[GoalRecord]:
        stmt = select(Goal).where(Goal.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Goal.status == GoalStatus(status).value)
        stmt = stmt.order_by(Goal.deadline, Goal.name)
        return [GoalRecord.from_model(g) for g in self.session.scalars(stmt)]

    def pending_evaluation(self) -> list[GoalRecord]:
        """
        Goals the goal-check pass must look at, across all users.

        Active goals, plus completed goals whose completion has not yet
        been announced (completed synchronously by a ledger mutation).
        """
        stmt = (
            select(Goal)
            .where(
                or_(
                    Goal.status == GoalStatus.ACTIVE.value,
                    and_(
                        Goal.status == GoalStatus.COMPLETED.value,
                        Goal.achievement_notified.is_(False),
                    ),
                )
            )
            .order_by(Goal.user_id, Goal.id)
        )
        return [GoalRecord.from_model(g) for g in self.session.scalars(stmt)]
