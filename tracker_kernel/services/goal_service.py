"""
GoalService / GoalOrchestrator -- owner-driven goal management.

Responsibility:
    GoalService performs the flush-only owner edits: create, field edits,
    cancellation and deletion (which severs ledger links without
    reversing their effects).  GoalOrchestrator wraps each call in a
    unit of work under the goal's lock and serves goal reads and the
    progress projection.

Architecture position:
    Kernel > Services.  Balance and completion changes are NOT made here;
    they belong to GoalTracker.

Invariants enforced:
    - Owners may only move a goal to CANCELLED (from ACTIVE or COMPLETED).
      CANCELLED is terminal; COMPLETED is only reached through the tracker.
    - Deleting a goal nulls ``goal_id`` on every referencing transaction in
      the same unit of work.
    - Edits run under the same per-goal lock as effect application, so an
      owner edit never interleaves with a balance update.

Failure modes:
    - GoalNotFoundError: absent or owned by another user.
    - InvalidGoalTransitionError: any other requested status change.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update

from tracker_kernel.db.engine import Database
from tracker_kernel.domain.dtos import (
    GoalInput,
    GoalPatch,
    GoalProgress,
    GoalRecord,
    GoalStatus,
    to_money,
)
from tracker_kernel.exceptions import GoalNotFoundError, InvalidGoalTransitionError
from tracker_kernel.logging_config import LogContext, get_logger
from tracker_kernel.models.goal import Goal
from tracker_kernel.models.transaction import Transaction
from tracker_kernel.selectors.goal_selector import GoalSelector
from tracker_kernel.services.base import BaseService
from tracker_kernel.services.goal_repository import SqlGoalRepository
from tracker_kernel.services.goal_tracker import GoalTracker
from tracker_kernel.utils.keyed_lock import KeyedLock

logger = get_logger("services.goal")

# Owner-requested status changes
_OWNER_TRANSITIONS: dict[GoalStatus, frozenset[GoalStatus]] = {
    GoalStatus.ACTIVE: frozenset({GoalStatus.CANCELLED}),
    GoalStatus.COMPLETED: frozenset({GoalStatus.CANCELLED}),
    GoalStatus.CANCELLED: frozenset(),
}


class GoalService(BaseService[Goal]):
    """Flush-only goal edits."""

    def create(self, user_id: UUID, data: GoalInput) -> GoalRecord:
        goal = Goal(
            user_id=user_id,
            name=data.name,
            target_amount=data.target_amount,
            current_amount=to_money(0),
            category=data.category,
            deadline=data.deadline,
            status=GoalStatus.ACTIVE.value,
            milestone_notified=False,
            achievement_notified=False,
        )
        self.session.add(goal)
        self.session.flush()

        logger.info(
            "goal_created",
            extra={
                "goal_id": str(goal.id),
                "user_id": str(user_id),
                "target_amount": data.target_amount,
            },
        )
        return GoalRecord.from_model(goal)

    def update(self, user_id: UUID, goal_id: UUID, patch: GoalPatch) -> GoalRecord:
        goal = self._load_owned(user_id, goal_id)

        if patch.status is not None and patch.status.value != goal.status:
            current = GoalStatus(goal.status)
            if patch.status not in _OWNER_TRANSITIONS[current]:
                raise InvalidGoalTransitionError(
                    str(goal_id), current.value, patch.status.value
                )
            goal.status = patch.status.value
            logger.info(
                "goal_status_changed",
                extra={
                    "goal_id": str(goal_id),
                    "from_status": current.value,
                    "to_status": patch.status.value,
                },
            )

        if patch.name is not None:
            goal.name = patch.name
        if patch.target_amount is not None:
            # Completion is not re-evaluated here; the next goal pass does it.
            goal.target_amount = patch.target_amount
        if patch.category is not None:
            goal.category = patch.category
        if patch.deadline is not None:
            goal.deadline = patch.deadline

        self.session.flush()
        return GoalRecord.from_model(goal)

    def delete(self, user_id: UUID, goal_id: UUID) -> int:
        """Delete the goal; returns the number of transactions unlinked."""
        goal = self._load_owned(user_id, goal_id)

        result = self.session.execute(
            update(Transaction)
            .where(Transaction.goal_id == goal_id)
            .values(goal_id=None)
            .execution_options(synchronize_session="fetch")
        )
        unlinked = result.rowcount or 0

        self.session.delete(goal)
        self.session.flush()

        logger.info(
            "goal_deleted",
            extra={"goal_id": str(goal_id), "unlinked_transactions": unlinked},
        )
        return unlinked

    def _load_owned(self, user_id: UUID, goal_id: UUID) -> Goal:
        goal = self.session.execute(
            select(Goal)
            .where(Goal.id == goal_id, Goal.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if goal is None:
            raise GoalNotFoundError(str(goal_id))
        return goal


class GoalOrchestrator:
    """Unit-of-work wrapper over GoalService, GoalSelector and GoalTracker."""

    def __init__(self, db: Database, goal_locks: KeyedLock | None = None):
        self._db = db
        self._goal_locks = goal_locks or KeyedLock("goal")

    def create_goal(self, user_id: UUID, data: GoalInput) -> GoalRecord:
        with self._db.session_scope() as session:
            return GoalService(session).create(user_id, data)

    def get_goal(self, user_id: UUID, goal_id: UUID) -> GoalRecord:
        with self._db.session_scope() as session:
            goal = GoalSelector(session).get(user_id, goal_id)
        if goal is None:
            raise GoalNotFoundError(str(goal_id))
        return goal

    def list_goals(self, user_id: UUID, status: GoalStatus | None = None) -> list[GoalRecord]:
        with self._db.session_scope() as session:
            return GoalSelector(session).list(user_id, status=status)

    def update_goal(self, user_id: UUID, goal_id: UUID, patch: GoalPatch) -> GoalRecord:
        with LogContext.bind(user_id=user_id, goal_id=goal_id):
            with self._goal_locks.hold(goal_id):
                with self._db.session_scope() as session:
                    return GoalService(session).update(user_id, goal_id, patch)

    def delete_goal(self, user_id: UUID, goal_id: UUID) -> int:
        with LogContext.bind(user_id=user_id, goal_id=goal_id):
            with self._goal_locks.hold(goal_id):
                with self._db.session_scope() as session:
                    return GoalService(session).delete(user_id, goal_id)

    def get_progress(self, goal_id: UUID, user_id: UUID | None = None) -> GoalProgress:
        """Progress projection; with ``user_id`` also checks ownership."""
        with self._db.session_scope() as session:
            if user_id is not None and GoalSelector(session).get(user_id, goal_id) is None:
                raise GoalNotFoundError(str(goal_id))
            return GoalTracker(SqlGoalRepository(session)).get_progress(goal_id)
