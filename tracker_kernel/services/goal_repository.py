"""
GoalRepository -- the storage seam the Goal Tracker depends on.

Responsibility:
    Loads goals as plain ``GoalRecord`` values and writes them back with a
    compare-and-set on ``version``.  The tracker never sees an ORM object,
    so it can be exercised against an in-memory repository in tests.

Architecture position:
    Kernel > Services.  ``SqlGoalRepository`` is the SQLAlchemy
    implementation bound to the caller's session (flush-only).

Invariants enforced:
    - ``save()`` succeeds only if the stored version still equals the
      version the record was read at; the stored version is then bumped.
    - ``get(for_update=True)`` issues ``SELECT ... FOR UPDATE`` (honored by
      PostgreSQL, ignored by SQLite) and always refreshes the identity map
      so a re-read inside one session never returns a stale balance.

Failure modes:
    - ConcurrentUpdateConflictError when the compare-and-set fails.
    - GoalNotFoundError when saving a goal that no longer exists.
"""

from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from tracker_kernel.domain.dtos import GoalRecord, GoalStatus
from tracker_kernel.exceptions import ConcurrentUpdateConflictError, GoalNotFoundError
from tracker_kernel.logging_config import get_logger
from tracker_kernel.models.goal import Goal
from tracker_kernel.services.base import BaseService

logger = get_logger("services.goal_repository")


class GoalRepository(Protocol):
    """Structural interface for goal storage used by ``GoalTracker``."""

    def get(self, goal_id: UUID, *, for_update: bool = False) -> GoalRecord | None:
        ...

    def save(self, goal: GoalRecord) -> GoalRecord:
        """Persist ``goal`` if its version is current; return it re-versioned."""
        ...


class SqlGoalRepository(BaseService[Goal]):
    """GoalRepository over a SQLAlchemy session."""

    def get(self, goal_id: UUID, *, for_update: bool = False) -> GoalRecord | None:
        stmt = (
            select(Goal)
            .where(Goal.id == goal_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        model = self.session.execute(stmt).scalar_one_or_none()
        if model is None:
            return None
        return GoalRecord.from_model(model)

    def save(self, goal: GoalRecord) -> GoalRecord:
        model = self.session.get(Goal, goal.id)
        if model is None:
            raise GoalNotFoundError(str(goal.id))

        if model.version != goal.version:
            logger.warning(
                "goal_version_mismatch",
                extra={
                    "goal_id": str(goal.id),
                    "expected_version": goal.version,
                    "actual_version": model.version,
                },
            )
            raise ConcurrentUpdateConflictError("goal", str(goal.id))

        model.current_amount = goal.current_amount
        model.status = GoalStatus(goal.status).value
        model.milestone_notified = goal.milestone_notified
        model.achievement_notified = goal.achievement_notified

        try:
            # version_id_col turns this into UPDATE ... WHERE version = :read
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "goal_update_lost_race",
                extra={"goal_id": str(goal.id), "expected_version": goal.version},
            )
            raise ConcurrentUpdateConflictError("goal", str(goal.id)) from exc

        return GoalRecord.from_model(model)
