"""
GoalTracker -- keeps each goal's balance and status in step with the ledger.

Responsibility:
    Applies and reverses the effects of goal-linked income transactions,
    drives the one-way ACTIVE -> COMPLETED transition, records the alert
    latches for the goal pass, and serves the read-only progress
    projection.

Architecture position:
    Kernel > Services.  Depends only on the ``GoalRepository`` protocol
    and the pure rules in ``tracker_kernel.domain.goal_effects``.  Invoked
    synchronously by LedgerService inside the ledger mutation's unit of
    work, and by the goal-check task.

Invariants enforced:
    - Reverse-then-apply: every change of a transaction's
      (goal_id, type, amount) triple reverses the prior effect before the
      new one is applied.
    - Effects reach goals that are not cancelled.  Reversal never moves a
      goal out of COMPLETED.
    - Every read that precedes a write is ``for_update`` and every write
      is a compare-and-set.  Callers hold the per-goal lock around the
      whole unit of work so the compare-and-set does not fail in-process.

Failure modes:
    - GoalNotFoundError from ``get_progress()`` for an unknown goal.
    - ConcurrentUpdateConflictError from the repository when another
      process wrote the goal between read and write.
"""

from dataclasses import replace
from uuid import UUID

from tracker_kernel.domain.dtos import GoalProgress, GoalRecord, GoalStatus
from tracker_kernel.domain.goal_effects import (
    EffectPlan,
    accepts_effects,
    progress_percent,
    reaches_target,
    with_effect_applied,
    with_effect_reversed,
)
from tracker_kernel.exceptions import GoalNotFoundError
from tracker_kernel.logging_config import get_logger
from tracker_kernel.services.goal_repository import GoalRepository

logger = get_logger("services.goal_tracker")


class GoalTracker:
    """
    Effect propagation and lifecycle for goals.

    Contract:
        ``apply_effect``/``reverse_effect`` return the saved record, or
        None when the goal is absent or cancelled (no effect).
    """

    def __init__(self, repository: GoalRepository):
        self._repo = repository

    # -------------------------------------------------------------------------
    # Effects
    # -------------------------------------------------------------------------

    def apply_plan(self, plan: EffectPlan) -> None:
        """Execute a reverse-then-apply plan produced by ``plan_effects``."""
        if plan.reverse is not None:
            self.reverse_effect(plan.reverse.goal_id, plan.reverse.amount)
        if plan.apply is not None:
            self.apply_effect(plan.apply.goal_id, plan.apply.amount)

    def apply_effect(self, goal_id: UUID, amount: int) -> GoalRecord | None:
        goal = self._load_eligible(goal_id, "apply")
        if goal is None:
            return None

        updated = self._repo.save(with_effect_applied(goal, amount))

        logger.info(
            "goal_effect_applied",
            extra={
                "goal_id": str(goal_id),
                "amount": amount,
                "current_amount": updated.current_amount,
                "status": updated.status.value,
            },
        )
        if goal.status != updated.status:
            logger.info(
                "goal_completed",
                extra={
                    "goal_id": str(goal_id),
                    "current_amount": updated.current_amount,
                    "target_amount": updated.target_amount,
                },
            )
        return updated

    def reverse_effect(self, goal_id: UUID, amount: int) -> GoalRecord | None:
        goal = self._load_eligible(goal_id, "reverse")
        if goal is None:
            return None

        updated = self._repo.save(with_effect_reversed(goal, amount))

        logger.info(
            "goal_effect_reversed",
            extra={
                "goal_id": str(goal_id),
                "amount": amount,
                "current_amount": updated.current_amount,
                "status": updated.status.value,
            },
        )
        return updated

    def _load_eligible(self, goal_id: UUID, action: str) -> GoalRecord | None:
        goal = self._repo.get(goal_id, for_update=True)
        if goal is None:
            logger.info(
                "goal_effect_skipped",
                extra={"goal_id": str(goal_id), "action": action, "reason": "missing"},
            )
            return None
        if not accepts_effects(goal):
            logger.info(
                "goal_effect_skipped",
                extra={
                    "goal_id": str(goal_id),
                    "action": action,
                    "reason": goal.status.value,
                },
            )
            return None
        return goal

    # -------------------------------------------------------------------------
    # Latches (goal pass)
    # -------------------------------------------------------------------------

    def mark_achieved(self, goal_id: UUID) -> GoalRecord | None:
        """
        Commit the completion and the achievement latch together.

        Returns the saved record when the caller should now send the
        "achieved" alert, or None when there is nothing to announce: the
        goal is gone, cancelled, already announced, has a zero target, or
        (still ACTIVE) is below target.
        """
        goal = self._repo.get(goal_id, for_update=True)
        if goal is None or goal.achievement_notified:
            return None
        if goal.status == GoalStatus.CANCELLED or goal.target_amount <= 0:
            return None
        if goal.status == GoalStatus.ACTIVE and not reaches_target(
            goal.current_amount, goal.target_amount
        ):
            return None

        updated = self._repo.save(
            replace(goal, status=GoalStatus.COMPLETED, achievement_notified=True)
        )
        logger.info(
            "goal_achievement_latched",
            extra={"goal_id": str(goal_id), "was_status": goal.status.value},
        )
        return updated

    def latch_milestone(self, goal_id: UUID) -> GoalRecord | None:
        """Set ``milestone_notified``; None if already set or goal gone."""
        goal = self._repo.get(goal_id, for_update=True)
        if goal is None or goal.milestone_notified:
            return None
        updated = self._repo.save(replace(goal, milestone_notified=True))
        logger.info("goal_milestone_latched", extra={"goal_id": str(goal_id)})
        return updated

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def get_progress(self, goal_id: UUID) -> GoalProgress:
        goal = self._repo.get(goal_id)
        if goal is None:
            raise GoalNotFoundError(str(goal_id))
        return GoalProgress(
            goal_id=goal.id,
            current=goal.current_amount,
            target=goal.target_amount,
            percent=progress_percent(goal.current_amount, goal.target_amount),
            status=goal.status,
        )
