"""
LedgerService -- transaction writes plus their goal effects, flush-only.

Responsibility:
    Creates, amends and removes ledger entries.  Each mutation computes
    the transaction's prior and new goal effect, and hands the resulting
    reverse/apply plan to the GoalTracker in the same session.

Architecture position:
    Kernel > Services.  Called by LedgerStore, which owns the unit of work
    and the per-goal locks.

Invariants enforced:
    - Flush-only: the transaction row and the goal adjustment commit (or
      roll back) together in the caller's ``session_scope()``.
    - A goal link is only accepted for a goal owned by the same user.
    - When the caller declares which goals it has locked, a plan touching
      any other goal is refused with StaleGoalLinkError before any write.

Failure modes:
    - TransactionNotFoundError: absent or owned by another user.
    - GoalNotFoundError: referenced goal absent or owned by another user.
    - StaleGoalLinkError: plan needs a goal the caller has not locked.
"""

from collections.abc import Collection
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tracker_kernel.domain.dtos import TransactionInput, TransactionPatch, TransactionRecord
from tracker_kernel.domain.goal_effects import EffectPlan, effect_of, plan_effects
from tracker_kernel.exceptions import (
    GoalNotFoundError,
    StaleGoalLinkError,
    TransactionNotFoundError,
)
from tracker_kernel.logging_config import get_logger
from tracker_kernel.models.goal import Goal
from tracker_kernel.models.transaction import Transaction
from tracker_kernel.services.base import BaseService
from tracker_kernel.services.goal_tracker import GoalTracker

logger = get_logger("services.ledger")


class LedgerService(BaseService[Transaction]):
    """Ledger mutations within the caller's transaction."""

    def __init__(self, session: Session, tracker: GoalTracker):
        super().__init__(session)
        self._tracker = tracker

    def create(
        self,
        user_id: UUID,
        entry: TransactionInput,
        locked_goal_ids: Collection[UUID] | None = None,
    ) -> TransactionRecord:
        if entry.goal_id is not None:
            self._require_owned_goal(user_id, entry.goal_id)

        plan = plan_effects(None, effect_of(entry.goal_id, entry.type, entry.amount))

        txn = Transaction(
            user_id=user_id,
            goal_id=entry.goal_id,
            amount=entry.amount,
            type=entry.type.value,
            category=entry.category,
            date=entry.date,
            description=entry.description,
        )
        self.session.add(txn)
        self.session.flush()

        self._check_locked(txn.id, plan, locked_goal_ids)
        self._tracker.apply_plan(plan)

        logger.info(
            "transaction_created",
            extra={
                "transaction_id": str(txn.id),
                "user_id": str(user_id),
                "type": entry.type.value,
                "amount": entry.amount,
                "goal_id": str(entry.goal_id) if entry.goal_id else None,
            },
        )
        return TransactionRecord.from_model(txn)

    def amend(
        self,
        user_id: UUID,
        transaction_id: UUID,
        patch: TransactionPatch,
        locked_goal_ids: Collection[UUID] | None = None,
    ) -> TransactionRecord:
        txn = self._load_owned(user_id, transaction_id)

        new_goal_id = patch.resolve_goal_id(txn.goal_id)
        if new_goal_id is not None and new_goal_id != txn.goal_id:
            self._require_owned_goal(user_id, new_goal_id)

        prior = effect_of(txn.goal_id, txn.type, txn.amount)

        if patch.amount is not None:
            txn.amount = patch.amount
        if patch.type is not None:
            txn.type = patch.type.value
        if patch.category is not None:
            txn.category = patch.category
        if patch.clear_description:
            txn.description = None
        elif patch.description is not None:
            txn.description = patch.description
        if patch.date is not None:
            txn.date = patch.date
        txn.goal_id = new_goal_id

        plan = plan_effects(prior, effect_of(txn.goal_id, txn.type, txn.amount))
        self._check_locked(txn.id, plan, locked_goal_ids)

        self.session.flush()
        self._tracker.apply_plan(plan)

        logger.info(
            "transaction_amended",
            extra={
                "transaction_id": str(txn.id),
                "user_id": str(user_id),
                "goal_effect_changed": not plan.is_noop,
            },
        )
        return TransactionRecord.from_model(txn)

    def remove(
        self,
        user_id: UUID,
        transaction_id: UUID,
        locked_goal_ids: Collection[UUID] | None = None,
    ) -> None:
        txn = self._load_owned(user_id, transaction_id)

        plan = plan_effects(effect_of(txn.goal_id, txn.type, txn.amount), None)
        self._check_locked(txn.id, plan, locked_goal_ids)

        self.session.delete(txn)
        self.session.flush()
        self._tracker.apply_plan(plan)

        logger.info(
            "transaction_removed",
            extra={"transaction_id": str(transaction_id), "user_id": str(user_id)},
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load_owned(self, user_id: UUID, transaction_id: UUID) -> Transaction:
        txn = self.session.execute(
            select(Transaction)
            .where(Transaction.id == transaction_id, Transaction.user_id == user_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if txn is None:
            raise TransactionNotFoundError(str(transaction_id))
        return txn

    def _require_owned_goal(self, user_id: UUID, goal_id: UUID) -> None:
        found = self.session.execute(
            select(Goal.id).where(Goal.id == goal_id, Goal.user_id == user_id)
        ).scalar_one_or_none()
        if found is None:
            raise GoalNotFoundError(str(goal_id))

    @staticmethod
    def _check_locked(
        transaction_id: UUID,
        plan: EffectPlan,
        locked_goal_ids: Collection[UUID] | None,
    ) -> None:
        if locked_goal_ids is None:
            return
        missing = tuple(g for g in plan.goal_ids if g not in locked_goal_ids)
        if missing:
            raise StaleGoalLinkError(str(transaction_id), tuple(str(g) for g in missing))
