"""
LedgerStore -- the transactional entry point for ledger mutations.

Responsibility:
    Owns the unit of work for create/amend/remove.  Each call takes the
    locks it needs, opens one ``session_scope()``, runs LedgerService (and
    through it the GoalTracker) and commits before releasing the locks.

Architecture position:
    Kernel > Services.  Called by controllers/CLIs.  The only component
    that combines ``Database``, the lock tables and the ledger services.

Invariants enforced:
    - One unit of work per mutation: the transaction row and the goal
      effect commit together or not at all.
    - Per-goal serialization: every goal a mutation may touch is locked
      (in sorted order) from before the goal is read until after commit.
    - Per-transaction serialization: amend/remove of one transaction run
      one at a time, so reversals always see the previous committed state.
    - If the goal link of a transaction moved between the optimistic peek
      and the locked re-read, the unit of work is rolled back and retried.

Failure modes:
    - TransactionNotFoundError / GoalNotFoundError (NotFound).
    - ConcurrentUpdateConflictError when the goal row changed under us
      (another process) or the goal link kept moving past ``max_retries``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from tracker_kernel.db.engine import Database
from tracker_kernel.domain.dtos import (
    TransactionFilter,
    TransactionInput,
    TransactionPatch,
    TransactionRecord,
)
from tracker_kernel.domain.goal_effects import effect_of
from tracker_kernel.exceptions import (
    ConcurrentUpdateConflictError,
    StaleGoalLinkError,
    TransactionNotFoundError,
)
from tracker_kernel.logging_config import LogContext, get_logger
from tracker_kernel.selectors.transaction_selector import TransactionSelector
from tracker_kernel.services.goal_repository import SqlGoalRepository
from tracker_kernel.services.goal_tracker import GoalTracker
from tracker_kernel.services.ledger_service import LedgerService
from tracker_kernel.utils.keyed_lock import KeyedLock

logger = get_logger("services.ledger_store")

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3


class LedgerStore:
    """
    Create/amend/remove/list for ledger entries.

    Usage:
        store = LedgerStore(db, goal_locks=locks)
        record = store.create(user_id, TransactionInput(...))
    """

    def __init__(
        self,
        db: Database,
        goal_locks: KeyedLock | None = None,
        transaction_locks: KeyedLock | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self._db = db
        self._goal_locks = goal_locks or KeyedLock("goal")
        self._transaction_locks = transaction_locks or KeyedLock("transaction")
        self._max_retries = max_retries

    @property
    def goal_locks(self) -> KeyedLock:
        return self._goal_locks

    def _ledger(self, session: Session) -> LedgerService:
        return LedgerService(session, GoalTracker(SqlGoalRepository(session)))

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create(self, user_id: UUID, entry: TransactionInput) -> TransactionRecord:
        effect = effect_of(entry.goal_id, entry.type, entry.amount)
        goal_ids = (effect.goal_id,) if effect is not None else ()

        with LogContext.bind(user_id=user_id):
            with self._goal_locks.hold(*goal_ids):
                with self._db.session_scope() as session:
                    return self._ledger(session).create(
                        user_id, entry, locked_goal_ids=goal_ids
                    )

    def amend(
        self,
        user_id: UUID,
        transaction_id: UUID,
        patch: TransactionPatch,
    ) -> TransactionRecord:
        def run(session: Session, locked: tuple[UUID, ...]) -> TransactionRecord:
            return self._ledger(session).amend(
                user_id, transaction_id, patch, locked_goal_ids=locked
            )

        return self._with_transaction_locks(
            user_id,
            transaction_id,
            lambda current: (current, patch.resolve_goal_id(current)),
            run,
        )

    def remove(self, user_id: UUID, transaction_id: UUID) -> None:
        def run(session: Session, locked: tuple[UUID, ...]) -> None:
            self._ledger(session).remove(user_id, transaction_id, locked_goal_ids=locked)

        self._with_transaction_locks(
            user_id,
            transaction_id,
            lambda current: (current,),
            run,
        )

    def _with_transaction_locks(
        self,
        user_id: UUID,
        transaction_id: UUID,
        goals_for: Callable[[UUID | None], tuple[UUID | None, ...]],
        run: Callable[[Session, tuple[UUID, ...]], T],
    ) -> T:
        """
        Peek the current goal link, lock it (and the patch target), then run
        ``run`` in a unit of work.  Retries while the link keeps moving.
        """
        with LogContext.bind(user_id=user_id, transaction_id=transaction_id):
            with self._transaction_locks.hold(transaction_id):
                for attempt in range(1, self._max_retries + 1):
                    current = self._peek_goal_id(user_id, transaction_id)
                    locked = tuple(sorted({g for g in goals_for(current) if g is not None}))
                    try:
                        with self._goal_locks.hold(*locked):
                            with self._db.session_scope() as session:
                                return run(session, locked)
                    except StaleGoalLinkError:
                        logger.warning(
                            "transaction_goal_link_moved",
                            extra={"attempt": attempt, "locked_goal_ids": [str(g) for g in locked]},
                        )

                logger.error(
                    "transaction_retries_exhausted",
                    extra={"max_retries": self._max_retries},
                )
                raise ConcurrentUpdateConflictError("transaction", str(transaction_id))

    def _peek_goal_id(self, user_id: UUID, transaction_id: UUID) -> UUID | None:
        with self._db.session_scope() as session:
            record = TransactionSelector(session).get(user_id, transaction_id)
        if record is None:
            raise TransactionNotFoundError(str(transaction_id))
        return record.goal_id

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, user_id: UUID, transaction_id: UUID) -> TransactionRecord:
        with self._db.session_scope() as session:
            record = TransactionSelector(session).get(user_id, transaction_id)
        if record is None:
            raise TransactionNotFoundError(str(transaction_id))
        return record

    def list(
        self,
        flt: TransactionFilter,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[TransactionRecord]:
        with self._db.session_scope() as session:
            return TransactionSelector(session).list(flt, limit=limit, offset=offset)
