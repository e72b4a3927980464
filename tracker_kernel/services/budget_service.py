"""
BudgetService / BudgetOrchestrator -- monthly spending caps.

Responsibility:
    CRUD for budgets with the (user, category, month, year) uniqueness
    rule, plus reads annotated with the spend derived by BudgetAggregator.

Architecture position:
    Kernel > Services.  Budgets are never touched by the ledger path or
    the threshold tasks; they only read them.

Invariants enforced:
    - At most one budget per (user_id, category, month, year).  Checked
      up front for a typed error, and backed by the database unique
      constraint so a concurrent duplicate still fails cleanly.

Failure modes:
    - BudgetNotFoundError: absent or owned by another user.
    - DuplicateBudgetError: uniqueness violation on create or update.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from tracker_kernel.db.engine import Database
from tracker_kernel.domain.dtos import BudgetInput, BudgetPatch, BudgetRecord, BudgetSpend
from tracker_kernel.exceptions import BudgetNotFoundError, DuplicateBudgetError
from tracker_kernel.logging_config import get_logger
from tracker_kernel.models.budget import Budget
from tracker_kernel.selectors.budget_selector import BudgetAggregator
from tracker_kernel.services.base import BaseService

logger = get_logger("services.budget")


class BudgetService(BaseService[Budget]):
    """Flush-only budget writes."""

    def create(self, user_id: UUID, data: BudgetInput) -> BudgetRecord:
        self._ensure_unique(user_id, data.category, data.month, data.year)

        budget = Budget(
            user_id=user_id,
            category=data.category,
            month=data.month,
            year=data.year,
            amount=data.amount,
        )
        self.session.add(budget)
        self._flush_unique(user_id, data.category, data.month, data.year)

        logger.info(
            "budget_created",
            extra={
                "budget_id": str(budget.id),
                "user_id": str(user_id),
                "category": data.category,
                "period": f"{data.year}-{data.month:02d}",
            },
        )
        return BudgetRecord.from_model(budget)

    def update(self, user_id: UUID, budget_id: UUID, patch: BudgetPatch) -> BudgetRecord:
        budget = self._load_owned(user_id, budget_id)

        category = patch.category if patch.category is not None else budget.category
        month = patch.month if patch.month is not None else budget.month
        year = patch.year if patch.year is not None else budget.year

        if (category, month, year) != (budget.category, budget.month, budget.year):
            self._ensure_unique(user_id, category, month, year, exclude_id=budget_id)

        budget.category = category
        budget.month = month
        budget.year = year
        if patch.amount is not None:
            budget.amount = patch.amount

        self._flush_unique(user_id, category, month, year)
        logger.info("budget_updated", extra={"budget_id": str(budget_id)})
        return BudgetRecord.from_model(budget)

    def delete(self, user_id: UUID, budget_id: UUID) -> None:
        budget = self._load_owned(user_id, budget_id)
        self.session.delete(budget)
        self.session.flush()
        logger.info("budget_deleted", extra={"budget_id": str(budget_id)})

    def _load_owned(self, user_id: UUID, budget_id: UUID) -> Budget:
        budget = self.session.execute(
            select(Budget).where(Budget.id == budget_id, Budget.user_id == user_id)
        ).scalar_one_or_none()
        if budget is None:
            raise BudgetNotFoundError(str(budget_id))
        return budget

    def _ensure_unique(
        self,
        user_id: UUID,
        category: str,
        month: int,
        year: int,
        exclude_id: UUID | None = None,
    ) -> None:
        stmt = select(Budget.id).where(
            Budget.user_id == user_id,
            Budget.category == category,
            Budget.month == month,
            Budget.year == year,
        )
        if exclude_id is not None:
            stmt = stmt.where(Budget.id != exclude_id)
        if self.session.execute(stmt).first() is not None:
            raise DuplicateBudgetError(str(user_id), category, month, year)

    def _flush_unique(self, user_id: UUID, category: str, month: int, year: int) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            # Lost a race against a concurrent insert of the same key
            raise DuplicateBudgetError(str(user_id), category, month, year) from exc


class BudgetOrchestrator:
    """Unit-of-work wrapper over BudgetService and BudgetAggregator."""

    def __init__(self, db: Database):
        self._db = db

    def create_budget(self, user_id: UUID, data: BudgetInput) -> BudgetRecord:
        with self._db.session_scope() as session:
            return BudgetService(session).create(user_id, data)

    def get_budget(self, user_id: UUID, budget_id: UUID) -> BudgetSpend:
        with self._db.session_scope() as session:
            aggregator = BudgetAggregator(session)
            budget = aggregator.get_budget(user_id, budget_id)
            if budget is None:
                raise BudgetNotFoundError(str(budget_id))
            return aggregator.with_spent(budget)

    def list_budgets(
        self,
        user_id: UUID,
        month: int | None = None,
        year: int | None = None,
    ) -> list[BudgetSpend]:
        with self._db.session_scope() as session:
            return BudgetAggregator(session).list_with_spent(user_id, month=month, year=year)

    def update_budget(self, user_id: UUID, budget_id: UUID, patch: BudgetPatch) -> BudgetSpend:
        with self._db.session_scope() as session:
            record = BudgetService(session).update(user_id, budget_id, patch)
            return BudgetAggregator(session).with_spent(record)

    def delete_budget(self, user_id: UUID, budget_id: UUID) -> None:
        with self._db.session_scope() as session:
            BudgetService(session).delete(user_id, budget_id)

    def get_spent(self, user_id: UUID, category: str, month: int, year: int) -> int:
        with self._db.session_scope() as session:
            return BudgetAggregator(session).get_spent(user_id, category, month, year)
