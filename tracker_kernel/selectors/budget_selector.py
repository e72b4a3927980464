"""
Module: tracker_kernel.selectors.budget_selector
Responsibility: Budget Aggregator -- derives a budget's spend from the ledger.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - ``spent`` is never stored or cached: every call sums committed
      expense rows in ``[year-month-01, next-month-01)``.
    - Income rows never count toward spend.

Failure modes:
    - ValueError from ``month_window`` for a month outside 1..12.
"""

from uuid import UUID

from sqlalchemy import func, select

from tracker_kernel.domain.dtos import BudgetRecord, BudgetSpend, TransactionType
from tracker_kernel.domain.periods import month_window
from tracker_kernel.models.budget import Budget
from tracker_kernel.models.transaction import Transaction
from tracker_kernel.selectors.base import BaseSelector


class BudgetAggregator(BaseSelector[Budget]):
    """On-demand budget spend and budget reads."""

    def get_spent(self, user_id: UUID, category: str, month: int, year: int) -> int:
        start, end = month_window(year, month)
        total = self.session.execute(
            select(func.coalesce(func.sum(Transaction.amount), 0)).where(
                Transaction.user_id == user_id,
                Transaction.category == category,
                Transaction.type == TransactionType.EXPENSE.value,
                Transaction.date >= start,
                Transaction.date < end,
            )
        ).scalar_one()
        return int(total)

    def get_budget(self, user_id: UUID, budget_id: UUID) -> BudgetRecord | None:
        budget = self.session.execute(
            select(Budget).where(Budget.id == budget_id, Budget.user_id == user_id)
        ).scalar_one_or_none()
        return BudgetRecord.from_model(budget) if budget is not None else None

    def with_spent(self, budget: BudgetRecord) -> BudgetSpend:
        return BudgetSpend(
            budget=budget,
            spent=self.get_spent(budget.user_id, budget.category, budget.month, budget.year),
        )

    def list_with_spent(
        self,
        user_id: UUID,
        month: int | None = None,
        year: int | None = None,
    ) -> list[BudgetSpend]:
        stmt = select(Budget).where(Budget.user_id == user_id)
        if month is not None:
            stmt = stmt.where(Budget.month == month)
        if year is not None:
            stmt = stmt.where(Budget.year == year)
        stmt = stmt.order_by(Budget.year, Budget.month, Budget.category)

        return [
            self.with_spent(BudgetRecord.from_model(b)) for b in self.session.scalars(stmt)
        ]

    def for_period(self, month: int, year: int) -> list[BudgetRecord]:
        """All users' budgets for one calendar month (budget-check input)."""
        stmt = (
            select(Budget)
            .where(Budget.month == month, Budget.year == year)
            .order_by(Budget.user_id, Budget.category)
        )
        return [BudgetRecord.from_model(b) for b in self.session.scalars(stmt)]
