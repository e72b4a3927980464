"""
Module: tracker_kernel.selectors.analytics_selector
Responsibility: Income/expense summary and per-category expense breakdown
    over an optional inclusive date range.
Architecture position: Kernel > Selectors.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select

from tracker_kernel.domain.dtos import CategoryTotal, SpendingSummary, TransactionType
from tracker_kernel.models.transaction import Transaction
from tracker_kernel.selectors.base import BaseSelector


class AnalyticsSelector(BaseSelector[Transaction]):

    def _window(self, stmt, start: date | None, end: date | None):
        if start is not None:
            stmt = stmt.where(Transaction.date >= start)
        if end is not None:
            stmt = stmt.where(Transaction.date <= end)
        return stmt

    def summary(
        self,
        user_id: UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> SpendingSummary:
        stmt = self._window(
            select(Transaction.type, func.sum(Transaction.amount))
            .where(Transaction.user_id == user_id)
            .group_by(Transaction.type),
            start,
            end,
        )
        totals = {row[0]: int(row[1] or 0) for row in self.session.execute(stmt)}
        return SpendingSummary(
            income=totals.get(TransactionType.INCOME.value, 0),
            expenses=totals.get(TransactionType.EXPENSE.value, 0),
        )

    def category_breakdown(
        self,
        user_id: UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> list[CategoryTotal]:
        """Expense totals per category, largest first."""
        total = func.sum(Transaction.amount).label("total")
        stmt = self._window(
            select(Transaction.category, total)
            .where(
                Transaction.user_id == user_id,
                Transaction.type == TransactionType.EXPENSE.value,
            )
            .group_by(Transaction.category)
            .order_by(total.desc(), Transaction.category),
            start,
            end,
        )
        return [
            CategoryTotal(category=row.category, total=int(row.total))
            for row in self.session.execute(stmt)
        ]
