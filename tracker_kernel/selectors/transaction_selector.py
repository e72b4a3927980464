"""
Module: tracker_kernel.selectors.transaction_selector
Responsibility: Ledger history queries (the ``list`` side of the Ledger Store).
Architecture position: Kernel > Selectors.

Ordering: most recent ``date`` first; ties broken by ``created_at``
descending, then id, so paging is stable.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from tracker_kernel.domain.dtos import TransactionFilter, TransactionRecord, TransactionType
from tracker_kernel.models.transaction import Transaction
from tracker_kernel.selectors.base import BaseSelector


class TransactionSelector(BaseSelector[Transaction]):
    """Read-only access to ledger entries."""

    def get(self, user_id: UUID, transaction_id: UUID) -> TransactionRecord | None:
        txn = self.session.execute(
            select(Transaction).where(
                Transaction.id == transaction_id,
                Transaction.user_id == user_id,
            )
        ).scalar_one_or_none()
        return TransactionRecord.from_model(txn) if txn is not None else None

    def list(
        self,
        flt: TransactionFilter,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[TransactionRecord]:
        """
        Entries matching ``flt``; ``start_date``/``end_date`` are inclusive.
        """
        stmt = select(Transaction).where(Transaction.user_id == flt.user_id)

        if flt.category is not None:
            stmt = stmt.where(Transaction.category == flt.category)
        if flt.start_date is not None:
            stmt = stmt.where(Transaction.date >= flt.start_date)
        if flt.end_date is not None:
            stmt = stmt.where(Transaction.date <= flt.end_date)
        if flt.goal_id is not None:
            stmt = stmt.where(Transaction.goal_id == flt.goal_id)
        if flt.type is not None:
            stmt = stmt.where(Transaction.type == TransactionType(flt.type).value)

        stmt = stmt.order_by(
            Transaction.date.desc(),
            Transaction.created_at.desc(),
            Transaction.id,
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        return [TransactionRecord.from_model(t) for t in self.session.scalars(stmt)]
