"""
Module: tracker_kernel.models.transaction
Responsibility: ORM persistence for ledger entries.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - amount is a positive integer in minor currency units (checked by the
      TransactionInput/TransactionPatch DTOs and a CHECK constraint).
    - goal_id is a weak reference: deleting the goal nulls it, and no
      reversal of the prior effect takes place.
    - Rows change only through LedgerService.amend(), which runs the goal
      reverse/apply protocol in the same unit of work.
"""

from datetime import date as date_type
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tracker_kernel.db.base import TrackedBase, UUIDString


class Transaction(TrackedBase):
    """A single income or expense entry in a user's ledger."""

    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        CheckConstraint(
            "type IN ('income', 'expense')", name="ck_transactions_type"
        ),
        Index("ix_transactions_user_id", "user_id"),
        Index("ix_transactions_date", "date"),
        Index("ix_transactions_goal_id", "goal_id"),
        Index("ix_transactions_user_category_date", "user_id", "category", "date"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    goal_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("goals.id", ondelete="SET NULL"),
        nullable=True,
    )

    amount: Mapped[int] = mapped_column(nullable=False)

    # "income" | "expense"
    type: Mapped[str] = mapped_column(String(10), nullable=False)

    category: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    date: Mapped[date_type] = mapped_column(Date, nullable=False)

    def __repr__(self) -> str:
        return f"<Transaction {self.id} {self.type} {self.amount}>"
