"""
Module: tracker_kernel.models.budget
Responsibility: ORM persistence for monthly per-category spending caps.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one budget per (user_id, category, month, year)
      (uq_budgets_user_category_period).
    - ``spent`` is never stored; BudgetAggregator derives it from the ledger
      on every read.
"""

from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tracker_kernel.db.base import TrackedBase, UUIDString


class Budget(TrackedBase):
    __tablename__ = "budgets"

    __table_args__ = (
        UniqueConstraint(
            "user_id", "category", "month", "year",
            name="uq_budgets_user_category_period",
        ),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_budgets_month"),
        Index("ix_budgets_user_id", "user_id"),
        Index("ix_budgets_period", "year", "month"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    category: Mapped[str] = mapped_column(String(100), nullable=False)

    month: Mapped[int] = mapped_column(Integer, nullable=False)

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Cap in minor currency units
    amount: Mapped[int] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Budget {self.category} {self.month:02d}/{self.year}: {self.amount}>"
