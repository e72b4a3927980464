"""
Module: tracker_kernel.models.goal
Responsibility: ORM persistence for savings goals and their derived balance.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - current_amount is the accumulated result of the Goal Tracker's
      apply/reverse sequence over linked income transactions.
    - status ACTIVE -> COMPLETED is one-way.
    - milestone_notified and achievement_notified are latches: once True,
      never reset.
    - version is the optimistic-concurrency counter (SQLAlchemy
      ``version_id_col``): every UPDATE is ``WHERE id = ? AND version = ?``
      so a write based on a stale read fails instead of losing an update.

Failure modes:
    - sqlalchemy.orm.exc.StaleDataError on flush when another transaction
      changed the row since it was read (translated to
      ConcurrentUpdateConflictError by the goal repository).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tracker_kernel.db.base import TrackedBase, UUIDString


class Goal(TrackedBase):
    """A savings target fed by linked income transactions."""

    __tablename__ = "goals"

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'completed', 'cancelled')", name="ck_goals_status"
        ),
        Index("ix_goals_user_id", "user_id"),
        Index("ix_goals_status", "status"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    target_amount: Mapped[Decimal] = mapped_column(nullable=False)

    current_amount: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0.00"),
    )

    category: Mapped[str] = mapped_column(String(100), nullable=False)

    deadline: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    # Latch: the >= 50% alert has been delivered
    milestone_notified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # Latch: the completion alert has been committed for sending
    achievement_notified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Goal {self.name}: {self.current_amount}/{self.target_amount} {self.status}>"
