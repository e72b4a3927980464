"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable records that cross the service boundary: inputs and patches
    accepted from callers, and the records/projections returned to them.
    Services never hand ORM instances to callers.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``from_model()`` class methods are
    boundary converters invoked only from the service/selector layer.

Failure modes:
    - ValueError on non-positive transaction amounts, unknown transaction
      types, out-of-range budget months, or contradictory patches.

Money representation:
    Transaction and budget amounts are integers in minor units.  Goal target
    and current amounts are 2-decimal fixed point (``Decimal``).  Integer
    effects are added to goal balances unchanged, so the two scales mix.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from tracker_kernel.models.budget import Budget as BudgetModel
    from tracker_kernel.models.goal import Goal as GoalModel
    from tracker_kernel.models.transaction import Transaction as TransactionModel
    from tracker_kernel.models.user import User as UserModel


CENT = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """Normalize a fixed-point amount to 2 decimal places."""
    return Decimal(value).quantize(CENT)


def _require_positive_int(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


# =============================================================================
# Enums
# =============================================================================


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class GoalStatus(str, Enum):
    """Goal lifecycle.

    ACTIVE -> COMPLETED is one-way and only driven by the Goal Tracker.
    CANCELLED is set by the owner and is terminal.
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# =============================================================================
# Users
# =============================================================================


@dataclass(frozen=True)
class UserRecord:
    id: UUID
    name: str
    email: str

    @classmethod
    def from_model(cls, model: UserModel) -> UserRecord:
        return cls(id=model.id, name=model.name, email=model.email)


# =============================================================================
# Transactions
# =============================================================================


@dataclass(frozen=True)
class TransactionInput:
    """Caller-supplied fields for a new ledger entry."""

    amount: int
    type: TransactionType
    category: str
    date: date
    description: str | None = None
    goal_id: UUID | None = None

    def __post_init__(self) -> None:
        _require_positive_int("amount", self.amount)
        object.__setattr__(self, "type", TransactionType(self.type))


@dataclass(frozen=True)
class TransactionPatch:
    """Partial update for an existing ledger entry.

    ``None`` means "leave unchanged".  To remove the goal link set
    ``unlink_goal=True``; to remove the description set
    ``clear_description=True``.  Each flag excludes its value field.
    """

    amount: int | None = None
    type: TransactionType | None = None
    category: str | None = None
    description: str | None = None
    date: date | None = None
    goal_id: UUID | None = None
    unlink_goal: bool = False
    clear_description: bool = False

    def __post_init__(self) -> None:
        if self.amount is not None:
            _require_positive_int("amount", self.amount)
        if self.type is not None:
            object.__setattr__(self, "type", TransactionType(self.type))
        if self.unlink_goal and self.goal_id is not None:
            raise ValueError("goal_id and unlink_goal cannot both be set")
        if self.clear_description and self.description is not None:
            raise ValueError("description and clear_description cannot both be set")

    def resolve_goal_id(self, current: UUID | None) -> UUID | None:
        """Goal link after this patch is applied to ``current``."""
        if self.unlink_goal:
            return None
        if self.goal_id is not None:
            return self.goal_id
        return current


@dataclass(frozen=True)
class TransactionRecord:
    id: UUID
    user_id: UUID
    goal_id: UUID | None
    amount: int
    type: TransactionType
    category: str
    date: date
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, model: TransactionModel) -> TransactionRecord:
        return cls(
            id=model.id,
            user_id=model.user_id,
            goal_id=model.goal_id,
            amount=model.amount,
            type=TransactionType(model.type),
            category=model.category,
            date=model.date,
            description=model.description,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass(frozen=True)
class TransactionFilter:
    """Ledger query.  Date bounds are inclusive."""

    user_id: UUID
    category: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    goal_id: UUID | None = None
    type: TransactionType | None = None


# =============================================================================
# Goals
# =============================================================================


@dataclass(frozen=True)
class GoalInput:
    name: str
    target_amount: Decimal
    category: str
    deadline: date

    def __post_init__(self) -> None:
        target = to_money(self.target_amount)
        if target < 0:
            raise ValueError(f"target_amount must not be negative, got {target}")
        object.__setattr__(self, "target_amount", target)


@dataclass(frozen=True)
class GoalPatch:
    """Owner edits.  ``status`` may only move a goal to CANCELLED."""

    name: str | None = None
    target_amount: Decimal | None = None
    category: str | None = None
    deadline: date | None = None
    status: GoalStatus | None = None

    def __post_init__(self) -> None:
        if self.target_amount is not None:
            target = to_money(self.target_amount)
            if target < 0:
                raise ValueError(f"target_amount must not be negative, got {target}")
            object.__setattr__(self, "target_amount", target)
        if self.status is not None:
            object.__setattr__(self, "status", GoalStatus(self.status))


@dataclass(frozen=True)
class GoalRecord:
    """Snapshot of a goal row, including its compare-and-set version."""

    id: UUID
    user_id: UUID
    name: str
    target_amount: Decimal
    current_amount: Decimal
    category: str
    deadline: date
    status: GoalStatus
    milestone_notified: bool = False
    achievement_notified: bool = False
    version: int = 1

    @classmethod
    def from_model(cls, model: GoalModel) -> GoalRecord:
        return cls(
            id=model.id,
            user_id=model.user_id,
            name=model.name,
            target_amount=to_money(model.target_amount),
            current_amount=to_money(model.current_amount),
            category=model.category,
            deadline=model.deadline,
            status=GoalStatus(model.status),
            milestone_notified=model.milestone_notified,
            achievement_notified=model.achievement_notified,
            version=model.version,
        )


@dataclass(frozen=True)
class GoalProgress:
    """Read projection returned by ``GoalTracker.get_progress``."""

    goal_id: UUID
    current: Decimal
    target: Decimal
    percent: Decimal
    status: GoalStatus


# =============================================================================
# Budgets
# =============================================================================


@dataclass(frozen=True)
class BudgetInput:
    category: str
    amount: int
    month: int
    year: int

    def __post_init__(self) -> None:
        _validate_budget_fields(self.amount, self.month, self.year)


@dataclass(frozen=True)
class BudgetPatch:
    category: str | None = None
    amount: int | None = None
    month: int | None = None
    year: int | None = None

    def __post_init__(self) -> None:
        _validate_budget_fields(self.amount, self.month, self.year)


def _validate_budget_fields(amount: int | None, month: int | None, year: int | None) -> None:
    if amount is not None and (isinstance(amount, bool) or not isinstance(amount, int) or amount < 0):
        raise ValueError(f"amount must be a non-negative integer, got {amount!r}")
    if month is not None and not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    if year is not None and year < 1:
        raise ValueError(f"year must be positive, got {year}")


@dataclass(frozen=True)
class BudgetRecord:
    id: UUID
    user_id: UUID
    category: str
    month: int
    year: int
    amount: int

    @classmethod
    def from_model(cls, model: BudgetModel) -> BudgetRecord:
        return cls(
            id=model.id,
            user_id=model.user_id,
            category=model.category,
            month=model.month,
            year=model.year,
            amount=model.amount,
        )


@dataclass(frozen=True)
class BudgetSpend:
    """A budget annotated with its derived spend."""

    budget: BudgetRecord
    spent: int


# =============================================================================
# Analytics
# =============================================================================


@dataclass(frozen=True)
class SpendingSummary:
    income: int
    expenses: int

    @property
    def savings(self) -> int:
        return self.income - self.expenses


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    total: int
