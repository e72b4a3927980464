"""ORM models for the tracker kernel."""

from tracker_kernel.models.budget import Budget
from tracker_kernel.models.goal import Goal
from tracker_kernel.models.transaction import Transaction
from tracker_kernel.models.user import User

__all__ = [
    "Budget",
    "Goal",
    "Transaction",
    "User",
]
