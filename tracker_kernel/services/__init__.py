"""Kernel services: flush-only writers and the orchestrators that own units of work."""

from tracker_kernel.services.base import BaseService
from tracker_kernel.services.budget_service import BudgetOrchestrator, BudgetService
from tracker_kernel.services.goal_repository import GoalRepository, SqlGoalRepository
from tracker_kernel.services.goal_service import GoalOrchestrator, GoalService
from tracker_kernel.services.goal_tracker import GoalTracker
from tracker_kernel.services.ledger_service import LedgerService
from tracker_kernel.services.ledger_store import LedgerStore
from tracker_kernel.services.user_service import UserService

__all__ = [
    "BaseService",
    "BudgetOrchestrator",
    "BudgetService",
    "GoalOrchestrator",
    "GoalRepository",
    "GoalService",
    "GoalTracker",
    "LedgerService",
    "LedgerStore",
    "SqlGoalRepository",
    "UserService",
]
