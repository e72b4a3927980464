"""Read-only query selectors for the tracker kernel."""

from tracker_kernel.selectors.analytics_selector import AnalyticsSelector
from tracker_kernel.selectors.base import BaseSelector
from tracker_kernel.selectors.budget_selector import BudgetAggregator
from tracker_kernel.selectors.goal_selector import GoalSelector
from tracker_kernel.selectors.transaction_selector import TransactionSelector

__all__ = [
    "AnalyticsSelector",
    "BaseSelector",
    "BudgetAggregator",
    "GoalSelector",
    "TransactionSelector",
]
