"""
budget-check -- daily pass over the current month's budgets.

For every budget whose (month, year) is the current month in the
scheduler's timezone, derive the spend and send "exceeded" (>= 100%) or
"warning" (>= 90%).  No suppression state: the same alert is sent on every
pass while the condition holds.
"""

from __future__ import annotations

from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from tracker_kernel.db.engine import Database
from tracker_kernel.exceptions import NotificationDeliveryFailedError
from tracker_kernel.logging_config import get_logger
from tracker_kernel.selectors.budget_selector import BudgetAggregator
from tracker_kernel.services.user_service import UserService

from tracker_batch.domain import messages
from tracker_batch.domain.thresholds import budget_percent, classify_budget
from tracker_batch.domain.types import AlertKind, ItemStatus, TaskOutcome, ThresholdItem
from tracker_batch.notifications.gateway import NotificationGateway

logger = get_logger("batch.tasks.budget_check")


class BudgetCheckTask:
    job_name = "budget-check"
    description = "Warn users approaching or over this month's budget caps"

    def __init__(
        self,
        db: Database,
        gateway: NotificationGateway,
        tz: tzinfo | None = None,
    ):
        self._db = db
        self._gateway = gateway
        self._tz = tz or ZoneInfo("America/New_York")

    def prepare_items(self, as_of: datetime) -> tuple[ThresholdItem, ...]:
        local = as_of.astimezone(self._tz)
        with self._db.session_scope() as session:
            budgets = BudgetAggregator(session).for_period(local.month, local.year)
            users = UserService(session).get_many([b.user_id for b in budgets])

        items = []
        for budget in budgets:
            user = users.get(budget.user_id)
            if user is None:
                logger.warning("budget_owner_missing", extra={"budget_id": str(budget.id)})
                continue
            items.append(
                ThresholdItem(
                    item_index=len(items),
                    item_key=f"budget:{budget.id}",
                    entity_id=budget.id,
                    payload={
                        "user_id": budget.user_id,
                        "email": user.email,
                        "user_name": user.name,
                        "category": budget.category,
                        "month": budget.month,
                        "year": budget.year,
                        "amount": budget.amount,
                    },
                )
            )

        logger.info(
            "budget_check_prepared",
            extra={"month": local.month, "year": local.year, "budget_count": len(items)},
        )
        return tuple(items)

    def execute_item(self, item: ThresholdItem, as_of: datetime) -> TaskOutcome:
        p = item.payload
        with self._db.session_scope() as session:
            spent = BudgetAggregator(session).get_spent(
                p["user_id"], p["category"], p["month"], p["year"]
            )

        kind = classify_budget(spent, p["amount"])
        if kind is None:
            return TaskOutcome(status=ItemStatus.NO_ALERT, result_data={"spent": spent})

        if kind == AlertKind.BUDGET_EXCEEDED:
            message = messages.budget_exceeded(
                p["user_name"], p["category"], p["month"], p["year"], p["amount"], spent
            )
        else:
            message = messages.budget_warning(
                p["user_name"],
                p["category"],
                p["month"],
                p["year"],
                p["amount"],
                spent,
                budget_percent(spent, p["amount"]),
            )

        result = self._gateway.send(p["email"], message.subject, message.body)
        if not result.success:
            raise NotificationDeliveryFailedError(p["email"], message.subject, result.error)

        logger.info(
            "budget_alert_sent",
            extra={"budget_id": str(item.entity_id), "alert": kind.value, "spent": spent},
        )
        return TaskOutcome(status=ItemStatus.SENT, alert=kind, result_data={"spent": spent})
