"""
goal-check -- daily pass over goals that may owe their owner an alert.

Achieved: the completion and the ``achievement_notified`` latch are
committed under the goal lock FIRST, then the alert is sent with no lock
held.  A failed send is therefore not retried (accepted loss).

Milestone: the alert is sent FIRST; only after a successful send is
``milestone_notified`` latched.  A failed send leaves the latch unset so
the next pass tries again.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from tracker_kernel.db.engine import Database
from tracker_kernel.domain.dtos import GoalRecord
from tracker_kernel.domain.goal_effects import progress_percent
from tracker_kernel.exceptions import NotificationDeliveryFailedError
from tracker_kernel.logging_config import LogContext, get_logger
from tracker_kernel.selectors.goal_selector import GoalSelector
from tracker_kernel.services.goal_repository import SqlGoalRepository
from tracker_kernel.services.goal_tracker import GoalTracker
from tracker_kernel.services.user_service import UserService
from tracker_kernel.utils.keyed_lock import KeyedLock

from tracker_batch.domain import messages
from tracker_batch.domain.thresholds import classify_goal
from tracker_batch.domain.types import AlertKind, ItemStatus, TaskOutcome, ThresholdItem
from tracker_batch.notifications.gateway import NotificationGateway

logger = get_logger("batch.tasks.goal_check")


class GoalCheckTask:
    job_name = "goal-check"
    description = "Announce achieved goals and the halfway milestone"

    def __init__(
        self,
        db: Database,
        gateway: NotificationGateway,
        goal_locks: KeyedLock | None = None,
    ):
        self._db = db
        self._gateway = gateway
        self._goal_locks = goal_locks or KeyedLock("goal")

    def prepare_items(self, as_of: datetime) -> tuple[ThresholdItem, ...]:
        with self._db.session_scope() as session:
            goals = GoalSelector(session).pending_evaluation()
            users = UserService(session).get_many([g.user_id for g in goals])

        items = []
        for goal in goals:
            user = users.get(goal.user_id)
            if user is None:
                logger.warning("goal_owner_missing", extra={"goal_id": str(goal.id)})
                continue
            items.append(
                ThresholdItem(
                    item_index=len(items),
                    item_key=f"goal:{goal.id}",
                    entity_id=goal.id,
                    payload={"email": user.email, "user_name": user.name},
                )
            )

        logger.info("goal_check_prepared", extra={"goal_count": len(items)})
        return tuple(items)

    def execute_item(self, item: ThresholdItem, as_of: datetime) -> TaskOutcome:
        goal_id = item.entity_id
        with LogContext.bind(goal_id=goal_id):
            goal = self._read(goal_id)
            if goal is None:
                return TaskOutcome(status=ItemStatus.NO_ALERT, result_data={"reason": "deleted"})

            kind = classify_goal(goal)
            if kind == AlertKind.GOAL_ACHIEVED:
                return self._announce_achieved(item, goal_id)
            if kind == AlertKind.GOAL_MILESTONE:
                return self._announce_milestone(item, goal)
            return TaskOutcome(status=ItemStatus.NO_ALERT)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _read(self, goal_id: UUID) -> GoalRecord | None:
        with self._db.session_scope() as session:
            return SqlGoalRepository(session).get(goal_id)

    def _announce_achieved(self, item: ThresholdItem, goal_id: UUID) -> TaskOutcome:
        with self._goal_locks.hold(goal_id):
            with self._db.session_scope() as session:
                latched = GoalTracker(SqlGoalRepository(session)).mark_achieved(goal_id)

        if latched is None:
            # Another writer changed the goal between the read and the lock
            return TaskOutcome(status=ItemStatus.NO_ALERT, result_data={"reason": "raced"})

        message = messages.goal_achieved(
            item.payload["user_name"], latched.name, latched.target_amount
        )
        self._deliver(item, message)
        return TaskOutcome(status=ItemStatus.SENT, alert=AlertKind.GOAL_ACHIEVED)

    def _announce_milestone(self, item: ThresholdItem, goal: GoalRecord) -> TaskOutcome:
        message = messages.goal_milestone(
            item.payload["user_name"],
            goal.name,
            goal.current_amount,
            goal.target_amount,
            progress_percent(goal.current_amount, goal.target_amount),
        )
        self._deliver(item, message)

        with self._goal_locks.hold(goal.id):
            with self._db.session_scope() as session:
                GoalTracker(SqlGoalRepository(session)).latch_milestone(goal.id)

        return TaskOutcome(status=ItemStatus.SENT, alert=AlertKind.GOAL_MILESTONE)

    def _deliver(self, item: ThresholdItem, message: messages.AlertMessage) -> None:
        email = item.payload["email"]
        result = self._gateway.send(email, message.subject, message.body)
        if not result.success:
            raise NotificationDeliveryFailedError(email, message.subject, result.error)
        logger.info("goal_alert_sent", extra={"subject": message.subject})
