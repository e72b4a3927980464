"""
NotifierOrchestrator -- DI container for the tracker runtime.

Contract:
    ``from_config()`` opens the database and wires every component from a
    TrackerConfig: the ledger/goal/budget entry points for request-driven
    callers, the notification gateway, the two threshold tasks, the
    executor and the scheduler.  Single place where the tracker's
    dependencies are composed.

Architecture: tracker_batch (top-level).  The kernel never sees
    tracker_config; this module translates configuration into constructor
    arguments.

Invariants enforced:
    - One shared goal KeyedLock for the ledger, goal CRUD and the goal
      pass, so every writer of a goal row serializes on the same lock.
    - Clock injection: executor and scheduler receive the same Clock.
"""

from __future__ import annotations

from zoneinfo import ZoneInfo

from tracker_config.schema import NotificationConfig, TrackerConfig
from tracker_kernel.db.engine import Database
from tracker_kernel.domain.clock import Clock, SystemClock
from tracker_kernel.logging_config import configure_logging, get_logger
from tracker_kernel.services.budget_service import BudgetOrchestrator
from tracker_kernel.services.goal_service import GoalOrchestrator
from tracker_kernel.services.ledger_store import LedgerStore
from tracker_kernel.utils.keyed_lock import KeyedLock

from tracker_batch.notifications.gateway import (
    LogNotificationGateway,
    NotificationGateway,
    SmtpNotificationGateway,
)
from tracker_batch.services.executor import ThresholdExecutor
from tracker_batch.services.scheduler import JobScheduler
from tracker_batch.tasks.base import TaskRegistry
from tracker_batch.tasks.budget_check import BudgetCheckTask
from tracker_batch.tasks.goal_check import GoalCheckTask

logger = get_logger("batch.orchestrator")


def build_gateway(config: NotificationConfig) -> NotificationGateway:
    """Gateway for the configured backend (``smtp`` or ``log``)."""
    if config.backend == "smtp":
        return SmtpNotificationGateway(
            host=config.host,
            port=config.port,
            sender=config.sender,
            username=config.username,
            password=config.password,
            use_tls=config.use_tls,
            timeout=config.timeout,
        )
    if config.backend == "log":
        return LogNotificationGateway()
    raise ValueError(f"Unknown notification backend: {config.backend!r}")


class NotifierOrchestrator:
    """Wired tracker runtime.

    Non-goals:
        - Does NOT start the scheduler automatically -- caller decides.
    """

    def __init__(
        self,
        db: Database,
        gateway: NotificationGateway,
        config: TrackerConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config or TrackerConfig()
        self._db = db
        self._gateway = gateway
        self._clock = clock or SystemClock()
        self._tz = ZoneInfo(self._config.scheduler.timezone)
        self._goal_locks = KeyedLock("goal")

        self.ledger = LedgerStore(db, goal_locks=self._goal_locks)
        self.goals = GoalOrchestrator(db, goal_locks=self._goal_locks)
        self.budgets = BudgetOrchestrator(db)

        self._task_registry = TaskRegistry()
        self._task_registry.register(BudgetCheckTask(db, gateway, tz=self._tz))
        self._task_registry.register(GoalCheckTask(db, gateway, goal_locks=self._goal_locks))

        self._executor = ThresholdExecutor(self._task_registry, clock=self._clock)
        self._scheduler: JobScheduler | None = None

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: TrackerConfig,
        clock: Clock | None = None,
        gateway: NotificationGateway | None = None,
        create_schema: bool = False,
    ) -> NotifierOrchestrator:
        """Configure logging, open the database and wire everything.

        Args:
            gateway: Optional override of the configured gateway.
            create_schema: Create missing tables on open.
        """
        configure_logging(level=config.logging.level)

        db = Database(
            config.database.url,
            echo=config.database.echo,
            pool_size=config.database.pool_size,
            max_overflow=config.database.max_overflow,
            pool_timeout=config.database.pool_timeout,
            pool_recycle=config.database.pool_recycle,
        ).open(create_schema=create_schema)

        orchestrator = cls(
            db=db,
            gateway=gateway or build_gateway(config.notifications),
            config=config,
            clock=clock,
        )
        logger.info(
            "orchestrator_ready",
            extra={
                "config_checksum": config.checksum,
                "notification_backend": config.notifications.backend,
                "jobs": list(orchestrator.task_registry.list_jobs()),
            },
        )
        return orchestrator

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    @property
    def task_registry(self) -> TaskRegistry:
        return self._task_registry

    @property
    def executor(self) -> ThresholdExecutor:
        return self._executor

    @property
    def scheduler(self) -> JobScheduler:
        """The job scheduler, created on first access from the enabled jobs."""
        if self._scheduler is None:
            settings = self._config.scheduler
            self._scheduler = JobScheduler(
                self._executor,
                jobs={j.name: j.cron for j in settings.jobs if j.enabled},
                clock=self._clock,
                tz=self._tz,
                tick_interval_seconds=settings.tick_interval_seconds,
                max_workers=settings.max_workers,
            )
        return self._scheduler

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def db(self) -> Database:
        return self._db

    def close(self) -> None:
        """Stop the scheduler (if started) and dispose the database."""
        if self._scheduler is not None:
            self._scheduler.stop()
        self._db.close()
