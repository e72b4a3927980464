"""
Pytest fixtures for the tracker test suite.

Provides:
- A file-backed SQLite Database per test (safe across threads)
- The ledger/goal/budget entry points sharing one goal lock table
- Deterministic clock, recording notification gateway, log capture
- An in-memory GoalRepository for exercising GoalTracker without a database
"""

import json
import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest

from tracker_kernel.db.engine import Database
from tracker_kernel.domain.clock import DeterministicClock
from tracker_kernel.domain.dtos import (
    GoalInput,
    GoalRecord,
    GoalStatus,
    TransactionInput,
    TransactionType,
)
from tracker_kernel.exceptions import ConcurrentUpdateConflictError, GoalNotFoundError
from tracker_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tracker_kernel.services.budget_service import BudgetOrchestrator
from tracker_kernel.services.goal_service import GoalOrchestrator
from tracker_kernel.services.ledger_store import LedgerStore
from tracker_kernel.services.user_service import UserService
from tracker_kernel.utils.keyed_lock import KeyedLock

from tracker_batch.notifications.gateway import DeliveryResult


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture tracker logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.create(...)
            logs = captured_logs()
            assert any(r["message"] == "transaction_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("tracker")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database and entry points
# =============================================================================


@pytest.fixture
def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'tracker.db'}").open(create_schema=True)
    yield database
    database.close()


@pytest.fixture
def goal_locks():
    return KeyedLock("goal")


@pytest.fixture
def ledger(db, goal_locks):
    return LedgerStore(db, goal_locks=goal_locks)


@pytest.fixture
def goals(db, goal_locks):
    return GoalOrchestrator(db, goal_locks=goal_locks)


@pytest.fixture
def budgets(db):
    return BudgetOrchestrator(db)


@pytest.fixture
def clock():
    # 12:00 in New York
    return DeterministicClock(datetime(2025, 6, 15, 16, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_user(db):
    counter = iter(range(1, 1000))

    def _make(name: str | None = None, email: str | None = None):
        n = next(counter)
        with db.session_scope() as session:
            return UserService(session).create_user(
                name or f"User {n}", email or f"user{n}@example.com"
            )

    return _make


@pytest.fixture
def user(make_user):
    return make_user("Ada", "ada@example.com")


@pytest.fixture
def other_user(make_user):
    return make_user("Grace", "grace@example.com")


@pytest.fixture
def make_goal(goals):
    def _make(user_id: UUID, target: str = "1000.00", name: str = "Emergency fund"):
        return goals.create_goal(
            user_id,
            GoalInput(
                name=name,
                target_amount=Decimal(target),
                category="savings",
                deadline=date(2025, 12, 31),
            ),
        )

    return _make


@pytest.fixture
def make_income(ledger):
    def _make(user_id: UUID, amount: int, goal_id: UUID | None = None, on: date = date(2025, 6, 10)):
        return ledger.create(
            user_id,
            TransactionInput(
                amount=amount,
                type=TransactionType.INCOME,
                category="salary",
                date=on,
                goal_id=goal_id,
            ),
        )

    return _make


@pytest.fixture
def make_expense(ledger):
    def _make(user_id: UUID, amount: int, category: str = "food", on: date = date(2025, 6, 10)):
        return ledger.create(
            user_id,
            TransactionInput(
                amount=amount,
                type=TransactionType.EXPENSE,
                category=category,
                date=on,
            ),
        )

    return _make


# =============================================================================
# Notification gateway
# =============================================================================


class RecordingGateway:
    """Collects sent alerts; recipients in ``failing`` get a failed result."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.failing: set[str] = set()
        self.raising: set[str] = set()

    def send(self, to: str, subject: str, body: str) -> DeliveryResult:
        if to in self.raising:
            raise RuntimeError(f"transport exploded for {to}")
        if to in self.failing:
            return DeliveryResult.failed("mailbox unavailable")
        self.sent.append((to, subject, body))
        return DeliveryResult.ok()

    @property
    def subjects(self) -> list[str]:
        return [subject for _, subject, _ in self.sent]


@pytest.fixture
def gateway():
    return RecordingGateway()


# =============================================================================
# In-memory goal repository
# =============================================================================


class InMemoryGoalRepository:
    """GoalRepository backed by a dict, with the same compare-and-set rule."""

    def __init__(self, *goals: GoalRecord):
        self.goals: dict[UUID, GoalRecord] = {g.id: g for g in goals}

    def get(self, goal_id: UUID, *, for_update: bool = False) -> GoalRecord | None:
        return self.goals.get(goal_id)

    def save(self, goal: GoalRecord) -> GoalRecord:
        stored = self.goals.get(goal.id)
        if stored is None:
            raise GoalNotFoundError(str(goal.id))
        if stored.version != goal.version:
            raise ConcurrentUpdateConflictError("goal", str(goal.id))
        saved = replace(goal, version=goal.version + 1)
        self.goals[goal.id] = saved
        return saved


@pytest.fixture
def goal_record():
    """Factory for detached GoalRecord values."""

    def _make(
        target: str = "1000.00",
        current: str = "0.00",
        status=None,
        **overrides,
    ) -> GoalRecord:
        return GoalRecord(
            id=overrides.pop("id", uuid4()),
            user_id=overrides.pop("user_id", uuid4()),
            name=overrides.pop("name", "Trip"),
            target_amount=Decimal(target),
            current_amount=Decimal(current),
            category="travel",
            deadline=date(2025, 12, 31),
            status=status or GoalStatus.ACTIVE,
            **overrides,
        )

    return _make


@pytest.fixture
def memory_repo():
    return InMemoryGoalRepository
