"""
Typed Exception Hierarchy for the Tracker Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP controllers, the batch executor, the CLI) must react to
failures by TYPE, not by parsing messages.  Every exception carries:

  1. A typed class (catch by type)
  2. A ``code`` class attribute (machine-readable, API-safe)
  3. Structured attributes (ids, keys) that survive logging/serialization

Example:
    try:
        ledger.amend(user_id, transaction_id, patch)
    except NotFoundError as e:
        return {"error": e.code, "entity": e.entity_type, "id": e.entity_id}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TrackerError (base)
    |
    +-- NotFoundError
    |   +-- TransactionNotFoundError
    |   +-- GoalNotFoundError
    |   +-- BudgetNotFoundError
    |   +-- UserNotFoundError
    |
    +-- DuplicateBudgetError
    |
    +-- InvalidGoalTransitionError
    |
    +-- ConcurrencyError
    |   +-- ConcurrentUpdateConflictError
    |   +-- StaleGoalLinkError
    |
    +-- NotificationError
    |   +-- NotificationDeliveryFailedError
    |
    +-- JobError
        +-- JobNotRegisteredError
        +-- JobAlreadyRunningError

===============================================================================
PROPAGATION
===============================================================================

NotFound / DuplicateBudget / ConcurrentUpdateConflict surface to the caller
of the mutating operation.  The surrounding ``session_scope()`` rolls back
the whole unit of work (transaction row AND goal adjustment), so no partial
state is ever committed.

NotificationDeliveryFailedError is raised inside a threshold task for one
entity and caught by the executor at that entity's granularity.  It never
aborts the enclosing pass.
===============================================================================
"""


class TrackerError(Exception):
    """
    Base exception for all tracker errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TRACKER_ERROR"


# Not-found exceptions


class NotFoundError(TrackerError):
    """Entity is absent or not owned by the caller."""

    code: str = "NOT_FOUND"
    entity_type: str = "entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type.capitalize()} not found: {entity_id}")


class TransactionNotFoundError(NotFoundError):
    code: str = "TRANSACTION_NOT_FOUND"
    entity_type: str = "transaction"


class GoalNotFoundError(NotFoundError):
    code: str = "GOAL_NOT_FOUND"
    entity_type: str = "goal"


class BudgetNotFoundError(NotFoundError):
    code: str = "BUDGET_NOT_FOUND"
    entity_type: str = "budget"


class UserNotFoundError(NotFoundError):
    code: str = "USER_NOT_FOUND"
    entity_type: str = "user"


# Budget uniqueness


class DuplicateBudgetError(TrackerError):
    """A budget already exists for (user, category, month, year)."""

    code: str = "DUPLICATE_BUDGET"

    def __init__(self, user_id: str, category: str, month: int, year: int):
        self.user_id = user_id
        self.category = category
        self.month = month
        self.year = year
        super().__init__(
            f"Budget already exists for {category} {month:02d}/{year}"
        )


# Goal lifecycle


class InvalidGoalTransitionError(TrackerError):
    """Requested goal status change is not allowed."""

    code: str = "INVALID_GOAL_TRANSITION"

    def __init__(self, goal_id: str, from_status: str, to_status: str):
        self.goal_id = goal_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Goal {goal_id} cannot move from {from_status} to {to_status}"
        )


# Concurrency


class ConcurrencyError(TrackerError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrentUpdateConflictError(ConcurrencyError):
    """Lost update detected on a guarded record."""

    code: str = "CONCURRENT_UPDATE_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Concurrent update conflict on {entity_type} {entity_id}: "
            "record was modified by another transaction"
        )


class StaleGoalLinkError(ConcurrencyError):
    """A transaction's goal link moved after its goal locks were taken.

    Raised inside the unit of work and retried by LedgerStore; it reaches
    callers as ConcurrentUpdateConflictError once retries run out.
    """

    code: str = "STALE_GOAL_LINK"

    def __init__(self, transaction_id: str, goal_ids: tuple[str, ...]):
        self.transaction_id = transaction_id
        self.goal_ids = goal_ids
        super().__init__(
            f"Transaction {transaction_id} now touches unlocked goals {list(goal_ids)}"
        )


# Notifications


class NotificationError(TrackerError):
    """Base exception for outbound notification errors."""

    code: str = "NOTIFICATION_ERROR"


class NotificationDeliveryFailedError(NotificationError):
    """Gateway reported a failed send (non-fatal for the pass)."""

    code: str = "NOTIFICATION_DELIVERY_FAILED"

    def __init__(self, recipient: str, subject: str, reason: str | None = None):
        self.recipient = recipient
        self.subject = subject
        self.reason = reason
        super().__init__(
            f"Delivery of '{subject}' to {recipient} failed: {reason or 'unknown'}"
        )


# Scheduled jobs


class JobError(TrackerError):
    """Base exception for scheduled job errors."""

    code: str = "JOB_ERROR"


class JobNotRegisteredError(JobError):
    code: str = "JOB_NOT_REGISTERED"

    def __init__(self, job_name: str, available: tuple[str, ...] = ()):
        self.job_name = job_name
        self.available = available
        super().__init__(
            f"No job registered as '{job_name}'. Available: {list(available)}"
        )


class JobAlreadyRunningError(JobError):
    """A run of the same job is still in flight."""

    code: str = "JOB_ALREADY_RUNNING"

    def __init__(self, job_name: str):
        self.job_name = job_name
        super().__init__(f"Job '{job_name}' is already running")
