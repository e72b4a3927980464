"""
tracker_batch.domain.types -- Pure frozen dataclasses for the threshold jobs.

ZERO I/O.  Enum status fields and tuples for immutable collections.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


# =============================================================================
# Status enums
# =============================================================================


class AlertKind(str, Enum):
    BUDGET_EXCEEDED = "budget_exceeded"
    BUDGET_WARNING = "budget_warning"
    GOAL_ACHIEVED = "goal_achieved"
    GOAL_MILESTONE = "goal_milestone"


class JobRunStatus(str, Enum):
    """Outcome of one threshold pass."""

    COMPLETED = "completed"  # Every item evaluated without failure
    PARTIALLY_COMPLETED = "partially_completed"  # Some items failed
    FAILED = "failed"  # Could not enumerate items, or every item failed
    CANCELLED = "cancelled"  # Stopped between items on request


class ItemStatus(str, Enum):
    """Per-entity outcome within a pass."""

    SENT = "sent"  # Alert delivered
    NO_ALERT = "no_alert"  # Below thresholds, or already announced
    FAILED = "failed"  # Delivery failed or evaluation raised


# =============================================================================
# Items
# =============================================================================


@dataclass(frozen=True)
class ThresholdItem:
    """One entity (budget or goal) to evaluate in a pass.

    Created by ``ThresholdTask.prepare_items()``.
    """

    item_index: int
    item_key: str
    entity_id: UUID
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TaskOutcome:
    """Returned by ``ThresholdTask.execute_item()``."""

    status: ItemStatus
    alert: AlertKind | None = None
    result_data: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class ItemResult:
    """Executor's record of one evaluated item."""

    item_index: int
    item_key: str
    status: ItemStatus
    alert: AlertKind | None = None
    error_code: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class JobRunResult:
    """Result of one complete pass, returned by ``ThresholdExecutor.run()``."""

    run_id: UUID
    job_name: str
    status: JobRunStatus
    total_items: int
    sent: int
    no_alert: int
    failed: int
    item_results: tuple[ItemResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    error_summary: str | None = None

    @property
    def alerts(self) -> tuple[AlertKind, ...]:
        """Kinds of the alerts actually delivered, in item order."""
        return tuple(
            r.alert for r in self.item_results
            if r.status == ItemStatus.SENT and r.alert is not None
        )
