"""Pure domain types and rules for the threshold jobs (ZERO I/O)."""

from tracker_batch.domain.schedule import CronSpec, next_fire_time, parse_cron
from tracker_batch.domain.thresholds import classify_budget, classify_goal
from tracker_batch.domain.types import (
    AlertKind,
    ItemResult,
    ItemStatus,
    JobRunResult,
    JobRunStatus,
    TaskOutcome,
    ThresholdItem,
)

__all__ = [
    "AlertKind",
    "CronSpec",
    "ItemResult",
    "ItemStatus",
    "JobRunResult",
    "JobRunStatus",
    "TaskOutcome",
    "ThresholdItem",
    "classify_budget",
    "classify_goal",
    "next_fire_time",
    "parse_cron",
]
