"""Threshold job execution and scheduling."""

from tracker_batch.services.executor import ThresholdExecutor
from tracker_batch.services.scheduler import JobScheduler

__all__ = [
    "JobScheduler",
    "ThresholdExecutor",
]
