"""
ThresholdExecutor -- runs one pass of a registered task with per-item isolation.

Contract:
    ``run(job_name)`` enumerates the task's items and evaluates each one.
    A failure in one item (failed delivery, database error, bug) is caught,
    logged and recorded; the pass continues with the next item.

Architecture: tracker_batch/services.  Imports from tracker_batch.domain,
    tracker_batch.tasks and the kernel's clock/logging/exceptions.

Invariants enforced:
    - Per-item failure isolation: no item can abort the pass.
    - All timestamps from the injected Clock.
    - Cooperative cancellation: the cancel event is checked between items;
      an item already in progress always finishes.
"""

from __future__ import annotations

import threading
import time
from uuid import uuid4

from tracker_kernel.domain.clock import Clock, SystemClock
from tracker_kernel.exceptions import NotificationDeliveryFailedError, TrackerError
from tracker_kernel.logging_config import LogContext, get_logger

from tracker_batch.domain.types import (
    ItemResult,
    ItemStatus,
    JobRunResult,
    JobRunStatus,
)
from tracker_batch.tasks.base import TaskRegistry

logger = get_logger("batch.executor")


class ThresholdExecutor:
    """Per-item isolating executor for threshold passes.

    Non-goals:
        - Does NOT guard against overlapping runs -- that is the
          scheduler's job.
        - Does NOT retry failed items.
    """

    def __init__(self, task_registry: TaskRegistry, clock: Clock | None = None):
        self._task_registry = task_registry
        self._clock = clock or SystemClock()

    @property
    def task_registry(self) -> TaskRegistry:
        return self._task_registry

    def run(
        self,
        job_name: str,
        cancel_event: threading.Event | None = None,
    ) -> JobRunResult:
        """Execute one pass of ``job_name``.

        Raises:
            JobNotRegisteredError: If job_name is not in the registry.
        """
        task = self._task_registry.get(job_name)
        run_id = uuid4()
        start_time = time.monotonic()
        started_at = self._clock.now()

        with LogContext.bind(job_name=job_name, run_id=run_id):
            logger.info("job_run_started", extra={"description": task.description})

            try:
                items = task.prepare_items(as_of=started_at)
            except Exception as exc:
                logger.exception("job_prepare_failed")
                return JobRunResult(
                    run_id=run_id,
                    job_name=job_name,
                    status=JobRunStatus.FAILED,
                    total_items=0,
                    sent=0,
                    no_alert=0,
                    failed=0,
                    started_at=started_at,
                    completed_at=self._clock.now(),
                    duration_ms=int((time.monotonic() - start_time) * 1000),
                    error_summary=f"prepare_items failed: {exc}",
                )

            results: list[ItemResult] = []
            cancelled = False

            for item in items:
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    logger.warning(
                        "job_run_cancelled",
                        extra={"processed": len(results), "total_items": len(items)},
                    )
                    break

                item_start = time.monotonic()
                try:
                    outcome = task.execute_item(item, as_of=started_at)
                    result = ItemResult(
                        item_index=item.item_index,
                        item_key=item.item_key,
                        status=outcome.status,
                        alert=outcome.alert,
                        error_code=outcome.error_code,
                        error_message=outcome.error_message,
                        result_data=outcome.result_data,
                        duration_ms=int((time.monotonic() - item_start) * 1000),
                    )
                except NotificationDeliveryFailedError as exc:
                    logger.warning(
                        "notification_delivery_failed",
                        extra={
                            "item_key": item.item_key,
                            "recipient": exc.recipient,
                            "subject": exc.subject,
                            "reason": exc.reason,
                        },
                    )
                    result = self._failed(item, exc.code, str(exc), item_start)
                except TrackerError as exc:
                    logger.warning(
                        "job_item_failed",
                        extra={"item_key": item.item_key, "error_code": exc.code},
                    )
                    result = self._failed(item, exc.code, str(exc), item_start)
                except Exception as exc:
                    logger.exception("job_item_crashed", extra={"item_key": item.item_key})
                    result = self._failed(item, "UNHANDLED_EXCEPTION", str(exc), item_start)

                results.append(result)

            sent = sum(1 for r in results if r.status == ItemStatus.SENT)
            no_alert = sum(1 for r in results if r.status == ItemStatus.NO_ALERT)
            failed = sum(1 for r in results if r.status == ItemStatus.FAILED)

            if cancelled:
                status = JobRunStatus.CANCELLED
            elif failed == 0:
                status = JobRunStatus.COMPLETED
            elif failed == len(results):
                status = JobRunStatus.FAILED
            else:
                status = JobRunStatus.PARTIALLY_COMPLETED

            completed_at = self._clock.now()
            duration_ms = int((time.monotonic() - start_time) * 1000)

            logger.info(
                "job_run_completed",
                extra={
                    "status": status.value,
                    "total_items": len(items),
                    "sent": sent,
                    "no_alert": no_alert,
                    "failed": failed,
                    "duration_ms": duration_ms,
                },
            )

            return JobRunResult(
                run_id=run_id,
                job_name=job_name,
                status=status,
                total_items=len(items),
                sent=sent,
                no_alert=no_alert,
                failed=failed,
                item_results=tuple(results),
                started_at=started_at,
                completed_at=completed_at,
                duration_ms=duration_ms,
                error_summary=f"{failed} item(s) failed" if failed else None,
            )

    @staticmethod
    def _failed(item, code: str, message: str, item_start: float) -> ItemResult:
        return ItemResult(
            item_index=item.item_index,
            item_key=item.item_key,
            status=ItemStatus.FAILED,
            error_code=code,
            error_message=message,
            duration_ms=int((time.monotonic() - item_start) * 1000),
        )
