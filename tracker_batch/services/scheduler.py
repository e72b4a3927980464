"""
JobScheduler -- named, independently triggerable jobs on cron triggers.

Contract:
    - ``run_job(name)`` runs one pass synchronously in the caller's thread
      and returns its JobRunResult.  Raises JobAlreadyRunningError if a
      run of the same job is in flight.
    - ``tick()`` fires every job whose next fire time has passed, on a
      small worker pool so one slow job does not delay the other.  A job
      still running from its previous trigger is skipped (and logged).
    - ``start()`` / ``stop()`` run ``tick()`` on a background thread.
    - ``cancel(name)`` asks an in-flight run to stop between items.

Architecture: tracker_batch/services.  Uses tracker_batch.domain.schedule
    for pure fire-time computation and ThresholdExecutor for execution.

Invariants enforced:
    - No overlapping runs of the same job (per-job non-blocking lock).
    - All timestamps from the injected Clock; cron evaluated in the
      configured timezone.
    - Missed triggers are not replayed: after a fire the next trigger is
      computed from "now".

Non-goals:
    - NOT a distributed scheduler (no leader election).
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from tracker_kernel.domain.clock import Clock, SystemClock
from tracker_kernel.exceptions import JobAlreadyRunningError, JobNotRegisteredError
from tracker_kernel.logging_config import get_logger

from tracker_batch.domain.schedule import CronSpec, is_due, next_fire_time, parse_cron
from tracker_batch.domain.types import JobRunResult
from tracker_batch.services.executor import ThresholdExecutor

logger = get_logger("batch.scheduler")


@dataclass
class _JobSlot:
    name: str
    cron: str
    spec: CronSpec
    next_fire_at: datetime | None
    running: threading.Lock = field(default_factory=threading.Lock)
    cancel_event: threading.Event = field(default_factory=threading.Event)


class JobScheduler:
    """In-process scheduler for the threshold jobs."""

    def __init__(
        self,
        executor: ThresholdExecutor,
        jobs: dict[str, str],
        clock: Clock | None = None,
        tz: tzinfo | None = None,
        tick_interval_seconds: float = 30.0,
        max_workers: int = 2,
    ):
        """
        Args:
            executor: Runs one pass of a registered task.
            jobs: job name -> 5-field cron expression (local time in ``tz``).

        Raises:
            JobNotRegisteredError: If a job has no registered task.
            ValueError: If a cron expression is malformed.
        """
        self._executor = executor
        self._clock = clock or SystemClock()
        self._tz = tz or ZoneInfo("America/New_York")
        self._tick_interval = tick_interval_seconds
        self._max_workers = max_workers
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._pool: ThreadPoolExecutor | None = None
        self._pool_guard = threading.Lock()

        registry = executor.task_registry
        now = self._clock.now()
        self._slots: dict[str, _JobSlot] = {}
        for name, cron in jobs.items():
            if name not in registry:
                raise JobNotRegisteredError(name, registry.list_jobs())
            spec = parse_cron(cron)
            self._slots[name] = _JobSlot(
                name=name,
                cron=cron,
                spec=spec,
                next_fire_at=next_fire_time(spec, now, self._tz),
            )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def job_names(self) -> tuple[str, ...]:
        return tuple(self._slots)

    def next_fire_at(self, name: str) -> datetime | None:
        return self._slot(name).next_fire_at

    def is_job_running(self, name: str) -> bool:
        return self._slot(name).running.locked()

    def run_job(self, name: str) -> JobRunResult:
        """Run one pass of ``name`` now, in this thread.

        Raises:
            JobNotRegisteredError: Unknown job.
            JobAlreadyRunningError: A run of this job is still in flight.
        """
        slot = self._slot(name)
        if not slot.running.acquire(blocking=False):
            raise JobAlreadyRunningError(name)
        return self._run_locked(slot)

    def cancel(self, name: str) -> bool:
        """Request cancellation of an in-flight run; False if none is running."""
        slot = self._slot(name)
        if not slot.running.locked():
            return False
        slot.cancel_event.set()
        logger.info("job_cancel_requested", extra={"job_name": name})
        return True

    def tick(self) -> dict[str, Future[JobRunResult]]:
        """Fire due jobs on the worker pool (public for testing).

        Returns the futures of the runs started by this tick, by job name.
        """
        now = self._clock.now()
        started: dict[str, Future[JobRunResult]] = {}

        for slot in self._slots.values():
            if self._stop_event.is_set():
                break
            if not is_due(slot.next_fire_at, now):
                continue

            slot.next_fire_at = next_fire_time(slot.spec, now, self._tz)

            if not slot.running.acquire(blocking=False):
                logger.warning(
                    "job_run_skipped_overlap",
                    extra={"job_name": slot.name, "next_fire_at": slot.next_fire_at},
                )
                continue

            try:
                started[slot.name] = self._ensure_pool().submit(self._run_locked, slot)
            except RuntimeError:
                slot.running.release()
                logger.exception("job_submit_failed", extra={"job_name": slot.name})
                continue

            logger.info(
                "job_fired",
                extra={"job_name": slot.name, "next_fire_at": slot.next_fire_at},
            )

        return started

    def start(self) -> None:
        """Start ticking on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="tracker-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "scheduler_started",
            extra={
                "tick_interval": self._tick_interval,
                "timezone": str(self._tz),
                "jobs": {s.name: s.cron for s in self._slots.values()},
            },
        )

    def stop(self, timeout: float = 30.0, cancel_running: bool = False) -> None:
        """Stop ticking, optionally cancel in-flight runs, and wait for them."""
        self._stop_event.set()
        if cancel_running:
            for slot in self._slots.values():
                if slot.running.locked():
                    slot.cancel_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        with self._pool_guard:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=True)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _slot(self, name: str) -> _JobSlot:
        try:
            return self._slots[name]
        except KeyError:
            raise JobNotRegisteredError(name, tuple(self._slots)) from None

    def _ensure_pool(self) -> ThreadPoolExecutor:
        with self._pool_guard:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="tracker-job",
                )
            return self._pool

    def _run_locked(self, slot: _JobSlot) -> JobRunResult:
        """Run a pass; the caller has acquired ``slot.running``."""
        slot.cancel_event.clear()
        try:
            return self._executor.run(slot.name, cancel_event=slot.cancel_event)
        finally:
            slot.cancel_event.clear()
            slot.running.release()

    def _run_loop(self) -> None:
        """Background polling loop. Exits when stop_event is set."""
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("scheduler_tick_exception")
            self._stop_event.wait(timeout=self._tick_interval)
