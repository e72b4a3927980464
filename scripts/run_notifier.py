#!/usr/bin/env python3
"""
Operate the tracker: create the schema, run a threshold pass, or serve the scheduler.

Configuration comes from get_active_config(): the --config file, else
TRACKER_CONFIG, else the bundled default set; TRACKER_* variables override.

Usage:
    python3 scripts/run_notifier.py [--config PATH] <command> [options]

Examples:
    # Create missing tables
    python3 scripts/run_notifier.py init-db

    # Run one pass now and print its summary
    python3 scripts/run_notifier.py run-job budget-check

    # Run the cron scheduler until interrupted
    python3 scripts/run_notifier.py serve
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ledger threshold notifier: init-db, run-job, serve.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: TRACKER_CONFIG or the bundled set).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create missing tables and exit.")

    run = sub.add_parser("run-job", help="Run one threshold pass synchronously.")
    run.add_argument("job", help="Job name (budget-check or goal-check).")

    serve = sub.add_parser("serve", help="Run the scheduler until SIGINT/SIGTERM.")
    serve.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables before starting.",
    )
    return parser.parse_args()


def _init_db(orchestrator) -> int:
    print(f"Schema ready on {orchestrator.db.dialect_name}.")
    return 0


def _run_job(orchestrator, job: str) -> int:
    from tracker_batch.domain.types import JobRunStatus
    from tracker_kernel.exceptions import JobError

    try:
        result = orchestrator.scheduler.run_job(job)
    except JobError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(f"{result.job_name}: {result.status.value}")
    print(f"  Items: {result.total_items}, Sent: {result.sent}, "
          f"No alert: {result.no_alert}, Failed: {result.failed}")
    for item in result.item_results:
        if item.error_code:
            print(f"  {item.item_key}: {item.error_code} {item.error_message}")
    if result.error_summary:
        print(f"  {result.error_summary}")
    return 0 if result.status == JobRunStatus.COMPLETED else 1


def _serve(orchestrator) -> int:
    stop = threading.Event()

    def _handle(signum, frame):
        stop.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)

    scheduler = orchestrator.scheduler
    scheduler.start()
    for name in scheduler.job_names:
        print(f"  {name}: next run {scheduler.next_fire_at(name).isoformat()}")
    print("Scheduler running. Press Ctrl+C to stop.")

    stop.wait()
    print("Stopping...")
    scheduler.stop(cancel_running=True)
    return 0


def main() -> int:
    args = _parse_args()

    # Lazy imports so we fail fast on args first
    from tracker_batch.orchestrator import NotifierOrchestrator
    from tracker_config import get_active_config

    try:
        config = get_active_config(args.config)
    except (OSError, ValueError) as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1

    create_schema = args.command == "init-db" or getattr(args, "create_schema", False)
    try:
        orchestrator = NotifierOrchestrator.from_config(config, create_schema=create_schema)
    except Exception as e:
        print(f"ERROR: Database init failed: {e}", file=sys.stderr)
        return 1

    try:
        if args.command == "init-db":
            return _init_db(orchestrator)
        if args.command == "run-job":
            return _run_job(orchestrator, args.job)
        return _serve(orchestrator)
    finally:
        orchestrator.close()


if __name__ == "__main__":
    sys.exit(main())
