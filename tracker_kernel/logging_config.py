"""
Structured JSON logging for the tracker.

Every record leaves as one JSON object per line.  Ambient identifiers
(``job_name``, ``run_id``, ``user_id``, ``goal_id``, ``transaction_id``)
are held by :class:`LogContext` and stamped onto each record emitted while
they are bound, so a pass can be followed item by item without threading
ids through every call.

    with LogContext.bind(job_name="goal-check", run_id=run_id):
        with LogContext.bind(goal_id=goal.id):
            logger.info("goal_alert_sent", extra={"alert": "goal_achieved"})

    {"ts": "...", "level": "INFO", "logger": "tracker.batch.goal_check",
     "message": "goal_alert_sent", "job_name": "goal-check", "run_id": "...",
     "goal_id": "...", "alert": "goal_achieved"}
"""

__all__ = [
    "CONTEXT_FIELDS",
    "LOGGER_NAMESPACE",
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from types import MappingProxyType
from typing import Any, TextIO
from uuid import UUID

LOGGER_NAMESPACE = "tracker"

CONTEXT_FIELDS: frozenset[str] = frozenset(
    {"job_name", "run_id", "user_id", "goal_id", "transaction_id"}
)

_EMPTY: Mapping[str, str] = MappingProxyType({})
_bound: ContextVar[Mapping[str, str]] = ContextVar("tracker_log_context", default=_EMPTY)


def _with_fields(fields: Mapping[str, Any]) -> Mapping[str, str]:
    unknown = set(fields) - CONTEXT_FIELDS
    if unknown:
        raise ValueError(f"Unknown log context field(s): {sorted(unknown)}")
    merged = dict(_bound.get())
    merged.update((name, str(value)) for name, value in fields.items() if value is not None)
    return MappingProxyType(merged)


class LogContext:
    """Identifiers stamped onto every record of the current thread or task."""

    @staticmethod
    def set(**fields: Any) -> None:
        """Bind fields until :meth:`clear`.  ``None`` leaves a field as it was."""
        _bound.set(_with_fields(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_bound.get())

    @staticmethod
    def clear() -> None:
        _bound.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """
        Bind fields for the duration of a ``with`` block.

        Values are stringified (UUIDs may be passed as-is) and ``None`` values
        are skipped.  On exit the previous binding is restored exactly, even
        when the block raises.
        """
        token = _bound.set(_with_fields(fields))
        try:
            yield
        finally:
            _bound.reset(token)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else on a record came from extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}


def _to_json(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    # UUID, Decimal and anything else json cannot represent
    return str(value)


class StructuredFormatter(logging.Formatter):
    """
    Render a record as a single JSON line.

    Key order: envelope (``ts``, ``level``, ``logger``, ``message``), bound
    context, ``extra=`` fields, then error details.  A bound context field
    is never overwritten by an extra of the same name.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_bound.get(),
        }
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                payload.setdefault(name, value)
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._error_fields(record))
        return json.dumps(payload, default=_to_json)

    def _error_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        error = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(error).__name__,
            "exc_message": str(error),
        }
        code = getattr(error, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # TrackerError subclasses keep their ids as public instance attributes
        fields.update(
            (f"exc_{name}", value)
            for name, value in vars(error).items()
            if not name.startswith("_") and name != "code"
        )
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """``get_logger("batch.executor")`` -> the ``tracker.batch.executor`` logger."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_setup_lock = threading.Lock()
_installed: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """
    Install the JSON handler on the ``tracker`` logger and return it.

    ``handler`` wins over ``stream``; with neither, records go to stderr.
    Only the first call installs anything.  Until :func:`reset_logging`,
    later calls return the handler already in place and ignore their
    arguments.
    """
    global _installed
    with _setup_lock:
        if _installed is not None:
            return _installed
        installed = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        installed.setFormatter(StructuredFormatter())
        namespace = logging.getLogger(LOGGER_NAMESPACE)
        namespace.setLevel(level)
        namespace.propagate = False
        namespace.addHandler(installed)
        _installed = installed
        return installed


def reset_logging() -> None:
    """Remove the installed handler so the next configure takes effect.  Tests only."""
    global _installed
    with _setup_lock:
        namespace = logging.getLogger(LOGGER_NAMESPACE)
        if _installed is not None:
            namespace.removeHandler(_installed)
            _installed = None
        namespace.setLevel(logging.NOTSET)
        namespace.propagate = True
