"""
Pure schedule evaluation functions.

Contract:
    ``parse_cron``, ``matches_cron`` and ``next_fire_time`` are PURE -- no
    I/O and no clock reads.  The scheduler passes in the current time from
    its injected Clock.

Cron expressions are evaluated in local wall-clock time of the configured
zone ("0 8 * * *" in America/New_York is 08:00 New York time on both sides
of a DST change).  Fire times are returned as UTC-aware datetimes.

Architecture: tracker_batch/domain.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo


# =============================================================================
# CronSpec (lightweight cron parser)
# =============================================================================


@dataclass(frozen=True)
class CronSpec:
    """Parsed cron expression (minute hour day_of_month month day_of_week).

    Each field is a frozenset of valid integer values.
    Supports: *, values, lists, ranges (1-5), steps (*/5, 1-10/2).
    """

    minutes: frozenset[int] = field(default_factory=lambda: frozenset(range(60)))
    hours: frozenset[int] = field(default_factory=lambda: frozenset(range(24)))
    days_of_month: frozenset[int] = field(default_factory=lambda: frozenset(range(1, 32)))
    months: frozenset[int] = field(default_factory=lambda: frozenset(range(1, 13)))
    days_of_week: frozenset[int] = field(default_factory=lambda: frozenset(range(7)))


def _parse_int(text: str, min_val: int, max_val: int) -> int:
    try:
        v = int(text)
    except ValueError:
        raise ValueError(f"Not a number: {text!r}") from None
    if v < min_val or v > max_val:
        raise ValueError(f"Value {v} outside range [{min_val}, {max_val}]")
    return v


def _parse_cron_field(field_str: str, min_val: int, max_val: int) -> frozenset[int]:
    """Parse a single cron field into a frozenset of valid values.

    Raises:
        ValueError: If the field is syntactically invalid or values out of range.
    """
    values: set[int] = set()

    for part in field_str.split(","):
        part = part.strip()
        if not part:
            raise ValueError(f"Empty element in cron field {field_str!r}")

        step = 1
        if "/" in part:
            part, step_str = part.split("/", 1)
            step = _parse_int(step_str, 1, max_val)

        if part == "*":
            start, end = min_val, max_val
        elif "-" in part:
            s, e = part.split("-", 1)
            start, end = _parse_int(s, min_val, max_val), _parse_int(e, min_val, max_val)
            if start > end:
                raise ValueError(f"Range start > end: {start}-{end}")
        else:
            start = _parse_int(part, min_val, max_val)
            # "N/S" means from N to the end of the range
            end = max_val if step > 1 else start

        values.update(range(start, end + 1, step))

    return frozenset(values)


def parse_cron(expression: str) -> CronSpec:
    """Parse a 5-field cron expression into a CronSpec.

    Format: ``minute hour day_of_month month day_of_week``

    Raises:
        ValueError: If expression is malformed.
    """
    parts = expression.strip().split()
    if len(parts) != 5:
        raise ValueError(
            f"Cron expression must have 5 fields, got {len(parts)}: '{expression}'"
        )

    return CronSpec(
        minutes=_parse_cron_field(parts[0], 0, 59),
        hours=_parse_cron_field(parts[1], 0, 23),
        days_of_month=_parse_cron_field(parts[2], 1, 31),
        months=_parse_cron_field(parts[3], 1, 12),
        days_of_week=_parse_cron_field(parts[4], 0, 6),
    )


def matches_cron(spec: CronSpec, dt: datetime) -> bool:
    """Check if a (local) datetime matches a cron spec.

    Cron convention: 0=Sunday, 1=Monday, ..., 6=Saturday.
    Python datetime.weekday(): 0=Monday, ..., 6=Sunday.
    """
    cron_dow = (dt.weekday() + 1) % 7
    return (
        dt.minute in spec.minutes
        and dt.hour in spec.hours
        and dt.day in spec.days_of_month
        and dt.month in spec.months
        and cron_dow in spec.days_of_week
    )


# =============================================================================
# Fire-time computation (pure)
# =============================================================================

_MAX_SCAN_MINUTES = 366 * 24 * 60


def next_fire_time(spec: CronSpec, after: datetime, tz: tzinfo) -> datetime:
    """First minute strictly after ``after`` whose local time in ``tz`` matches.

    Scans UTC minute by minute and tests the local wall-clock time, so
    skipped DST hours never match.  Bounded to 366 days.

    Raises:
        ValueError: If ``after`` is naive or no match exists within 366 days.
    """
    if after.tzinfo is None:
        raise ValueError("after must be timezone-aware")

    candidate = after.astimezone(timezone.utc).replace(second=0, microsecond=0)
    candidate += timedelta(minutes=1)

    for _ in range(_MAX_SCAN_MINUTES):
        if matches_cron(spec, candidate.astimezone(tz)):
            return candidate
        candidate += timedelta(minutes=1)

    raise ValueError(f"No cron match found within 366 days after {after}")


def is_due(next_fire_at: datetime | None, now: datetime) -> bool:
    return next_fire_at is not None and now >= next_fire_at
