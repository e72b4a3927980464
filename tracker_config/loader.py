"""
Configuration Loader (``tracker_config.loader``).

Responsibility
--------------
Reads a YAML configuration file, parses it into the frozen dataclasses of
``tracker_config.schema``, and applies environment-variable overrides for
endpoints and secrets.  Callers use ``tracker_config.get_active_config()``;
the functions here are exposed for tests and tooling.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Unknown top-level sections and unknown keys raise ``ValueError``, so a
  typo in a YAML file never silently falls back to a default.
* ``compute_checksum`` is deterministic and never includes the SMTP
  password.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values (backend, port, timezone, job list)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import os
from collections.abc import Mapping
from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from tracker_config.schema import (
    DEFAULT_JOBS,
    NOTIFICATION_BACKENDS,
    DatabaseConfig,
    JobScheduleConfig,
    LoggingConfig,
    NotificationConfig,
    SchedulerConfig,
    TrackerConfig,
)

# Environment variable -> (section, key, converter)
ENV_OVERRIDES: dict[str, tuple[str, str, Any]] = {
    "TRACKER_DATABASE_URL": ("database", "url", str),
    "TRACKER_SMTP_HOST": ("notifications", "host", str),
    "TRACKER_SMTP_PORT": ("notifications", "port", int),
    "TRACKER_SMTP_USERNAME": ("notifications", "username", str),
    "TRACKER_SMTP_PASSWORD": ("notifications", "password", str),
    "TRACKER_SMTP_SENDER": ("notifications", "sender", str),
    "TRACKER_NOTIFICATION_BACKEND": ("notifications", "backend", str),
    "TRACKER_TIMEZONE": ("scheduler", "timezone", str),
    "TRACKER_LOG_LEVEL": ("logging", "level", str),
}

_SECTIONS = ("database", "notifications", "scheduler", "logging")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _known_keys(cls: type, data: Mapping[str, Any], section: str) -> dict[str, Any]:
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown keys in '{section}': {unknown}")
    return dict(data)


def parse_database(data: Mapping[str, Any]) -> DatabaseConfig:
    return DatabaseConfig(**_known_keys(DatabaseConfig, data, "database"))


def parse_notifications(data: Mapping[str, Any]) -> NotificationConfig:
    config = NotificationConfig(**_known_keys(NotificationConfig, data, "notifications"))
    return _validate_notifications(config)


def _validate_notifications(config: NotificationConfig) -> NotificationConfig:
    if config.backend not in NOTIFICATION_BACKENDS:
        raise ValueError(
            f"notifications.backend must be one of {NOTIFICATION_BACKENDS}, "
            f"got {config.backend!r}"
        )
    if not 0 < int(config.port) < 65536:
        raise ValueError(f"notifications.port out of range: {config.port}")
    return config


def parse_job(data: Mapping[str, Any]) -> JobScheduleConfig:
    """
    Raises:
        KeyError: if ``name`` or ``cron`` is missing.
    """
    return JobScheduleConfig(
        name=data["name"],
        cron=str(data["cron"]),
        enabled=bool(data.get("enabled", True)),
    )


def parse_scheduler(data: Mapping[str, Any]) -> SchedulerConfig:
    data = dict(_known_keys(SchedulerConfig, data, "scheduler"))
    jobs_data = data.pop("jobs", None)
    jobs = tuple(parse_job(j) for j in jobs_data) if jobs_data is not None else DEFAULT_JOBS

    names = [j.name for j in jobs]
    if len(names) != len(set(names)):
        raise ValueError(f"Duplicate job names in scheduler.jobs: {names}")

    return _validate_scheduler(SchedulerConfig(jobs=jobs, **data))


def _validate_scheduler(config: SchedulerConfig) -> SchedulerConfig:
    try:
        ZoneInfo(config.timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown scheduler.timezone: {config.timezone!r}") from exc
    if config.tick_interval_seconds <= 0:
        raise ValueError("scheduler.tick_interval_seconds must be positive")
    if config.max_workers < 1:
        raise ValueError("scheduler.max_workers must be at least 1")
    return config


def parse_logging(data: Mapping[str, Any]) -> LoggingConfig:
    config = LoggingConfig(**_known_keys(LoggingConfig, data, "logging"))
    return replace(config, level=str(config.level).upper())


def parse_config(data: Mapping[str, Any]) -> TrackerConfig:
    """Parse a complete configuration document (sections are optional)."""
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration sections: {unknown}")

    return TrackerConfig(
        database=parse_database(data.get("database") or {}),
        notifications=parse_notifications(data.get("notifications") or {}),
        scheduler=parse_scheduler(data.get("scheduler") or {}),
        logging=parse_logging(data.get("logging") or {}),
    )


def apply_env_overrides(
    config: TrackerConfig,
    environ: Mapping[str, str] | None = None,
) -> TrackerConfig:
    """Overlay ``TRACKER_*`` environment variables onto ``config``."""
    environ = os.environ if environ is None else environ

    sections: dict[str, dict[str, Any]] = {}
    for var, (section, key, convert) in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            sections.setdefault(section, {})[key] = convert(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid value for {var}: {raw!r}") from exc

    if not sections:
        return config

    updated = config
    for section, values in sections.items():
        updated = replace(updated, **{section: replace(getattr(updated, section), **values)})

    return replace(
        updated,
        notifications=_validate_notifications(updated.notifications),
        scheduler=_validate_scheduler(updated.scheduler),
        logging=replace(updated.logging, level=updated.logging.level.upper()),
    )


def compute_checksum(config: TrackerConfig) -> str:
    """SHA-256 over the canonical JSON form, password and checksum excluded."""
    data = asdict(config)
    data.pop("checksum", None)
    data["notifications"].pop("password", None)
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def load_config(
    path: Path,
    environ: Mapping[str, str] | None = None,
) -> TrackerConfig:
    """Load ``path``, apply environment overrides and stamp the checksum."""
    config = apply_env_overrides(parse_config(load_yaml_file(path)), environ)
    return replace(config, checksum=compute_checksum(config))
