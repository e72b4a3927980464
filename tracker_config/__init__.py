"""
tracker_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or ``TRACKER_*`` environment variables directly.

Architecture position:
    Configuration -- a leaf package.  ``tracker_kernel`` MUST NEVER import
    from ``tracker_config``; ``tracker_batch.orchestrator`` translates the
    configuration into constructor arguments for kernel components.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ValueError`` -- schema or value validation failures.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from tracker_config.loader import load_config
from tracker_config.schema import (
    DatabaseConfig,
    JobScheduleConfig,
    LoggingConfig,
    NotificationConfig,
    SchedulerConfig,
    TrackerConfig,
)

_logger = logging.getLogger("tracker.config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_PATH_ENV = "TRACKER_CONFIG"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> TrackerConfig:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: ``path`` argument, then the
    ``TRACKER_CONFIG`` environment variable, then the bundled
    ``sets/default.yaml``.  ``TRACKER_*`` overrides are applied on top.
    """
    env = os.environ if environ is None else environ
    if path is None:
        path = env.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_FILE
    config_path = Path(path)

    config = load_config(config_path, env)

    _logger.info(
        "config_loaded",
        extra={
            "config_path": str(config_path),
            "checksum": config.checksum,
            "notification_backend": config.notifications.backend,
            "timezone": config.scheduler.timezone,
            "jobs": [j.name for j in config.scheduler.jobs if j.enabled],
        },
    )
    return config


__all__ = [
    "DatabaseConfig",
    "JobScheduleConfig",
    "LoggingConfig",
    "NotificationConfig",
    "SchedulerConfig",
    "TrackerConfig",
    "get_active_config",
]
