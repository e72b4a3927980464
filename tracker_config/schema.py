"""
Runtime configuration schema.

Frozen dataclasses parsed from YAML by ``tracker_config.loader``.  Defaults
here match ``sets/default.yaml`` so a partial YAML file is still a complete
configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///tracker.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 1800


# ---------------------------------------------------------------------------
# Outbound notifications
# ---------------------------------------------------------------------------


NOTIFICATION_BACKENDS = ("smtp", "log")


@dataclass(frozen=True)
class NotificationConfig:
    """Notification gateway settings.

    ``backend="log"`` writes alerts to the log instead of sending mail.
    """

    backend: str = "log"
    host: str = "localhost"
    port: int = 587
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    sender: str = "Finance Manager <noreply@finance-manager.local>"
    use_tls: bool = True
    timeout: float = 10.0


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class JobScheduleConfig:
    """Cron trigger for one named job (5-field cron, local time)."""

    name: str
    cron: str
    enabled: bool = True


DEFAULT_JOBS: tuple[JobScheduleConfig, ...] = (
    JobScheduleConfig(name="budget-check", cron="0 8 * * *"),
    JobScheduleConfig(name="goal-check", cron="0 9 * * *"),
)


@dataclass(frozen=True)
class SchedulerConfig:
    timezone: str = "America/New_York"
    tick_interval_seconds: float = 30.0
    max_workers: int = 2
    jobs: tuple[JobScheduleConfig, ...] = DEFAULT_JOBS

    def job(self, name: str) -> JobScheduleConfig | None:
        for job in self.jobs:
            if job.name == name:
                return job
        return None


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrackerConfig:
    """The complete runtime configuration.

    ``checksum`` identifies the effective configuration (after environment
    overrides, secrets excluded) and is logged on every load.
    """

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
