"""YAML configuration loading, validation and TRACKER_* overrides."""

from dataclasses import replace
from pathlib import Path

import pytest
import yaml

from tracker_config import get_active_config
from tracker_config.loader import apply_env_overrides, compute_checksum, load_config, parse_config
from tracker_config.schema import DEFAULT_JOBS


def write_yaml(tmp_path: Path, data, name: str = "tracker.yaml") -> Path:
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    def test_bundled_file_matches_schema_defaults(self):
        config = get_active_config(environ={})

        assert config.notifications.backend == "log"
        assert config.scheduler.timezone == "America/New_York"
        assert config.scheduler.jobs == DEFAULT_JOBS
        assert replace(config, checksum="") == parse_config({})

    def test_partial_file_is_complete(self, tmp_path):
        config = load_config(write_yaml(tmp_path, {"logging": {"level": "debug"}}), environ={})

        assert config.logging.level == "DEBUG"
        assert config.database.url == "sqlite:///tracker.db"
        assert [j.name for j in config.scheduler.jobs] == ["budget-check", "goal-check"]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path, environ={}).notifications.port == 587


class TestValidation:
    def test_unknown_section(self):
        with pytest.raises(ValueError, match="sections"):
            parse_config({"metrics": {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="database"):
            parse_config({"database": {"uri": "sqlite://"}})

    def test_bad_backend(self):
        with pytest.raises(ValueError, match="backend"):
            parse_config({"notifications": {"backend": "fax"}})

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_range(self, port):
        with pytest.raises(ValueError, match="port"):
            parse_config({"notifications": {"port": port}})

    def test_bad_timezone(self):
        with pytest.raises(ValueError, match="timezone"):
            parse_config({"scheduler": {"timezone": "Mars/Olympus_Mons"}})

    def test_duplicate_jobs(self):
        jobs = [{"name": "goal-check", "cron": "0 9 * * *"}] * 2
        with pytest.raises(ValueError, match="Duplicate"):
            parse_config({"scheduler": {"jobs": jobs}})

    def test_job_needs_cron(self):
        with pytest.raises(KeyError):
            parse_config({"scheduler": {"jobs": [{"name": "goal-check"}]}})

    def test_disabled_job(self):
        config = parse_config(
            {"scheduler": {"jobs": [{"name": "goal-check", "cron": "0 9 * * *", "enabled": False}]}}
        )
        assert config.scheduler.job("goal-check").enabled is False
        assert config.scheduler.job("budget-check") is None

    def test_top_level_must_be_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="mapping"):
            load_config(write_yaml(tmp_path, ["not", "a", "mapping"]), environ={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml", environ={})


class TestEnvironmentOverrides:
    def test_overrides_applied(self):
        config = apply_env_overrides(
            parse_config({}),
            {
                "TRACKER_DATABASE_URL": "postgresql://tracker@db/tracker",
                "TRACKER_SMTP_HOST": "smtp.example.com",
                "TRACKER_SMTP_PORT": "2525",
                "TRACKER_SMTP_PASSWORD": "hunter2",
                "TRACKER_NOTIFICATION_BACKEND": "smtp",
                "TRACKER_LOG_LEVEL": "warning",
            },
        )

        assert config.database.url == "postgresql://tracker@db/tracker"
        assert config.notifications.host == "smtp.example.com"
        assert config.notifications.port == 2525
        assert config.notifications.password == "hunter2"
        assert config.notifications.backend == "smtp"
        assert config.logging.level == "WARNING"

    def test_blank_values_ignored(self):
        base = parse_config({})
        assert apply_env_overrides(base, {"TRACKER_SMTP_HOST": ""}) == base

    def test_non_numeric_port(self):
        with pytest.raises(ValueError, match="TRACKER_SMTP_PORT"):
            apply_env_overrides(parse_config({}), {"TRACKER_SMTP_PORT": "smtp"})

    def test_override_still_validated(self):
        with pytest.raises(ValueError, match="timezone"):
            apply_env_overrides(parse_config({}), {"TRACKER_TIMEZONE": "Nowhere/Special"})

    def test_config_path_from_environment(self, tmp_path):
        path = write_yaml(tmp_path, {"scheduler": {"timezone": "Europe/London"}})

        config = get_active_config(environ={"TRACKER_CONFIG": str(path)})

        assert config.scheduler.timezone == "Europe/London"


class TestChecksum:
    def test_stable(self, tmp_path):
        path = write_yaml(tmp_path, {"logging": {"level": "INFO"}})
        assert load_config(path, environ={}).checksum == load_config(path, environ={}).checksum

    def test_tracks_effective_values(self):
        base = parse_config({})
        moved = apply_env_overrides(base, {"TRACKER_SMTP_HOST": "elsewhere"})
        assert compute_checksum(base) != compute_checksum(moved)

    def test_password_excluded(self):
        base = parse_config({})
        with_secret = apply_env_overrides(base, {"TRACKER_SMTP_PASSWORD": "s3cret"})
        assert compute_checksum(base) == compute_checksum(with_secret)

    def test_password_not_in_repr(self):
        config = apply_env_overrides(parse_config({}), {"TRACKER_SMTP_PASSWORD": "s3cret"})
        assert "s3cret" not in repr(config)
