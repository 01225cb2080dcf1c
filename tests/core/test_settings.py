"""Tests for core.settings module.

Covers:
- WellWisherSettings defaults
- WELLWISHER_* environment and .env overrides
- Validation of zone, log level and numeric ranges
- load_settings error wrapping
"""

from __future__ import annotations

import os

import pytest

from wellwisher.core.errors import InvalidConfigError
from wellwisher.core.settings import WellWisherSettings, get_settings, load_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    """Strip WELLWISHER_* variables and run from an empty directory."""
    for key in list(os.environ):
        if key.startswith("WELLWISHER_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDefaults:
    def test_scheduling_defaults(self):
        s = WellWisherSettings()
        assert s.timezone == "Asia/Kathmandu"
        assert (s.reminder_hour, s.reminder_minute) == (7, 0)
        assert s.purge_after_days == 30
        assert s.timer_backend == "thread"
        assert s.worker_count == 2

    def test_notification_defaults(self):
        s = WellWisherSettings()
        assert s.notification_backend == "log"
        assert s.smtp_port == 587
        assert s.smtp_use_tls is True
        assert s.smtp_user is None

    def test_zone_property(self):
        assert WellWisherSettings(timezone="Europe/London").zone.key == "Europe/London"


class TestEnvOverride:
    def test_timezone_from_env(self, monkeypatch):
        monkeypatch.setenv("WELLWISHER_TIMEZONE", "UTC")
        assert WellWisherSettings().timezone == "UTC"

    def test_backend_from_env(self, monkeypatch):
        monkeypatch.setenv("WELLWISHER_TIMER_BACKEND", "apscheduler")
        assert WellWisherSettings().timer_backend == "apscheduler"

    def test_numbers_from_env(self, monkeypatch):
        monkeypatch.setenv("WELLWISHER_PURGE_AFTER_DAYS", "7")
        monkeypatch.setenv("WELLWISHER_WORKER_COUNT", "4")
        s = WellWisherSettings()
        assert (s.purge_after_days, s.worker_count) == (7, 4)

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("WELLWISHER_REMINDER_HOUR=9\n")
        assert WellWisherSettings().reminder_hour == 9

    def test_unprefixed_ignored(self, monkeypatch):
        monkeypatch.setenv("TIMEZONE", "UTC")
        assert WellWisherSettings().timezone == "Asia/Kathmandu"


class TestValidation:
    def test_unknown_zone_rejected(self):
        with pytest.raises(InvalidConfigError, match="unknown time zone") as excinfo:
            load_settings(timezone="Nowhere/Special")
        assert excinfo.value.field_name == "timezone"

    def test_log_level_normalized(self):
        assert load_settings(log_level="debug").log_level == "DEBUG"

    def test_bad_log_level(self):
        with pytest.raises(InvalidConfigError, match="Invalid configuration"):
            load_settings(log_level="chatty")

    def test_hour_range(self):
        with pytest.raises(InvalidConfigError) as excinfo:
            load_settings(reminder_hour=24)
        assert excinfo.value.field_name == "reminder_hour"

    def test_unknown_backend(self):
        with pytest.raises(InvalidConfigError):
            load_settings(timer_backend="celery")

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()
