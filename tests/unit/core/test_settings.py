"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from infoline.core.config import Settings, get_settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("INFOLINE_NOTIFICATION_TRANSPORT", raising=False)
        settings = Settings(_env_file=None)

        assert settings.app_name == "InfoLine"
        assert settings.transition_max_retries == 3
        assert settings.transition_retry_delay == 0.2
        assert settings.notification_transport == "inline"

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("INFOLINE_TRANSITION_MAX_RETRIES", "5")
        monkeypatch.setenv("INFOLINE_REQUEST_TIMEOUT_SECONDS", "2.5")

        settings = Settings(_env_file=None)

        assert settings.transition_max_retries == 5
        assert settings.request_timeout_seconds == 2.5

    def test_cors_origins_list(self):
        settings = Settings(_env_file=None, cors_origins="https://a.example, https://b.example,")
        assert settings.cors_origins_list == ["https://a.example", "https://b.example"]

    def test_celery_falls_back_to_redis(self):
        settings = Settings(_env_file=None, redis_url="redis://cache:6379/1")
        assert settings.celery_broker == "redis://cache:6379/1"
        assert settings.celery_backend == "redis://cache:6379/1"

        settings = Settings(_env_file=None, celery_broker_url="redis://broker:6379/2")
        assert settings.celery_broker == "redis://broker:6379/2"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_log_level_is_normalised(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_negative_retries_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, transition_max_retries=-1)
