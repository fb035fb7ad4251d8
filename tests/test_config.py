"""Tests for environment settings and the delivery policy they produce."""

from datetime import timedelta

import pytest

from notification_service.config import EngineConfig, Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("NOTIFICATION_MAX_RETRY_ATTEMPTS", raising=False)
        monkeypatch.delenv("NOTIFICATION_BASE_BACKOFF_MINUTES", raising=False)

        config = Settings().engine_config()

        assert config.max_retries == 3
        assert config.base_backoff == timedelta(minutes=5)

    def test_engine_config_from_env(self, monkeypatch):
        monkeypatch.setenv("NOTIFICATION_MAX_RETRY_ATTEMPTS", "5")
        monkeypatch.setenv("NOTIFICATION_BASE_BACKOFF_MINUTES", "1")
        monkeypatch.setenv("NOTIFICATION_BATCH_SIZE", "20")
        monkeypatch.setenv("DEFAULT_PHONE_REGION", "KE")

        config = Settings().engine_config()

        assert config.max_retries == 5
        assert config.base_backoff == timedelta(minutes=1)
        assert config.batch_size == 20
        assert config.default_region == "KE"

    def test_zero_retries_rejected(self, monkeypatch):
        monkeypatch.setenv("NOTIFICATION_MAX_RETRY_ATTEMPTS", "0")

        with pytest.raises(ValueError):
            Settings().validate()

    @pytest.mark.parametrize("value,expected", [("true", True), ("0", False), ("", True)])
    def test_tls_flag(self, monkeypatch, value, expected):
        monkeypatch.setenv("SMTP_USE_TLS", value)

        assert Settings().SMTP_USE_TLS is expected


class TestEngineConfig:
    def test_rejects_zero_batch(self):
        with pytest.raises(ValueError):
            EngineConfig(batch_size=0)
