"""Tests for docshield/settings.py."""

import pytest

from docshield.settings import Settings, load_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.rate_limit.max_requests == 3
        assert settings.rate_limit.window_seconds == 1
        assert settings.client_rate_limit.max_requests == 60
        assert settings.circuit_breaker.failure_threshold == 5
        assert settings.circuit_breaker.recovery_time_seconds == 30
        assert settings.circuit_breaker.half_open_requests == 1
        assert settings.store_backend == "sql"

    def test_load_from_environment(self, monkeypatch):
        monkeypatch.setenv("UPSTREAM_BASE_URL", "https://docs.example.com/v1")
        monkeypatch.setenv("BREAKER_FAILURE_THRESHOLD", "3")
        monkeypatch.setenv("STORE_BACKEND", "memory")
        monkeypatch.setenv("DEBUG", "true")

        settings = load_settings()

        assert settings.upstream_base_url == "https://docs.example.com/v1"
        assert settings.circuit_breaker.failure_threshold == 3
        assert settings.store_backend == "memory"
        assert settings.debug is True

    def test_rejects_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "redis")
        with pytest.raises(ValueError):
            load_settings()

    @pytest.mark.parametrize(
        "name",
        [
            "RATE_LIMIT_WINDOW_SECONDS",
            "CLIENT_RATE_LIMIT_WINDOW_SECONDS",
            "RATE_LIMIT_MAX_REQUESTS",
            "BREAKER_FAILURE_THRESHOLD",
            "BREAKER_RECOVERY_TIME_SECONDS",
            "BREAKER_HALF_OPEN_REQUESTS",
        ],
    )
    def test_rejects_zero_limits(self, monkeypatch, name):
        monkeypatch.setenv(name, "0")
        with pytest.raises(ValueError, match=name):
            load_settings()

    def test_validate_upstream_lists_missing_variables(self):
        with pytest.raises(ValueError) as exc_info:
            Settings(upstream_base_url="https://docs.example.com/v1").validate_upstream()
        assert "UPSTREAM_API_KEY" in str(exc_info.value)
        assert "UPSTREAM_BASE_URL" not in str(exc_info.value)

    def test_validate_upstream_passes_when_configured(self):
        Settings(
            upstream_base_url="https://docs.example.com/v1", upstream_api_key="token"
        ).validate_upstream()
