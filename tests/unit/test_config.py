"""Unit tests for settings loading.

Tests cover:
1. Defaults used by the external-call executor
2. Environment overrides
3. Cached settings instance
4. Executor config derived from settings
"""

import pytest

from tripcore.config import Settings, get_settings
from tripcore.tools.executor import CallConfig


class TestSettings:
    """Test typed settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("REDIS_URL", raising=False)
        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.redis_url is None
        assert settings.external_hard_timeout_ms == 4000
        assert settings.retry_count == 1
        assert (settings.retry_jitter_min_ms, settings.retry_jitter_max_ms) == (200, 500)
        assert settings.circuit_breaker_failures == 5
        assert settings.geocode_cache_ttl_days == 30
        assert settings.openai_model == "gpt-4o-mini"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OSRM_BASE_URL", "http://osrm.local:5000")
        monkeypatch.setenv("RETRY_COUNT", "3")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.osrm_base_url == "http://osrm.local:5000"
        assert settings.retry_count == 3
        assert settings.openai_api_key is not None
        assert settings.openai_api_key.get_secret_value() == "sk-test"
        assert "sk-test" not in repr(settings)

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()


class TestCallConfigFromSettings:
    """Test executor configuration built from settings."""

    def test_copies_breaker_and_retry_settings(self) -> None:
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            retry_count=2,
            circuit_breaker_failures=7,
            circuit_breaker_half_open_sec=10,
        )

        config = CallConfig.from_settings(settings)

        assert config.hard_timeout_ms == 4000
        assert config.retry_count == 2
        assert config.breaker_failure_threshold == 7
        assert config.breaker_half_open_seconds == 10

    def test_hard_timeout_override(self) -> None:
        config = CallConfig.from_settings(Settings(_env_file=None), hard_timeout_ms=45000)  # type: ignore[call-arg]
        assert config.hard_timeout_ms == 45000
