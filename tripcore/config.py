"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Cache
    redis_url: str | None = None
    geocode_cache_ttl_days: int = 30
    route_cache_ttl_days: int = 30

    # Geocoding (Nominatim)
    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    nominatim_user_agent: str = "tripcore/0.1 (trip orchestration engine)"
    geocode_requests_per_sec: float = 1.0

    # Routing (OSRM)
    osrm_base_url: str = "https://router.project-osrm.org"

    # Timeouts (milliseconds)
    external_soft_timeout_ms: int = 2000
    external_hard_timeout_ms: int = 4000
    provider_timeout_ms: int = 45000

    # Retry jitter (milliseconds)
    retry_count: int = 1
    retry_jitter_min_ms: int = 200
    retry_jitter_max_ms: int = 500

    # Circuit breaker
    circuit_breaker_failures: int = 5
    circuit_breaker_window_sec: int = 60
    circuit_breaker_half_open_sec: int = 30

    # Suggestion provider
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"

    # Booking
    booking_demo_label: str = "Estimated Results (Demo Mode)"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
