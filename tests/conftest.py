"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator, Iterator

import pytest
import pytest_asyncio

from tripcore.cache.ttl import RedisTTLCache
from tripcore.config import get_settings
from tripcore.tools.executor import BreakerRegistry, CallConfig, ExternalCallExecutor, get_breaker_registry


@pytest.fixture(autouse=True)
def _isolate_process_state() -> Iterator[None]:
    """Reset cached settings and the shared breaker registry around each test."""
    get_settings.cache_clear()
    get_breaker_registry().clear()
    yield
    get_settings.cache_clear()
    get_breaker_registry().clear()


@pytest.fixture
def fast_executor() -> ExternalCallExecutor:
    """Executor with no retries, a short timeout and its own breaker registry."""

    async def no_sleep(seconds: float) -> None:
        return None

    config = CallConfig(
        hard_timeout_ms=500,
        retry_count=0,
        retry_jitter_min_ms=0,
        retry_jitter_max_ms=0,
    )
    return ExternalCallExecutor(config=config, sleep_fn=no_sleep, registry=BreakerRegistry())


@pytest_asyncio.fixture
async def redis_cache() -> AsyncGenerator[RedisTTLCache, None]:
    """Redis-backed cache for integration tests.

    Requires REDIS_URL to point at a disposable Redis server.
    Tests using this fixture should be marked with @pytest.mark.redis.
    """
    redis_url = os.getenv("REDIS_URL")
    if not redis_url:
        pytest.skip("REDIS_URL not set - skipping redis test")

    cache = RedisTTLCache.from_url(redis_url, namespace="tripcore-test")
    yield cache
    await cache.aclose()
