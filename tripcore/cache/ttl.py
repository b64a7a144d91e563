"""TTL key/value caches for geocoding and routing results.

Values are JSON-compatible dicts. Expired entries are purged lazily on read.
"""

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class TTLCache(Protocol):
    """Protocol for a persistent cache with per-entry time-to-live."""

    async def get(self, key: str) -> dict[str, Any] | None:
        """Return the cached value, or None on miss or expiry."""
        ...

    async def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        """Store a value for `ttl_seconds`."""
        ...

    async def delete(self, key: str) -> None:
        """Remove a key if present."""
        ...

    async def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        ...


@dataclass
class CacheEntry:
    """Cached value with its write time."""

    value: dict[str, Any]
    stored_at: float
    ttl_seconds: int

    def is_fresh(self, now: float) -> bool:
        """Check if cache entry is still valid."""
        return (now - self.stored_at) < self.ttl_seconds


class InMemoryTTLCache:
    """Process-local TTL cache with an injectable clock."""

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock or time.time

    async def get(self, key: str) -> dict[str, Any] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            return None
        return dict(entry.value)

    async def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        self._entries[key] = CacheEntry(value=dict(value), stored_at=self._clock(), ttl_seconds=ttl_seconds)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_fresh(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class RedisTTLCache:
    """Redis-backed TTL cache.

    Expiry is delegated to Redis (`SET ... EX`), so `purge_expired` has
    nothing to do. Redis errors degrade to cache misses.
    """

    def __init__(self, client: redis.Redis, namespace: str = "tripcore") -> None:
        self._redis = client
        self._namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = "tripcore") -> "RedisTTLCache":
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, namespace=namespace)

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> dict[str, Any] | None:
        try:
            raw = await self._redis.get(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Redis get failed, treating as miss: {e}")
            return None
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except (TypeError, ValueError):
            await self.delete(key)
            return None
        return value if isinstance(value, dict) else None

    async def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        try:
            await self._redis.set(self._key(key), json.dumps(value), ex=max(1, ttl_seconds))
        except redis.RedisError as e:
            logger.warning(f"Redis set failed, value not cached: {e}")

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Redis delete failed: {e}")

    async def purge_expired(self) -> int:
        return 0

    async def aclose(self) -> None:
        await self._redis.aclose()
