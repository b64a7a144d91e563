"""Multi-tier geocoding resolver.

Tiers, each short-circuiting on success:
1. In-process cache
2. Persistent TTL cache (injected)
3. Exact curated city match
4. Geocoding API with the raw name
5. Geocoding API with "name, city context"
6. Partial curated city match
7. Coordinates of the city context itself

Partial matching runs after the API on purpose: a landmark such as
"Borra Caves, Visakhapatnam" is ~100 km from the city center it names.
"""

import asyncio
import logging
from collections import OrderedDict
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Protocol

from tripcore.cache.ttl import TTLCache
from tripcore.config import get_settings
from tripcore.geocoding.cities import exact_city, normalize_place, partial_city
from tripcore.models.common import Coordinate
from tripcore.utils.metrics import geocode_resolutions_total

logger = logging.getLogger(__name__)

OFFSET_SCALE = 1000  # offsets are within about +/-0.01 degrees
MEMORY_MAX_ENTRIES = 5000


class GeocodingClient(Protocol):
    """Free-text place search returning the first match."""

    async def search(self, query: str) -> Coordinate | None:
        ...


def hint_hash(hint: str) -> int:
    """Signed 32-bit `h * 31 + c` string hash."""
    h = 0
    for ch in hint:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    return h - (1 << 32) if h >= (1 << 31) else h


def apply_offset(base: Coordinate, hint: str) -> Coordinate:
    """Shift `base` by a small offset derived from `hint`.

    The same hint always yields the same offset, so activities that resolve to
    one city center fan out deterministically instead of stacking.
    """
    h = hint_hash(hint)
    lat_offset = ((h % 20) - 10) / OFFSET_SCALE
    lon_offset = (((h >> 8) % 20) - 10) / OFFSET_SCALE
    return Coordinate(
        latitude=round(max(-90.0, min(90.0, base.latitude + lat_offset)), 4),
        longitude=round(max(-180.0, min(180.0, base.longitude + lon_offset)), 4),
    )


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


@dataclass(frozen=True)
class GeocodeRequest:
    """One lookup in a batch."""

    place_name: str
    hint: str = ""
    city_context: str = ""


class GeocodingResolver:
    """Resolves place names to coordinates through the tier chain.

    Every successful resolution is written through to both cache levels before
    it is returned, so a repeat lookup never touches the network.
    """

    def __init__(
        self,
        client: GeocodingClient | None = None,
        persistent_cache: TTLCache | None = None,
        ttl_days: int | None = None,
        memory_max_entries: int = MEMORY_MAX_ENTRIES,
    ) -> None:
        """Initialize resolver.

        Args:
            client: Geocoding API client (None disables network tiers)
            persistent_cache: Cache shared across runs (None disables tier 2)
            ttl_days: Persistent cache TTL (default: from settings)
            memory_max_entries: In-process cache size; least recently used entries go first
        """
        self._client = client
        self._persistent = persistent_cache
        self._ttl_seconds = (ttl_days or get_settings().geocode_cache_ttl_days) * 24 * 3600
        self._memory: OrderedDict[str, Coordinate] = OrderedDict()
        self._memory_max_entries = memory_max_entries
        self._locks: dict[str, _KeyLock] = {}

    async def resolve(
        self,
        place_name: str,
        hint: str = "",
        city_context: str = "",
        *,
        jitter: bool = True,
    ) -> Coordinate | None:
        """Resolve a place name.

        Args:
            place_name: Free-text place or landmark name
            hint: String seeding the display offset (default: normalized name)
            city_context: Parent city used to disambiguate and as last fallback
            jitter: Apply the deterministic display offset

        Returns:
            Coordinate, or None when every tier fails
        """
        key = normalize_place(place_name or "")
        if not key:
            return None
        base = await self._resolve_base(key, place_name.strip(), city_context.strip())
        if base is None:
            logger.warning(f"Geocoding failed at every tier for {place_name!r}")
            return None
        return apply_offset(base, hint or key) if jitter else base

    async def resolve_many(self, requests: Sequence[GeocodeRequest]) -> list[Coordinate | None]:
        """Resolve a batch concurrently; results align with `requests`."""
        return list(
            await asyncio.gather(
                *(self.resolve(r.place_name, r.hint, r.city_context) for r in requests)
            )
        )

    async def _resolve_base(self, key: str, place_name: str, city_context: str) -> Coordinate | None:
        async with self._key_lock(key):
            cached = await self._cached(key)
            if cached is not None:
                return cached

            tier, coords = await self._lookup(key, place_name, city_context)
            if coords is not None:
                geocode_resolutions_total.labels(tier=tier).inc()
                await self._remember(key, coords)
                return coords

        # The context is resolved outside this key's lock so nested lookups
        # never hold two locks at once.
        context_key = normalize_place(city_context)
        if context_key and context_key != key:
            context_coords = await self._resolve_base(context_key, city_context, "")
            if context_coords is not None:
                logger.warning(f"Using parent city fallback for {place_name!r} -> {city_context!r}")
                geocode_resolutions_total.labels(tier="city_context").inc()
                async with self._key_lock(key):
                    await self._remember(key, context_coords)
                return context_coords

        geocode_resolutions_total.labels(tier="failed").inc()
        return None

    @asynccontextmanager
    async def _key_lock(self, key: str) -> AsyncIterator[None]:
        """Serialize lookups of one key; the entry is dropped once nobody holds or awaits it."""
        entry = self._locks.setdefault(key, _KeyLock())
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    async def _cached(self, key: str) -> Coordinate | None:
        cached = self._memory.get(key)
        if cached is not None:
            self._memory.move_to_end(key)
            geocode_resolutions_total.labels(tier="memory").inc()
            return cached

        if self._persistent is None:
            return None
        stored = await self._persistent.get(self._cache_key(key))
        if stored is None:
            return None
        try:
            coords = Coordinate(latitude=stored["latitude"], longitude=stored["longitude"])
        except (KeyError, TypeError, ValueError):
            await self._persistent.delete(self._cache_key(key))
            return None
        self._memorize(key, coords)
        geocode_resolutions_total.labels(tier="persistent").inc()
        return coords

    async def _lookup(
        self, key: str, place_name: str, city_context: str
    ) -> tuple[str, Coordinate | None]:
        exact = exact_city(key)
        if exact is not None:
            return "exact_city", exact

        if self._client is not None:
            found = await self._client.search(place_name)
            if found is not None:
                return "api", found

            if city_context:
                found = await self._client.search(f"{place_name}, {city_context}")
                if found is not None:
                    return "api_with_context", found

        partial = partial_city(key)
        if partial is not None:
            logger.warning(f"Using city-level partial match for {place_name!r}")
            return "partial_city", partial

        return "failed", None

    def _memorize(self, key: str, coords: Coordinate) -> None:
        self._memory[key] = coords
        self._memory.move_to_end(key)
        while len(self._memory) > self._memory_max_entries:
            self._memory.popitem(last=False)

    async def _remember(self, key: str, coords: Coordinate) -> None:
        self._memorize(key, coords)
        if self._persistent is not None:
            await self._persistent.set(self._cache_key(key), coords.model_dump(), self._ttl_seconds)

    @staticmethod
    def _cache_key(key: str) -> str:
        return f"geo:{key}"
