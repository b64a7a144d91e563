"""Route-time lookups with caching and tier-based fallbacks."""

import logging
from dataclasses import dataclass
from typing import Literal, Protocol

from tripcore.adapters.osrm import RouteResult
from tripcore.cache.ttl import TTLCache
from tripcore.config import get_settings
from tripcore.geocoding.cities import normalize_place
from tripcore.geocoding.resolver import GeocodingResolver
from tripcore.models.common import Coordinate, DistanceTier
from tripcore.transport.distance import DistanceClassifier, classify_km, is_same_region
from tripcore.transport.tables import FALLBACK_HOURS

logger = logging.getLogger(__name__)

RouteSource = Literal["osrm", "cache", "fallback", "estimate"]


class RoutingClient(Protocol):
    """Driving route between two coordinates."""

    async def route(self, origin: Coordinate, target: Coordinate) -> RouteResult | None:
        ...


@dataclass(frozen=True)
class RouteInfo:
    """Travel time and distance for a place pair."""

    hours: float
    distance_km: float | None
    source: RouteSource


@dataclass(frozen=True)
class LegProfile:
    """Everything the builders need to know about one leg.

    `routed` is True only when hours/km came from a real route.
    """

    tier: DistanceTier
    hours: float
    distance_km: float | None
    source: RouteSource

    @property
    def routed(self) -> bool:
        return self.source in ("osrm", "cache")


class RouteTimeService:
    """Resolves travel time between named places.

    Real routes are cached for the configured TTL. When routing is unavailable
    the tier fallback hours are used (local 0.5, short 5, medium 8, long 12).
    """

    def __init__(
        self,
        classifier: DistanceClassifier,
        resolver: GeocodingResolver | None = None,
        router: RoutingClient | None = None,
        cache: TTLCache | None = None,
        ttl_days: int | None = None,
    ) -> None:
        self._classifier = classifier
        self._resolver = resolver
        self._router = router
        self._cache = cache
        self._ttl_seconds = (ttl_days or get_settings().route_cache_ttl_days) * 24 * 3600

    async def route_time(self, origin: str, target: str) -> RouteInfo | None:
        """Real route between two places, or None when unavailable."""
        if self._router is None or self._resolver is None:
            return None
        key = f"route:{normalize_place(origin)}|{normalize_place(target)}"

        if self._cache is not None:
            cached = await self._cache.get(key)
            if cached is not None:
                try:
                    return RouteInfo(
                        hours=float(cached["hours"]),
                        distance_km=float(cached["distance_km"]),
                        source="cache",
                    )
                except (KeyError, TypeError, ValueError):
                    await self._cache.delete(key)

        a = await self._resolver.resolve(origin, jitter=False)
        b = await self._resolver.resolve(target, jitter=False)
        if a is None or b is None:
            return None

        route = await self._router.route(a, b)
        if route is None:
            return None

        info = RouteInfo(hours=round(route.hours, 2), distance_km=round(route.km, 1), source="osrm")
        if self._cache is not None:
            await self._cache.set(
                key, {"hours": info.hours, "distance_km": info.distance_km}, self._ttl_seconds
            )
        return info

    async def leg_profile(self, origin: str, target: str) -> LegProfile:
        """Tier plus travel time for a leg.

        A real route overrides the tier, except for same-region pairs which
        always stay `short`.
        """
        tier = await self._classifier.classify(origin, target)
        route = await self.route_time(origin, target)
        if route is None:
            return LegProfile(tier=tier, hours=FALLBACK_HOURS[tier], distance_km=None, source="fallback")

        if route.distance_km is not None and not is_same_region(origin, target):
            tier = classify_km(route.distance_km)
        return LegProfile(tier=tier, hours=route.hours, distance_km=route.distance_km, source=route.source)
