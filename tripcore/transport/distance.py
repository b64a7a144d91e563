"""Distance tier classification."""

import logging
import re

from tripcore.geocoding.cities import normalize_place
from tripcore.geocoding.resolver import GeocodingResolver
from tripcore.models.common import DistanceTier
from tripcore.transport.tables import (
    COUNTRY_KEYWORDS,
    LOCAL_MAX_KM,
    MEDIUM_MAX_KM,
    SAME_REGION_PAIRS,
    SHORT_MAX_KM,
)
from tripcore.utils.geo import haversine_km

logger = logging.getLogger(__name__)

_COUNTRY_PATTERNS = {kw: re.compile(rf"\b{re.escape(kw)}\b") for kw in COUNTRY_KEYWORDS}


def classify_km(km: float) -> DistanceTier:
    """Bucket a distance: local <100, short <500, medium <=1200, long beyond."""
    if km < LOCAL_MAX_KM:
        return DistanceTier.local
    if km < SHORT_MAX_KM:
        return DistanceTier.short
    if km <= MEDIUM_MAX_KM:
        return DistanceTier.medium
    return DistanceTier.long


def _city_part(name: str) -> str:
    return normalize_place(name.split(",")[0])


def is_same_region(origin: str, target: str) -> bool:
    return frozenset({_city_part(origin), _city_part(target)}) in SAME_REGION_PAIRS


def share_country(origin: str, target: str) -> bool:
    a, b = normalize_place(origin), normalize_place(target)
    return any(p.search(a) and p.search(b) for p in _COUNTRY_PATTERNS.values())


class DistanceClassifier:
    """Classifies a pair of places into a distance tier.

    Order: identical names, same-region overrides, geocoded haversine distance,
    shared country keyword, then `short`. Unknown places default to `short`
    rather than `medium` so that failed lookups do not inflate costs.
    """

    def __init__(self, resolver: GeocodingResolver | None = None) -> None:
        self._resolver = resolver

    async def distance_km(self, origin: str, target: str) -> float | None:
        """Straight-line distance between two geocoded places, if both resolve."""
        if self._resolver is None:
            return None
        a = await self._resolver.resolve(origin, jitter=False)
        b = await self._resolver.resolve(target, jitter=False)
        if a is None or b is None:
            return None
        return haversine_km(a, b)

    async def classify(self, origin: str, target: str) -> DistanceTier:
        if not origin or not target:
            return DistanceTier.short
        if normalize_place(origin) == normalize_place(target):
            return DistanceTier.local
        if is_same_region(origin, target):
            return DistanceTier.short

        km = await self.distance_km(origin, target)
        if km is not None:
            return classify_km(km)

        if share_country(origin, target):
            return DistanceTier.short

        logger.info(f"No distance data for {origin!r} -> {target!r}; defaulting to short tier")
        return DistanceTier.short
