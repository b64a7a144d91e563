"""Great-circle distance helpers."""

import math

from tripcore.models.common import Coordinate

EARTH_RADIUS_KM = 6371


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance between two coordinates in kilometers."""
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))
