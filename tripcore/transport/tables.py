"""Cost, distance and currency tables for transport decisions.

All base costs are in USD per traveler; they are converted with the effective
currency multiplier at pricing time.
"""

from types import MappingProxyType
from typing import Mapping

from tripcore.models.common import BudgetTier, DistanceTier, TransportMode

# Representative one-way distance for each tier (km)
KM_ESTIMATES: Mapping[DistanceTier, float] = MappingProxyType(
    {
        DistanceTier.local: 20,
        DistanceTier.short: 300,
        DistanceTier.medium: 1000,
        DistanceTier.long: 3000,
    }
)

AVERAGE_DRIVING_KMH = 60

# Haversine thresholds (km): local < 100, short < 500, medium <= 1200, long beyond
LOCAL_MAX_KM = 100
SHORT_MAX_KM = 500
MEDIUM_MAX_KM = 1200

# Fallback travel hours when routing is unavailable
FALLBACK_HOURS: Mapping[DistanceTier, float] = MappingProxyType(
    {
        DistanceTier.local: 0.5,
        DistanceTier.short: 5,
        DistanceTier.medium: 8,
        DistanceTier.long: 12,
    }
)

# Per-traveler fares by tier (USD)
TIERED_FARES: Mapping[TransportMode, Mapping[DistanceTier, float]] = MappingProxyType(
    {
        TransportMode.flight: MappingProxyType(
            {
                DistanceTier.local: 60,
                DistanceTier.short: 80,
                DistanceTier.medium: 150,
                DistanceTier.long: 300,
            }
        ),
        TransportMode.train: MappingProxyType(
            {
                DistanceTier.local: 5,
                DistanceTier.short: 15,
                DistanceTier.medium: 40,
                DistanceTier.long: 80,
            }
        ),
        TransportMode.bus: MappingProxyType(
            {
                DistanceTier.local: 3,
                DistanceTier.short: 8,
                DistanceTier.medium: 20,
                DistanceTier.long: 45,
            }
        ),
    }
)

# Fuel/running cost per km for own vehicles (USD)
PER_KM_RATES: Mapping[TransportMode, float] = MappingProxyType(
    {
        TransportMode.car: 0.08,
        TransportMode.bike: 0.03,
    }
)

# Most to least expensive; walked when a preferred mode does not fit
DOWNGRADE_LADDER: tuple[TransportMode, ...] = (
    TransportMode.flight,
    TransportMode.train,
    TransportMode.bus,
    TransportMode.car,
)

MODE_LABELS: Mapping[TransportMode, str] = MappingProxyType(
    {
        TransportMode.flight: "Flight",
        TransportMode.train: "Train",
        TransportMode.bus: "Bus",
        TransportMode.car: "Drive",
        TransportMode.bike: "Ride",
    }
)

# Nightly lodging per room (USD)
ACCOMMODATION_NIGHTLY: Mapping[BudgetTier, float] = MappingProxyType(
    {
        BudgetTier.budget: 15,
        BudgetTier.mid_range: 60,
        BudgetTier.luxury: 200,
    }
)

TRAVELERS_PER_ROOM = 2

# Local hops between activities: (minimum fare, fare per km) in USD
LOCAL_FARES: Mapping[BudgetTier, tuple[float, float]] = MappingProxyType(
    {
        BudgetTier.budget: (1.0, 0.4),
        BudgetTier.mid_range: (3.0, 1.0),
        BudgetTier.luxury: (8.0, 2.5),
    }
)
LOCAL_MIN_HOP_KM = 0.2
LOCAL_MAX_HOP_KM = 50
LOCAL_FALLBACK_KM = 5
LOCAL_AVERAGE_KMH = 20

# Overnight-eligible ground travel window (hours) and suggested schedule
OVERNIGHT_MIN_HOURS = 6
OVERNIGHT_MAX_HOURS = 16
OVERNIGHT_DEPARTURE = "21:00"
OVERNIGHT_ARRIVAL = "07:00"

# Decision thresholds (hours / km)
OWN_VEHICLE_MAX_HOURS = 6
FLIGHT_MIN_DRIVING_HOURS = 2
AUTO_FLIGHT_HOURS = 8
ROAD_TRIP_VEHICLE_MAX_KM = 800
ROAD_TRIP_BUS_MAX_KM = 300

# Units of currency per USD
EXCHANGE_RATES: Mapping[str, float] = MappingProxyType(
    {
        "USD": 1, "EUR": 0.92, "GBP": 0.79, "INR": 83, "JPY": 149,
        "AUD": 1.55, "CAD": 1.37, "SGD": 1.35, "THB": 35, "MYR": 4.7,
        "KRW": 1330, "BRL": 5, "ZAR": 18, "AED": 3.67, "SAR": 3.75,
        "CHF": 0.88, "NZD": 1.67, "SEK": 10.5, "NOK": 10.8, "DKK": 6.9,
        "MXN": 17, "PHP": 56, "VND": 24500, "IDR": 15600, "TWD": 31.5,
        "HKD": 7.8, "CNY": 7.2, "RUB": 92, "TRY": 30, "PLN": 4,
        "CZK": 23, "HUF": 360, "ILS": 3.7, "EGP": 31, "PKR": 280,
        "LKR": 320, "BDT": 110, "NPR": 133, "MMK": 2100, "KHR": 4100,
        "LAK": 20500,
    }
)

# Local price level relative to the US for currencies we know well
COST_OF_LIVING_INDEX: Mapping[str, float] = MappingProxyType(
    {
        "USD": 1.0, "EUR": 0.95, "GBP": 1.0, "CHF": 1.2, "AUD": 0.95,
        "CAD": 0.9, "NZD": 0.9, "SGD": 0.95, "JPY": 0.8, "KRW": 0.7,
        "HKD": 0.9, "AED": 0.85, "SAR": 0.7, "SEK": 0.9, "NOK": 1.0,
        "DKK": 0.95, "INR": 0.25, "THB": 0.4, "MYR": 0.4, "IDR": 0.3,
        "VND": 0.3, "PHP": 0.35, "CNY": 0.5, "BRL": 0.45, "MXN": 0.45,
        "ZAR": 0.4, "TRY": 0.35, "EGP": 0.25, "PKR": 0.2, "LKR": 0.25,
        "BDT": 0.2, "NPR": 0.2,
    }
)

# (upper exchange-rate bound, inferred index); the last bucket is open-ended
COST_OF_LIVING_BUCKETS: tuple[tuple[float, float], ...] = (
    (2, 1.0),
    (10, 0.75),
    (50, 0.55),
    (200, 0.4),
    (2000, 0.3),
    (float("inf"), 0.25),
)

# Well-known nearby pairs always priced as short trips
SAME_REGION_PAIRS: frozenset[frozenset[str]] = frozenset(
    frozenset(pair)
    for pair in (
        ("delhi", "mumbai"),
        ("delhi", "jaipur"),
        ("mumbai", "goa"),
        ("mumbai", "pune"),
        ("bangalore", "chennai"),
        ("bangalore", "mysore"),
        ("hyderabad", "bangalore"),
        ("hyderabad", "visakhapatnam"),
        ("paris", "lyon"),
        ("paris", "nice"),
        ("london", "manchester"),
        ("london", "edinburgh"),
        ("new york", "boston"),
        ("new york", "philadelphia"),
        ("los angeles", "san francisco"),
        ("tokyo", "osaka"),
        ("tokyo", "kyoto"),
        ("bangkok", "chiang mai"),
        ("bangkok", "phuket"),
        ("sydney", "melbourne"),
        ("rome", "florence"),
        ("rome", "venice"),
        ("berlin", "munich"),
        ("barcelona", "madrid"),
    )
)

COUNTRY_KEYWORDS: tuple[str, ...] = (
    "india", "usa", "uk", "japan", "france", "germany", "italy",
    "spain", "thailand", "australia", "brazil", "mexico", "canada", "china",
)
