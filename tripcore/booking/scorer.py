"""Seeded synthetic booking results with composite scores.

All results are estimates for demo purposes. Generators are deterministic:
the same search key always yields the same candidates, so suggestions are
stable across runs.

Composite scores (0-100):
    flights: 40% price + 25% duration + 20% stops + 15% on-time
    hotels:  35% price + 30% rating + 20% amenities + 15% reviews
    trains:  40% price + 30% duration + 15% class + 15% seat availability
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from tripcore.utils.numbers import round_half_up


@dataclass(frozen=True)
class Airline:
    name: str
    code: str
    tier: str
    on_time_rate: float


@dataclass(frozen=True)
class HotelBrand:
    name: str
    suffix: str
    tier: str
    base_rating: float


@dataclass(frozen=True)
class TrainService:
    name: str
    service_class: str
    speed_factor: float


AIRLINES: tuple[Airline, ...] = (
    Airline("IndiGo", "6E", "budget", 0.82),
    Airline("Air India", "AI", "mid-range", 0.74),
    Airline("Vistara", "UK", "premium", 0.86),
    Airline("Emirates", "EK", "luxury", 0.91),
    Airline("SpiceJet", "SG", "budget", 0.72),
    Airline("AirAsia", "I5", "budget", 0.78),
)

HOTEL_BRANDS: tuple[HotelBrand, ...] = (
    HotelBrand("Grand", "Hotel", "luxury", 4.5),
    HotelBrand("Royal", "Resort", "luxury", 4.3),
    HotelBrand("Cozy", "Inn", "budget", 3.8),
    HotelBrand("Urban", "Stay", "mid-range", 4.0),
    HotelBrand("Seaside", "Suites", "mid-range", 4.1),
    HotelBrand("Backpacker", "Hostel", "budget", 3.5),
    HotelBrand("Heritage", "Palace", "luxury", 4.7),
    HotelBrand("Comfort", "Lodge", "mid-range", 3.9),
)

TRAINS: tuple[TrainService, ...] = (
    TrainService("Rajdhani Express", "premium", 1.0),
    TrainService("Shatabdi Express", "premium", 0.9),
    TrainService("Duronto Express", "mid-range", 0.85),
    TrainService("Intercity Express", "mid-range", 0.7),
    TrainService("Garib Rath", "budget", 0.6),
    TrainService("Jan Shatabdi", "budget", 0.65),
)

AMENITIES_POOL: tuple[str, ...] = (
    "Wifi", "Pool", "Breakfast", "Gym", "Spa", "Parking", "Restaurant", "Room Service",
)

FLIGHT_TIER_MULTIPLIERS = MappingProxyType({"budget": 0.7, "mid-range": 1.0, "premium": 1.4, "luxury": 2.2})
HOTEL_TIER_BASE = MappingProxyType({"budget": 30, "mid-range": 80, "luxury": 220})
HOTEL_AMENITY_COUNT = MappingProxyType({"luxury": 5, "mid-range": 3, "budget": 2})
TRAIN_CLASS_BASE = MappingProxyType({"premium": 35, "mid-range": 20, "budget": 10})
TRAIN_CLASS_SCORE = MappingProxyType({"premium": 90, "mid-range": 60, "budget": 30})

FLIGHT_TIME_SLOTS = (6, 8, 10, 12, 14, 16, 18, 21)
TRAIN_TIME_SLOTS = (5, 7, 9, 12, 15, 18, 22)


@dataclass
class ScoredResult:
    """One generated candidate before it becomes a BookingOption."""

    option_id: str
    provider: str
    price: int
    tier: str
    duration_minutes: int | None = None
    rating: float | None = None
    score: int = 0
    details: dict[str, object] = field(default_factory=dict)

    @property
    def duration(self) -> str | None:
        if self.duration_minutes is None:
            return None
        return f"{self.duration_minutes // 60}h {self.duration_minutes % 60}m"


def seeded_hash(text: str) -> int:
    """Absolute value of the 32-bit `h * 31 + c` string hash."""
    h = 0
    for ch in text:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def seeded_random(seed: int) -> float:
    """Deterministic value in [0, 1) derived from `seed`."""
    x = math.sin(seed) * 10000
    return x - math.floor(x)


def _clock(hour: int, minute: int) -> str:
    return f"{hour % 24:02d}:{minute % 60:02d}"


def _inverse_minmax(value: float, values: Sequence[float]) -> float:
    """100 for the lowest value, 0 for the highest, 50 when all are equal."""
    low, high = min(values), max(values)
    if high <= low:
        return 50
    return (1 - (value - low) / (high - low)) * 100


def score_flights(results: Sequence[ScoredResult]) -> None:
    prices = [r.price for r in results]
    durations = [r.duration_minutes or 0 for r in results]
    for r in results:
        stops = r.details.get("stops")
        stops_score = 100 if stops == "Non-stop" else 50 if stops == "1 Stop" else 20
        on_time = float(r.details.get("on_time_rate") or 0.8) * 100
        r.score = round_half_up(
            _inverse_minmax(r.price, prices) * 0.40
            + _inverse_minmax(r.duration_minutes or 0, durations) * 0.25
            + stops_score * 0.20
            + on_time * 0.15
        )


def score_hotels(results: Sequence[ScoredResult]) -> None:
    prices = [r.price for r in results]
    for r in results:
        rating_score = (((r.rating or 3) - 3) / 2) * 100
        amenity_score = len(r.details.get("amenities", [])) / len(AMENITIES_POOL) * 100
        review_score = min(int(r.details.get("reviews", 0)) / 500, 1) * 100
        r.score = round_half_up(
            _inverse_minmax(r.price, prices) * 0.35
            + rating_score * 0.30
            + amenity_score * 0.20
            + review_score * 0.15
        )


def score_trains(results: Sequence[ScoredResult]) -> None:
    prices = [r.price for r in results]
    durations = [r.duration_minutes or 0 for r in results]
    for r in results:
        seat_score = min(int(r.details.get("seats", 0)) / 50, 1) * 100
        r.score = round_half_up(
            _inverse_minmax(r.price, prices) * 0.40
            + _inverse_minmax(r.duration_minutes or 0, durations) * 0.30
            + TRAIN_CLASS_SCORE.get(r.tier, 30) * 0.15
            + seat_score * 0.15
        )


def generate_flight_results(search_key: str, currency_rate: float = 1) -> list[ScoredResult]:
    """Generate 4-7 scored flight candidates for a route key."""
    seed = seeded_hash(f"{search_key}-flights")
    results: list[ScoredResult] = []

    for i in range(4 + seed % 4):
        airline = AIRLINES[math.floor(seeded_random(seed + i * 7) * len(AIRLINES))]
        dep_hour = FLIGHT_TIME_SLOTS[i % len(FLIGHT_TIME_SLOTS)]
        dep_min = math.floor(seeded_random(seed + i * 13) * 4) * 15

        base_duration = 90 + math.floor(seeded_random(seed + i * 17) * 240)
        duration = round_half_up(base_duration * (1.1 if airline.tier == "budget" else 1.0))
        if duration > 240 and seeded_random(seed + i * 19) > 0.4:
            stops = "1 Stop"
        else:
            stops = "Non-stop"

        base_price = 50 + math.floor(duration * 0.3)
        price = round_half_up(base_price * FLIGHT_TIER_MULTIPLIERS.get(airline.tier, 1) * currency_rate)

        results.append(
            ScoredResult(
                option_id=f"flight-{i}",
                provider=airline.name,
                price=price,
                tier=airline.tier,
                duration_minutes=duration,
                rating=airline.on_time_rate,
                details={
                    "flight_number": f"{airline.code}-{100 + (seed + i * 3) % 900}",
                    "dep_time": _clock(dep_hour, dep_min),
                    "arr_time": _clock(dep_hour + duration // 60, dep_min + duration % 60),
                    "stops": stops,
                    "on_time_rate": airline.on_time_rate,
                },
            )
        )

    score_flights(results)
    return results


def generate_train_results(
    search_key: str, currency_rate: float = 1, travel_class: str = "SL"
) -> list[ScoredResult]:
    """Generate 4-6 scored rail or coach candidates for a route key."""
    seed = seeded_hash(f"{search_key}-trains")
    results: list[ScoredResult] = []

    for i in range(4 + seed % 3):
        train = TRAINS[math.floor(seeded_random(seed + i * 7) * len(TRAINS))]
        dep_hour = TRAIN_TIME_SLOTS[i % len(TRAIN_TIME_SLOTS)]
        dep_min = math.floor(seeded_random(seed + i * 13) * 4) * 15

        base_duration = 240 + math.floor(seeded_random(seed + i * 17) * 480)
        duration = round_half_up(base_duration / train.speed_factor)
        price = round_half_up(
            (TRAIN_CLASS_BASE.get(train.service_class, 20) + math.floor(duration * 0.04)) * currency_rate
        )

        results.append(
            ScoredResult(
                option_id=f"train-{i}",
                provider=train.name,
                price=price,
                tier=train.service_class,
                duration_minutes=duration,
                details={
                    "number": 10000 + (seed + i * 3) % 70000,
                    "dep_time": _clock(dep_hour, dep_min),
                    "arr_time": _clock(dep_hour + duration // 60, dep_min + duration % 60),
                    "seats": 5 + math.floor(seeded_random(seed + i * 37) * 45),
                    "class": travel_class,
                },
            )
        )

    score_trains(results)
    return results


def generate_hotel_results(search_key: str, currency_rate: float = 1) -> list[ScoredResult]:
    """Generate 4-7 scored hotel candidates for a location key."""
    seed = seeded_hash(f"{search_key}-hotels")
    results: list[ScoredResult] = []

    for i in range(4 + seed % 4):
        brand = HOTEL_BRANDS[math.floor(seeded_random(seed + i * 11) * len(HOTEL_BRANDS))]
        rating = min(5.0, max(3.0, brand.base_rating + (seeded_random(seed + i * 23) - 0.5) * 0.4))
        price = round_half_up(
            (HOTEL_TIER_BASE.get(brand.tier, 80) + seeded_random(seed + i * 29) * 40) * currency_rate
        )

        amenities: list[str] = []
        for a in range(HOTEL_AMENITY_COUNT.get(brand.tier, 2)):
            amenity = AMENITIES_POOL[(seed + i + a) % len(AMENITIES_POOL)]
            if amenity not in amenities:
                amenities.append(amenity)

        results.append(
            ScoredResult(
                option_id=f"hotel-{i}",
                provider=f"{brand.name} {brand.suffix}",
                price=price,
                tier=brand.tier,
                rating=round(rating, 1),
                details={
                    "reviews": 50 + math.floor(seeded_random(seed + i * 31) * 450),
                    "amenities": amenities,
                },
            )
        )

    score_hotels(results)
    return results
