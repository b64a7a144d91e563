"""Transport mode selection and envelope-aware pricing."""

import logging
from dataclasses import dataclass

from tripcore.models.common import (
    BudgetTier,
    DistanceTier,
    TransportMode,
    TravelPreference,
    TravelStyle,
)
from tripcore.models.trip import Trip
from tripcore.transport.currency import effective_multiplier
from tripcore.transport.tables import (
    AUTO_FLIGHT_HOURS,
    AVERAGE_DRIVING_KMH,
    DOWNGRADE_LADDER,
    FLIGHT_MIN_DRIVING_HOURS,
    KM_ESTIMATES,
    OVERNIGHT_MAX_HOURS,
    OVERNIGHT_MIN_HOURS,
    OWN_VEHICLE_MAX_HOURS,
    PER_KM_RATES,
    ROAD_TRIP_BUS_MAX_KM,
    ROAD_TRIP_VEHICLE_MAX_KM,
    TIERED_FARES,
)
from tripcore.utils.numbers import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportQuote:
    """Chosen mode and cost for one leg.

    `budget_adjusted` marks a cost that is not the mode's true price (zeroed
    because the envelope is empty, or clamped to what remains).
    """

    mode: TransportMode
    cost: int
    budget_adjusted: bool = False
    over_envelope: bool = False
    downgraded_from: TransportMode | None = None
    note: str = ""


def own_vehicle_mode(trip: Trip) -> TransportMode | None:
    if not trip.has_own_vehicle:
        return None
    return TransportMode(trip.own_vehicle.value)


def decide_mode(
    trip: Trip,
    tier: DistanceTier,
    *,
    distance_km: float | None = None,
    driving_hours: float | None = None,
) -> TransportMode:
    """Pick a transport mode for a leg.

    Args:
        trip: Trip whose style, vehicle and preference drive the choice
        tier: Distance tier of the leg
        distance_km: Real routing distance, overriding the tier estimate
        driving_hours: Real routing duration, overriding the tier estimate

    Returns:
        Selected mode; road trips never fly
    """
    km = distance_km if distance_km else KM_ESTIMATES[tier]
    hours = driving_hours if driving_hours else km / AVERAGE_DRIVING_KMH
    vehicle = own_vehicle_mode(trip)

    if trip.travel_style == TravelStyle.road_trip:
        if vehicle is not None and km <= ROAD_TRIP_VEHICLE_MAX_KM:
            return vehicle
        return TransportMode.bus if km <= ROAD_TRIP_BUS_MAX_KM else TransportMode.train

    if vehicle is not None and hours <= OWN_VEHICLE_MAX_HOURS:
        return vehicle

    if trip.travel_preference != TravelPreference.any:
        preferred = TransportMode(trip.travel_preference.value)
        if preferred == TransportMode.flight and hours < FLIGHT_MIN_DRIVING_HOURS:
            return TransportMode.train
        return preferred

    if hours >= AUTO_FLIGHT_HOURS:
        return TransportMode.train if trip.budget_tier == BudgetTier.budget else TransportMode.flight
    if tier == DistanceTier.local or trip.budget_tier == BudgetTier.budget:
        return TransportMode.bus
    return TransportMode.train


def transport_cost(
    mode: TransportMode,
    tier: DistanceTier,
    travelers: int,
    currency: str,
    distance_km: float | None = None,
) -> int:
    """Total cost of a leg for all travelers in the trip currency."""
    if mode in TIERED_FARES:
        base = TIERED_FARES[mode][tier]
    else:
        km = distance_km if distance_km else KM_ESTIMATES[tier]
        base = PER_KM_RATES[mode] * km
    return max(1, round_half_up(base * max(1, travelers) * effective_multiplier(currency)))


def envelope_aware_cost(
    preferred: TransportMode,
    tier: DistanceTier,
    travelers: int,
    currency: str,
    remaining: float,
    user_explicit: bool,
    distance_km: float | None = None,
) -> TransportQuote:
    """Price a leg against the remaining intercity envelope.

    An explicit user choice is never downgraded, even when it overshoots.
    Otherwise the downgrade ladder is walked from one step past the preferred
    mode. When nothing fits, the cost is clamped to the remaining balance
    using the cheapest mode seen; the clamped figure understates the true
    price and is flagged as `budget_adjusted`.
    """
    if remaining <= 0:
        return TransportQuote(
            mode=preferred, cost=0, budget_adjusted=True, note="intercity envelope exhausted"
        )

    cost = transport_cost(preferred, tier, travelers, currency, distance_km)
    if cost <= remaining:
        return TransportQuote(mode=preferred, cost=cost)

    if user_explicit:
        logger.warning(
            "Explicit transport choice exceeds intercity envelope",
            extra={"structured": {"mode": preferred.value, "cost": cost, "remaining": remaining}},
        )
        return TransportQuote(
            mode=preferred, cost=cost, over_envelope=True, note="user choice kept over budget"
        )

    cheapest_mode, cheapest_cost = preferred, cost
    start = DOWNGRADE_LADDER.index(preferred) + 1 if preferred in DOWNGRADE_LADDER else len(DOWNGRADE_LADDER)
    for candidate in DOWNGRADE_LADDER[start:]:
        candidate_cost = transport_cost(candidate, tier, travelers, currency, distance_km)
        if candidate_cost <= remaining:
            return TransportQuote(
                mode=candidate,
                cost=candidate_cost,
                downgraded_from=preferred,
                note=f"downgraded from {preferred.value} to fit budget",
            )
        if candidate_cost < cheapest_cost:
            cheapest_mode, cheapest_cost = candidate, candidate_cost

    logger.warning(
        "No transport mode fits the envelope; clamping cost to remaining balance",
        extra={
            "structured": {
                "mode": cheapest_mode.value,
                "true_cost": cheapest_cost,
                "remaining": remaining,
            }
        },
    )
    return TransportQuote(
        mode=cheapest_mode,
        cost=int(remaining),
        budget_adjusted=True,
        downgraded_from=preferred if cheapest_mode != preferred else None,
        note=f"cost clamped to remaining budget (true estimate {cheapest_cost})",
    )


def is_overnight_eligible(hours: float | None, mode: TransportMode, budget_tier: BudgetTier) -> bool:
    """Ground travel of 6-16h off the luxury tier can run overnight."""
    if hours is None or budget_tier == BudgetTier.luxury:
        return False
    if mode not in (TransportMode.bus, TransportMode.train):
        return False
    return OVERNIGHT_MIN_HOURS <= hours <= OVERNIGHT_MAX_HOURS
