"""Trip duration planning: how many days travel eats out of a trip."""

import asyncio
import math
from collections.abc import Sequence

from pydantic import BaseModel, Field

from tripcore.geocoding.cities import normalize_place
from tripcore.models.common import BudgetTier
from tripcore.models.trip import TripLeg
from tripcore.transport.routes import RouteTimeService
from tripcore.transport.tables import OVERNIGHT_MAX_HOURS, OVERNIGHT_MIN_HOURS


class TravelLeg(BaseModel):
    """Travel time for one hop of the route."""

    from_location: str
    to_location: str
    hours: float
    source: str
    can_overnight: bool
    travel_days: int


class DurationPlan(BaseModel):
    """Whether the requested length fits exploration plus travel days."""

    feasible: bool
    requested_days: int
    suggested_days: int
    minimum_required_days: int
    travel_days_required: int
    exploration_days: int
    legs: list[TravelLeg] = Field(default_factory=list)
    all_overnight: bool = False
    overnight_count: int = 0
    reason: str | None = None


def can_travel_overnight(hours: float, budget_tier: BudgetTier) -> bool:
    if budget_tier == BudgetTier.luxury:
        return False
    return OVERNIGHT_MIN_HOURS <= hours <= OVERNIGHT_MAX_HOURS


def travel_days_for(hours: float, budget_tier: BudgetTier) -> int:
    """Whole days consumed by a single hop.

    <=3h and overnight-eligible hops cost no day; <=12h one day; <=24h two;
    longer hops one day per 12 hours.
    """
    if hours <= 3:
        return 0
    if can_travel_overnight(hours, budget_tier):
        return 0
    if hours <= 12:
        return 1
    if hours <= 24:
        return 2
    return math.ceil(hours / 12)


async def plan_trip_duration(
    routes: RouteTimeService,
    start_location: str,
    destinations: Sequence[TripLeg],
    requested_days: int,
    return_location: str | None = None,
    budget_tier: BudgetTier = BudgetTier.mid_range,
) -> DurationPlan:
    """Check that a requested trip length leaves room for travel.

    Args:
        routes: Route-time service (falls back to tier hours offline)
        start_location: Where the traveler departs from
        destinations: Stays in order
        requested_days: Trip length the traveler asked for
        return_location: Where the trip ends (default: start location)
        budget_tier: Luxury trips never travel overnight

    Returns:
        DurationPlan with a suggested length and a reason when infeasible
    """
    exploration_days = sum(leg.days or 1 for leg in destinations)
    if not destinations or (
        len(destinations) == 1
        and normalize_place(start_location) == normalize_place(destinations[0].location)
    ):
        days = exploration_days if destinations else requested_days
        return DurationPlan(
            feasible=True,
            requested_days=requested_days,
            suggested_days=requested_days,
            minimum_required_days=days,
            travel_days_required=0,
            exploration_days=days,
        )

    stops = [start_location, *(leg.location for leg in destinations), return_location or start_location]
    pairs = [
        (a, b) for a, b in zip(stops, stops[1:]) if a and b and normalize_place(a) != normalize_place(b)
    ]

    profiles = await asyncio.gather(*(routes.leg_profile(a, b) for a, b in pairs))
    legs = [
        TravelLeg(
            from_location=a,
            to_location=b,
            hours=profile.hours,
            source=profile.source,
            can_overnight=can_travel_overnight(profile.hours, budget_tier),
            travel_days=travel_days_for(profile.hours, budget_tier),
        )
        for (a, b), profile in zip(pairs, profiles)
    ]

    travel_days = sum(leg.travel_days for leg in legs)
    minimum = exploration_days + travel_days
    feasible = requested_days >= minimum
    overnight = [leg for leg in legs if leg.can_overnight]
    all_overnight = bool(legs) and len(overnight) == len(legs)

    if not feasible:
        reason = (
            f"Trip requires {minimum} days ({exploration_days} exploration + {travel_days} travel), "
            f"but only {requested_days} requested."
        )
    elif all_overnight:
        reason = f"All travel is overnight; your {exploration_days} exploration days are fully preserved."
    else:
        reason = None

    return DurationPlan(
        feasible=feasible,
        requested_days=requested_days,
        suggested_days=requested_days if feasible else minimum,
        minimum_required_days=minimum,
        travel_days_required=travel_days,
        exploration_days=exploration_days,
        legs=legs,
        all_overnight=all_overnight,
        overnight_count=len(overnight),
        reason=reason,
    )
