"""Segment builders for intercity travel, lodging and local hops."""

import logging
import math
from collections.abc import Sequence

from tripcore.budget.allocator import deduct
from tripcore.geocoding.cities import normalize_place
from tripcore.models.budget import BudgetAllocation
from tripcore.models.common import (
    BudgetCategory,
    BudgetTier,
    SegmentKind,
    TransportMode,
    TravelPreference,
)
from tripcore.models.segment import (
    AccommodationMetadata,
    LocalTransportMetadata,
    Segment,
    TransportMetadata,
)
from tripcore.models.trip import DayLocation, Trip
from tripcore.transport.currency import effective_multiplier
from tripcore.transport.decision import (
    TransportQuote,
    decide_mode,
    envelope_aware_cost,
    is_overnight_eligible,
    transport_cost,
)
from tripcore.transport.routes import LegProfile, RouteTimeService
from tripcore.transport.tables import (
    ACCOMMODATION_NIGHTLY,
    LOCAL_AVERAGE_KMH,
    LOCAL_FALLBACK_KM,
    LOCAL_FARES,
    LOCAL_MAX_HOP_KM,
    LOCAL_MIN_HOP_KM,
    MODE_LABELS,
    OVERNIGHT_ARRIVAL,
    OVERNIGHT_DEPARTURE,
    TRAVELERS_PER_ROOM,
)
from tripcore.utils.geo import haversine_km
from tripcore.utils.numbers import round_half_up

logger = logging.getLogger(__name__)

OUTBOUND_ORDER = -2
ACCOMMODATION_ORDER = 998
INTERCITY_ORDER = 999
RETURN_ORDER = 1000


def add_hours(hhmm: str, hours: float) -> str | None:
    """Add a duration to an HH:MM clock time, wrapping past midnight."""
    try:
        h, m = (int(part) for part in hhmm.strip().split(":")[:2])
    except ValueError:
        return None
    total = (h * 60 + m + round_half_up(hours * 60)) % (24 * 60)
    return f"{total // 60:02d}:{total % 60:02d}"


def _same_place(a: str | None, b: str | None) -> bool:
    return bool(a) and bool(b) and normalize_place(a or "") == normalize_place(b or "")


class TransportPlanner:
    """Builds transport and lodging segments, charging the allocation as it goes."""

    def __init__(self, routes: RouteTimeService) -> None:
        self._routes = routes

    async def build_outbound_segment(self, trip: Trip, allocation: BudgetAllocation) -> Segment | None:
        """Day-1 leg from the start location to the first stop."""
        origin = trip.start_location
        target = trip.effective_legs[0].location
        if not origin or not target or _same_place(origin, target):
            return None

        profile = await self._routes.leg_profile(origin, target)
        mode = self._decide(trip, profile)
        quote = envelope_aware_cost(
            mode,
            profile.tier,
            trip.travelers,
            trip.currency,
            allocation.remaining_for(BudgetCategory.intercity),
            user_explicit=_is_user_choice(trip, mode),
            distance_km=profile.distance_km,
        )
        deduct(allocation, BudgetCategory.intercity, quote.cost)
        return self._transport_segment(
            trip,
            SegmentKind.outbound_travel,
            day=1,
            order=OUTBOUND_ORDER,
            origin=origin,
            target=target,
            profile=profile,
            quote=quote,
            departure=trip.departure_time,
        )

    async def build_intercity_segments(self, trip: Trip, allocation: BudgetAllocation) -> list[Segment]:
        """One leg per change of location between consecutive stays."""
        segments: list[Segment] = []
        legs = [leg for leg in trip.effective_legs if leg.days > 0]
        day = 1
        for previous, current in zip(legs, legs[1:]):
            day += previous.days
            if _same_place(previous.location, current.location):
                continue

            profile = await self._routes.leg_profile(previous.location, current.location)
            mode = self._decide(trip, profile)
            quote = envelope_aware_cost(
                mode,
                profile.tier,
                trip.travelers,
                trip.currency,
                allocation.remaining_for(BudgetCategory.intercity),
                user_explicit=_is_user_choice(trip, mode),
                distance_km=profile.distance_km,
            )
            deduct(allocation, BudgetCategory.intercity, quote.cost)
            segments.append(
                self._transport_segment(
                    trip,
                    SegmentKind.intercity_travel,
                    day=day,
                    order=INTERCITY_ORDER,
                    origin=previous.location,
                    target=current.location,
                    profile=profile,
                    quote=quote,
                )
            )
        return segments

    async def build_return_segment(
        self,
        trip: Trip,
        allocation: BudgetAllocation,
        total_days: int,
        outbound_mode: TransportMode | None = None,
    ) -> Segment | None:
        """Final-day leg home, priced at the undiscounted rate.

        When the return reverses the outbound leg the outbound mode is reused.
        """
        origin = trip.effective_legs[-1].location
        target = trip.return_location or trip.start_location
        if not target or not origin or _same_place(origin, target):
            return None

        profile = await self._routes.leg_profile(origin, target)
        reverses_outbound = _same_place(target, trip.start_location) and _same_place(
            origin, trip.effective_legs[0].location
        )
        mode = outbound_mode if outbound_mode and reverses_outbound else self._decide(trip, profile)

        remaining = allocation.remaining_for(BudgetCategory.intercity)
        cost = transport_cost(mode, profile.tier, trip.travelers, trip.currency, profile.distance_km)
        over = cost > remaining
        if over:
            logger.warning(
                "Return leg exceeds remaining intercity envelope",
                extra={"structured": {"trip_id": trip.id, "cost": cost, "remaining": remaining}},
            )
        quote = TransportQuote(
            mode=mode,
            cost=cost,
            over_envelope=over,
            note="return priced at full fare" if over else "",
        )
        deduct(allocation, BudgetCategory.intercity, cost)
        return self._transport_segment(
            trip,
            SegmentKind.return_travel,
            day=max(1, total_days),
            order=RETURN_ORDER,
            origin=origin,
            target=target,
            profile=profile,
            quote=quote,
            departure=trip.return_departure_time,
        )

    @staticmethod
    def build_accommodation_segments(
        trip: Trip, allocation: BudgetAllocation, day_locations: Sequence[DayLocation]
    ) -> list[Segment]:
        """One lodging segment per night, at that day's location."""
        rooms = max(1, math.ceil(trip.travelers / TRAVELERS_PER_ROOM))
        nightly = round_half_up(
            ACCOMMODATION_NIGHTLY[trip.budget_tier] * rooms * effective_multiplier(trip.currency)
        )
        segments: list[Segment] = []
        for night in range(1, len(day_locations)):
            location = day_locations[night - 1].location
            remaining = allocation.remaining_for(BudgetCategory.accommodation)
            adjusted = nightly > remaining
            cost = int(remaining) if adjusted else nightly
            deduct(allocation, BudgetCategory.accommodation, cost)
            segments.append(
                Segment(
                    trip_id=trip.id,
                    kind=SegmentKind.accommodation,
                    day_number=night,
                    order_index=ACCOMMODATION_ORDER,
                    title=f"Stay in {location}",
                    location=location,
                    estimated_cost=cost,
                    metadata=AccommodationMetadata(
                        accommodation_tier=trip.budget_tier,
                        nightly_rate=nightly,
                        rooms=rooms,
                        budget_adjusted=adjusted,
                    ),
                )
            )
        return segments

    @staticmethod
    def _decide(trip: Trip, profile: LegProfile) -> TransportMode:
        if profile.routed:
            return decide_mode(
                trip, profile.tier, distance_km=profile.distance_km, driving_hours=profile.hours
            )
        return decide_mode(trip, profile.tier)

    @staticmethod
    def _transport_segment(
        trip: Trip,
        kind: SegmentKind,
        *,
        day: int,
        order: float,
        origin: str,
        target: str,
        profile: LegProfile,
        quote: TransportQuote,
        departure: str | None = None,
    ) -> Segment:
        overnight = is_overnight_eligible(profile.hours, quote.mode, trip.budget_tier)
        arrival: str | None = None
        if overnight:
            departure, arrival = OVERNIGHT_DEPARTURE, OVERNIGHT_ARRIVAL
        elif departure:
            arrival = add_hours(departure, profile.hours)

        title = f"{MODE_LABELS[quote.mode]} from {origin} to {target}"
        if overnight:
            title += " (Overnight)"

        return Segment(
            trip_id=trip.id,
            kind=kind,
            day_number=day,
            order_index=order,
            title=title,
            location=target,
            estimated_cost=quote.cost,
            metadata=TransportMetadata(
                transport_mode=quote.mode,
                from_location=origin,
                to_location=target,
                distance_tier=profile.tier,
                distance_km=profile.distance_km,
                duration_hours=profile.hours,
                route_source=profile.source,
                per_person_cost=round(quote.cost / max(1, trip.travelers), 2),
                is_overnight=overnight,
                departure_time=departure,
                arrival_time=arrival,
                budget_adjusted=quote.budget_adjusted,
                over_envelope=quote.over_envelope,
                downgraded_from=quote.downgraded_from,
                notes=quote.note,
            ),
        )


def _is_user_choice(trip: Trip, mode: TransportMode) -> bool:
    return trip.travel_preference != TravelPreference.any and trip.travel_preference.value == mode.value


def insert_pairwise_local_transport(
    activities: Sequence[Segment],
    day: int,
    budget_tier: BudgetTier,
    currency: str,
    allocation: BudgetAllocation,
) -> list[Segment]:
    """Insert a local hop between each consecutive pair of a day's activities.

    Args:
        activities: The day's activities, already in visiting order
        day: Day number the hops belong to
        budget_tier: Selects the minimum fare and per-km rate
        currency: Trip currency for the effective multiplier
        allocation: Charged against the local_transport envelope

    Returns:
        New local_transport segments at `order_index + 0.5` of each origin
    """
    min_fare_usd, per_km_usd = LOCAL_FARES[budget_tier]
    multiplier = effective_multiplier(currency)
    min_fare = round(min_fare_usd * multiplier, 2)
    fare_per_km = round(per_km_usd * multiplier, 2)

    hops: list[Segment] = []
    for origin, target in zip(activities, activities[1:]):
        if origin.coordinates is None and target.coordinates is None:
            continue

        estimated = False
        if origin.coordinates is None or target.coordinates is None:
            km, estimated = float(LOCAL_FALLBACK_KM), True
        else:
            km = haversine_km(origin.coordinates, target.coordinates)
            if km > LOCAL_MAX_HOP_KM:
                km, estimated = float(LOCAL_FALLBACK_KM), True

        if km <= LOCAL_MIN_HOP_KM:
            continue
        if allocation.remaining_for(BudgetCategory.local_transport) <= 0:
            logger.info(f"Local transport envelope exhausted on day {day}; skipping remaining hops")
            break

        cost = round(max(min_fare, km * fare_per_km), 2)
        deduct(allocation, BudgetCategory.local_transport, cost)
        hops.append(
            Segment(
                trip_id=origin.trip_id,
                kind=SegmentKind.local_transport,
                day_number=day,
                order_index=origin.order_index + 0.5,
                title=f"Local transport to {target.title}",
                location=target.location,
                estimated_cost=cost,
                metadata=LocalTransportMetadata(
                    from_title=origin.title,
                    to_title=target.title,
                    distance_km=round(km, 2),
                    distance_estimated=estimated,
                    fare_per_km=fare_per_km,
                    min_fare=min_fare,
                    estimated_minutes=max(5, round_half_up(km / LOCAL_AVERAGE_KMH * 60)),
                ),
            )
        )
    return hops
