"""Feasibility guard: deterministic corrections to suggested activities.

Each guard is a pure function from `(activities, context)` to a
`GuardOutcome`. Guards never mutate their input; corrected segments are
produced with `model_copy`. `apply_feasibility_guard` composes them left to
right and collects every correction as a `FeasibilityIssue`.
"""

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from itertools import groupby
from types import MappingProxyType

from tripcore.models.common import BudgetTier, SegmentKind, TravelStyle
from tripcore.models.corrections import FeasibilityIssue, GuardName
from tripcore.models.segment import ActivityMetadata, Segment, TransportMetadata
from tripcore.models.trip import Trip
from tripcore.utils.geo import haversine_km
from tripcore.utils.metrics import feasibility_corrections_total

logger = logging.getLogger(__name__)

STYLE_ACTIVITY_LIMITS = MappingProxyType(
    {
        TravelStyle.relaxation: 3,
        TravelStyle.city_explorer: 4,
        TravelStyle.adventure: 5,
        TravelStyle.business: 2,
        TravelStyle.road_trip: 4,
    }
)
DEFAULT_ACTIVITY_LIMIT = 4

TIER_COST_CAPS = MappingProxyType(
    {
        BudgetTier.budget: 500,
        BudgetTier.mid_range: 2000,
        BudgetTier.luxury: 8000,
    }
)

SINGLE_DAY_INTERCITY_THRESHOLD = 6
SINGLE_DAY_INTERCITY_KEEP = 3
MAX_INTRADAY_KM = 40
MAX_DAILY_MINUTES = 600
DEFAULT_ACTIVITY_MINUTES = 60
INTER_ACTIVITY_BUFFER_MINUTES = 30
ARRIVAL_BUFFER_MINUTES = 30
DEPARTURE_BUFFER_MINUTES = 90
DEFAULT_START_MINUTES = 8 * 60

_TIME_RE = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*([AaPp][Mm])?\s*$")


def parse_time(value: str | None) -> int:
    """Parse "HH:MM" or "9:30 AM" into minutes after midnight.

    Missing or unparseable values fall back to 08:00.
    """
    if not value:
        return DEFAULT_START_MINUTES
    match = _TIME_RE.match(value)
    if not match:
        return DEFAULT_START_MINUTES

    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    meridiem = (match.group(3) or "").lower()
    if meridiem == "pm" and hours < 12:
        hours += 12
    elif meridiem == "am" and hours == 12:
        hours = 0

    if hours > 23 or minutes > 59:
        return DEFAULT_START_MINUTES
    return hours * 60 + minutes


def format_time(minutes: int) -> str:
    minutes = max(0, min(minutes, 24 * 60 - 1))
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class GuardContext:
    """Trip facts the guards read. Built once per run."""

    travel_style: TravelStyle
    budget_tier: BudgetTier
    total_days: int
    has_outbound: bool = False
    arrival_time: str | None = None
    departure_time: str | None = None

    @classmethod
    def from_trip(
        cls,
        trip: Trip,
        transport_segments: Sequence[Segment] = (),
        *,
        travel_style: TravelStyle | None = None,
        budget_tier: BudgetTier | None = None,
        total_days: int | None = None,
    ) -> "GuardContext":
        """Build a context, reading clock times off the transport segments.

        The outbound arrival comes from the outbound segment. The departure
        comes from the return segment when one exists, otherwise from the
        trip's requested return departure time.
        """
        arrival: str | None = None
        departure: str | None = trip.return_departure_time
        for segment in transport_segments:
            if not isinstance(segment.metadata, TransportMetadata):
                continue
            if segment.kind == SegmentKind.outbound_travel:
                arrival = segment.metadata.arrival_time
            elif segment.kind == SegmentKind.return_travel and segment.metadata.departure_time:
                departure = segment.metadata.departure_time

        return cls(
            travel_style=travel_style or trip.travel_style,
            budget_tier=budget_tier or trip.budget_tier,
            total_days=trip.total_days if total_days is None else total_days,
            has_outbound=trip.has_outbound(),
            arrival_time=arrival,
            departure_time=departure,
        )


@dataclass
class GuardOutcome:
    activities: list[Segment]
    issues: list[FeasibilityIssue] = field(default_factory=list)


@dataclass
class FeasibilityResult:
    """Corrected activities plus every correction made."""

    activities: list[Segment]
    issues: list[FeasibilityIssue] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [issue.message for issue in self.issues]


Guard = Callable[[Sequence[Segment], GuardContext], GuardOutcome]


def _time_of(segment: Segment) -> str | None:
    if isinstance(segment.metadata, ActivityMetadata):
        return segment.metadata.time
    return None


def _by_day(activities: Sequence[Segment]) -> dict[int, list[Segment]]:
    """Group activities by day, each day sorted by order_index."""
    ordered = sorted(activities, key=lambda s: (s.day_number, s.order_index))
    return {day: list(group) for day, group in groupby(ordered, key=lambda s: s.day_number)}


def _flatten(days: dict[int, list[Segment]]) -> list[Segment]:
    return [segment for day in sorted(days) for segment in days[day]]


def guard_intercity_feasibility(activities: Sequence[Segment], context: GuardContext) -> GuardOutcome:
    """Cap a long-haul single-day trip at a handful of activities."""
    if context.total_days != 1 or not context.has_outbound:
        return GuardOutcome(list(activities))

    days = _by_day(activities)
    day_one = days.get(1, [])
    geocoded = sum(1 for s in day_one if s.is_geocoded)
    if geocoded < SINGLE_DAY_INTERCITY_THRESHOLD:
        return GuardOutcome(list(activities))

    kept, dropped = day_one[:SINGLE_DAY_INTERCITY_KEEP], day_one[SINGLE_DAY_INTERCITY_KEEP:]
    days[1] = kept
    issue = FeasibilityIssue(
        guard=GuardName.INTERCITY,
        code="SINGLE_DAY_INTERCITY_CAP",
        message=(
            f"Day 1: single-day intercity trip with {len(day_one)} activities; "
            f"kept the first {len(kept)}."
        ),
        day_number=1,
        affected_titles=[s.title for s in dropped],
        details={"geocoded": geocoded, "kept": len(kept)},
    )
    return GuardOutcome(_flatten(days), [issue])


def guard_activity_cap(activities: Sequence[Segment], context: GuardContext) -> GuardOutcome:
    """Limit activities per day by travel style, dropping the latest-ordered."""
    limit = STYLE_ACTIVITY_LIMITS.get(context.travel_style, DEFAULT_ACTIVITY_LIMIT)
    days = _by_day(activities)
    issues: list[FeasibilityIssue] = []

    for day, segments in days.items():
        if len(segments) <= limit:
            continue
        days[day], dropped = segments[:limit], segments[limit:]
        issues.append(
            FeasibilityIssue(
                guard=GuardName.ACTIVITY_CAP,
                code="ACTIVITY_CAP_EXCEEDED",
                message=(
                    f"Day {day}: {len(segments)} activities exceeds the {context.travel_style.value} "
                    f"limit of {limit}; removed {len(dropped)}."
                ),
                day_number=day,
                affected_titles=[s.title for s in dropped],
                details={"limit": limit, "suggested": len(segments)},
            )
        )
    return GuardOutcome(_flatten(days), issues)


def guard_arrival(activities: Sequence[Segment], context: GuardContext) -> GuardOutcome:
    """Push day-1 activities that start before arrival plus a buffer."""
    if not context.arrival_time:
        return GuardOutcome(list(activities))

    earliest = parse_time(context.arrival_time) + ARRIVAL_BUFFER_MINUTES
    shifted_to = format_time(earliest)
    result: list[Segment] = []
    issues: list[FeasibilityIssue] = []

    for segment in activities:
        time = _time_of(segment)
        if segment.day_number != 1 or time is None or parse_time(time) >= earliest:
            result.append(segment)
            continue
        result.append(
            segment.model_copy(update={"metadata": segment.metadata.model_copy(update={"time": shifted_to})})
        )
        issues.append(
            FeasibilityIssue(
                guard=GuardName.ARRIVAL,
                code="ACTIVITY_BEFORE_ARRIVAL",
                message=(
                    f"Day 1: '{segment.title}' at {time} is before arrival at "
                    f"{context.arrival_time}; moved to {shifted_to}."
                ),
                day_number=1,
                affected_titles=[segment.title],
                details={"original_time": time, "new_time": shifted_to},
            )
        )
    return GuardOutcome(result, issues)


def guard_departure(activities: Sequence[Segment], context: GuardContext) -> GuardOutcome:
    """Drop the final day's last activity if it runs into the departure buffer."""
    if not context.departure_time or context.total_days < 1:
        return GuardOutcome(list(activities))

    final_day = [s for s in activities if s.day_number == context.total_days]
    if not final_day:
        return GuardOutcome(list(activities))

    cutoff = parse_time(context.departure_time) - DEPARTURE_BUFFER_MINUTES
    latest = max(final_day, key=lambda s: (parse_time(_time_of(s)), s.order_index))
    ends_at = parse_time(_time_of(latest)) + DEFAULT_ACTIVITY_MINUTES
    if ends_at <= cutoff:
        return GuardOutcome(list(activities))

    issue = FeasibilityIssue(
        guard=GuardName.DEPARTURE,
        code="ACTIVITY_AFTER_DEPARTURE",
        message=(
            f"Day {context.total_days}: '{latest.title}' would end after the "
            f"{DEPARTURE_BUFFER_MINUTES}-minute buffer before departure at "
            f"{context.departure_time}; removed."
        ),
        day_number=context.total_days,
        affected_titles=[latest.title],
        details={"ends_at": format_time(ends_at), "cutoff": format_time(cutoff)},
    )
    return GuardOutcome([s for s in activities if s is not latest], [issue])


def nearest_neighbor_order(start: Segment, segments: Sequence[Segment]) -> list[Segment]:
    """Greedy tour over geocoded segments beginning at `start`.

    Ties go to the segment that came first in `segments`.
    """
    remaining = [s for s in segments if s is not start]
    tour = [start]
    while remaining:
        here = tour[-1].coordinates
        nearest = min(remaining, key=lambda s: haversine_km(here, s.coordinates))
        remaining.remove(nearest)
        tour.append(nearest)
    return tour


def tour_length_km(segments: Sequence[Segment]) -> float:
    return sum(haversine_km(a.coordinates, b.coordinates) for a, b in zip(segments, segments[1:]))


def guard_geo_reorder(activities: Sequence[Segment], context: GuardContext) -> GuardOutcome:
    """Reorder each day by proximity and drop far-flung outliers."""
    days = _by_day(activities)
    issues: list[FeasibilityIssue] = []

    for day, segments in days.items():
        geocoded = [s for s in segments if s.is_geocoded]
        if len(geocoded) < 2:
            continue
        others = [s for s in segments if not s.is_geocoded]

        start = min(geocoded, key=lambda s: (parse_time(_time_of(s)), s.order_index))
        tour = nearest_neighbor_order(start, geocoded)

        kept = [tour[0]]
        dropped: list[Segment] = []
        for segment in tour[1:]:
            if haversine_km(kept[-1].coordinates, segment.coordinates) > MAX_INTRADAY_KM:
                dropped.append(segment)
            else:
                kept.append(segment)

        if dropped:
            kept = nearest_neighbor_order(start, kept)
            issues.append(
                FeasibilityIssue(
                    guard=GuardName.GEO_REORDER,
                    code="ACTIVITY_TOO_FAR",
                    message=(
                        f"Day {day}: removed {len(dropped)} activit{'y' if len(dropped) == 1 else 'ies'} "
                        f"more than {MAX_INTRADAY_KM} km from the rest of the day: "
                        + ", ".join(s.title for s in dropped)
                    ),
                    day_number=day,
                    affected_titles=[s.title for s in dropped],
                    details={"max_km": MAX_INTRADAY_KM},
                )
            )

        reordered = [s.model_copy(update={"order_index": i}) for i, s in enumerate([*kept, *others])]
        if not dropped and [s.title for s in reordered] != [s.title for s in segments]:
            issues.append(
                FeasibilityIssue(
                    guard=GuardName.GEO_REORDER,
                    code="ACTIVITIES_REORDERED",
                    message=f"Day {day}: reordered activities to shorten travel between them.",
                    day_number=day,
                    affected_titles=[s.title for s in kept],
                    details={
                        "before_km": round(tour_length_km([s for s in segments if s.is_geocoded]), 2),
                        "after_km": round(tour_length_km(kept), 2),
                    },
                )
            )
        days[day] = reordered

    return GuardOutcome(_flatten(days), issues)


def max_activities_for_day() -> int:
    """Largest n with n activities plus buffers fitting the daily time cap."""
    n = 1
    while (
        (n + 1) * DEFAULT_ACTIVITY_MINUTES + n * INTER_ACTIVITY_BUFFER_MINUTES <= MAX_DAILY_MINUTES
    ):
        n += 1
    return n


def guard_daily_time_cap(activities: Sequence[Segment], context: GuardContext) -> GuardOutcome:
    """Trim each day from the end until its activities fit the daily time cap."""
    limit = max_activities_for_day()
    days = _by_day(activities)
    issues: list[FeasibilityIssue] = []

    for day, segments in days.items():
        if len(segments) <= limit:
            continue
        days[day], dropped = segments[:limit], segments[limit:]
        issues.append(
            FeasibilityIssue(
                guard=GuardName.TIME_CAP,
                code="DAILY_TIME_EXCEEDED",
                message=(
                    f"Day {day}: {len(segments)} activities need more than "
                    f"{MAX_DAILY_MINUTES // 60} hours; removed {len(dropped)}."
                ),
                day_number=day,
                affected_titles=[s.title for s in dropped],
                details={"max_minutes": MAX_DAILY_MINUTES, "kept": limit},
            )
        )
    return GuardOutcome(_flatten(days), issues)


def guard_cost_clamp(activities: Sequence[Segment], context: GuardContext) -> GuardOutcome:
    """Clamp single-activity costs to the tier ceiling."""
    cap = TIER_COST_CAPS.get(context.budget_tier, TIER_COST_CAPS[BudgetTier.mid_range])
    result: list[Segment] = []
    issues: list[FeasibilityIssue] = []

    for segment in activities:
        if segment.estimated_cost <= cap:
            result.append(segment)
            continue
        update: dict = {"estimated_cost": cap}
        if isinstance(segment.metadata, ActivityMetadata):
            update["metadata"] = segment.metadata.model_copy(update={"cost_clamped": True})
        result.append(segment.model_copy(update=update))
        issues.append(
            FeasibilityIssue(
                guard=GuardName.COST_CLAMP,
                code="COST_CLAMPED",
                message=(
                    f"Day {segment.day_number}: '{segment.title}' cost {segment.estimated_cost:g} "
                    f"exceeds the {context.budget_tier.value} cap; clamped to {cap}."
                ),
                day_number=segment.day_number,
                affected_titles=[segment.title],
                details={"original_cost": segment.estimated_cost, "cap": cap},
            )
        )
    return GuardOutcome(result, issues)


GUARDS: tuple[tuple[GuardName, Guard], ...] = (
    (GuardName.INTERCITY, guard_intercity_feasibility),
    (GuardName.ACTIVITY_CAP, guard_activity_cap),
    (GuardName.ARRIVAL, guard_arrival),
    (GuardName.DEPARTURE, guard_departure),
    (GuardName.GEO_REORDER, guard_geo_reorder),
    (GuardName.TIME_CAP, guard_daily_time_cap),
    (GuardName.COST_CLAMP, guard_cost_clamp),
)


def apply_feasibility_guard(
    context: GuardContext,
    activities: Sequence[Segment],
    guards: Sequence[tuple[GuardName, Guard]] = GUARDS,
) -> FeasibilityResult:
    """Run every guard in order over the activity list.

    Args:
        context: Trip facts shared by all guards
        activities: Activity segments; not modified
        guards: Override for the guard sequence (tests)

    Returns:
        FeasibilityResult with the corrected activities and all issues
    """
    current = list(activities)
    issues: list[FeasibilityIssue] = []

    for name, guard in guards:
        outcome = guard(current, context)
        current = outcome.activities
        if outcome.issues:
            feasibility_corrections_total.labels(guard=name.value).inc(len(outcome.issues))
            logger.debug(
                f"Guard {name.value} made {len(outcome.issues)} correction(s)",
                extra={"structured": {"guard": name.value, "corrections": len(outcome.issues)}},
            )
        issues.extend(outcome.issues)

    return FeasibilityResult(activities=current, issues=issues)
