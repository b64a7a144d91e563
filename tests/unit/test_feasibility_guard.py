"""Unit tests for the feasibility guard.

Tests cover:
1. Single-day intercity cap (7 activities -> at most 3)
2. Per-style activity cap
3. Arrival and departure constraints
4. Nearest-neighbor reordering and outlier removal
5. Daily time cap and per-tier cost clamp
6. Guards never mutate their input
"""

import pytest

from tripcore.models import (
    ActivityMetadata,
    BudgetTier,
    Coordinate,
    GuardName,
    Segment,
    SegmentKind,
    TransportMetadata,
    TransportMode,
    TravelStyle,
    Trip,
    TripLeg,
)
from tripcore.models.common import DistanceTier
from tripcore.verification.feasibility import (
    GuardContext,
    apply_feasibility_guard,
    format_time,
    guard_activity_cap,
    guard_arrival,
    guard_cost_clamp,
    guard_daily_time_cap,
    guard_departure,
    guard_geo_reorder,
    guard_intercity_feasibility,
    max_activities_for_day,
    nearest_neighbor_order,
    parse_time,
    tour_length_km,
)


def _act(
    title: str,
    *,
    day: int = 1,
    order: float = 0,
    time: str = "09:00",
    coords: tuple[float, float] | None = (41.90, 12.50),
    cost: float = 10,
) -> Segment:
    return Segment(
        trip_id="trip-1",
        kind=SegmentKind.activity,
        day_number=day,
        order_index=order,
        title=title,
        location=title,
        estimated_cost=cost,
        coordinates=Coordinate(latitude=coords[0], longitude=coords[1]) if coords else None,
        metadata=ActivityMetadata(time=time),
    )


def _context(**overrides: object) -> GuardContext:
    values: dict[str, object] = {
        "travel_style": TravelStyle.city_explorer,
        "budget_tier": BudgetTier.mid_range,
        "total_days": 2,
    }
    values.update(overrides)
    return GuardContext(**values)  # type: ignore[arg-type]


class TestTimeParsing:
    """Test clock-time helpers."""

    @pytest.mark.parametrize(
        ("value", "minutes"),
        [
            ("09:30", 570),
            ("9:30 AM", 570),
            ("9 PM", 1260),
            ("12 AM", 0),
            ("12:15 pm", 735),
            ("25:00", 480),
            ("noon", 480),
            (None, 480),
        ],
    )
    def test_parse_time(self, value: str | None, minutes: int) -> None:
        assert parse_time(value) == minutes

    def test_format_time_clamps(self) -> None:
        assert format_time(570) == "09:30"
        assert format_time(1500) == "23:59"
        assert format_time(-5) == "00:00"


class TestGuardContext:
    """Test context construction from a trip."""

    def test_reads_arrival_and_departure(self) -> None:
        trip = Trip(
            id="trip-1",
            destination="Rome",
            start_location="Paris",
            legs=[TripLeg(location="Rome", days=1)],
            return_departure_time="20:00",
        )
        outbound = Segment(
            kind=SegmentKind.outbound_travel,
            day_number=1,
            order_index=-2,
            title="Flight from Paris to Rome",
            metadata=TransportMetadata(
                transport_mode=TransportMode.flight,
                from_location="Paris",
                to_location="Rome",
                distance_tier=DistanceTier.medium,
                arrival_time="11:00",
            ),
        )

        context = GuardContext.from_trip(trip, [outbound])

        assert context.total_days == 1
        assert context.has_outbound is True
        assert context.arrival_time == "11:00"
        assert context.departure_time == "20:00"


class TestIntercityGuard:
    """Test the single-day intercity cap."""

    def test_seven_activities_on_single_day_trip_keep_at_most_three(self) -> None:
        activities = [_act(f"Stop {i}", order=i, coords=(41.90 + i * 0.001, 12.50)) for i in range(7)]
        context = _context(total_days=1, has_outbound=True)

        result = apply_feasibility_guard(context, activities)

        assert len(result.activities) <= 3
        assert [s.title for s in result.activities] == ["Stop 0", "Stop 1", "Stop 2"]
        assert result.issues[0].code == "SINGLE_DAY_INTERCITY_CAP"
        assert result.issues[0].guard == GuardName.INTERCITY

    def test_not_applied_without_outbound(self) -> None:
        activities = [_act(f"Stop {i}", order=i) for i in range(7)]

        outcome = guard_intercity_feasibility(activities, _context(total_days=1))

        assert len(outcome.activities) == 7
        assert outcome.issues == []

    def test_needs_enough_geocoded_activities(self) -> None:
        activities = [_act(f"Stop {i}", order=i, coords=None if i % 2 else (41.9, 12.5)) for i in range(7)]

        outcome = guard_intercity_feasibility(activities, _context(total_days=1, has_outbound=True))

        assert len(outcome.activities) == 7


class TestActivityCap:
    """Test the per-style activity limit."""

    @pytest.mark.parametrize(
        ("style", "limit"),
        [
            (TravelStyle.relaxation, 3),
            (TravelStyle.city_explorer, 4),
            (TravelStyle.adventure, 5),
            (TravelStyle.business, 2),
            (TravelStyle.road_trip, 4),
        ],
    )
    def test_limit_by_style(self, style: TravelStyle, limit: int) -> None:
        activities = [_act(f"A{i}", order=i) for i in range(6)]

        outcome = guard_activity_cap(activities, _context(travel_style=style))

        assert [s.title for s in outcome.activities] == [f"A{i}" for i in range(limit)]
        assert outcome.issues[0].affected_titles == [f"A{i}" for i in range(limit, 6)]

    def test_drops_highest_order_not_list_position(self) -> None:
        activities = [_act("late", order=5), _act("a", order=0), _act("b", order=1), _act("c", order=2)]

        outcome = guard_activity_cap(activities, _context(travel_style=TravelStyle.relaxation))

        assert [s.title for s in outcome.activities] == ["a", "b", "c"]

    def test_each_day_capped_independently(self) -> None:
        activities = [_act(f"d1-{i}", day=1, order=i) for i in range(3)] + [
            _act(f"d2-{i}", day=2, order=i) for i in range(5)
        ]

        outcome = guard_activity_cap(activities, _context(travel_style=TravelStyle.relaxation))

        assert len(outcome.activities) == 6
        assert len(outcome.issues) == 1
        assert outcome.issues[0].day_number == 2


class TestArrivalAndDeparture:
    """Test clock-time constraints on the first and last day."""

    def test_activities_before_arrival_are_shifted(self) -> None:
        activities = [
            _act("Breakfast", time="09:00"),
            _act("Museum", order=1, time="15:00"),
            _act("Day Two", day=2, time="08:00"),
        ]

        outcome = guard_arrival(activities, _context(arrival_time="13:00"))

        times = [s.metadata.time for s in outcome.activities]  # type: ignore[union-attr]
        assert times == ["13:30", "15:00", "08:00"]
        assert len(outcome.issues) == 1
        assert outcome.issues[0].details == {"original_time": "09:00", "new_time": "13:30"}

    def test_no_arrival_time_is_noop(self) -> None:
        activities = [_act("Breakfast", time="06:00")]
        assert guard_arrival(activities, _context()).activities == activities

    def test_latest_activity_removed_when_it_runs_into_departure(self) -> None:
        activities = [
            _act("Morning", day=2, time="10:00"),
            _act("Evening", day=2, order=1, time="4:00 PM"),
            _act("Day One Late", day=1, time="22:00"),
        ]

        outcome = guard_departure(activities, _context(departure_time="18:00"))

        assert [s.title for s in outcome.activities] == ["Morning", "Day One Late"]
        assert outcome.issues[0].code == "ACTIVITY_AFTER_DEPARTURE"

    def test_activity_ending_before_buffer_is_kept(self) -> None:
        activities = [_act("Lunch", day=2, time="15:00")]

        outcome = guard_departure(activities, _context(departure_time="18:00"))

        assert outcome.activities == activities
        assert outcome.issues == []


class TestGeoReorder:
    """Test proximity ordering."""

    def test_reorders_to_nearest_neighbor(self) -> None:
        activities = [
            _act("A", order=0, time="09:00", coords=(41.90, 12.50)),
            _act("C", order=1, time="10:00", coords=(41.92, 12.50)),
            _act("B", order=2, time="11:00", coords=(41.91, 12.50)),
        ]

        outcome = guard_geo_reorder(activities, _context())

        assert [s.title for s in outcome.activities] == ["A", "B", "C"]
        assert [s.order_index for s in outcome.activities] == [0, 1, 2]
        assert outcome.issues[0].code == "ACTIVITIES_REORDERED"

    def test_nearest_neighbor_never_lengthens_fixture_tours(self) -> None:
        fixtures = [
            [(41.90, 12.50), (41.95, 12.55), (41.91, 12.51), (41.94, 12.54), (41.92, 12.52)],
            [(48.85, 2.35), (48.86, 2.29), (48.88, 2.34), (48.85, 2.30), (48.87, 2.36)],
        ]
        for points in fixtures:
            segments = [_act(f"P{i}", order=i, coords=p) for i, p in enumerate(points)]
            tour = nearest_neighbor_order(segments[0], segments)
            assert tour_length_km(tour) <= tour_length_km(segments)

    def test_far_outlier_is_dropped(self) -> None:
        activities = [
            _act("Forum", order=0, coords=(41.90, 12.50)),
            _act("Villa", order=1, time="11:00", coords=(42.50, 12.50)),
            _act("Pantheon", order=2, time="12:00", coords=(41.91, 12.50)),
            _act("Unknown Cafe", order=3, coords=None),
        ]

        outcome = guard_geo_reorder(activities, _context())

        assert [s.title for s in outcome.activities] == ["Forum", "Pantheon", "Unknown Cafe"]
        assert [s.order_index for s in outcome.activities] == [0, 1, 2]
        assert outcome.issues[0].code == "ACTIVITY_TOO_FAR"
        assert outcome.issues[0].affected_titles == ["Villa"]

    def test_single_geocoded_activity_untouched(self) -> None:
        activities = [_act("Only", order=3), _act("Unplaced", order=4, coords=None)]

        outcome = guard_geo_reorder(activities, _context())

        assert [s.order_index for s in outcome.activities] == [3, 4]
        assert outcome.issues == []


class TestCapsAndClamps:
    """Test the daily time cap and cost clamp."""

    def test_max_activities_for_day(self) -> None:
        # 7 x 60 min + 6 x 30 min buffers = 600 min
        assert max_activities_for_day() == 7

    def test_daily_time_cap_trims_from_end(self) -> None:
        activities = [_act(f"A{i}", order=i) for i in range(9)]

        outcome = guard_daily_time_cap(activities, _context())

        assert len(outcome.activities) == 7
        assert outcome.issues[0].affected_titles == ["A7", "A8"]

    def test_cost_clamped_to_tier_cap(self) -> None:
        activities = [_act("Helicopter", cost=800), _act("Walk", order=1, cost=0)]

        outcome = guard_cost_clamp(activities, _context(budget_tier=BudgetTier.budget))

        assert outcome.activities[0].estimated_cost == 500
        assert outcome.activities[0].metadata.cost_clamped is True  # type: ignore[union-attr]
        assert outcome.activities[1].estimated_cost == 0
        assert outcome.issues[0].details == {"original_cost": 800, "cap": 500}


class TestApplyFeasibilityGuard:
    """Test the composed pipeline."""

    def test_input_is_not_mutated(self) -> None:
        activities = [
            _act("C", order=0, time="07:00", coords=(41.92, 12.50), cost=5000),
            _act("A", order=1, time="08:00", coords=(41.90, 12.50)),
            _act("B", order=2, time="10:00", coords=(41.91, 12.50)),
        ]
        before = [s.model_dump() for s in activities]

        result = apply_feasibility_guard(_context(arrival_time="10:00"), activities)

        assert [s.model_dump() for s in activities] == before
        assert result.activities is not activities
        assert len(result.messages) == len(result.issues)

    def test_clean_plan_has_no_issues(self) -> None:
        activities = [
            _act("A", order=0, time="09:00", coords=(41.90, 12.50)),
            _act("B", order=1, time="11:00", coords=(41.91, 12.50)),
        ]

        result = apply_feasibility_guard(_context(), activities)

        assert result.issues == []
        assert [s.title for s in result.activities] == ["A", "B"]
