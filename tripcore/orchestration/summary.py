"""Per-day cost breakdown of an itinerary."""

from collections.abc import Sequence

from tripcore.models.common import SegmentKind
from tripcore.models.result import DailySummary
from tripcore.models.segment import Segment
from tripcore.utils.numbers import round_half_up

TRAVEL_SUMMARY_KINDS = frozenset(
    {SegmentKind.outbound_travel, SegmentKind.intercity_travel, SegmentKind.return_travel}
)


def compute_daily_summary(segments: Sequence[Segment], total_days: int) -> list[DailySummary]:
    """Sum activity, local transport, travel and stay costs for each day."""
    summaries: list[DailySummary] = []
    for day in range(1, total_days + 1):
        day_segments = [s for s in segments if s.day_number == day]

        def cost_of(*kinds: SegmentKind) -> float:
            return sum(s.estimated_cost for s in day_segments if s.kind in kinds)

        activity = cost_of(SegmentKind.activity)
        local = cost_of(SegmentKind.local_transport)
        travel = cost_of(*TRAVEL_SUMMARY_KINDS)
        stay = cost_of(SegmentKind.accommodation)

        summaries.append(
            DailySummary(
                day_number=day,
                activity_cost=round_half_up(activity),
                local_transport_cost=round_half_up(local),
                travel_cost=round_half_up(travel),
                stay_cost=round_half_up(stay),
                total_day_cost=round_half_up(activity + local + travel + stay),
                segment_count=len(day_segments),
            )
        )
    return summaries
