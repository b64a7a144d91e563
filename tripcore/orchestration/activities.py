"""Turning provider output into priced, located activity segments."""

import logging
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass

from tripcore.models.common import SegmentKind
from tripcore.models.segment import ActivityMetadata, Segment
from tripcore.models.suggestions import SuggestedActivity, SuggestedDay, SuggestionPlan
from tripcore.models.trip import DayLocation
from tripcore.utils.numbers import round_half_up

logger = logging.getLogger(__name__)

TRANSPORT_KEYWORDS = re.compile(
    r"\b(flight|train|bus|taxi|uber|cab|metro|subway|shuttle|transfer|airport|station)\b",
    re.IGNORECASE,
)
ACCOMMODATION_KEYWORDS = re.compile(
    r"\b(hotel|hostel|resort|stay|check.?in|check.?out|airbnb|lodge|motel|guesthouse)\b",
    re.IGNORECASE,
)
TRANSPORT_TYPES = frozenset({"transport", "travel", "flight", "train"})
ACCOMMODATION_TYPES = frozenset({"accommodation", "hotel", "stay"})

DEFAULT_ACTIVITY_TIME = "09:00"
DEFAULT_ACTIVITY_TYPE = "sightseeing"


@dataclass(frozen=True)
class RemovedSuggestion:
    title: str
    type: str | None
    reason: str


def classify_rogue(activity: SuggestedActivity) -> str | None:
    """Return "transport" or "accommodation" when the item is not an activity."""
    title = activity.title or ""
    kind = (activity.type or "").strip().lower()
    if TRANSPORT_KEYWORDS.search(title) or kind in TRANSPORT_TYPES:
        return "transport"
    if ACCOMMODATION_KEYWORDS.search(title) or kind in ACCOMMODATION_TYPES:
        return "accommodation"
    return None


def sanitize_plan(plan: SuggestionPlan) -> tuple[SuggestionPlan, list[RemovedSuggestion]]:
    """Strip transport and lodging items the provider invented.

    Returns:
        (sanitized plan, removed items)
    """
    removed: list[RemovedSuggestion] = []
    days: list[SuggestedDay] = []
    for day in plan.days:
        kept: list[SuggestedActivity] = []
        for activity in day.activities:
            reason = classify_rogue(activity)
            if reason is None:
                kept.append(activity)
            else:
                removed.append(RemovedSuggestion(title=activity.title, type=activity.type, reason=reason))
        days.append(SuggestedDay(activities=kept))

    if removed:
        logger.warning(
            f"Removed {len(removed)} rogue provider items",
            extra={"structured": {"removed": [f"{r.reason}:{r.title}" for r in removed]}},
        )
    return SuggestionPlan(days=days), removed


def plan_to_segments(
    plan: SuggestionPlan,
    trip_id: str,
    day_locations: Sequence[DayLocation],
    destination: str,
) -> list[Segment]:
    """Convert provider days into activity segments, numbered from day 1.

    Missing fields default to 09:00, "sightseeing" and the day's location.
    Provider days past the last trip day are dropped.
    """
    extra = plan.days[len(day_locations) :]
    if extra:
        logger.warning(
            f"Dropping {len(extra)} provider days past the trip end",
            extra={"structured": {"trip_days": len(day_locations), "plan_days": len(plan.days)}},
        )

    segments: list[Segment] = []
    for day_index, day in enumerate(plan.days[: len(day_locations)]):
        day_number = day_index + 1
        day_location = day_locations[day_index].location or destination
        for idx, activity in enumerate(day.activities):
            segments.append(
                Segment(
                    trip_id=trip_id,
                    kind=SegmentKind.activity,
                    day_number=day_number,
                    order_index=idx,
                    title=activity.title or "Activity",
                    location=activity.location or day_location,
                    estimated_cost=activity.estimated_cost,
                    metadata=ActivityMetadata(
                        time=activity.time or DEFAULT_ACTIVITY_TIME,
                        activity_type=activity.type or DEFAULT_ACTIVITY_TYPE,
                        notes=activity.notes or "",
                        safety_warning=activity.safety_warning,
                    ),
                )
            )
    return segments


def scale_to_envelope(activities: Sequence[Segment], envelope: float) -> list[Segment]:
    """Scale costs proportionally when their sum exceeds a positive envelope.

    Scaled costs are rounded half-up to whole units.
    """
    finite = [
        a if math.isfinite(a.estimated_cost) else a.model_copy(update={"estimated_cost": 0}) for a in activities
    ]
    total = sum(a.estimated_cost for a in finite)
    if envelope <= 0 or total <= envelope:
        return finite

    factor = envelope / total
    logger.warning(
        f"Activity overshoot: {total:g} > {envelope:g}. Scaling by {factor:.2f}",
        extra={"structured": {"total": total, "envelope": envelope, "factor": round(factor, 4)}},
    )
    return [a.model_copy(update={"estimated_cost": round_half_up(a.estimated_cost * factor)}) for a in finite]
