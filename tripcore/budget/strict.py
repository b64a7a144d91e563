"""Strict-budget guard for manual segment additions."""

import logging
from dataclasses import dataclass

from tripcore.models.common import BudgetType, SegmentKind
from tripcore.models.segment import Segment
from tripcore.models.trip import Trip
from tripcore.store.repositories import SegmentStore

logger = logging.getLogger(__name__)


class StrictBudgetExceededError(Exception):
    """Adding a segment would push a strict-budget trip over its limit."""

    def __init__(self, current: float, addition: float, limit: float) -> None:
        self.current = current
        self.addition = addition
        self.limit = limit
        super().__init__(strict_budget_message(current, addition, limit))


@dataclass(frozen=True)
class StrictBudgetDecision:
    """Outcome of a strict-budget check."""

    allowed: bool
    current: float
    addition: float
    limit: float
    message: str | None = None


def strict_budget_message(current: float, addition: float, limit: float) -> str:
    return (
        f"Budget exceeded in strict mode. Current: {current:g}, "
        f"Adding: {addition:g}, Limit: {limit:g}"
    )


async def check_strict_budget(trip: Trip, store: SegmentStore, new_cost: float) -> StrictBudgetDecision:
    """Check whether a prospective cost fits a strict trip's hard budget.

    Flexible trips always pass. Store errors propagate to the caller.
    """
    limit = float(trip.budget or 0)
    if trip.budget_type != BudgetType.strict:
        return StrictBudgetDecision(allowed=True, current=0, addition=new_cost, limit=limit)

    segments = await store.list_segments(trip.id, exclude_kinds=frozenset({SegmentKind.hidden_gem}))
    current = round(sum(s.estimated_cost or 0 for s in segments), 2)

    if current + new_cost > limit:
        message = strict_budget_message(current, new_cost, limit)
        logger.warning(message, extra={"structured": {"trip_id": trip.id}})
        return StrictBudgetDecision(
            allowed=False, current=current, addition=new_cost, limit=limit, message=message
        )
    return StrictBudgetDecision(allowed=True, current=current, addition=new_cost, limit=limit)


async def add_segment_strict(trip: Trip, store: SegmentStore, segment: Segment) -> Segment:
    """Insert a manually added segment, enforcing the strict budget.

    Raises:
        StrictBudgetExceededError: The addition would exceed a strict budget
    """
    decision = await check_strict_budget(trip, store, segment.estimated_cost)
    if not decision.allowed:
        raise StrictBudgetExceededError(decision.current, decision.addition, decision.limit)
    return await store.insert_segment(trip.id, segment)
