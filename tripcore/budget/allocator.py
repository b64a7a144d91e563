"""Budget allocation, envelope deduction and reconciliation."""

import logging
import math
from collections.abc import Iterable

from tripcore.budget.ratios import CATEGORY_SEGMENT_KINDS, RATIO_TABLES, RatioTable
from tripcore.models.budget import (
    AllocationMeta,
    AllocationOptions,
    BudgetAllocation,
    CategoryViolation,
    ReconciliationReport,
)
from tripcore.models.common import BudgetCategory, BudgetTier, SegmentKind, TravelStyle
from tripcore.models.segment import Segment
from tripcore.utils.numbers import round_half_up

logger = logging.getLogger(__name__)

# Envelopes whose remaining balance is tracked while segments are built.
TRACKED_CATEGORIES = (
    BudgetCategory.intercity,
    BudgetCategory.accommodation,
    BudgetCategory.local_transport,
    BudgetCategory.activity,
    BudgetCategory.buffer,
)


def select_ratio_table(options: AllocationOptions) -> tuple[str, RatioTable]:
    """Pick the base ratio table for a style/tier combination.

    Road-trip style wins over tier; luxury tier wins over the default table.
    """
    if options.travel_style == TravelStyle.road_trip:
        name = "road_trip"
    elif options.budget_tier == BudgetTier.luxury:
        name = "luxury"
    else:
        name = "default"
    return name, RATIO_TABLES[name]


def _adjusted_ratios(table: RatioTable, options: AllocationOptions) -> dict[BudgetCategory, float]:
    ratios = dict(table)
    if options.has_own_vehicle and options.travel_style != TravelStyle.road_trip:
        shift = ratios[BudgetCategory.intercity] / 2
        ratios[BudgetCategory.intercity] -= shift
        ratios[BudgetCategory.activity] += shift

    total = sum(ratios.values())
    if total <= 0:
        return ratios
    return {category: share / total for category, share in ratios.items()}


def allocate_budget(total_budget: float, options: AllocationOptions | None = None) -> BudgetAllocation:
    """Split a total budget into category envelopes.

    Args:
        total_budget: Total trip budget in the trip currency
        options: Style, tier and duration inputs (defaults to a 1-day city trip)

    Returns:
        BudgetAllocation with envelopes rounded to whole units and remaining
        balances initialized to the envelope amounts
    """
    options = options or AllocationOptions()
    table_name, table = select_ratio_table(options)
    ratios = _adjusted_ratios(table, options)
    budget = max(0.0, float(total_budget or 0))

    envelopes = {category: round_half_up(budget * share) for category, share in ratios.items()}
    warnings: list[str] = []

    overshoot = sum(envelopes.values()) - budget
    if overshoot > 0:
        buffer_before = envelopes.get(BudgetCategory.buffer, 0)
        envelopes[BudgetCategory.buffer] = buffer_before - math.ceil(overshoot)
        if envelopes[BudgetCategory.buffer] < 0:
            warnings.append(
                f"Rounding overshoot of {overshoot:g} exceeded the buffer "
                f"({buffer_before}); buffer is negative"
            )
            logger.warning(
                "Allocation rounding drove buffer negative",
                extra={"structured": {"overshoot": overshoot, "buffer": buffer_before}},
            )

    activity = envelopes.get(BudgetCategory.activity, 0)
    accommodation = envelopes.get(BudgetCategory.accommodation, 0)
    days = max(1, options.total_days)

    allocation = BudgetAllocation(
        total_budget=budget,
        intercity=envelopes.get(BudgetCategory.intercity, 0),
        accommodation=accommodation,
        local_transport=envelopes.get(BudgetCategory.local_transport, 0),
        activity=activity,
        buffer=envelopes.get(BudgetCategory.buffer, 0),
        upgrade_pool=envelopes.get(BudgetCategory.upgrade_pool),
        activity_per_day=round_half_up(activity / days),
        accommodation_per_night=(
            round_half_up(accommodation / options.total_nights) if options.total_nights > 0 else 0
        ),
        meta=AllocationMeta(table=table_name, ratios=ratios, options=options, warnings=warnings),
    )
    allocation.remaining = {
        category: float(max(0, allocation.envelope(category))) for category in TRACKED_CATEGORIES
    }
    return allocation


def deduct(allocation: BudgetAllocation, category: BudgetCategory, cost: float) -> None:
    """Deduct a cost from an envelope's remaining balance, clamping at zero.

    Unknown or untracked categories are ignored.
    """
    if category not in allocation.remaining:
        return
    allocation.remaining[category] = max(0.0, allocation.remaining[category] - max(0.0, cost))


def category_for_kind(kind: SegmentKind) -> BudgetCategory | None:
    """Map a segment kind to the envelope it is charged against."""
    for category, kinds in CATEGORY_SEGMENT_KINDS.items():
        if kind.value in kinds:
            return category
    return None


def reconcile_budget(allocation: BudgetAllocation, segments: Iterable[Segment]) -> ReconciliationReport:
    """Compare actual segment spend against the allocation.

    Hidden gems never count toward the budget.

    Returns:
        ReconciliationReport; balanced when the total fits the budget and no
        category exceeds its envelope
    """
    totals: dict[BudgetCategory, float] = {category: 0.0 for category in CATEGORY_SEGMENT_KINDS}
    total = 0.0
    for segment in segments:
        if segment.kind == SegmentKind.hidden_gem:
            continue
        cost = segment.estimated_cost or 0.0
        total += cost
        category = category_for_kind(segment.kind)
        if category is not None:
            totals[category] += cost

    budget = allocation.total_budget
    overshoot = max(0.0, total - budget)

    violations = []
    for category, actual in totals.items():
        envelope = allocation.envelope(category)
        if actual > envelope:
            violations.append(
                CategoryViolation(
                    category=category,
                    envelope=envelope,
                    actual=round(actual, 2),
                    overshoot=round(actual - envelope, 2),
                )
            )

    return ReconciliationReport(
        balanced=overshoot == 0 and not violations,
        total=round(total, 2),
        budget=budget,
        overshoot=round(overshoot, 2),
        buffer_remaining=max(0.0, allocation.buffer - overshoot),
        category_totals={category: round(value, 2) for category, value in totals.items()},
        violations=violations,
    )
