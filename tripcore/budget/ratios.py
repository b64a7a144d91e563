"""Budget ratio tables.

Each table assigns a fractional share of the total budget to every envelope.
Tables are normalized at allocation time, so they need not sum to exactly 1.
"""

from types import MappingProxyType
from typing import Mapping

from tripcore.models.common import BudgetCategory

RatioTable = Mapping[BudgetCategory, float]

DEFAULT_RATIOS: RatioTable = MappingProxyType(
    {
        BudgetCategory.intercity: 0.20,
        BudgetCategory.accommodation: 0.30,
        BudgetCategory.local_transport: 0.05,
        BudgetCategory.activity: 0.37,
        BudgetCategory.buffer: 0.08,
    }
)

ROAD_TRIP_RATIOS: RatioTable = MappingProxyType(
    {
        BudgetCategory.intercity: 0.10,
        BudgetCategory.accommodation: 0.20,
        BudgetCategory.local_transport: 0.03,
        BudgetCategory.activity: 0.55,
        BudgetCategory.buffer: 0.12,
    }
)

LUXURY_RATIOS: RatioTable = MappingProxyType(
    {
        BudgetCategory.intercity: 0.22,
        BudgetCategory.accommodation: 0.35,
        BudgetCategory.local_transport: 0.03,
        BudgetCategory.activity: 0.30,
        BudgetCategory.buffer: 0.05,
        BudgetCategory.upgrade_pool: 0.05,
    }
)

RATIO_TABLES: Mapping[str, RatioTable] = MappingProxyType(
    {
        "default": DEFAULT_RATIOS,
        "road_trip": ROAD_TRIP_RATIOS,
        "luxury": LUXURY_RATIOS,
    }
)

# Segment kinds counted against each envelope during reconciliation.
CATEGORY_SEGMENT_KINDS: Mapping[BudgetCategory, tuple[str, ...]] = MappingProxyType(
    {
        BudgetCategory.intercity: ("outbound_travel", "intercity_travel", "return_travel"),
        BudgetCategory.accommodation: ("accommodation",),
        BudgetCategory.local_transport: ("local_transport",),
        BudgetCategory.activity: ("activity",),
    }
)
