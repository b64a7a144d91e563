"""Unit tests for budget allocation and reconciliation.

Tests cover:
1. Ratio table selection (road trip > luxury > default)
2. Envelope rounding never exceeds the total budget
3. Own-vehicle shift from intercity to activity
4. deduct() clamping at zero
5. Reconciliation totals, violations and hidden-gem exclusion
"""

import pytest

from tripcore.budget.allocator import allocate_budget, deduct, reconcile_budget
from tripcore.models import (
    AccommodationMetadata,
    ActivityMetadata,
    AllocationOptions,
    BudgetCategory,
    BudgetTier,
    HiddenGemMetadata,
    Segment,
    SegmentKind,
    TravelStyle,
)


def _activity(cost: float, day: int = 1) -> Segment:
    return Segment(
        kind=SegmentKind.activity,
        day_number=day,
        title="Museum",
        estimated_cost=cost,
        metadata=ActivityMetadata(),
    )


class TestAllocateBudget:
    """Test envelope computation."""

    def test_city_explorer_four_day_split(self) -> None:
        options = AllocationOptions(
            travel_style=TravelStyle.city_explorer,
            budget_tier=BudgetTier.mid_range,
            total_days=4,
            total_nights=3,
        )
        allocation = allocate_budget(1000, options)

        assert allocation.meta is not None
        assert allocation.meta.table == "default"
        assert allocation.intercity == 200
        assert allocation.accommodation == 300
        assert allocation.local_transport == 50
        assert allocation.activity == 370
        assert allocation.buffer == 80
        assert allocation.upgrade_pool is None
        assert allocation.envelope_sum() <= 1000
        # 370 / 4 = 92.5 rounds half up
        assert allocation.activity_per_day == 93
        assert allocation.accommodation_per_night == 100

    def test_remaining_starts_at_envelopes(self) -> None:
        allocation = allocate_budget(1000, AllocationOptions(total_days=2))
        assert allocation.remaining[BudgetCategory.intercity] == 200
        assert allocation.remaining[BudgetCategory.buffer] == 80
        assert BudgetCategory.upgrade_pool not in allocation.remaining

    def test_road_trip_wins_over_luxury(self) -> None:
        options = AllocationOptions(travel_style=TravelStyle.road_trip, budget_tier=BudgetTier.luxury)
        allocation = allocate_budget(1000, options)
        assert allocation.meta is not None
        assert allocation.meta.table == "road_trip"
        assert allocation.activity == 550
        assert allocation.upgrade_pool is None

    def test_luxury_has_upgrade_pool(self) -> None:
        allocation = allocate_budget(2000, AllocationOptions(budget_tier=BudgetTier.luxury))
        assert allocation.meta is not None
        assert allocation.meta.table == "luxury"
        assert allocation.upgrade_pool == 100
        assert allocation.envelope_sum() <= 2000

    def test_own_vehicle_shifts_half_of_intercity_to_activity(self) -> None:
        allocation = allocate_budget(1000, AllocationOptions(has_own_vehicle=True))
        assert allocation.intercity == 100
        assert allocation.activity == 470

    def test_own_vehicle_on_road_trip_keeps_table(self) -> None:
        options = AllocationOptions(travel_style=TravelStyle.road_trip, has_own_vehicle=True)
        allocation = allocate_budget(1000, options)
        assert allocation.intercity == 100

    @pytest.mark.parametrize("total", [1, 7, 99, 333, 1001, 12345.67])
    def test_envelope_sum_never_exceeds_total(self, total: float) -> None:
        for tier in BudgetTier:
            allocation = allocate_budget(total, AllocationOptions(budget_tier=tier, total_days=3))
            assert allocation.envelope_sum() <= total

    def test_zero_budget_gives_empty_envelopes(self) -> None:
        allocation = allocate_budget(0)
        assert allocation.envelope_sum() == 0
        assert all(value == 0 for value in allocation.remaining.values())

    def test_zero_days_treated_as_one_for_per_day(self) -> None:
        allocation = allocate_budget(1000, AllocationOptions(total_days=0))
        assert allocation.activity_per_day == allocation.activity
        assert allocation.accommodation_per_night == 0


class TestDeduct:
    """Test remaining-balance deduction."""

    def test_deduct_reduces_remaining(self) -> None:
        allocation = allocate_budget(1000)
        deduct(allocation, BudgetCategory.activity, 70)
        assert allocation.remaining[BudgetCategory.activity] == 300

    def test_deduct_never_goes_negative(self) -> None:
        allocation = allocate_budget(1000)
        deduct(allocation, BudgetCategory.local_transport, 10_000)
        assert allocation.remaining[BudgetCategory.local_transport] == 0
        deduct(allocation, BudgetCategory.local_transport, 5)
        assert allocation.remaining[BudgetCategory.local_transport] == 0

    def test_untracked_category_is_ignored(self) -> None:
        allocation = allocate_budget(1000, AllocationOptions(budget_tier=BudgetTier.luxury))
        before = dict(allocation.remaining)
        deduct(allocation, BudgetCategory.upgrade_pool, 50)
        assert allocation.remaining == before


class TestReconcileBudget:
    """Test reconciliation of actual spend against envelopes."""

    def test_balanced_when_within_envelopes(self) -> None:
        allocation = allocate_budget(1000)
        report = reconcile_budget(allocation, [_activity(100), _activity(50, day=2)])

        assert report.balanced is True
        assert report.total == 150
        assert report.overshoot == 0
        assert report.buffer_remaining == 80
        assert report.category_totals[BudgetCategory.activity] == 150

    def test_category_violation_is_reported(self) -> None:
        allocation = allocate_budget(1000)
        stay = Segment(
            kind=SegmentKind.accommodation,
            day_number=1,
            title="Hotel",
            estimated_cost=450,
            metadata=AccommodationMetadata(accommodation_tier=BudgetTier.mid_range, nightly_rate=450),
        )
        report = reconcile_budget(allocation, [stay])

        assert report.balanced is False
        assert report.overshoot == 0
        assert len(report.violations) == 1
        violation = report.violations[0]
        assert violation.category == BudgetCategory.accommodation
        assert violation.overshoot == 150

    def test_overshoot_consumes_buffer(self) -> None:
        allocation = allocate_budget(100)
        report = reconcile_budget(allocation, [_activity(130)])
        assert report.overshoot == 30
        assert report.buffer_remaining == 0
        assert report.balanced is False

    def test_hidden_gems_are_excluded(self) -> None:
        allocation = allocate_budget(100)
        gem = Segment(
            kind=SegmentKind.hidden_gem,
            day_number=0,
            title="Secret Garden",
            estimated_cost=5000,
            metadata=HiddenGemMetadata(),
        )
        report = reconcile_budget(allocation, [gem])
        assert report.total == 0
        assert report.balanced is True
