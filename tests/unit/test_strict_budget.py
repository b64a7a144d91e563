"""Unit tests for the strict-budget guard and the in-memory segment store.

Tests cover:
1. Flexible trips always pass
2. Strict trips reject additions over the limit with the exact message
3. Hidden gems do not count toward the current spend
4. Store ordering, id stamping and replacement
"""

import pytest

from tripcore.budget.strict import (
    StrictBudgetExceededError,
    add_segment_strict,
    check_strict_budget,
)
from tripcore.models import (
    ActivityMetadata,
    BudgetType,
    HiddenGemMetadata,
    Segment,
    SegmentKind,
    Trip,
)
from tripcore.store.inmemory import InMemorySegmentStore


def _activity(cost: float, day: int = 1, order: float = 0, title: str = "Walk") -> Segment:
    return Segment(
        kind=SegmentKind.activity,
        day_number=day,
        order_index=order,
        title=title,
        estimated_cost=cost,
        metadata=ActivityMetadata(),
    )


def _trip(budget_type: BudgetType, budget: float = 500) -> Trip:
    return Trip(id="trip-1", destination="Lisbon", budget=budget, budget_type=budget_type)


class TestCheckStrictBudget:
    """Test strict-budget decisions."""

    @pytest.mark.asyncio
    async def test_flexible_trip_always_allowed(self) -> None:
        store = InMemorySegmentStore()
        await store.replace_trip_segments("trip-1", [_activity(490)])

        decision = await check_strict_budget(_trip(BudgetType.flexible), store, 1000)

        assert decision.allowed is True
        assert decision.message is None

    @pytest.mark.asyncio
    async def test_strict_trip_within_limit(self) -> None:
        store = InMemorySegmentStore()
        await store.replace_trip_segments("trip-1", [_activity(300)])

        decision = await check_strict_budget(_trip(BudgetType.strict), store, 200)

        assert decision.allowed is True
        assert decision.current == 300

    @pytest.mark.asyncio
    async def test_strict_trip_over_limit(self) -> None:
        store = InMemorySegmentStore()
        await store.replace_trip_segments("trip-1", [_activity(450)])

        decision = await check_strict_budget(_trip(BudgetType.strict), store, 100)

        assert decision.allowed is False
        assert decision.message == "Budget exceeded in strict mode. Current: 450, Adding: 100, Limit: 500"

    @pytest.mark.asyncio
    async def test_hidden_gems_not_counted(self) -> None:
        store = InMemorySegmentStore()
        gem = Segment(
            kind=SegmentKind.hidden_gem,
            day_number=0,
            title="Tiny Bookshop",
            estimated_cost=400,
            metadata=HiddenGemMetadata(),
        )
        await store.replace_trip_segments("trip-1", [_activity(100), gem])

        decision = await check_strict_budget(_trip(BudgetType.strict), store, 350)

        assert decision.allowed is True
        assert decision.current == 100


class TestAddSegmentStrict:
    """Test guarded insertion."""

    @pytest.mark.asyncio
    async def test_rejected_segment_is_not_stored(self) -> None:
        store = InMemorySegmentStore()
        await store.replace_trip_segments("trip-1", [_activity(480)])

        with pytest.raises(StrictBudgetExceededError, match="strict mode") as excinfo:
            await add_segment_strict(_trip(BudgetType.strict), store, _activity(25, title="Extra"))

        assert excinfo.value.limit == 500
        assert excinfo.value.addition == 25
        assert len(await store.list_segments("trip-1")) == 1

    @pytest.mark.asyncio
    async def test_accepted_segment_gets_id(self) -> None:
        store = InMemorySegmentStore()

        stored = await add_segment_strict(_trip(BudgetType.strict), store, _activity(20))

        assert stored.id is not None
        assert stored.trip_id == "trip-1"


class TestInMemorySegmentStore:
    """Test store semantics."""

    @pytest.mark.asyncio
    async def test_list_sorted_by_day_then_order(self) -> None:
        store = InMemorySegmentStore()
        await store.replace_trip_segments(
            "trip-1",
            [
                _activity(1, day=2, order=0, title="c"),
                _activity(1, day=1, order=1.5, title="b"),
                _activity(1, day=1, order=0, title="a"),
            ],
        )

        titles = [s.title for s in await store.list_segments("trip-1")]

        assert titles == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_replace_discards_previous_segments(self) -> None:
        store = InMemorySegmentStore()
        await store.replace_trip_segments("trip-1", [_activity(1), _activity(2)])
        stored = await store.replace_trip_segments("trip-1", [_activity(3)])

        assert len(stored) == 1
        assert len({s.id for s in stored}) == 1
        assert await store.delete_trip_segments("trip-1") == 1
        assert await store.list_segments("trip-1") == []
