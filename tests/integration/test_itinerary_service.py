"""Tests for the itinerary service (orchestration + persistence + bookings)."""

import pytest

from tripcore.booking.suggestions import BOOKABLE_KINDS
from tripcore.budget.strict import StrictBudgetExceededError
from tripcore.geocoding.resolver import GeocodingResolver
from tripcore.llm.client import DeterministicStubProvider
from tripcore.models import ActivityMetadata, BudgetType, Segment, SegmentKind, Trip, TripLeg
from tripcore.orchestration.itinerary import ItineraryService
from tripcore.orchestration.orchestrator import TripOrchestrator
from tripcore.store.inmemory import InMemorySegmentStore
from tripcore.tools.executor import ExternalCallExecutor
from tripcore.transport.builders import TransportPlanner
from tripcore.transport.distance import DistanceClassifier
from tripcore.transport.routes import RouteTimeService


@pytest.fixture
def store() -> InMemorySegmentStore:
    return InMemorySegmentStore()


@pytest.fixture
def service(fast_executor: ExternalCallExecutor, store: InMemorySegmentStore) -> ItineraryService:
    resolver = GeocodingResolver()
    routes = RouteTimeService(DistanceClassifier(resolver), resolver=resolver)
    orchestrator = TripOrchestrator(
        DeterministicStubProvider(), resolver, TransportPlanner(routes), provider_executor=fast_executor
    )
    return ItineraryService(orchestrator, store)


def _trip(**overrides: object) -> Trip:
    values: dict[str, object] = {
        "id": "trip-1",
        "destination": "Jaipur",
        "start_location": "Delhi",
        "budget": 1500,
        "legs": [TripLeg(location="Jaipur", days=2), TripLeg(location="Agra", days=1)],
    }
    values.update(overrides)
    return Trip.model_validate(values)


def _manual(cost: float) -> Segment:
    return Segment(
        kind=SegmentKind.activity,
        day_number=1,
        title="Cooking class",
        estimated_cost=cost,
        metadata=ActivityMetadata(),
    )


@pytest.mark.asyncio
async def test_bookings_keyed_by_stored_ids(service: ItineraryService, store: InMemorySegmentStore) -> None:
    """Test that suggestions are generated after the write, keyed by store ids."""
    phases: list[str] = []

    itinerary = await service.generate_full_itinerary(_trip(), on_phase=lambda number, name: phases.append(name))

    assert phases[0] == "Budget Allocation"
    assert all(s.id for s in itinerary.segments)
    assert all(s.trip_id == "trip-1" for s in itinerary.segments)
    assert await store.list_segments("trip-1") == itinerary.segments

    bookable_ids = {s.id for s in itinerary.segments if s.kind in BOOKABLE_KINDS}
    assert bookable_ids
    assert set(itinerary.booking_suggestions) == bookable_ids
    for segment_id, suggestion in itinerary.booking_suggestions.items():
        assert suggestion.segment_id == segment_id
        assert 1 <= len(suggestion.options) <= 3


@pytest.mark.asyncio
async def test_regeneration_replaces_segments(service: ItineraryService, store: InMemorySegmentStore) -> None:
    """Test that a second run replaces the stored segments instead of appending."""
    first = await service.generate_full_itinerary(_trip())
    second = await service.generate_full_itinerary(_trip())

    stored = await store.list_segments("trip-1")
    assert len(stored) == len(second.segments) == len(first.segments)
    assert {s.id for s in stored} == {s.id for s in second.segments}


@pytest.mark.asyncio
async def test_luxury_trip_offers_upgrades(service: ItineraryService) -> None:
    """Test that luxury trips with an upgrade pool get upgrade options."""
    itinerary = await service.generate_full_itinerary(_trip(budget_tier="luxury", budget=5000))

    assert itinerary.result.allocation.upgrade_pool
    assert all(
        s.options[-1].option_id == "opt-upgrade" for s in itinerary.booking_suggestions.values()
    )


@pytest.mark.asyncio
async def test_manual_segment_rejected_in_strict_mode(
    service: ItineraryService, store: InMemorySegmentStore
) -> None:
    """Test that strict trips refuse additions past the limit."""
    trip = _trip(budget=100, budget_type=BudgetType.strict)
    await store.insert_segment(trip.id, _manual(90))

    with pytest.raises(StrictBudgetExceededError, match="Current: 90, Adding: 20, Limit: 100"):
        await service.add_manual_segment(trip, _manual(20))

    added = await service.add_manual_segment(trip, _manual(10))
    assert added.id is not None
    assert len(await store.list_segments(trip.id)) == 2


@pytest.mark.asyncio
async def test_manual_segment_always_added_when_flexible(
    service: ItineraryService, store: InMemorySegmentStore
) -> None:
    """Test that flexible trips accept any addition."""
    trip = _trip(budget=100)

    await service.add_manual_segment(trip, _manual(500))

    assert len(await store.list_segments(trip.id)) == 1
