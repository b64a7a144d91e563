"""Itinerary service: orchestration, persistence and booking suggestions."""

import logging
from dataclasses import dataclass, field

from tripcore.booking.suggestions import generate_all_booking_suggestions
from tripcore.budget.strict import add_segment_strict
from tripcore.models.booking import BookingSuggestion
from tripcore.models.common import BudgetTier
from tripcore.models.result import OrchestrationResult
from tripcore.models.segment import Segment
from tripcore.models.trip import Trip
from tripcore.orchestration.orchestrator import PhaseCallback, TripOrchestrator
from tripcore.store.repositories import SegmentStore
from tripcore.transport.currency import exchange_rate

logger = logging.getLogger(__name__)


@dataclass
class GeneratedItinerary:
    """A persisted itinerary with booking suggestions keyed by segment id."""

    result: OrchestrationResult
    segments: list[Segment]
    booking_suggestions: dict[str, BookingSuggestion] = field(default_factory=dict)


class ItineraryService:
    """Generates and stores itineraries for trips."""

    def __init__(self, orchestrator: TripOrchestrator, store: SegmentStore) -> None:
        self._orchestrator = orchestrator
        self._store = store

    async def generate_full_itinerary(
        self, trip: Trip, on_phase: PhaseCallback | None = None
    ) -> GeneratedItinerary:
        """Orchestrate, replace the trip's stored segments, then suggest bookings.

        Booking suggestions run after the write because they are keyed by the
        ids the store assigns.

        Raises:
            SegmentStoreError: If the segment write fails
        """
        result = await self._orchestrator.orchestrate(trip, on_phase=on_phase)
        stored = await self._store.replace_trip_segments(trip.id, result.segments)
        logger.info(
            f"Stored {len(stored)} segments for trip {trip.id}",
            extra={"structured": {"trip_id": trip.id, "segments": len(stored)}},
        )

        suggestions = generate_all_booking_suggestions(
            stored,
            exchange_rate(trip.currency),
            is_luxury=trip.budget_tier == BudgetTier.luxury,
            upgrade_pool=result.allocation.upgrade_pool or 0,
        )
        return GeneratedItinerary(result=result, segments=stored, booking_suggestions=suggestions)

    async def add_manual_segment(self, trip: Trip, segment: Segment) -> Segment:
        """Add a user-created segment, enforcing the strict budget first.

        Raises:
            StrictBudgetExceededError: The addition would exceed a strict budget
        """
        return await add_segment_strict(trip, self._store, segment)
