"""Trip orchestrator: runs every phase of itinerary generation in order.

Phases:
    1    Budget allocation
    2    Outbound and intercity travel
    3    Accommodation
    4    Activity generation (suggestion provider)
    4.5  Geocoding activities
    4.7  Feasibility check
    5    Local transport
    6    Return travel
    7    Booking data (deferred until segments have ids)
    8    Daily cost summary
    9    Hidden gems (isolated from the budget)
    10   Budget reconciliation with one auto-correction pass

All mutation of the allocation and segment list happens between awaits; the
only suspension points are provider, geocoding and routing calls, each of
which falls back to a deterministic value on failure.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import replace

import httpx

from tripcore.adapters.nominatim import NominatimClient
from tripcore.adapters.osrm import OSRMRoutingClient
from tripcore.budget.allocator import allocate_budget, deduct, reconcile_budget
from tripcore.cache.ttl import InMemoryTTLCache, RedisTTLCache, TTLCache
from tripcore.config import Settings, get_settings
from tripcore.geocoding.resolver import GeocodeRequest, GeocodingResolver
from tripcore.llm.client import SuggestionProvider, get_suggestion_provider
from tripcore.models.budget import AllocationOptions, BudgetAllocation, ReconciliationReport
from tripcore.models.common import BudgetCategory, OwnVehicle, SegmentKind
from tripcore.models.result import OrchestrationResult
from tripcore.models.segment import ActivityMetadata, Segment, TransportMetadata
from tripcore.models.suggestions import HiddenGem, SuggestionPlan, SuggestionRequest
from tripcore.models.trip import DayLocation, Trip
from tripcore.orchestration.activities import plan_to_segments, sanitize_plan, scale_to_envelope
from tripcore.orchestration.normalize import TripProfile, trip_profile
from tripcore.orchestration.summary import compute_daily_summary
from tripcore.tools.executor import (
    EXTERNAL_CALL_ERRORS,
    CallConfig,
    CallContext,
    ExternalCallExecutor,
)
from tripcore.tools.ratelimit import IntervalRateLimiter
from tripcore.transport.builders import TransportPlanner, insert_pairwise_local_transport
from tripcore.transport.distance import DistanceClassifier
from tripcore.transport.routes import RouteTimeService
from tripcore.utils.logging import StructuredCallLogger
from tripcore.utils.metrics import PrometheusCallMetrics, budget_autotrim_segments_total
from tripcore.verification.feasibility import GuardContext, apply_feasibility_guard

logger = logging.getLogger(__name__)

PhaseCallback = Callable[[float, str], None]

# Least essential first
TRIM_PRIORITY: tuple[SegmentKind, ...] = (SegmentKind.local_transport, SegmentKind.activity)

PROVIDER_SERVICE = "suggestions.provider"


class TripOrchestrator:
    """Generates a complete itinerary for a trip."""

    def __init__(
        self,
        provider: SuggestionProvider,
        resolver: GeocodingResolver,
        planner: TransportPlanner,
        provider_executor: ExternalCallExecutor | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            provider: Activity and hidden-gem suggestion provider
            resolver: Geocoding resolver for activity locations
            planner: Transport and accommodation segment builder
            provider_executor: Executor bounding provider calls (default: provider timeout, no retry)
            settings: Settings (default: cached settings)
        """
        settings = settings or get_settings()
        self._provider = provider
        self._resolver = resolver
        self._planner = planner
        if provider_executor is None:
            config = CallConfig.from_settings(settings, hard_timeout_ms=settings.provider_timeout_ms)
            provider_executor = ExternalCallExecutor(
                replace(config, retry_count=0),
                metrics=PrometheusCallMetrics(),
                logger=StructuredCallLogger(),
            )
        self._provider_executor = provider_executor

    async def orchestrate(self, trip: Trip, on_phase: PhaseCallback | None = None) -> OrchestrationResult:
        """Run every phase for a trip.

        Args:
            trip: Trip to plan; not modified
            on_phase: Called with (phase number, phase name) as each phase starts

        Returns:
            OrchestrationResult with segments sorted by day and dense per-day order
        """
        profile = trip_profile(trip)
        if profile.has_own_vehicle and not trip.has_own_vehicle:
            trip = trip.model_copy(update={"own_vehicle": OwnVehicle.car})

        total_days = trip.total_days
        day_locations = trip.day_locations()

        def phase(number: float, name: str) -> None:
            logger.info(
                f"[orchestrator] Phase {number:g}: {name}",
                extra={"structured": {"trip_id": trip.id, "phase": number}},
            )
            if on_phase is not None:
                on_phase(number, name)

        # Phase 1: budget allocation
        phase(1, "Budget Allocation")
        allocation = allocate_budget(
            trip.budget,
            AllocationOptions(
                travel_style=profile.travel_style,
                budget_tier=profile.budget_tier,
                total_days=total_days,
                total_nights=trip.total_nights,
                travelers=trip.travelers,
                has_own_vehicle=profile.has_own_vehicle,
            ),
        )
        if trip.budget <= 0 or total_days <= 0:
            logger.warning(
                f"[orchestrator] Nothing to plan for trip {trip.id}: budget={trip.budget:g}, days={total_days}"
            )
            return OrchestrationResult(allocation=allocation, reconciliation=ReconciliationReport.empty())

        segments: list[Segment] = []

        # Phase 2: outbound + intercity
        phase(2, "Outbound + Intercity Travel")
        outbound = await self._planner.build_outbound_segment(trip, allocation)
        if outbound is not None:
            segments.append(outbound)
        segments.extend(await self._planner.build_intercity_segments(trip, allocation))
        transport_segments = list(segments)

        # Phase 3: accommodation
        phase(3, "Accommodation")
        segments.extend(self._planner.build_accommodation_segments(trip, allocation, day_locations))

        # Phase 4: activity generation
        phase(4, "Generating Activities")
        plan = await self._generate_plan(trip, profile, allocation, day_locations)
        plan, _ = sanitize_plan(plan)
        activities = plan_to_segments(plan, trip.id, day_locations, trip.destination)
        activities = scale_to_envelope(activities, allocation.activity)
        deduct(allocation, BudgetCategory.activity, sum(a.estimated_cost for a in activities))

        phase(4.5, "Geocoding Activities")
        activities = await self._geocode(activities, day_locations)

        phase(4.7, "Feasibility Check")
        context = GuardContext.from_trip(
            trip,
            transport_segments,
            travel_style=profile.travel_style,
            budget_tier=profile.budget_tier,
            total_days=total_days,
        )
        guarded = apply_feasibility_guard(context, activities)
        for issue in guarded.issues:
            logger.warning(
                f"[orchestrator] Feasibility correction: {issue.message}",
                extra={"structured": {"trip_id": trip.id, "guard": issue.guard.value, "code": issue.code}},
            )
        activities = guarded.activities
        segments.extend(activities)

        # Phase 5: local transport
        phase(5, "Local Transport")
        for day in range(1, total_days + 1):
            day_activities = sorted(
                (a for a in activities if a.day_number == day), key=lambda a: a.order_index
            )
            if len(day_activities) >= 2:
                segments.extend(
                    insert_pairwise_local_transport(
                        day_activities, day, profile.budget_tier, trip.currency, allocation
                    )
                )

        # Phase 6: return travel
        phase(6, "Return Travel")
        outbound_mode = None
        if outbound is not None and isinstance(outbound.metadata, TransportMetadata):
            outbound_mode = outbound.metadata.transport_mode
        return_segment = await self._planner.build_return_segment(
            trip, allocation, total_days, outbound_mode=outbound_mode
        )
        if return_segment is not None:
            segments.append(return_segment)

        # Phase 7: booking suggestions need store-assigned ids
        phase(7, "Preparing Booking Data")

        # Phase 8: daily summary
        phase(8, "Daily Cost Summary")
        daily_summary = compute_daily_summary(segments, total_days)

        # Phase 9: hidden gems
        phase(9, "Hidden Gems")
        hidden_gems = await self._hidden_gems(trip, profile)

        # Phase 10: reconciliation
        phase(10, "Budget Reconciliation")
        segments, reconciliation = self._reconcile(trip, allocation, segments)

        return OrchestrationResult(
            allocation=allocation,
            segments=reindex(segments),
            daily_summary=daily_summary,
            hidden_gems=hidden_gems,
            reconciliation=reconciliation,
            feasibility_issues=guarded.messages,
        )

    async def _generate_plan(
        self,
        trip: Trip,
        profile: TripProfile,
        allocation: BudgetAllocation,
        day_locations: Sequence[DayLocation],
    ) -> SuggestionPlan:
        has_outbound = trip.has_outbound()
        request = SuggestionRequest(
            destination=trip.destination,
            total_days=trip.total_days,
            budget=trip.budget,
            travelers=trip.travelers,
            currency=trip.currency,
            day_locations=list(day_locations),
            budget_tier=profile.budget_tier,
            activity_budget=allocation.activity,
            activity_per_day=allocation.activity_per_day,
            travel_style=profile.travel_style,
            pace=profile.pace,
            start_location=trip.start_location or "",
            has_outbound_transport=has_outbound,
            has_return_transport=has_outbound and bool(trip.return_location or trip.start_location),
        )
        try:
            return await self._provider_executor.execute(
                CallContext(service=PROVIDER_SERVICE), lambda: self._provider.generate_plan(request)
            )
        except EXTERNAL_CALL_ERRORS as e:
            logger.error(
                f"[orchestrator] Activity generation failed: {e}",
                extra={"structured": {"trip_id": trip.id, "error": type(e).__name__}},
            )
            return SuggestionPlan(days=[])

    async def _geocode(self, activities: Sequence[Segment], day_locations: Sequence[DayLocation]) -> list[Segment]:
        """Attach coordinates; failures are flagged on the activity metadata."""
        locations = {d.day_number: d.location for d in day_locations}
        requests = []
        for activity in activities:
            time = activity.metadata.time if isinstance(activity.metadata, ActivityMetadata) else ""
            requests.append(
                GeocodeRequest(
                    place_name=activity.location,
                    hint=f"{activity.title}|{time}|{activity.order_index:g}",
                    city_context=locations.get(activity.day_number, ""),
                )
            )
        coordinates = await self._resolver.resolve_many(requests)

        result: list[Segment] = []
        for activity, coords in zip(activities, coordinates):
            if coords is not None:
                result.append(activity.model_copy(update={"coordinates": coords}))
            else:
                result.append(
                    activity.model_copy(
                        update={"metadata": activity.metadata.model_copy(update={"geocode_failed": True})}
                    )
                )

        failed = sum(1 for c in coordinates if c is None)
        logger.info(
            f"[orchestrator] Geocoded {len(result) - failed} activities, {failed} failed",
            extra={"structured": {"geocoded": len(result) - failed, "failed": failed}},
        )
        return result

    async def _hidden_gems(self, trip: Trip, profile: TripProfile) -> list[HiddenGem]:
        try:
            gems = await self._provider_executor.execute(
                CallContext(service=PROVIDER_SERVICE),
                lambda: self._provider.hidden_gems(
                    trip.destination, profile.budget_tier, profile.travel_style, trip.currency
                ),
            )
        except EXTERNAL_CALL_ERRORS as e:
            logger.warning(f"[orchestrator] Hidden gems fetch failed: {e}")
            return []
        return [gem.model_copy(update={"estimated_cost": gem.estimated_cost or 0, "isolated": True}) for gem in gems]

    @staticmethod
    def _reconcile(
        trip: Trip, allocation: BudgetAllocation, segments: list[Segment]
    ) -> tuple[list[Segment], ReconciliationReport]:
        """Reconcile, trimming the cheapest non-essential segments on overshoot."""
        report = reconcile_budget(allocation, segments)
        if report.balanced or report.overshoot <= 0:
            if not report.balanced:
                logger.warning(
                    f"[orchestrator] Category overshoot without total overshoot for trip {trip.id}",
                    extra={"structured": {"violations": [v.category.value for v in report.violations]}},
                )
            return segments, report

        logger.warning(
            f"[orchestrator] Budget overshoot detected: {report.overshoot:g} {trip.currency}. Auto-correcting",
            extra={"structured": {"trip_id": trip.id, "overshoot": report.overshoot}},
        )
        remaining = report.overshoot
        removed: set[int] = set()
        for kind in TRIM_PRIORITY:
            if remaining <= 0:
                break
            candidates = sorted((s for s in segments if s.kind == kind), key=lambda s: s.estimated_cost)
            for segment in candidates:
                if remaining <= 0:
                    break
                remaining -= segment.estimated_cost
                removed.add(id(segment))
                budget_autotrim_segments_total.labels(kind=kind.value).inc()

        segments = [s for s in segments if id(s) not in removed]
        report = reconcile_budget(allocation, segments)
        if report.balanced:
            logger.info(f"[orchestrator] Budget reconciled after trimming {len(removed)} segments")
        else:
            logger.warning(
                f"[orchestrator] Budget still over after correction: overshoot={report.overshoot:g} {trip.currency}",
                extra={
                    "structured": {
                        "trip_id": trip.id,
                        "overshoot": report.overshoot,
                        "violations": [v.category.value for v in report.violations],
                    }
                },
            )
        return segments, report


def reindex(segments: Sequence[Segment]) -> list[Segment]:
    """Sort by (day, order_index) and renumber order_index densely per day."""
    ordered = sorted(segments, key=lambda s: (s.day_number, s.order_index))
    result: list[Segment] = []
    current_day: int | None = None
    index = 0
    for segment in ordered:
        if segment.day_number != current_day:
            current_day, index = segment.day_number, 0
        result.append(segment.model_copy(update={"order_index": index}))
        index += 1
    return result


def build_default_orchestrator(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    cache: TTLCache | None = None,
    provider: SuggestionProvider | None = None,
) -> TripOrchestrator:
    """Wire the orchestrator with Nominatim, OSRM and the configured cache.

    Args:
        settings: Settings (default: cached settings)
        http_client: Shared httpx client for the geocoding and routing adapters
        cache: Persistent cache (default: Redis when configured, else in-memory)
        provider: Suggestion provider (default: chosen from settings)

    Returns:
        Ready-to-use TripOrchestrator
    """
    settings = settings or get_settings()
    if cache is None:
        cache = RedisTTLCache.from_url(settings.redis_url) if settings.redis_url else InMemoryTTLCache()

    metrics = PrometheusCallMetrics()
    call_logger = StructuredCallLogger()
    geocode_executor = ExternalCallExecutor(
        CallConfig.from_settings(settings),
        metrics=metrics,
        logger=call_logger,
        limiter=IntervalRateLimiter(settings.geocode_requests_per_sec),
    )
    route_executor = ExternalCallExecutor(CallConfig.from_settings(settings), metrics=metrics, logger=call_logger)

    geocoder = NominatimClient(
        settings.nominatim_base_url,
        settings.nominatim_user_agent,
        client=http_client,
        executor=geocode_executor,
    )
    resolver = GeocodingResolver(geocoder, cache, settings.geocode_cache_ttl_days)
    router = OSRMRoutingClient(settings.osrm_base_url, client=http_client, executor=route_executor)
    routes = RouteTimeService(
        DistanceClassifier(resolver), resolver, router, cache, settings.route_cache_ttl_days
    )

    return TripOrchestrator(
        provider or get_suggestion_provider(settings),
        resolver,
        TransportPlanner(routes),
        settings=settings,
    )
