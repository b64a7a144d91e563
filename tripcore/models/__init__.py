"""Models package - re-exports for convenience."""

from tripcore.models.booking import BookingOption, BookingSuggestion
from tripcore.models.budget import (
    AllocationMeta,
    AllocationOptions,
    BudgetAllocation,
    CategoryViolation,
    ReconciliationReport,
)
from tripcore.models.common import (
    TRAVEL_KINDS,
    BudgetCategory,
    BudgetTier,
    BudgetType,
    Coordinate,
    DistanceTier,
    OwnVehicle,
    SegmentKind,
    TransportMode,
    TravelPreference,
    TravelStyle,
)
from tripcore.models.corrections import FeasibilityIssue, GuardName
from tripcore.models.result import DailySummary, OrchestrationResult
from tripcore.models.segment import (
    AccommodationMetadata,
    ActivityMetadata,
    HiddenGemMetadata,
    LocalTransportMetadata,
    Segment,
    SegmentMetadata,
    TransportMetadata,
)
from tripcore.models.suggestions import (
    HiddenGem,
    SuggestedActivity,
    SuggestedDay,
    SuggestionPlan,
    SuggestionRequest,
)
from tripcore.models.trip import DayLocation, Trip, TripLeg

__all__ = [
    # Common
    "Coordinate",
    "BudgetTier",
    "TravelStyle",
    "TransportMode",
    "TravelPreference",
    "OwnVehicle",
    "BudgetType",
    "DistanceTier",
    "SegmentKind",
    "BudgetCategory",
    "TRAVEL_KINDS",
    # Trip
    "Trip",
    "TripLeg",
    "DayLocation",
    # Segments
    "Segment",
    "SegmentMetadata",
    "TransportMetadata",
    "AccommodationMetadata",
    "ActivityMetadata",
    "LocalTransportMetadata",
    "HiddenGemMetadata",
    # Budget
    "AllocationOptions",
    "AllocationMeta",
    "BudgetAllocation",
    "CategoryViolation",
    "ReconciliationReport",
    # Booking
    "BookingOption",
    "BookingSuggestion",
    # Suggestions
    "SuggestionRequest",
    "SuggestedActivity",
    "SuggestedDay",
    "SuggestionPlan",
    "HiddenGem",
    # Corrections
    "FeasibilityIssue",
    "GuardName",
    # Result
    "DailySummary",
    "OrchestrationResult",
]
