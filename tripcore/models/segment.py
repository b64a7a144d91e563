"""Segment model with kind-specific metadata variants."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from tripcore.models.common import (
    BudgetTier,
    Coordinate,
    DistanceTier,
    SegmentKind,
    TransportMode,
)


class TransportMetadata(BaseModel):
    """Metadata for outbound, intercity and return legs."""

    kind: Literal["transport"] = "transport"
    transport_mode: TransportMode
    from_location: str
    to_location: str
    distance_tier: DistanceTier
    distance_km: float | None = None
    duration_hours: float | None = None
    route_source: Literal["osrm", "cache", "fallback", "estimate"] = "estimate"
    per_person_cost: float = 0
    is_overnight: bool = False
    departure_time: str | None = None
    arrival_time: str | None = None
    budget_adjusted: bool = False
    over_envelope: bool = False
    downgraded_from: TransportMode | None = None
    notes: str = ""


class AccommodationMetadata(BaseModel):
    """Metadata for a single night of lodging."""

    kind: Literal["accommodation"] = "accommodation"
    accommodation_tier: BudgetTier
    nightly_rate: float
    rooms: int = 1
    budget_adjusted: bool = False


class ActivityMetadata(BaseModel):
    """Metadata for a suggested activity."""

    kind: Literal["activity"] = "activity"
    time: str = "09:00"
    activity_type: str = "sightseeing"
    notes: str = ""
    safety_warning: str | None = None
    geocode_failed: bool = False
    cost_clamped: bool = False


class LocalTransportMetadata(BaseModel):
    """Metadata for a hop between two activities on the same day."""

    kind: Literal["local_transport"] = "local_transport"
    from_title: str
    to_title: str
    distance_km: float
    distance_estimated: bool = False
    fare_per_km: float
    min_fare: float
    estimated_minutes: int = 0


class HiddenGemMetadata(BaseModel):
    """Metadata for an isolated hidden-gem suggestion."""

    kind: Literal["hidden_gem"] = "hidden_gem"
    description: str = ""
    category: str = ""
    best_time: str | None = None
    safety_note: str | None = None


SegmentMetadata = Annotated[
    Union[
        TransportMetadata,
        AccommodationMetadata,
        ActivityMetadata,
        LocalTransportMetadata,
        HiddenGemMetadata,
    ],
    Field(discriminator="kind"),
]


class Segment(BaseModel):
    """A day-scheduled unit of the itinerary.

    `order_index` sorts segments within a day. Logistics use sentinel values
    (-2 outbound, 998 accommodation, 999 intercity, 1000 return) and local
    transport sits at fractional offsets until the final re-index.
    """

    id: str | None = None
    trip_id: str | None = None
    kind: SegmentKind
    day_number: int = Field(..., ge=0)
    order_index: float = 0
    title: str
    location: str = ""
    estimated_cost: float = Field(default=0, ge=0)
    coordinates: Coordinate | None = None
    metadata: SegmentMetadata

    @property
    def is_geocoded(self) -> bool:
        return self.coordinates is not None
