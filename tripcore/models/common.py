"""Common types and enums shared across all models."""

from enum import Enum

from pydantic import BaseModel, Field


class Coordinate(BaseModel):
    """Geographic coordinates (WGS84)."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class BudgetTier(str, Enum):
    """Spending tier chosen for the trip."""

    budget = "budget"
    mid_range = "mid-range"
    luxury = "luxury"


class TravelStyle(str, Enum):
    """Engine-level travel style."""

    relaxation = "relaxation"
    city_explorer = "city_explorer"
    road_trip = "road_trip"
    business = "business"
    adventure = "adventure"


class TransportMode(str, Enum):
    """Intercity transport mode."""

    flight = "flight"
    train = "train"
    bus = "bus"
    car = "car"
    bike = "bike"


class TravelPreference(str, Enum):
    """User transport preference; `any` lets the engine decide."""

    any = "any"
    flight = "flight"
    train = "train"
    bus = "bus"
    car = "car"
    bike = "bike"


class OwnVehicle(str, Enum):
    """Vehicle owned by the traveler."""

    none = "none"
    car = "car"
    bike = "bike"


class BudgetType(str, Enum):
    """Whether the trip budget is a hard limit."""

    flexible = "flexible"
    strict = "strict"


class DistanceTier(str, Enum):
    """Coarse distance bucket used to index cost and time tables."""

    local = "local"
    short = "short"
    medium = "medium"
    long = "long"


class SegmentKind(str, Enum):
    """Kind of a day-scheduled segment."""

    outbound_travel = "outbound_travel"
    intercity_travel = "intercity_travel"
    return_travel = "return_travel"
    accommodation = "accommodation"
    local_transport = "local_transport"
    activity = "activity"
    hidden_gem = "hidden_gem"


class BudgetCategory(str, Enum):
    """Budget envelope name."""

    intercity = "intercity"
    accommodation = "accommodation"
    local_transport = "local_transport"
    activity = "activity"
    buffer = "buffer"
    upgrade_pool = "upgrade_pool"


TRAVEL_KINDS = frozenset(
    {SegmentKind.outbound_travel, SegmentKind.intercity_travel, SegmentKind.return_travel}
)
