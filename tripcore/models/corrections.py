"""Correction records produced by the feasibility guard."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# JSON-serializable value types for correction details
JsonValue = str | int | float | bool | None | dict[str, Any] | list[Any]


class GuardName(str, Enum):
    """Feasibility guards, in the order they run."""

    INTERCITY = "intercity_feasibility"
    ACTIVITY_CAP = "activity_cap"
    ARRIVAL = "arrival_constraint"
    DEPARTURE = "departure_constraint"
    GEO_REORDER = "geo_reorder"
    TIME_CAP = "daily_time_cap"
    COST_CLAMP = "cost_clamp"


class FeasibilityIssue(BaseModel):
    """A correction applied to the suggested activities.

    Corrections are surfaced to the traveler; they are never fatal.
    """

    guard: GuardName
    code: str  # Machine-usable short code, e.g., "ACTIVITY_DROPPED"
    message: str  # Human-readable description
    day_number: int | None = None
    affected_titles: list[str] = Field(default_factory=list)
    details: dict[str, JsonValue] = Field(default_factory=dict)
