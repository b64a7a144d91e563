"""Suggestion provider request/response contracts."""

import math

from pydantic import AliasChoices, BaseModel, Field, field_validator

from tripcore.models.common import BudgetTier, TravelStyle
from tripcore.models.trip import DayLocation


class SuggestionRequest(BaseModel):
    """Parameters sent to the activity suggestion provider."""

    destination: str
    total_days: int
    budget: float
    travelers: int
    currency: str
    day_locations: list[DayLocation]
    budget_tier: BudgetTier
    activity_budget: float
    activity_per_day: float
    travel_style: TravelStyle
    pace: str = "moderate"
    start_location: str = ""
    has_outbound_transport: bool = False
    has_return_transport: bool = False
    exclude_transport: bool = True
    exclude_accommodation: bool = True


def _scalar_text(v: object) -> str | None:
    """Stringify scalar provider values; anything else counts as missing."""
    if isinstance(v, str):
        return v
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return None


class SuggestedActivity(BaseModel):
    """Raw activity as returned by the provider. Fields are loosely typed."""

    title: str = ""
    time: str | None = None
    type: str | None = None
    location: str | None = None
    estimated_cost: float = 0
    notes: str | None = None
    safety_warning: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: object) -> str:
        return _scalar_text(v) or ""

    @field_validator("time", "type", "location", "notes", "safety_warning", mode="before")
    @classmethod
    def coerce_text(cls, v: object) -> str | None:
        return _scalar_text(v)

    @field_validator("estimated_cost", mode="before")
    @classmethod
    def coerce_cost(cls, v: object) -> float:
        if v is None or v == "":
            return 0.0
        try:
            cost = float(v)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.0
        return max(0.0, cost) if math.isfinite(cost) else 0.0


class SuggestedDay(BaseModel):
    activities: list[SuggestedActivity] = Field(default_factory=list)

    @field_validator("activities", mode="before")
    @classmethod
    def drop_malformed(cls, v: object) -> list[object]:
        if not isinstance(v, list):
            return []
        return [a for a in v if isinstance(a, (dict, SuggestedActivity))]


class SuggestionPlan(BaseModel):
    """Provider output: one entry per trip day, in order."""

    days: list[SuggestedDay] = Field(default_factory=list)

    @field_validator("days", mode="before")
    @classmethod
    def drop_malformed(cls, v: object) -> list[object]:
        if not isinstance(v, list):
            return []
        return [d if isinstance(d, (dict, SuggestedDay)) else {} for d in v]


class HiddenGem(BaseModel):
    """Off-the-beaten-path suggestion, isolated from the budget."""

    title: str
    description: str = ""
    location: str = ""
    category: str = ""
    estimated_cost: float = 0
    best_time: str | None = None
    safety_note: str | None = Field(
        default=None, validation_alias=AliasChoices("safety_note", "safety_warning")
    )
    isolated: bool = True

    @field_validator("estimated_cost", mode="before")
    @classmethod
    def default_cost(cls, v: object) -> object:
        if v is None or v == "":
            return 0
        if isinstance(v, float) and not math.isfinite(v):
            return 0
        return v
