"""Synthetic booking option models."""

from pydantic import BaseModel, Field

from tripcore.models.common import SegmentKind


class BookingOption(BaseModel):
    """One scored candidate for a bookable segment."""

    option_id: str
    provider: str
    estimated_price: float
    rating: float | None = None
    duration: str | None = None
    score: float = 0
    tag: str | None = None
    tier: str | None = None
    details: dict[str, object] = Field(default_factory=dict)


class BookingSuggestion(BaseModel):
    """Ranked options for a single segment. Always demo data."""

    segment_id: str
    segment_kind: SegmentKind
    options: list[BookingOption] = Field(default_factory=list)
    demo_label: str
