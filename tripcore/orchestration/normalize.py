"""Single normalization point from user-facing trip labels to engine enums."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from tripcore.models.common import BudgetTier, OwnVehicle, TravelStyle
from tripcore.models.trip import Trip

logger = logging.getLogger(__name__)

# Legacy and internal style names → user-facing style
LEGACY_STYLES = MappingProxyType(
    {
        "road_trip": "adventure",
        "city_exploration": "explore",
        "luxury_escape": "relax",
        "backpacking": "adventure",
        "business_travel": "business",
        "relaxation": "relax",
        "city_explorer": "explore",
        "relax": "relax",
        "explore": "explore",
        "adventure": "adventure",
        "business": "business",
    }
)

# User-facing style → engine style
STYLE_MAP = MappingProxyType(
    {
        "relax": TravelStyle.relaxation,
        "explore": TravelStyle.city_explorer,
        "adventure": TravelStyle.road_trip,
        "business": TravelStyle.business,
    }
)

TIER_MAP = MappingProxyType(
    {
        "low": BudgetTier.budget,
        "cheap": BudgetTier.budget,
        "budget": BudgetTier.budget,
        "mid": BudgetTier.mid_range,
        "medium": BudgetTier.mid_range,
        "moderate": BudgetTier.mid_range,
        "mid-range": BudgetTier.mid_range,
        "mid_range": BudgetTier.mid_range,
        "high": BudgetTier.luxury,
        "premium": BudgetTier.luxury,
        "luxury": BudgetTier.luxury,
    }
)

# Target activities per day by engine style
ACTIVITY_TARGETS = MappingProxyType(
    {
        TravelStyle.relaxation: 3,
        TravelStyle.city_explorer: 5,
        TravelStyle.road_trip: 4,
        TravelStyle.adventure: 4,
        TravelStyle.business: 2,
    }
)


def pace_for(activity_target: int) -> str:
    if activity_target <= 3:
        return "relaxed"
    if activity_target >= 6:
        return "packed"
    return "moderate"


@dataclass(frozen=True)
class TripProfile:
    """Normalized style-derived settings used by every phase."""

    travel_style: TravelStyle
    budget_tier: BudgetTier
    has_own_vehicle: bool
    activity_target: int
    pace: str


def normalize_style(raw: str | None) -> TravelStyle:
    """Map any known style label to the engine style. Unknown → city_explorer."""
    label = (raw or "explore").strip().lower()
    user_style = LEGACY_STYLES.get(label, label)
    style = STYLE_MAP.get(user_style)
    if style is None:
        logger.info(f"Unknown travel style {raw!r}; defaulting to city_explorer")
        return TravelStyle.city_explorer
    return style


def normalize_tier(raw: str | None) -> BudgetTier:
    """Map any known tier label to the engine tier. Unknown → mid-range."""
    label = (raw or "mid").strip().lower()
    return TIER_MAP.get(label, BudgetTier.mid_range)


def trip_profile(trip: Trip) -> TripProfile:
    """Derive the profile for an already-typed trip."""
    has_own_vehicle = trip.has_own_vehicle or trip.travel_style == TravelStyle.road_trip
    target = ACTIVITY_TARGETS.get(trip.travel_style, 5)
    return TripProfile(
        travel_style=trip.travel_style,
        budget_tier=trip.budget_tier,
        has_own_vehicle=has_own_vehicle,
        activity_target=target,
        pace=pace_for(target),
    )


def normalize_trip(raw: Mapping[str, Any]) -> Trip:
    """Build a Trip from user-facing input.

    Style and tier labels are normalized; a road trip without a declared
    vehicle is treated as travelling by own car.

    Args:
        raw: Mapping with Trip fields, style/tier possibly in user-facing form

    Returns:
        Validated Trip using engine enums
    """
    data = dict(raw)
    style_label = data.get("travel_style")
    tier_label = data.get("budget_tier") or data.get("accommodation_preference")
    data.pop("accommodation_preference", None)

    style = style_label if isinstance(style_label, TravelStyle) else normalize_style(style_label)
    tier = tier_label if isinstance(tier_label, BudgetTier) else normalize_tier(tier_label)
    data["travel_style"] = style
    data["budget_tier"] = tier

    own_vehicle = data.get("own_vehicle")
    if style == TravelStyle.road_trip and own_vehicle in (None, "", "auto", OwnVehicle.none, "none"):
        data["own_vehicle"] = OwnVehicle.car
    elif own_vehicle in ("", "auto"):
        data["own_vehicle"] = OwnVehicle.none

    if data.get("travel_preference") in ("", "auto"):
        data["travel_preference"] = "any"

    return Trip.model_validate(data)
