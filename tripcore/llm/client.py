"""Activity suggestion providers backed by OpenAI, with a deterministic stub.

Security: Reads API key from environment only, never hardcoded.
The stub provider is used whenever no key is configured, so the engine runs
fully offline in tests and local development.
"""

import json
import logging
import re
from typing import Protocol

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from tripcore.config import Settings, get_settings
from tripcore.models.common import BudgetTier, TravelStyle
from tripcore.models.suggestions import (
    HiddenGem,
    SuggestedActivity,
    SuggestedDay,
    SuggestionPlan,
    SuggestionRequest,
)
from tripcore.utils.numbers import round_half_up

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)

SYSTEM_PROMPT = (
    "You are a travel API that outputs strict JSON. Never include markdown, "
    "code fences, or explanation outside the JSON object."
)

TIER_GUIDANCE = {
    BudgetTier.budget: (
        "BUDGET TIER: prefer free walking tours, public parks, beaches, markets and street food. "
        "At least half of the activities should be free."
    ),
    BudgetTier.mid_range: "MID-RANGE TIER: mix free sights with moderately priced museums, tours and dining.",
    BudgetTier.luxury: "LUXURY TIER: recommend premium experiences, private tours and fine dining only.",
}

# (max, typical) share of the daily activity budget for a single activity
TIER_COST_SHARES = {
    BudgetTier.budget: (0.25, 0.10),
    BudgetTier.mid_range: (0.35, 0.15),
    BudgetTier.luxury: (0.50, 0.25),
}

PACE_HINTS = {
    "relaxed": "PACE: Relaxed, max 4 activities per day with generous breaks.",
    "moderate": "PACE: Moderate, 5-6 activities per day with reasonable breaks.",
    "packed": "PACE: Packed, 6-8 activities per day for maximum coverage.",
}


class SuggestionProviderError(Exception):
    """Provider call failed or returned an unusable payload."""


class SuggestionProvider(Protocol):
    """Protocol for activity suggestion providers."""

    async def generate_plan(self, request: SuggestionRequest) -> SuggestionPlan:
        """Suggest activities for every trip day.

        Args:
            request: Trip context and the activity envelope to respect

        Returns:
            SuggestionPlan with one SuggestedDay per trip day, in order

        Raises:
            SuggestionProviderError: When the provider fails or its output is malformed
        """
        ...

    async def hidden_gems(
        self,
        destination: str,
        budget_tier: BudgetTier,
        travel_style: TravelStyle,
        currency: str,
    ) -> list[HiddenGem]:
        """Suggest off-the-beaten-path spots. Never counted toward the budget."""
        ...


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences a model may wrap around JSON."""
    return _CODE_FENCE_RE.sub("", text).replace("```", "").strip()


def build_plan_prompt(request: SuggestionRequest) -> str:
    """Render the activity-generation prompt for a request."""
    effective_budget = request.activity_budget or request.budget
    daily_budget = round_half_up(effective_budget / max(request.total_days, 1))
    max_share, typical_share = TIER_COST_SHARES[request.budget_tier]
    schedule = ", ".join(f"Day {d.day_number}: {d.location}" for d in request.day_locations)

    lines = [
        f"Generate a {request.total_days}-day itinerary for {request.travelers} traveler(s).",
        f"ACTIVITY BUDGET ONLY: {effective_budget:g} {request.currency} total for all days.",
        f"Daily activity budget: ~{daily_budget} {request.currency}/day.",
        f"ITINERARY SCHEDULE: {schedule or request.destination}",
        "Generate activities SPECIFIC to the location mentioned for each day.",
        TIER_GUIDANCE[request.budget_tier],
        f"NO single activity should cost more than {round_half_up(daily_budget * max_share)} {request.currency}.",
        f"MOST activities should cost around {round_half_up(daily_budget * typical_share)} {request.currency} or less.",
        PACE_HINTS.get(request.pace, PACE_HINTS["moderate"]),
    ]
    if request.travel_style == TravelStyle.road_trip:
        lines.append("ROAD TRIP MODE: include scenic stops and roadside attractions.")
    else:
        lines.append(f"TRAVEL STYLE: {request.travel_style.value}, tailor activities accordingly.")
    if request.exclude_transport:
        lines.append("DO NOT include any transport (flights, trains, buses, taxis, local transport).")
    if request.exclude_accommodation:
        lines.append("DO NOT include any accommodation or hotel suggestions.")
    if request.has_outbound_transport and request.start_location:
        lines.append(f"The traveler arrives from {request.start_location} on day 1; keep day 1 light.")
    if request.has_return_transport:
        lines.append("The traveler departs on the final day; keep the final evening free.")
    lines.append(
        f"The sum of ALL estimated_cost values MUST NOT EXCEED {effective_budget:g} {request.currency}."
    )
    lines.append(
        'Return ONLY valid JSON: {"days": [{"dayNumber": 1, "activities": [{"title": "...", '
        '"time": "09:00", "location": "...", "type": "sightseeing", "estimated_cost": 0, '
        '"safety_warning": null, "notes": "..."}]}]}'
    )
    return "\n".join(lines)


def build_gems_prompt(destination: str, budget_tier: BudgetTier, travel_style: TravelStyle, currency: str) -> str:
    if budget_tier == BudgetTier.budget:
        budget_hint = "Focus on free or very cheap experiences."
    elif budget_tier == BudgetTier.luxury:
        budget_hint = "Include exclusive, premium hidden experiences."
    else:
        budget_hint = "Mix of free and moderately priced experiences."

    return "\n".join(
        [
            f'Suggest 5 "hidden gem" activities or unique spots in {destination} that most tourists miss.',
            budget_hint,
            f'Prioritize gems that suit a "{travel_style.value}" travel style.',
            'Return ONLY valid JSON: {"gems": [{"title": "...", "description": "...", '
            '"category": "culture|food|nature|adventure|nightlife", "estimated_cost": 0, '
            '"best_time": "Morning|Afternoon|Evening|Anytime"}]}',
            f"All estimated_cost values must be in {currency}.",
        ]
    )


class DeterministicStubProvider:
    """Deterministic stub provider for testing (no API key required)."""

    # (title template, time, type, share of the daily activity budget)
    TEMPLATES: tuple[tuple[str, str, str, float], ...] = (
        ("Old Town Walking Tour", "09:00", "sightseeing", 0.0),
        ("Central Market Visit", "10:30", "food", 0.15),
        ("City Museum", "12:30", "culture", 0.25),
        ("Riverside Park", "14:30", "nature", 0.0),
        ("Local Food Street", "17:00", "food", 0.2),
        ("Sunset Viewpoint", "18:30", "sightseeing", 0.1),
    )
    PACE_COUNTS = {"relaxed": 3, "moderate": 5, "packed": 6}

    async def generate_plan(self, request: SuggestionRequest) -> SuggestionPlan:
        """Generate a fixed activity pattern per day, priced off the daily envelope."""
        count = self.PACE_COUNTS.get(request.pace, 5)
        days: list[SuggestedDay] = []
        for day in request.day_locations:
            activities = [
                SuggestedActivity(
                    title=f"{title} ({day.location})",
                    time=time,
                    type=kind,
                    location=f"{title}, {day.location}",
                    estimated_cost=round_half_up(request.activity_per_day * share),
                    notes="Stub suggestion generated without a language model.",
                )
                for title, time, kind, share in self.TEMPLATES[:count]
            ]
            days.append(SuggestedDay(activities=activities))
        return SuggestionPlan(days=days)

    async def hidden_gems(
        self,
        destination: str,
        budget_tier: BudgetTier,
        travel_style: TravelStyle,
        currency: str,
    ) -> list[HiddenGem]:
        """Return three fixed gems for the destination."""
        return [
            HiddenGem(
                title=f"Backstreet Cafe Row ({destination})",
                description="Quiet lanes of family-run cafes away from the main square.",
                location=destination,
                category="food",
                best_time="Morning",
            ),
            HiddenGem(
                title=f"Hilltop Garden ({destination})",
                description="A small public garden with a view over the old town.",
                location=destination,
                category="nature",
                best_time="Evening",
            ),
            HiddenGem(
                title=f"Artisan Workshops ({destination})",
                description="Working studios that welcome visitors on weekdays.",
                location=destination,
                category="culture",
                best_time="Afternoon",
                safety_note="Check opening days before visiting.",
            ),
        ]


class OpenAISuggestionProvider:
    """OpenAI-backed provider returning JSON validated by pydantic."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", client: AsyncOpenAI | None = None):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
            client: Optional preconfigured AsyncOpenAI client (tests)
        """
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model

    async def _complete_json(self, prompt: str, max_tokens: int) -> dict:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.7,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            raise SuggestionProviderError(f"OpenAI API call failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise SuggestionProviderError("OpenAI returned empty response")

        try:
            payload = json.loads(strip_code_fences(content))
        except json.JSONDecodeError as e:
            logger.error(f"OpenAI returned invalid JSON: {content[:500]}")
            raise SuggestionProviderError("OpenAI returned non-parseable JSON") from e

        if not isinstance(payload, dict):
            raise SuggestionProviderError("OpenAI returned JSON that is not an object")
        return payload

    async def generate_plan(self, request: SuggestionRequest) -> SuggestionPlan:
        """Generate activities using the OpenAI chat completions API."""
        # ~800 tokens per day, bounded
        max_tokens = min(8192, max(2048, request.total_days * 800))
        payload = await self._complete_json(build_plan_prompt(request), max_tokens)
        try:
            return SuggestionPlan.model_validate(payload)
        except ValidationError as e:
            raise SuggestionProviderError(f"Malformed itinerary payload: {e}") from e

    async def hidden_gems(
        self,
        destination: str,
        budget_tier: BudgetTier,
        travel_style: TravelStyle,
        currency: str,
    ) -> list[HiddenGem]:
        """Fetch hidden gems using the OpenAI chat completions API."""
        payload = await self._complete_json(
            build_gems_prompt(destination, budget_tier, travel_style, currency), 1024
        )
        gems = payload.get("gems") or []
        try:
            return [HiddenGem.model_validate({"location": destination, **gem}) for gem in gems]
        except (ValidationError, TypeError) as e:
            raise SuggestionProviderError(f"Malformed hidden gems payload: {e}") from e


def get_suggestion_provider(settings: Settings | None = None) -> SuggestionProvider:
    """Factory function to get the appropriate provider based on config.

    Returns:
        OpenAISuggestionProvider if API key is configured, DeterministicStubProvider otherwise
    """
    settings = settings or get_settings()
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI suggestion provider")
        return OpenAISuggestionProvider(
            api_key=api_key.get_secret_value(),
            model=settings.openai_model,
        )

    logger.warning("No OpenAI API key configured, using deterministic stub provider")
    return DeterministicStubProvider()
