"""Booking suggestions for bookable segments.

Runs after the segments are persisted, since suggestions are keyed by the
segment ids the store assigns.
"""

import logging
from collections.abc import Sequence

from tripcore.booking.scorer import (
    ScoredResult,
    generate_flight_results,
    generate_hotel_results,
    generate_train_results,
)
from tripcore.config import get_settings
from tripcore.models.booking import BookingOption, BookingSuggestion
from tripcore.models.common import SegmentKind, TransportMode
from tripcore.models.segment import Segment, TransportMetadata
from tripcore.utils.numbers import round_half_up

logger = logging.getLogger(__name__)

BOOKABLE_KINDS = frozenset(
    {
        SegmentKind.outbound_travel,
        SegmentKind.intercity_travel,
        SegmentKind.return_travel,
        SegmentKind.accommodation,
    }
)
TOP_OPTIONS = 3
UPGRADE_SCORE_BONUS = 5


def _segment_key(segment: Segment) -> str:
    if segment.id:
        return segment.id
    return f"seg-{segment.day_number}-{segment.order_index:g}"


def _own_vehicle_option(segment: Segment, metadata: TransportMetadata) -> BookingOption:
    return BookingOption(
        option_id="own-vehicle-1",
        provider="Own Bike" if metadata.transport_mode == TransportMode.bike else "Own Car",
        estimated_price=segment.estimated_cost,
        duration=metadata.distance_tier.value,
        score=100,
        tag="Best",
    )


def _candidates(segment: Segment, currency_rate: float) -> list[ScoredResult]:
    metadata = segment.metadata
    if isinstance(metadata, TransportMetadata):
        key = f"{metadata.from_location}-{metadata.to_location}-{segment.kind.value}"
        if metadata.transport_mode == TransportMode.flight:
            return generate_flight_results(key, currency_rate)
        travel_class = "2A" if metadata.transport_mode == TransportMode.train else "SL"
        return generate_train_results(key, currency_rate, travel_class)
    if segment.kind == SegmentKind.accommodation:
        return generate_hotel_results(f"{segment.location}-{segment.kind.value}", currency_rate)
    return []


def suggest_bookings(
    segment: Segment,
    currency_rate: float = 1,
    is_luxury: bool = False,
    upgrade_pool: float = 0,
    bookable_count: int = 1,
) -> BookingSuggestion:
    """Build up to three scored options for one segment.

    Args:
        segment: Outbound, intercity, return or accommodation segment
        currency_rate: Multiplier from USD into the trip currency
        is_luxury: Luxury trips may get an extra upgrade option
        upgrade_pool: Luxury upgrade pool from the allocation
        bookable_count: Number of bookable segments sharing the pool

    Returns:
        BookingSuggestion; own-vehicle legs get a single option at cost
    """
    demo_label = get_settings().booking_demo_label
    segment_id = _segment_key(segment)
    metadata = segment.metadata

    if isinstance(metadata, TransportMetadata) and metadata.transport_mode in (
        TransportMode.car,
        TransportMode.bike,
    ):
        return BookingSuggestion(
            segment_id=segment_id,
            segment_kind=segment.kind,
            options=[_own_vehicle_option(segment, metadata)],
            demo_label=demo_label,
        )

    ranked = sorted(_candidates(segment, currency_rate), key=lambda r: r.score, reverse=True)
    options = [
        BookingOption(
            option_id=r.option_id,
            provider=r.provider,
            estimated_price=r.price,
            rating=r.rating,
            duration=r.duration,
            score=r.score,
            tag="Best" if idx == 0 else None,
            tier=r.tier,
            details=r.details,
        )
        for idx, r in enumerate(ranked[:TOP_OPTIONS])
    ]

    if is_luxury and upgrade_pool > 0 and ranked:
        best = ranked[0]
        portion = round_half_up(upgrade_pool / max(1, bookable_count))
        options.append(
            BookingOption(
                option_id="opt-upgrade",
                provider=f"{best.provider} Premium",
                estimated_price=best.price + portion,
                rating=best.rating,
                duration=best.duration,
                score=best.score + UPGRADE_SCORE_BONUS,
                tag="Upgrade Available",
                tier="premium",
                details={**best.details, "upgraded": True, "upgrade_amount": portion},
            )
        )

    return BookingSuggestion(
        segment_id=segment_id,
        segment_kind=segment.kind,
        options=options,
        demo_label=demo_label,
    )


def generate_all_booking_suggestions(
    segments: Sequence[Segment],
    currency_rate: float = 1,
    is_luxury: bool = False,
    upgrade_pool: float = 0,
) -> dict[str, BookingSuggestion]:
    """Suggest bookings for every bookable segment, keyed by segment id.

    The upgrade pool is split evenly across the bookable segments.
    """
    bookable = [s for s in segments if s.kind in BOOKABLE_KINDS]
    suggestions: dict[str, BookingSuggestion] = {}
    for segment in bookable:
        suggestion = suggest_bookings(
            segment,
            currency_rate,
            is_luxury=is_luxury,
            upgrade_pool=upgrade_pool,
            bookable_count=len(bookable),
        )
        suggestions[suggestion.segment_id] = suggestion

    logger.info(
        f"Generated booking suggestions for {len(suggestions)} segments",
        extra={"structured": {"bookable": len(bookable), "luxury": is_luxury}},
    )
    return suggestions
