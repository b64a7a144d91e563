"""Segment store interface."""

from collections.abc import Sequence
from typing import Protocol

from tripcore.models.common import SegmentKind
from tripcore.models.segment import Segment


class SegmentStoreError(Exception):
    """Segment store rejected a read or write."""

    pass


class SegmentStore(Protocol):
    """Protocol for persisting a trip's segments.

    Implementations assign a stable `id` to every stored segment.
    """

    async def replace_trip_segments(self, trip_id: str, segments: Sequence[Segment]) -> list[Segment]:
        """Delete the trip's existing segments and bulk-insert new ones.

        Args:
            trip_id: Trip whose segments are replaced
            segments: Segments to insert, in order

        Returns:
            Stored segments carrying their assigned ids

        Raises:
            SegmentStoreError: If the write fails
        """
        ...

    async def insert_segment(self, trip_id: str, segment: Segment) -> Segment:
        """Insert one segment and return it with its assigned id."""
        ...

    async def list_segments(
        self, trip_id: str, *, exclude_kinds: frozenset[SegmentKind] = frozenset()
    ) -> list[Segment]:
        """List the trip's segments ordered by (day_number, order_index)."""
        ...

    async def delete_trip_segments(self, trip_id: str) -> int:
        """Delete all segments for a trip and return how many were removed."""
        ...
