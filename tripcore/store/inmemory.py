"""In-memory implementation of the segment store."""

import uuid
from collections.abc import Sequence

from tripcore.models.common import SegmentKind
from tripcore.models.segment import Segment


class InMemorySegmentStore:
    """In-memory implementation of SegmentStore."""

    def __init__(self) -> None:
        self._segments: dict[str, list[Segment]] = {}

    def _stamp(self, trip_id: str, segment: Segment) -> Segment:
        return segment.model_copy(update={"id": str(uuid.uuid4()), "trip_id": trip_id})

    async def replace_trip_segments(self, trip_id: str, segments: Sequence[Segment]) -> list[Segment]:
        """Replace all of a trip's segments."""
        stored = [self._stamp(trip_id, segment) for segment in segments]
        self._segments[trip_id] = stored
        return list(stored)

    async def insert_segment(self, trip_id: str, segment: Segment) -> Segment:
        """Append a single segment."""
        stored = self._stamp(trip_id, segment)
        self._segments.setdefault(trip_id, []).append(stored)
        return stored

    async def list_segments(
        self, trip_id: str, *, exclude_kinds: frozenset[SegmentKind] = frozenset()
    ) -> list[Segment]:
        """List segments sorted by day and order."""
        segments = [s for s in self._segments.get(trip_id, []) if s.kind not in exclude_kinds]
        return sorted(segments, key=lambda s: (s.day_number, s.order_index))

    async def delete_trip_segments(self, trip_id: str) -> int:
        """Remove every segment of a trip."""
        return len(self._segments.pop(trip_id, []))
