"""Geocoding adapter using the OpenStreetMap Nominatim search API (keyless)."""

import logging

import httpx

from tripcore.config import get_settings
from tripcore.models.common import Coordinate
from tripcore.tools.executor import EXTERNAL_CALL_ERRORS, CallContext, ExternalCallExecutor

logger = logging.getLogger(__name__)


class NominatimClient:
    """Looks up the first match for a free-text place query.

    Every failure (HTTP error, malformed payload, timeout, open breaker) is
    reported as None so callers can fall through to the next tier.
    """

    service = "geocode.nominatim"

    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str | None = None,
        client: httpx.AsyncClient | None = None,
        executor: ExternalCallExecutor | None = None,
    ) -> None:
        """Initialize Nominatim client.

        Args:
            base_url: Nominatim base URL (default: from settings)
            user_agent: User-Agent header required by the usage policy
            client: Optional httpx client (for testing with mocks)
            executor: Call executor providing timeout, retries, breaker and rate limit
        """
        settings = get_settings()
        self._base_url = (base_url or settings.nominatim_base_url).rstrip("/")
        self._user_agent = user_agent or settings.nominatim_user_agent
        self._client = client
        self._executor = executor or ExternalCallExecutor()
        self.calls = 0

    async def search(self, query: str) -> Coordinate | None:
        """Return coordinates of the first search hit, or None."""
        if not query or not query.strip():
            return None
        try:
            return await self._executor.execute(
                CallContext(service=self.service), lambda: self._fetch(query)
            )
        except EXTERNAL_CALL_ERRORS as e:
            logger.warning(f"Nominatim lookup failed for {query!r}: {e}")
            return None

    async def _fetch(self, query: str) -> Coordinate | None:
        self.calls += 1
        params = {"q": query, "format": "json", "limit": "1", "addressdetails": "0"}
        headers = {"User-Agent": self._user_agent}

        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=4.0)
            close_client = True

        try:
            response = await client.get(f"{self._base_url}/search", params=params, headers=headers)
            response.raise_for_status()
            data = response.json()
        finally:
            if close_client:
                await client.aclose()

        # Response structure: [{"lat": "48.85", "lon": "2.35", ...}, ...]
        if not isinstance(data, list) or not data:
            return None
        first = data[0]
        try:
            return Coordinate(latitude=float(first["lat"]), longitude=float(first["lon"]))
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Malformed Nominatim result for {query!r}")
            return None
