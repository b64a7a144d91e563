"""Routing adapter using the public OSRM driving profile."""

import logging

import httpx
from pydantic import BaseModel

from tripcore.config import get_settings
from tripcore.models.common import Coordinate
from tripcore.tools.executor import EXTERNAL_CALL_ERRORS, CallContext, ExternalCallExecutor

logger = logging.getLogger(__name__)


class RouteResult(BaseModel):
    """Best driving route between two points."""

    duration_seconds: float
    distance_meters: float

    @property
    def hours(self) -> float:
        return self.duration_seconds / 3600

    @property
    def km(self) -> float:
        return self.distance_meters / 1000


class OSRMRoutingClient:
    """Fetches driving duration and distance between two coordinates."""

    service = "routing.osrm"

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        executor: ExternalCallExecutor | None = None,
    ) -> None:
        self._base_url = (base_url or get_settings().osrm_base_url).rstrip("/")
        self._client = client
        self._executor = executor or ExternalCallExecutor()

    async def route(self, origin: Coordinate, target: Coordinate) -> RouteResult | None:
        """Return the best route, or None when OSRM fails or finds none."""
        try:
            return await self._executor.execute(
                CallContext(service=self.service), lambda: self._fetch(origin, target)
            )
        except EXTERNAL_CALL_ERRORS as e:
            logger.warning(f"OSRM routing failed: {e}")
            return None

    async def _fetch(self, origin: Coordinate, target: Coordinate) -> RouteResult | None:
        # OSRM expects lon,lat order
        coords = f"{origin.longitude},{origin.latitude};{target.longitude},{target.latitude}"
        url = f"{self._base_url}/route/v1/driving/{coords}"

        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=4.0)
            close_client = True

        try:
            response = await client.get(url, params={"overview": "false"})
            response.raise_for_status()
            data = response.json()
        finally:
            if close_client:
                await client.aclose()

        if not isinstance(data, dict) or data.get("code") != "Ok" or not data.get("routes"):
            return None
        best = data["routes"][0]
        try:
            return RouteResult(
                duration_seconds=float(best["duration"]), distance_meters=float(best["distance"])
            )
        except (KeyError, TypeError, ValueError):
            logger.warning("Malformed OSRM route payload")
            return None
