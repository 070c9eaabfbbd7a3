"""
Driving Directions

Fetches a driving route between two points from an OSRM server
(the public demo server by default). No API key required.

http://project-osrm.org/docs/v5.24.0/api/#route-service
"""

import logging

import httpx
from pydantic import ValidationError

from config import OSRM_URL, ROUTING_TIMEOUT_SECONDS
from errors import NetworkError, NoRouteError
from models import Coordinate, RouteResult

logger = logging.getLogger(__name__)


class OsrmRouter:
    def __init__(self, base_url: str = OSRM_URL, http_client: httpx.AsyncClient | None = None):
        self._base_url = base_url.rstrip("/")
        self._http_client = http_client or httpx.AsyncClient(timeout=ROUTING_TIMEOUT_SECONDS)

    async def get_route(self, start: Coordinate, end: Coordinate) -> RouteResult:
        """Get the driving route from ``start`` to ``end``.

        Raises NetworkError when OSRM can't be reached or errors out, and
        NoRouteError when it answers without a usable route.
        """
        # OSRM takes lon,lat pairs
        url = f"{self._base_url}/route/v1/driving/{start.lon},{start.lat};{end.lon},{end.lat}"
        try:
            response = await self._http_client.get(
                url,
                params={"overview": "full", "geometries": "geojson"},
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Routing request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if data.get("code") == "NoRoute":
            raise NoRouteError(data.get("message") or "No route found")
        if response.status_code != 200:
            raise NetworkError(f"Error from routing API: {response.status_code} - {response.text}")

        routes = data.get("routes") or []
        if not routes:
            raise NoRouteError("No route found")

        route = routes[0]
        geometry = (route.get("geometry") or {}).get("coordinates") or []
        try:
            path = tuple(Coordinate(lat=lat, lon=lon) for lon, lat, *_ in geometry)
            result = RouteResult(
                path=path,
                distance_km=route["distance"] / 1000,
                duration_min=route["duration"] / 60,
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise NoRouteError(f"Unusable route geometry: {e}") from e

        logger.info("Route found: %.1f km, %.0f min", result.distance_km, result.duration_min)
        return result

    async def aclose(self) -> None:
        await self._http_client.aclose()
