"""Google Maps route providers built on httpx.

Two API shapes are supported: the legacy Distance Matrix API and the
Routes API. Both report a static and a traffic-aware duration; which one
is recorded is a provider setting.
"""

import logging
import re
from typing import Any

import httpx

from trajectwatch.core.exceptions import ProviderError
from trajectwatch.core.models import RouteResult, TravelMode

logger = logging.getLogger(__name__)

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"
ROUTES_URL = "https://routes.googleapis.com/directions/v2:computeRoutes"

_ROUTES_FIELD_MASK = "routes.duration,routes.staticDuration,routes.distanceMeters"
_ROUTES_TRAVEL_MODES = {
    TravelMode.DRIVING: "DRIVE",
    TravelMode.WALKING: "WALK",
    TravelMode.BICYCLING: "BICYCLE",
    TravelMode.TRANSIT: "TRANSIT",
}
_LAT_LNG = re.compile(r"^([-+]?\d+(?:\.\d+)?),([-+]?\d+(?:\.\d+)?)$")
_DURATION = re.compile(r"^(\d+(?:\.\d+)?)s$")


def _nested_value(element: dict[str, Any], key: str) -> Any:
    node = element.get(key)
    if isinstance(node, dict):
        return node.get("value")
    return None


class _HttpProvider:
    """Shared httpx plumbing: client ownership and error mapping."""

    def __init__(
        self,
        api_key: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _send(self, request: httpx.Request) -> dict[str, Any]:
        """Send a request and return its JSON object body.

        Raises:
            ProviderError: On transport errors, non-2xx status codes or a
                body that is not a JSON object.
        """
        try:
            response = await self._client.send(request)
        except httpx.HTTPError as exc:
            raise ProviderError(f"transport error: {exc}") from exc
        if not response.is_success:
            raise ProviderError(
                f"HTTP {response.status_code}", status_code=response.status_code
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("response is not JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderError("response is not a JSON object")
        return payload


class DistanceMatrixProvider(_HttpProvider):
    """Route provider for the Distance Matrix API.

    Args:
        api_key: API key sent as the `key` query parameter.
        prefer_traffic: Record `duration_in_traffic` when present instead
            of the static `duration`.
        client: Optional preconfigured httpx client (not closed by aclose).
        timeout: Request timeout in seconds; None disables it.
    """

    def __init__(
        self,
        api_key: str,
        *,
        prefer_traffic: bool = True,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(api_key, client=client, timeout=timeout)
        self._prefer_traffic = prefer_traffic

    def build_request(self, origin: str, destination: str, mode: str) -> httpx.Request:
        params = {
            "origins": origin,
            "destinations": destination,
            "departure_time": "now",
            "mode": str(mode),
            "key": self._api_key,
        }
        return self._client.build_request("GET", DISTANCE_MATRIX_URL, params=params)

    def parse(self, payload: dict[str, Any]) -> RouteResult:
        """Extract the first element of a distance matrix response."""
        rows = payload.get("rows") or [{}]
        elements = rows[0].get("elements") if isinstance(rows[0], dict) else None
        element = elements[0] if elements and isinstance(elements[0], dict) else {}

        duration = _nested_value(element, "duration")
        if self._prefer_traffic:
            duration = _nested_value(element, "duration_in_traffic") or duration
        return RouteResult(
            duration_seconds=duration,
            distance_meters=_nested_value(element, "distance"),
            element_status=element.get("status"),
            api_status=payload.get("status"),
        )

    async def route(self, origin: str, destination: str, mode: str) -> RouteResult:
        payload = await self._send(self.build_request(origin, destination, mode))
        try:
            return self.parse(payload)
        except (AttributeError, IndexError, KeyError, TypeError) as exc:
            raise ProviderError(f"malformed response: {exc}") from exc


def _waypoint(location: str) -> dict[str, Any]:
    match = _LAT_LNG.match(location)
    if match:
        return {
            "location": {
                "latLng": {
                    "latitude": float(match.group(1)),
                    "longitude": float(match.group(2)),
                }
            }
        }
    return {"address": location}


def _seconds(value: Any) -> float | None:
    if isinstance(value, str):
        match = _DURATION.match(value)
        return float(match.group(1)) if match else None
    return None


class RoutesProvider(_HttpProvider):
    """Route provider for the Routes API (computeRoutes).

    Args:
        api_key: API key sent in the X-Goog-Api-Key header.
        prefer_traffic: Record the traffic-aware `duration` (driving uses
            TRAFFIC_AWARE routing) instead of `staticDuration`.
        client: Optional preconfigured httpx client (not closed by aclose).
        timeout: Request timeout in seconds; None disables it.
    """

    def __init__(
        self,
        api_key: str,
        *,
        prefer_traffic: bool = True,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(api_key, client=client, timeout=timeout)
        self._prefer_traffic = prefer_traffic

    def build_request(self, origin: str, destination: str, mode: str) -> httpx.Request:
        try:
            travel_mode = _ROUTES_TRAVEL_MODES[TravelMode(str(mode))]
        except ValueError:
            travel_mode = "DRIVE"
        body: dict[str, Any] = {
            "origin": _waypoint(origin),
            "destination": _waypoint(destination),
            "travelMode": travel_mode,
        }
        if travel_mode == "DRIVE":
            body["routingPreference"] = (
                "TRAFFIC_AWARE" if self._prefer_traffic else "TRAFFIC_UNAWARE"
            )
        headers = {
            "X-Goog-Api-Key": self._api_key,
            "X-Goog-FieldMask": _ROUTES_FIELD_MASK,
        }
        return self._client.build_request("POST", ROUTES_URL, json=body, headers=headers)

    def parse(self, payload: dict[str, Any]) -> RouteResult:
        """Extract the first route of a computeRoutes response."""
        routes = payload.get("routes") or []
        if not routes or not isinstance(routes[0], dict):
            return RouteResult(None, None, element_status="ZERO_RESULTS", api_status="OK")
        route = routes[0]
        duration = _seconds(route.get("duration"))
        static = _seconds(route.get("staticDuration"))
        if not self._prefer_traffic:
            duration = static if static is not None else duration
        elif duration is None:
            duration = static
        return RouteResult(
            duration_seconds=duration,
            distance_meters=route.get("distanceMeters"),
            element_status="OK",
            api_status="OK",
        )

    async def route(self, origin: str, destination: str, mode: str) -> RouteResult:
        payload = await self._send(self.build_request(origin, destination, mode))
        try:
            return self.parse(payload)
        except (AttributeError, IndexError, KeyError, TypeError) as exc:
            raise ProviderError(f"malformed response: {exc}") from exc
