"""Device position sensors."""
from __future__ import annotations

from typing import Any, Optional, Protocol

import httpx
import orjson

from placeshare.observability.tracing import span
from placeshare.workflow.errors import SensorError
from placeshare.workflow.state import Coordinate

IPAPI_ENDPOINT = "https://ipapi.co/json/"


class GeolocationSensor(Protocol):
    async def get_current_position(self) -> Coordinate: ...


class IpGeolocationSensor:
    """Approximates the device position from its public IP address."""

    def __init__(self, client: httpx.AsyncClient, *, endpoint: str = IPAPI_ENDPOINT) -> None:
        self._client = client
        self._endpoint = endpoint

    async def get_current_position(self) -> Coordinate:
        try:
            with span(name="ip_geolocation", target=self._endpoint):
                response = await self._client.get(self._endpoint)
        except httpx.HTTPError as exc:
            raise SensorError(f"position unavailable: {exc}") from exc
        if not response.is_success:
            raise SensorError(f"position unavailable: HTTP {response.status_code}")
        try:
            payload: Any = orjson.loads(response.content)
        except orjson.JSONDecodeError as exc:
            raise SensorError("position unavailable: malformed response") from exc
        if not isinstance(payload, dict):
            raise SensorError("position unavailable: malformed response")
        if payload.get("error"):
            raise SensorError(str(payload.get("reason") or "position unavailable"))
        try:
            return Coordinate(lat=float(payload["latitude"]), lng=float(payload["longitude"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise SensorError(f"position unavailable: {exc}") from exc


class StaticGeolocationSensor:
    """Reports a fixed position, or a permission denial when none is configured."""

    def __init__(self, coordinate: Optional[Coordinate]) -> None:
        self._coordinate = coordinate

    async def get_current_position(self) -> Coordinate:
        if self._coordinate is None:
            raise SensorError("permission denied")
        return self._coordinate
