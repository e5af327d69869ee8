"""OpenStreetMap Nominatim client; needs no API key."""
from __future__ import annotations

from typing import Optional

from placeshare.geocode.base import (
    FORWARD_FAILED_MESSAGE,
    FORWARD_NOT_FOUND_MESSAGE,
    REVERSE_FAILED_MESSAGE,
    REVERSE_NOT_FOUND_MESSAGE,
)
from placeshare.geocode.session import GeocodingSession
from placeshare.links import format_number
from placeshare.workflow.errors import GeocodingError
from placeshare.workflow.state import Coordinate

NOMINATIM_URL = "https://nominatim.openstreetmap.org"


class NominatimGeocodingService:
    def __init__(self, session: GeocodingSession, *, base_url: Optional[str] = None) -> None:
        self._session = session
        self._base_url = (base_url or NOMINATIM_URL).rstrip("/")

    async def forward(self, address: str) -> Coordinate:
        payload = await self._session.get_json(
            f"{self._base_url}/search",
            params={"q": address, "format": "jsonv2", "limit": "1"},
            failure_message=FORWARD_FAILED_MESSAGE,
        )
        if isinstance(payload, dict) and payload.get("error"):
            raise GeocodingError(str(payload["error"]))
        if not isinstance(payload, list) or not payload:
            raise GeocodingError(FORWARD_NOT_FOUND_MESSAGE)
        first = payload[0]
        try:
            return Coordinate(lat=float(first["lat"]), lng=float(first["lon"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodingError(FORWARD_NOT_FOUND_MESSAGE) from exc

    async def reverse(self, coordinate: Coordinate) -> str:
        payload = await self._session.get_json(
            f"{self._base_url}/reverse",
            params={
                "lat": format_number(coordinate.lat),
                "lon": format_number(coordinate.lng),
                "format": "jsonv2",
            },
            failure_message=REVERSE_FAILED_MESSAGE,
        )
        if not isinstance(payload, dict):
            raise GeocodingError(REVERSE_NOT_FOUND_MESSAGE)
        if payload.get("error"):
            raise GeocodingError(str(payload["error"]))
        address = str(payload.get("display_name") or "").strip()
        if not address:
            raise GeocodingError(REVERSE_NOT_FOUND_MESSAGE)
        return address
