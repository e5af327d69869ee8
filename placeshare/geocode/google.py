"""Google Maps Geocoding API client."""
from __future__ import annotations

from typing import Any, Dict, Optional

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

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


def _first_result(payload: Any, not_found_message: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise GeocodingError(not_found_message)
    if payload.get("error_message"):
        raise GeocodingError(str(payload["error_message"]))
    results = payload.get("results") or []
    if not results:
        raise GeocodingError(not_found_message)
    return results[0]


class GoogleGeocodingService:
    """Forward and reverse lookups against the Google Geocoding API."""

    def __init__(self, session: GeocodingSession, *, api_key: str, base_url: Optional[str] = None) -> None:
        self._session = session
        self._api_key = api_key
        self._url = base_url or GOOGLE_GEOCODE_URL

    async def forward(self, address: str) -> Coordinate:
        payload = await self._session.get_json(
            self._url,
            params={"address": address, "key": self._api_key},
            failure_message=FORWARD_FAILED_MESSAGE,
        )
        result = _first_result(payload, FORWARD_NOT_FOUND_MESSAGE)
        location = (result.get("geometry") or {}).get("location") or {}
        try:
            return Coordinate(lat=location["lat"], lng=location["lng"])
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodingError(FORWARD_NOT_FOUND_MESSAGE) from exc

    async def reverse(self, coordinate: Coordinate) -> str:
        latlng = f"{format_number(coordinate.lat)},{format_number(coordinate.lng)}"
        payload = await self._session.get_json(
            self._url,
            params={"latlng": latlng, "key": self._api_key},
            failure_message=REVERSE_FAILED_MESSAGE,
        )
        result = _first_result(payload, REVERSE_NOT_FOUND_MESSAGE)
        address = str(result.get("formatted_address") or "").strip()
        if not address:
            raise GeocodingError(REVERSE_NOT_FOUND_MESSAGE)
        return address
