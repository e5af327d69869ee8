"""Geocoding collaborator interface."""
from __future__ import annotations

from typing import Protocol

from placeshare.workflow.state import Coordinate

FORWARD_FAILED_MESSAGE = "Failed to fetch coordinates. Please try again!"
REVERSE_FAILED_MESSAGE = "Failed to fetch address. Please try again!"
FORWARD_NOT_FOUND_MESSAGE = "Could not find location for the specified address."
REVERSE_NOT_FOUND_MESSAGE = "Could not find an address for the specified coordinates."


class GeocodingService(Protocol):
    """Address to coordinate lookups and back; both raise ``GeocodingError``."""

    async def forward(self, address: str) -> Coordinate: ...

    async def reverse(self, coordinate: Coordinate) -> str: ...
