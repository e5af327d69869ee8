"""Error taxonomy for location resolution."""
from __future__ import annotations


class PlaceShareError(Exception):
    """Base class for all errors raised by the package."""


class InvalidInputError(PlaceShareError):
    """Raised synchronously when an address is empty or whitespace only."""


class UnsupportedCapabilityError(PlaceShareError):
    """Raised when the host offers no geolocation or clipboard capability."""


class GeocodingError(PlaceShareError):
    """A forward or reverse lookup failed; the message is shown verbatim."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SensorError(PlaceShareError):
    """The device position could not be obtained."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidShareLinkError(PlaceShareError):
    """A URL does not describe a shared place."""


class ClipboardError(PlaceShareError):
    """A clipboard write was attempted and failed."""
