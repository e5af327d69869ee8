"""Value types and the observable state owned by a workflow."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional


@dataclass(frozen=True, slots=True)
class Coordinate:
    """Immutable latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        lat = float(self.lat)
        lng = float(self.lng)
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
            raise ValueError(f"Coordinates out of range: {lat}, {lng}")
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lng", lng)


@dataclass(frozen=True, slots=True)
class ResolvedLocation:
    """An address and the coordinate it resolved to, always set together."""

    address: str
    coordinate: Coordinate
    source: str = "address"
    resolved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)


class CopyOutcome(enum.Enum):
    COPIED = "copied"
    FALLBACK_TO_MANUAL_SELECTION = "fallback_to_manual_selection"


class WorkflowState:
    """Transient state for one view lifetime.

    Mutators are private to the workflow; the presentation layer reads the
    properties. ``active`` only ever transitions from True to False.
    """

    def __init__(self) -> None:
        self._resolved_location: Optional[ResolvedLocation] = None
        self._is_loading = False
        self._active = True

    @property
    def resolved_location(self) -> Optional[ResolvedLocation]:
        return self._resolved_location

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def active(self) -> bool:
        return self._active

    def _begin(self) -> None:
        self._is_loading = True

    def _settle(self, location: Optional[ResolvedLocation] = None) -> None:
        # One synchronous stretch, so observers never see a half-applied result.
        if location is not None:
            self._resolved_location = location
        self._is_loading = False

    def _deactivate(self) -> None:
        self._active = False

    def snapshot(self) -> Dict[str, object]:
        """Return a JSON-friendly view of the state."""
        location = self._resolved_location
        return {
            "address": location.address if location else None,
            "lat": location.coordinate.lat if location else None,
            "lng": location.coordinate.lng if location else None,
            "source": location.source if location else None,
            "resolved_at": location.resolved_at.isoformat() if location else None,
            "is_loading": self._is_loading,
            "active": self._active,
        }
