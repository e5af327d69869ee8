"""Coordinates address lookups and device positioning for one view lifetime."""
from __future__ import annotations

import asyncio
import uuid
from typing import Optional

import structlog

from placeshare.device.clipboard import ClipboardSink
from placeshare.device.geolocation import GeolocationSensor
from placeshare.geocode.base import GeocodingService
from placeshare.links import build_share_link
from placeshare.notify import (
    COPIED_MESSAGE,
    GEOLOCATION_UNAVAILABLE_MESSAGE,
    INVALID_ADDRESS_MESSAGE,
    LOCATE_FAILED_MESSAGE,
    Notifier,
)
from placeshare.observability.metrics import MetricsRegistry
from placeshare.observability.tracing import set_context, span
from placeshare.render.map import MapRenderer
from placeshare.workflow.errors import (
    ClipboardError,
    GeocodingError,
    InvalidInputError,
    SensorError,
    UnsupportedCapabilityError,
)
from placeshare.workflow.state import Coordinate, CopyOutcome, ResolvedLocation, WorkflowState

LOGGER = structlog.get_logger(__name__)

UNEXPECTED_FAILURE_MESSAGE = "Something went wrong while resolving the location. Please try again!"


class LocationResolutionWorkflow:
    """Drives a location resolution from user intent to a visible result.

    Suspension points are the collaborator calls only; every state change
    happens in a synchronous stretch between them. Once :meth:`teardown` has
    run, late results are dropped without touching state or notifying.
    Overlapping resolutions are not serialised: whichever settles last wins.
    """

    def __init__(
        self,
        *,
        geocoder: GeocodingService,
        notifier: Notifier,
        origin: str,
        sensor: Optional[GeolocationSensor] = None,
        clipboard: Optional[ClipboardSink] = None,
        renderer: Optional[MapRenderer] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._geocoder = geocoder
        self._notifier = notifier
        self._origin = origin
        self._sensor = sensor
        self._clipboard = clipboard
        self._renderer = renderer
        self._metrics = metrics or MetricsRegistry()
        self._state = WorkflowState()
        self.workflow_id = uuid.uuid4().hex[:12]

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def resolved_location(self) -> Optional[ResolvedLocation]:
        return self._state.resolved_location

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def active(self) -> bool:
        return self._state.active

    @property
    def share_link(self) -> Optional[str]:
        return self.derive_share_link()

    @property
    def has_geolocation(self) -> bool:
        return self._sensor is not None

    @property
    def has_clipboard(self) -> bool:
        return self._clipboard is not None

    async def resolve_by_address(self, raw_input: str) -> Optional[ResolvedLocation]:
        """Geocode a typed address; returns the new location, or None on failure or discard."""
        address = (raw_input or "").strip()
        if not address:
            raise InvalidInputError(INVALID_ADDRESS_MESSAGE)
        if not self._begin("address"):
            return None
        try:
            with span(name="geocode_forward", target=address):
                coordinate = await self._geocoder.forward(address)
        except GeocodingError as exc:
            return self._finish("address", message=exc.message)
        except asyncio.CancelledError:
            self._abandon("address")
            raise
        except Exception:
            LOGGER.exception("geocode_forward_crashed", address=address)
            return self._finish("address", message=UNEXPECTED_FAILURE_MESSAGE)
        return self._finish(
            "address",
            location=ResolvedLocation(address=address, coordinate=coordinate, source="address"),
        )

    async def resolve_by_current_device_position(self) -> Optional[ResolvedLocation]:
        """Locate the device, then reverse geocode the raw sensor coordinate."""
        if self._sensor is None:
            raise UnsupportedCapabilityError(GEOLOCATION_UNAVAILABLE_MESSAGE)
        if not self._begin("device"):
            return None
        try:
            with span(name="sensor_position"):
                coordinate: Coordinate = await self._sensor.get_current_position()
        except SensorError as exc:
            LOGGER.info("sensor_failed", reason=exc.reason)
            return self._finish("device", message=LOCATE_FAILED_MESSAGE)
        except asyncio.CancelledError:
            self._abandon("device")
            raise
        except Exception:
            LOGGER.exception("sensor_crashed")
            return self._finish("device", message=LOCATE_FAILED_MESSAGE)

        if not self._state.active:
            return self._finish("device")

        try:
            with span(name="geocode_reverse", target=f"{coordinate.lat},{coordinate.lng}"):
                address = await self._geocoder.reverse(coordinate)
        except GeocodingError as exc:
            return self._finish("device", message=exc.message)
        except asyncio.CancelledError:
            self._abandon("device")
            raise
        except Exception:
            LOGGER.exception("geocode_reverse_crashed", lat=coordinate.lat, lng=coordinate.lng)
            return self._finish("device", message=UNEXPECTED_FAILURE_MESSAGE)
        return self._finish(
            "device",
            location=ResolvedLocation(address=address, coordinate=coordinate, source="device"),
        )

    def derive_share_link(self) -> Optional[str]:
        return build_share_link(self._origin, self._state.resolved_location)

    async def copy_share_link(self) -> CopyOutcome:
        """Copy the share link, falling back to manual selection when the clipboard fails."""
        if self._clipboard is None:
            LOGGER.info("clipboard_unavailable")
            self._metrics.incr("copies_fallback")
            return CopyOutcome.FALLBACK_TO_MANUAL_SELECTION
        link = self.derive_share_link()
        if link is None:
            LOGGER.info("clipboard_nothing_to_copy")
            self._metrics.incr("copies_fallback")
            return CopyOutcome.FALLBACK_TO_MANUAL_SELECTION
        try:
            with span(name="clipboard_write"):
                await self._clipboard.write_text(link)
        except ClipboardError as exc:
            LOGGER.warning("clipboard_failed", error=str(exc))
            self._metrics.incr("copies_fallback")
            return CopyOutcome.FALLBACK_TO_MANUAL_SELECTION
        except asyncio.CancelledError:
            raise
        except Exception:
            LOGGER.exception("clipboard_crashed")
            self._metrics.incr("copies_fallback")
            return CopyOutcome.FALLBACK_TO_MANUAL_SELECTION
        self._metrics.incr("copies_succeeded")
        if self._state.active:
            self._notifier.notify(COPIED_MESSAGE)
        return CopyOutcome.COPIED

    def teardown(self) -> None:
        if self._state.active:
            LOGGER.debug("workflow_teardown", workflow_id=self.workflow_id, loading=self._state.is_loading)
        self._state._deactivate()

    def _begin(self, path: str) -> bool:
        if not self._state.active:
            LOGGER.debug("resolution_ignored", path=path)
            return False
        set_context(workflow_id=self.workflow_id)
        self._metrics.incr("resolutions_started")
        LOGGER.info("resolution_started", path=path)
        self._state._begin()
        return True

    def _finish(
        self,
        path: str,
        *,
        location: Optional[ResolvedLocation] = None,
        message: Optional[str] = None,
    ) -> Optional[ResolvedLocation]:
        if not self._state.active:
            self._metrics.incr("resolutions_discarded")
            LOGGER.debug("resolution_discarded", path=path, failed=location is None)
            return None
        self._state._settle(location)
        if location is None:
            self._metrics.incr("resolutions_failed")
            LOGGER.info("resolution_failed", path=path, message=message)
            if message:
                self._notifier.notify(message)
            return None
        self._metrics.incr("resolutions_succeeded")
        LOGGER.info(
            "resolution_succeeded",
            path=path,
            address=location.address,
            lat=location.coordinate.lat,
            lng=location.coordinate.lng,
        )
        self._render(location)
        return location

    def _abandon(self, path: str) -> None:
        if self._state.active:
            LOGGER.info("resolution_cancelled", path=path)
            self._state._settle()

    def _render(self, location: ResolvedLocation) -> None:
        if self._renderer is None:
            return
        try:
            self._renderer.render(location.coordinate, label=location.address)
        except Exception:
            LOGGER.exception("map_render_failed")
            return
        self._metrics.incr("maps_rendered")
