"""Map rendering for the selected place."""
from __future__ import annotations

import html
from pathlib import Path
from typing import Optional, Protocol

import folium
import structlog

from placeshare.workflow.state import Coordinate

LOGGER = structlog.get_logger(__name__)

DEFAULT_ZOOM = 16
FALLBACK_TEXT = "You haven't selected any place yet. Please enter an address or locate yourself!"


class MapRenderer(Protocol):
    def render(self, coordinate: Coordinate, *, label: Optional[str] = None) -> None: ...


class FoliumMapRenderer:
    """Writes a standalone HTML page with a single pin on the coordinate."""

    def __init__(self, output_path: Path, *, zoom: int = DEFAULT_ZOOM) -> None:
        self._output_path = output_path
        self._zoom = zoom

    def build_map(self, coordinate: Coordinate, *, label: Optional[str] = None) -> folium.Map:
        location = [coordinate.lat, coordinate.lng]
        map_obj = folium.Map(location=location, zoom_start=self._zoom, control_scale=True)
        folium.Marker(
            location=location,
            popup=folium.Popup(html.escape(label), max_width=300) if label else None,
            tooltip=label,
            icon=folium.Icon(color="red"),
        ).add_to(map_obj)
        return map_obj

    def render(self, coordinate: Coordinate, *, label: Optional[str] = None) -> None:
        self._output_path.parent.mkdir(parents=True, exist_ok=True)
        self.build_map(coordinate, label=label).save(str(self._output_path))
        LOGGER.info("map_rendered", path=str(self._output_path), lat=coordinate.lat, lng=coordinate.lng)

    def render_placeholder(self, text: str = FALLBACK_TEXT) -> None:
        self._output_path.parent.mkdir(parents=True, exist_ok=True)
        self._output_path.write_text(
            f"<!DOCTYPE html>\n<html><body><section id=\"selected-place\"><p>{html.escape(text)}</p>"
            "</section></body></html>\n",
            encoding="utf-8",
        )
