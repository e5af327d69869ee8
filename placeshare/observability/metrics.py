"""Lightweight in-process metrics suitable for exporting later."""
from __future__ import annotations

import time
from collections import defaultdict
from pathlib import Path
from typing import Dict

import orjson


class MetricsRegistry:
    """Holds mutable counters for the current process."""

    def __init__(self) -> None:
        self._counters: Dict[str, int] = defaultdict(int)
        self._register_defaults()

    def _register_defaults(self) -> None:
        defaults = [
            "resolutions_started",
            "resolutions_succeeded",
            "resolutions_failed",
            "resolutions_discarded",
            "geocode_retries",
            "copies_succeeded",
            "copies_fallback",
            "maps_rendered",
        ]
        for key in defaults:
            self._counters[key] = 0

    def incr(self, name: str, value: int = 1) -> None:
        """Increment the named counter by the supplied value."""
        self._counters[name] += value

    def get(self, name: str) -> int:
        """Return the current value for the counter, defaulting to zero."""
        return self._counters.get(name, 0)

    def snapshot(self) -> Dict[str, int]:
        """Return a shallow copy of all counters for reporting."""
        return dict(self._counters)

    def export(self, *, path: Path) -> Path:
        """Write counters to a JSON file, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "counters": self.snapshot(),
            "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }
        path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        return path
