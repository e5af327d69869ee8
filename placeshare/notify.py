"""User-visible notification sinks."""
from __future__ import annotations

import sys
from typing import List, Protocol, TextIO

INVALID_ADDRESS_MESSAGE = "Invalid address entered - please try again!"
GEOLOCATION_UNAVAILABLE_MESSAGE = (
    "Location feature is not available in your environment - please enter an address manually."
)
LOCATE_FAILED_MESSAGE = "Could not locate you unfortunately. Please enter an address manually!"
COPIED_MESSAGE = "Copied into clipboard!"


class Notifier(Protocol):
    def notify(self, message: str) -> None: ...


class ConsoleNotifier:
    """Prints notifications to a terminal stream (stderr by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def notify(self, message: str) -> None:
        stream = self._stream or sys.stderr
        print(message, file=stream)


class CollectingNotifier:
    """Keeps notifications in memory, for embedding and tests."""

    def __init__(self) -> None:
        self.messages: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)
