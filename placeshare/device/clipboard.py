"""System clipboard access through the platform's copy command."""
from __future__ import annotations

import asyncio
import shutil
from typing import List, Optional, Protocol, Sequence

import structlog

from placeshare.workflow.errors import ClipboardError

LOGGER = structlog.get_logger(__name__)

COPY_COMMANDS: Sequence[Sequence[str]] = (
    ("pbcopy",),
    ("wl-copy",),
    ("xclip", "-selection", "clipboard"),
    ("xsel", "--clipboard", "--input"),
    ("clip",),
)


class ClipboardSink(Protocol):
    async def write_text(self, text: str) -> None: ...


class CommandClipboard:
    """Pipes text into an external copy command such as ``pbcopy``."""

    def __init__(self, command: Sequence[str]) -> None:
        self._command: List[str] = list(command)

    @property
    def command(self) -> List[str]:
        return list(self._command)

    async def write_text(self, text: str) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            # xclip and wl-copy fork a child that keeps serving the selection;
            # no pipes may stay open or communicate() waits on that child.
            await process.communicate(text.encode("utf-8"))
        except OSError as exc:
            raise ClipboardError(f"{self._command[0]}: {exc}") from exc
        if process.returncode != 0:
            raise ClipboardError(f"{self._command[0]} exited with {process.returncode}")


def detect_clipboard(commands: Sequence[Sequence[str]] = COPY_COMMANDS) -> Optional[CommandClipboard]:
    """Return a clipboard for the first copy command on PATH, or None."""
    for command in commands:
        if shutil.which(command[0]):
            LOGGER.debug("clipboard_detected", command=command[0])
            return CommandClipboard(command)
    return None
