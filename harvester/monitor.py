"""
Status Monitor
==============
Progress reporting for the harvest engine.

The engine never writes to the console itself: it emits a ``ProgressEvent``
to an injected ``StatusReporter`` every time its state, sleep countdown or
emitted count changes.

Reporters:
- ``NullStatusReporter``    : discards events (silent mode, tests)
- ``ConsoleStatusReporter`` : rewrites one status line in place on stdout
- ``RecordingStatusReporter``: keeps every event (tests, embedding apps)

Async-safe: writes are serialized with an asyncio.Lock so concurrent
callbacks (request failures, detail fetches) never interleave a line.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, TextIO

from .utils import format_total

logger = logging.getLogger(__name__)

# Erase from cursor to end of line
_CLEAR_EOL = "\u001B[K"


class Progress(str, Enum):
    """The states of progress the engine can be in."""
    LAUNCHING = "Launching"
    OPENING = "Navigating"
    SCRAPING = "Scraping"
    BRANCHING = "Branching"
    GRAFTING = "Grafting"
    CLOSING = "Closing"

    PAUSED = "Paused"
    ABORTED = "Request aborted"


@dataclass(frozen=True)
class ProgressEvent:
    """Snapshot of engine progress at one point in time."""
    resource_id: str
    total: int
    state: Progress
    sleep_remaining: int = 0
    index: int = 0

    def format(self) -> str:
        return (
            f" {self.resource_id} "
            f" Total: {format_total(self.total)} "
            f" State: {self.state.value} "
            f" Sleeping: {self.sleep_remaining} "
            f" Scraped: {self.index} "
        )


class StatusReporter:
    """Sink for progress events. The base class discards everything."""

    async def report(self, event: ProgressEvent) -> None:
        return None

    async def finish(self) -> None:
        """Called once when the harvest ends."""
        return None


class NullStatusReporter(StatusReporter):
    pass


class ConsoleStatusReporter(StatusReporter):
    """
    Rewrites a single status line in place::

        \\r nofilter  Total: 100  State: Scraping  Sleeping: 2  Scraped: 36 \\e[K
    """

    def __init__(self, stream: Optional[TextIO] = None, log: Optional[logging.Logger] = None):
        self._stream = stream or sys.stdout
        self._log = log or logger
        self._lock = asyncio.Lock()
        self._wrote = False

    async def report(self, event: ProgressEvent) -> None:
        async with self._lock:
            out = event.format()
            self._log.debug(out)
            self._stream.write("\r" + out + _CLEAR_EOL)
            self._stream.flush()
            self._wrote = True

    async def finish(self) -> None:
        # End the status line so following output starts on a fresh line
        async with self._lock:
            if self._wrote:
                self._stream.write("\n")
                self._stream.flush()


class RecordingStatusReporter(StatusReporter):
    """Keeps every event in memory."""

    def __init__(self):
        self.events: List[ProgressEvent] = []
        self.finished = False

    async def report(self, event: ProgressEvent) -> None:
        self.events.append(event)

    async def finish(self) -> None:
        self.finished = True

    @property
    def states(self) -> List[Progress]:
        return [e.state for e in self.events]


def format_summary(resource_id: str, emitted: int, jumps: int, elapsed_sec: float, stop_reason: str) -> str:
    """Format a human-readable end-of-run summary."""
    lines = [
        "=" * 65,
        "  HARVEST SUMMARY",
        "=" * 65,
        f"  Resource:            {resource_id}",
        f"  Records harvested:   {emitted}",
        f"  Page jumps:          {jumps}",
        f"  Elapsed time:        {elapsed_sec:.1f} s",
        f"  Stop reason:         {stop_reason}",
        "=" * 65,
    ]
    return "\n".join(lines)
