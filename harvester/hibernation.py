"""
Rate-limit detection and timed sleeps.

Every sleep in the harvester goes through ``Hibernator.sleep`` so that the
remaining seconds are visible on the status line and tests can substitute
the clock.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Awaitable, Callable

from .monitor import Progress
from .state import SessionState

Clock = Callable[[float], Awaitable[Any]]
ProgressCallback = Callable[[Progress], Awaitable[None]]


def is_rate_limited(payload: Any) -> bool:
    """A payload of ``{"status": "fail", ...}`` means the API throttled us."""
    return isinstance(payload, dict) and payload.get("status") == "fail"


class Hibernator:
    """Countdown sleeper plus the long rate-limit pause."""

    def __init__(
        self,
        state: SessionState,
        progress: ProgressCallback,
        clock: Clock = asyncio.sleep,
        log: logging.Logger = None,
    ):
        self.state = state
        self._progress = progress
        self._clock = clock
        self._log = log or logging.getLogger(__name__)
        self.hibernations = 0

    async def sleep(self, seconds: float) -> None:
        """Halt execution, counting down one second at a time."""
        remaining = float(seconds)
        while remaining > 0:
            step = min(1.0, remaining)
            self.state.sleep_remaining = math.ceil(remaining)
            await self._progress(Progress.SCRAPING)
            await self._clock(step)
            remaining -= step
        self.state.sleep_remaining = 0
        await self._progress(Progress.SCRAPING)

    async def hibernate(self, seconds: float) -> None:
        """Sleep off a rate limit, then clear the flag."""
        self.hibernations += 1
        self._log.info(f"[HIBERNATE] Rate limited, sleeping {seconds}s")
        await self.sleep(seconds)
        self.state.hibernate = False
