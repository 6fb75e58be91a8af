"""
Harvest Engine
==============
Drives one harvest end to end and exposes the result as an async generator.

Architecture:
- One ``BrowserSession`` (one browser, one intercepting page)
- ``InterceptionPipeline`` buffers routes/responses from Playwright callbacks
- ``Paginator`` drains the buffers once per poll cycle
- ``Hibernator`` owns every sleep (poll back-off, rate-limit hibernation)
- Records flow through a ``LockedBuffer`` and are yielded one at a time

Poll cycle (``get_next``)::

    drain requests → drain responses → await detail fetches
      → finished?  → wait while paused → jump (keys + mouse)
      → graft every N jumps → sleep → hibernate if rate limited
      → records buffered?  → return to the generator

Usage::

    engine = ScrapeEngine.hashtag("nofilter", HarvestConfig(total=100))
    async for post in engine.generator():
        print(post["node"]["id"])

    # Or from sync code:
    posts = ScrapeEngine.user("instagram").run()
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from . import targets
from .buffers import LockedBuffer
from .hibernation import Hibernator
from .interception import InterceptionPipeline
from .monitor import (
    ConsoleStatusReporter,
    NullStatusReporter,
    Progress,
    ProgressEvent,
    StatusReporter,
)
from .paginator import Paginator, Record
from .run_config import HarvestConfig
from .session import BrowserSession
from .state import SessionState
from .targets import ResourceTarget

# Fallback when the page reports no viewport
_DEFAULT_VIEWPORT = {"width": 1280, "height": 720}


class ScrapeEngine:
    """
    Harvests one resource through the page's own private API calls.

    The generator is single use: it starts the browser on first pull and
    closes it when the resource is exhausted, the cap is reached or
    ``force_stop`` is observed.
    """

    def __init__(
        self,
        target: ResourceTarget,
        config: Optional[HarvestConfig] = None,
        *,
        reporter: Optional[StatusReporter] = None,
        session_factory: Callable[..., BrowserSession] = BrowserSession,
        clock: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.target = target
        self.config = config or HarvestConfig()
        self.logger = self.config.logger
        self.state = SessionState()

        if reporter is None:
            reporter = (NullStatusReporter() if self.config.silent
                        else ConsoleStatusReporter(log=self.logger))
        self.reporter = reporter
        self._clock = clock

        self.hibernator = Hibernator(self.state, self.progress, clock=clock, log=self.logger)
        self.session = session_factory(
            self.config, progress=self.progress, sleep=self.hibernator.sleep,
        )
        self.pipeline = InterceptionPipeline(self.logger, self.progress)
        self.records: LockedBuffer[Record] = LockedBuffer()
        self.paginator = Paginator(
            target=target,
            config=self.config,
            state=self.state,
            pipeline=self.pipeline,
            records=self.records,
            session=self.session,
            progress=self.progress,
            sleep=self.hibernator.sleep,
        )

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    @classmethod
    def hashtag(cls, resource_id: str, config: Optional[HarvestConfig] = None, **kwargs) -> "ScrapeEngine":
        return cls(targets.hashtag(resource_id), config, **kwargs)

    @classmethod
    def location(cls, resource_id: str, config: Optional[HarvestConfig] = None, **kwargs) -> "ScrapeEngine":
        return cls(targets.location(resource_id), config, **kwargs)

    @classmethod
    def user(cls, resource_id: str, config: Optional[HarvestConfig] = None, **kwargs) -> "ScrapeEngine":
        return cls(targets.user(resource_id), config, **kwargs)

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def pause(self) -> None:
        """Toggle pausing data collection."""
        self.state.paused = not self.state.paused

    def toggle_hibernation(self) -> None:
        """Force a hibernation on the next poll cycle."""
        self.state.hibernate = True

    def force_stop(self) -> None:
        """Request a clean stop: buffered records are still yielded, nothing new is fetched."""
        self.state.stop_requested = True
        self.logger.info("Stop requested")

    # ------------------------------------------------------------------
    # Public iteration
    # ------------------------------------------------------------------

    async def generator(self) -> AsyncIterator[Dict[str, Any]]:
        """Generator of records on the page."""
        try:
            if not self.state.started:
                await self.start()

            while True:
                await self.get_next()

                # Yield records from buffer
                record = await self.records.pop()
                while record is not None:
                    yield record.data
                    record = await self.records.pop()

                # End loop when finished and records in buffer exhausted
                if self.state.finished or self.state.stop_requested:
                    break
        finally:
            await self.stop()
            await self.reporter.finish()

    def run(self) -> List[Dict[str, Any]]:
        """Sync wrapper: harvest everything into a list."""
        async def collect() -> List[Dict[str, Any]]:
            return [record async for record in self.generator()]

        return asyncio.run(collect())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Launch the browser, visit the resource and start intercepting."""
        page = await self.session.launch(self.target.url, bounded=not self.state.started)
        self.state.started = True
        await self.pipeline.attach(page)

    async def stop(self) -> None:
        """Close the page and browser and drop buffered traffic."""
        await self.progress(Progress.CLOSING)

        await self.paginator.finish_detail_fetches()
        await self.session.close()
        await self.pipeline.clear()

    async def initiate_graft(self) -> None:
        """Rebuild the browser and replay the last API request on the new page."""
        if not self.config.enable_grafting:
            return

        await self.progress(Progress.GRAFTING)
        self.logger.info(f"[GRAFT] Grafting after {self.state.jumps} jumps")

        await self.paginator.finish_detail_fetches()
        page = await self.session.relaunch(self.target.url)

        # Traffic buffered from the old page can no longer be continued
        await self.pipeline.clear()

        self.state.graft = True
        await self.pipeline.attach(page)

    # ------------------------------------------------------------------
    # Poll cycle
    # ------------------------------------------------------------------

    async def get_next(self) -> None:
        """Stimulate the page until records are gathered or the harvest ends."""
        await self.progress(Progress.SCRAPING)
        while True:
            # Process results (if any)
            await self.paginator.process_requests()
            await self.paginator.process_responses()

            # Finish detail pages
            await self.progress(Progress.BRANCHING)
            await self.paginator.finish_detail_fetches()

            if self.state.finished or self.state.stop_requested:
                break

            await self.wait_resume()
            if self.state.stop_requested:
                break

            # Interact with page to stimulate a request
            await self.jump()

            if self.state.jumps % self.config.graft_interval == 0:
                await self.initiate_graft()

            await self.hibernator.sleep(self.config.sleep_time)

            # Hibernate if rate limited
            if self.state.hibernate:
                await self.hibernator.hibernate(self.config.hibernation_time)

            if await self.records.size() > 0:
                break

    async def wait_resume(self) -> None:
        """Pause until the pause flag is toggled off (or a stop is requested)."""
        while self.state.paused and not self.state.stop_requested:
            await self.progress(Progress.PAUSED)
            await self._clock(self.config.pause_poll_interval)

    async def jump(self) -> None:
        """Manipulate the page so it fetches the next page of data."""
        page = self.session.page
        await page.keyboard.press("PageUp")
        await page.keyboard.press("End")

        # Move mouse randomly
        viewport = page.viewport_size or _DEFAULT_VIEWPORT
        await page.mouse.move(
            round(viewport["width"] * random.random()),
            round(viewport["height"] * random.random()),
        )

        self.state.jumps += 1

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    async def progress(self, state: Progress) -> None:
        """Report progress to the status reporter."""
        await self.reporter.report(ProgressEvent(
            resource_id=self.target.resource_id,
            total=self.config.total,
            state=state,
            sleep_remaining=self.state.sleep_remaining,
            index=self.state.index,
        ))
