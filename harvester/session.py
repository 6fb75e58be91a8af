"""
Browser Session
===============
Owns the Playwright lifecycle: one Chromium browser and one page that
drives interception.

Navigation policy:
- Before the engine has started once, navigation failures are retried up to
  ``max_navigation_attempts``; the last failure raises ``NavigationError``.
- After a successful start (grafts relaunch the browser mid-run) failures
  are retried indefinitely.  A long harvest should survive a flaky network
  for as long as it takes, so there is no upper bound here.

Every failed attempt is logged, waits ``navigation_retry_delay`` and tears
the browser down completely before the next attempt.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import async_playwright, Browser, Page
from playwright.async_api import Error as PlaywrightError

from .monitor import Progress
from .run_config import HarvestConfig


class NavigationError(RuntimeError):
    """The resource could not be visited before the harvest ever started."""


async def _no_progress(state: Progress) -> None:
    return None


class BrowserSession:
    """
    Launch, navigate, close and relaunch the harvesting browser.

    Usage::

        session = BrowserSession(config)
        page = await session.launch(target.url)
        ...
        await session.close()
    """

    def __init__(
        self,
        config: HarvestConfig,
        progress: Callable[[Progress], Awaitable[None]] = _no_progress,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config
        self._log = config.logger
        self._progress = progress
        self._sleep = sleep

        # Playwright handles
        self._playwright = None
        self.browser: Optional[Browser] = None
        self.page: Optional[Page] = None

        # Failed navigations so far (never reset)
        self.attempts = 0

    # ------------------------------------------------------------------
    # Browser management
    # ------------------------------------------------------------------

    def launch_options(self) -> Dict[str, Any]:
        """Chromium launch kwargs built from the configuration."""
        args: List[str] = []
        if self.config.no_sandbox:
            args.append('--no-sandbox')
            args.append('--disable-setuid-sandbox')

        options: Dict[str, Any] = {
            'headless': self.config.headless,
            'args': args,
        }
        if self.config.proxy_url:
            options['proxy'] = {'server': self.config.proxy_url}
        return options

    async def _start_browser(self) -> None:
        self._playwright = await async_playwright().start()
        self.browser = await self._playwright.chromium.launch(**self.launch_options())

    async def launch(self, url: str, bounded: bool = True) -> Page:
        """
        Create the browser and page, then visit the url.

        Args:
            url:     Resource URL to open.
            bounded: Apply the attempt budget (True until the engine has
                     started successfully once).

        Returns:
            The page, already navigated to ``url``.

        Raises:
            NavigationError: ``bounded`` and the attempt budget is spent.
        """
        while True:
            await self._progress(Progress.LAUNCHING)
            await self._start_browser()
            self.page = await self.browser.new_page()
            await self._progress(Progress.OPENING)

            try:
                # timeout=0: no navigation deadline
                await self.page.goto(url, timeout=0)
                self._log.info(f"[SESSION] Opened {url}")
                return self.page
            except PlaywrightError as e:
                self.attempts += 1
                if bounded and self.attempts >= self.config.max_navigation_attempts:
                    self._log.error(
                        f"[SESSION] Giving up on {url} after {self.attempts} attempts: {e}"
                    )
                    await self.close()
                    raise NavigationError(f"Failed to visit resource {url}") from e

                self._log.error(f"[SESSION] Navigation failed (attempt {self.attempts}): {e}")
                await self._progress(Progress.ABORTED)
                await self._sleep(self.config.navigation_retry_delay)

                # Close existing attempt, then retry from scratch
                await self.close()

    async def relaunch(self, url: str) -> Page:
        """Close everything and launch again (grafting). Never bounded."""
        await self.close()
        return await self.launch(url, bounded=False)

    async def new_page(self) -> Page:
        """Open a secondary page in the current browser."""
        return await self.browser.new_page()

    async def close(self) -> None:
        """Close page, browser and Playwright."""
        if self.page is not None:
            try:
                await self.page.close()
            except PlaywrightError as e:
                self._log.debug(f"[SESSION] Page already closed: {e}")
            self.page = None
        if self.browser is not None:
            try:
                await self.browser.close()
            except PlaywrightError as e:
                self._log.debug(f"[SESSION] Browser already closed: {e}")
            self.browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    @property
    def is_open(self) -> bool:
        return self.page is not None
