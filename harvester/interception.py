"""
Interception Pipeline
=====================
Registers Playwright callbacks on the harvesting page and buffers what they
deliver.

- ``route``         → every outgoing request is held and pushed onto
                      ``requests``.  The paginator MUST continue or abort
                      each one, otherwise the page stalls waiting for it.
- ``response``      → pushed onto ``responses``.
- ``requestfailed`` → logged and reported, never buffered.
- ``dialog``        → dismissed.
- ``pageerror``     → logged.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from playwright.async_api import Dialog, Page, Request, Response, Route

from .buffers import LockedBuffer
from .monitor import Progress


class InterceptionPipeline:
    """Producer side of the request/response buffers."""

    def __init__(self, log: logging.Logger, progress: Callable[[Progress], Awaitable[None]]):
        self._log = log
        self._progress = progress
        self.requests: LockedBuffer[Route] = LockedBuffer()
        self.responses: LockedBuffer[Response] = LockedBuffer()

    async def attach(self, page: Page) -> None:
        """Enable request interception and register the listeners."""
        await page.route("**/*", self._intercept_request)
        page.on("response", self._intercept_response)
        page.on("requestfailed", self._intercept_failure)

        # Ignore dialog boxes
        page.on("dialog", self._dismiss_dialog)

        page.on("pageerror", self._log_page_error)

    async def clear(self) -> None:
        """Drop everything buffered (the page that produced it is gone)."""
        await self.requests.clear()
        await self.responses.clear()

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    async def _intercept_request(self, route: Route) -> None:
        await self.requests.push(route)

    async def _intercept_response(self, response: Response) -> None:
        await self.responses.push(response)

    async def _intercept_failure(self, request: Request) -> None:
        self._log.info(f"Failed: {request.url}")
        await self._progress(Progress.ABORTED)

    async def _dismiss_dialog(self, dialog: Dialog) -> None:
        await dialog.dismiss()

    def _log_page_error(self, error) -> None:
        self._log.error(f"[PAGE] {error}")
