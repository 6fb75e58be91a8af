"""
Paginator
=========
Consumer side of the interception buffers.  Once per poll cycle it:

1. Drains intercepted requests.  Matching API calls either record the
   request template (normal) or are rewritten to the stored template
   (grafting).  Every drained route is continued, the page would stall
   otherwise.
2. Drains intercepted responses.  Matching API payloads are parsed, checked
   for rate limiting and for a next page, and their record envelopes are
   deduplicated, counted against the cap and queued for output.

Graft state machine::

    NORMAL ──(every graft_interval jumps, engine relaunches)──▶ GRAFTING
    GRAFTING ──(a matching response is processed)──────────────▶ NORMAL

Full-detail mode schedules a detail-page fetch per record instead of
queueing the envelope directly; the engine awaits those fetches every
cycle and their payloads are queued in extraction order.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Response, Route

from .buffers import LockedBuffer, PostIdSet
from .hibernation import is_rate_limited
from .interception import InterceptionPipeline
from .monitor import Progress
from .run_config import HarvestConfig
from .session import BrowserSession
from .state import SessionState
from .targets import POST_URL, ResourceTarget, match_url
from .utils import get_path

# Evaluated on a detail page to read the state the page was rendered from
_DETAIL_SCRIPT = "() => window._sharedData.entry_data.PostPage[0].graphql"


@dataclass
class Record:
    """One extracted envelope plus its identifier."""
    identifier: str
    shortcode: Optional[str]
    data: Dict[str, Any]


class Paginator:
    """Turns buffered requests/responses into records and pagination state."""

    def __init__(
        self,
        target: ResourceTarget,
        config: HarvestConfig,
        state: SessionState,
        pipeline: InterceptionPipeline,
        records: LockedBuffer[Record],
        session: BrowserSession,
        progress: Callable[[Progress], Awaitable[None]],
        sleep: Callable[[float], Awaitable[Any]],
    ):
        self.target = target
        self.config = config
        self.state = state
        self.pipeline = pipeline
        self.records = records
        self.session = session
        self._progress = progress
        self._sleep = sleep
        self._log = config.logger

        # Cache of record ids
        self.post_ids = PostIdSet()

        # In-flight detail fetches, in extraction order
        # (None task: envelope-only record, queued as extracted)
        self._detail_fetches: List[Tuple[Record, Optional[asyncio.Task]]] = []
        self._detail_slots = asyncio.Semaphore(config.max_detail_pages)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def process_requests(self) -> None:
        """Continue every buffered request, swapping in the template when grafting."""
        for route in await self.pipeline.requests.drain():
            request = route.request
            if not match_url(request.url):
                await self._continue(route)
                continue

            if self.state.graft and self.state.last_url:
                self._log.debug(f"[GRAFT] Replaying {self.state.last_url}")
                await self._continue(
                    route,
                    url=self.state.last_url,
                    headers=dict(self.state.last_headers),
                )
            else:
                self.state.last_url = request.url
                self.state.last_headers = await request.all_headers()
                await self._continue(route)

    async def _continue(self, route: Route, **overrides) -> None:
        try:
            await route.continue_(**overrides)
        except PlaywrightError as e:
            # The page was closed (graft / stop) while the route was buffered
            self._log.debug(f"[PAGINATOR] Could not continue {route.request.url}: {e}")

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    async def process_responses(self) -> None:
        """Extract records from every buffered API response."""
        processed = False
        for response in await self.pipeline.responses.drain():
            if not match_url(response.url):
                continue

            data = await self._read_json(response)
            if data is None:
                continue

            # Check for rate limiting
            if is_rate_limited(data):
                self._log.info("Rate limited")
                self.state.hibernate = True
                continue
            processed = True

            # Check for next page
            if not (get_path(data, self.target.page_query + ".has_next_page", False)
                    and get_path(data, self.target.page_query + ".end_cursor", False)):
                self._log.info("No posts remaining")
                self.state.finished = True

            await self._extract(data)

        # Switch off grafting once the replayed request has been answered
        if self.state.graft and processed:
            self._log.info("[GRAFT] Graft complete")
            self.state.graft = False

    async def _read_json(self, response: Response) -> Optional[Any]:
        try:
            return await response.json()
        except (PlaywrightError, ValueError) as e:
            self._log.error("Error processing response JSON")
            self._log.error(e)
            return None

    async def _extract(self, data: Any) -> None:
        edges = get_path(data, self.target.edge_query, [])
        if not isinstance(edges, list):
            self._log.warning(f"[PAGINATOR] No record list at {self.target.edge_query}")
            return

        for edge in edges:
            if self._cap_reached():
                self.state.finished = True
                break

            node = edge.get("node") if isinstance(edge, dict) else None
            identifier = node.get("id") if isinstance(node, dict) else None
            if identifier is None:
                self._log.warning("[PAGINATOR] Skipping record without node.id")
                continue

            # Check it hasn't already been cached
            if self.post_ids.add(identifier):
                self._log.info(f"Duplicate id found: {identifier}")
                continue

            self.state.index += 1
            record = Record(identifier=identifier, shortcode=node.get("shortcode"), data=edge)
            if self.config.full_api:
                # Records without a shortcode keep their envelope but still
                # wait their turn behind earlier detail fetches
                task = None
                if record.shortcode:
                    task = asyncio.create_task(self._fetch_detail(record.shortcode))
                else:
                    self._log.warning(f"[DETAIL] {identifier}: no shortcode, keeping envelope")
                self._detail_fetches.append((record, task))
            else:
                await self.records.push(record)

            if self._cap_reached():
                self.state.finished = True
                break

    def _cap_reached(self) -> bool:
        return self.config.total > 0 and self.state.index >= self.config.total

    # ------------------------------------------------------------------
    # Full-detail mode
    # ------------------------------------------------------------------

    async def finish_detail_fetches(self) -> None:
        """Await every in-flight detail fetch and queue results in order."""
        if not self._detail_fetches:
            return
        pending, self._detail_fetches = self._detail_fetches, []
        tasks = [task for _, task in pending if task is not None]
        try:
            payloads = iter(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        for record, task in pending:
            if task is not None:
                record.data = next(payloads)
            await self.records.push(record)

    async def _fetch_detail(self, shortcode: str) -> Dict[str, Any]:
        """Open a record's detail page and read its full payload. Retries forever."""
        async with self._detail_slots:
            while True:
                page = None
                try:
                    page = await self.session.new_page()
                    payload = await self._read_detail_page(page, shortcode)
                    if isinstance(payload, dict):
                        return payload
                    self._log.warning(f"[DETAIL] {shortcode}: page carried no record state")
                except PlaywrightError as e:
                    self._log.error(f"[DETAIL] {shortcode}: {e}")
                finally:
                    if page is not None:
                        await page.close()

                await self._progress(Progress.ABORTED)
                await self._sleep(self.config.detail_retry_delay)

    async def _read_detail_page(self, page, shortcode: str) -> Any:
        marker = "/p/" + shortcode

        async def only_record(route: Route) -> None:
            if marker in route.request.url:
                await route.continue_()
            else:
                await route.abort()

        await page.route("**/*", only_record)
        await page.goto(POST_URL + shortcode, timeout=0)
        return await page.evaluate(_DETAIL_SCRIPT)
