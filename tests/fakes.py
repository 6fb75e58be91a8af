"""
In-memory stand-ins for the Playwright objects the harvester touches.

``FakeUpstream`` plays the remote service: every mouse move on a page that
has request interception enabled makes it "fetch" the next unread payload:
one matching API route plus one unrelated asset route, followed by the API
response.  A payload counts as read once its response body is parsed, so a
page that is torn down before reading (a graft) gets the same payload again.
"""

import inspect
from collections import defaultdict
from typing import Any, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError

from harvester.session import BrowserSession
from harvester.targets import CATCH_URL, POST_URL

API_URL = CATCH_URL + "/?query_hash=9b498c08113f1e09617a1703c22b2f32"
ASSET_URL = "https://www.instagram.com/static/bundles/es6/Consumer.js"

RATE_LIMITED = {
    "message": "Please wait a few minutes before you try again.",
    "status": "fail",
}


def page_payload(ids, has_next=True, cursor="QVFD", kind="hashtag", edge="edge_hashtag_to_media"):
    """Build an API payload shaped like the hashtag feed."""
    return {
        "data": {
            kind: {
                edge: {
                    "count": 1000,
                    "page_info": {
                        "has_next_page": has_next,
                        "end_cursor": cursor if has_next else None,
                    },
                    "edges": [
                        {"node": {"id": str(i), "shortcode": f"sc{i}", "taken_at_timestamp": 1546300800 + i}}
                        for i in ids
                    ],
                }
            }
        },
        "status": "ok",
    }


async def _call(handler, *args):
    result = handler(*args)
    if inspect.isawaitable(result):
        await result


class FakeRequest:
    """``headers`` omits cookies like Playwright does; ``all_headers()`` has them."""

    def __init__(self, url: str, headers: Optional[Dict[str, str]] = None,
                 cookies: Optional[Dict[str, str]] = None):
        self.url = url
        self.headers = dict(headers or {})
        self.full_headers = {**self.headers, **(cookies or {})}

    async def all_headers(self) -> Dict[str, str]:
        return dict(self.full_headers)


class FakeRoute:
    def __init__(self, url: str, headers: Optional[Dict[str, str]] = None,
                 cookies: Optional[Dict[str, str]] = None):
        self.request = FakeRequest(url, headers, cookies)
        self.continued: Optional[Dict[str, Any]] = None
        self.aborted = False

    async def continue_(self, **overrides):
        self.continued = overrides

    async def abort(self, error_code=None):
        self.aborted = True

    @property
    def handled(self) -> bool:
        return self.continued is not None or self.aborted


class FakeResponse:
    def __init__(self, url: str, payload: Any = None, on_read=None, invalid: bool = False):
        self.url = url
        self.payload = payload
        self._on_read = on_read
        self._invalid = invalid

    async def json(self):
        if self._on_read:
            self._on_read()
        if self._invalid:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeDialog:
    def __init__(self):
        self.dismissed = False

    async def dismiss(self):
        self.dismissed = True


class FakeKeyboard:
    def __init__(self):
        self.presses: List[str] = []

    async def press(self, key: str):
        self.presses.append(key)


class FakeMouse:
    def __init__(self, page: "FakePage"):
        self.page = page
        self.moves: List[tuple] = []

    async def move(self, x, y):
        self.moves.append((x, y))
        await self.page.upstream.serve(self.page)


class FakePage:
    def __init__(self, upstream: "FakeUpstream"):
        self.upstream = upstream
        self.listeners = defaultdict(list)
        self.route_handler = None
        self.viewport_size = {"width": 800, "height": 600}
        self.keyboard = FakeKeyboard()
        self.mouse = FakeMouse(self)
        self.visited: List[str] = []
        self.detail_routes: List[FakeRoute] = []
        self.closed = False

    async def goto(self, url: str, **kwargs):
        self.visited.append(url)
        if url.startswith(POST_URL):
            await self._load_detail(url)
            return
        if self.upstream.goto_failures > 0:
            self.upstream.goto_failures -= 1
            raise PlaywrightError("net::ERR_CONNECTION_RESET")

    async def _load_detail(self, url: str):
        if self.route_handler:
            for request_url in (url, ASSET_URL):
                route = FakeRoute(request_url)
                self.detail_routes.append(route)
                await _call(self.route_handler, route)
        if self.upstream.detail_failures > 0:
            self.upstream.detail_failures -= 1
            raise PlaywrightError("Timeout 30000ms exceeded.")

    async def route(self, pattern: str, handler):
        self.route_handler = handler

    def on(self, event: str, handler):
        self.listeners[event].append(handler)

    async def emit(self, event: str, arg):
        for handler in list(self.listeners[event]):
            await _call(handler, arg)

    async def evaluate(self, script: str):
        shortcode = self.visited[-1].rstrip("/").rsplit("/", 1)[-1]
        return self.upstream.details.get(shortcode)

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, upstream: "FakeUpstream"):
        self.upstream = upstream
        self.pages: List[FakePage] = []
        self.closed = False

    async def new_page(self):
        if self.upstream.new_page_failures > 0:
            self.upstream.new_page_failures -= 1
            raise PlaywrightError("Target page, context or browser has been closed")
        page = FakePage(self.upstream)
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True


class FakeUpstream:
    """The remote service behind the page."""

    def __init__(self, payloads=(), goto_failures=0, details=None, detail_failures=0,
                 new_page_failures=0):
        self.payloads = list(payloads)
        self.served = 0
        self.goto_failures = goto_failures
        self.details = details or {}
        self.detail_failures = detail_failures
        self.new_page_failures = new_page_failures
        self.browsers: List[FakeBrowser] = []
        self.api_routes: List[FakeRoute] = []
        self.asset_routes: List[FakeRoute] = []

    async def serve(self, page: FakePage):
        if page.route_handler is None or self.served >= len(self.payloads):
            return
        n = self.served

        route = FakeRoute(
            f"{API_URL}&after=cursor{n}",
            {"x-ig-app-id": "936619743392459", "x-page": str(n)},
            cookies={"cookie": "csrftoken=8kQ2; mid=ZfT1"},
        )
        asset = FakeRoute(ASSET_URL)
        self.api_routes.append(route)
        self.asset_routes.append(asset)
        await _call(page.route_handler, route)
        await _call(page.route_handler, asset)

        response = FakeResponse(route.request.url, self.payloads[n], on_read=lambda: self._ack(n))
        await page.emit("response", response)

    def _ack(self, n: int):
        self.served = max(self.served, n + 1)


class FakeSession(BrowserSession):
    """BrowserSession whose browser is a FakeBrowser."""

    def __init__(self, config, upstream: FakeUpstream, **kwargs):
        super().__init__(config, **kwargs)
        self.upstream = upstream

    async def _start_browser(self):
        self.browser = FakeBrowser(self.upstream)
        self.upstream.browsers.append(self.browser)


class FakeClock:
    """Records requested sleeps instead of sleeping."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


async def no_progress(state):
    return None
