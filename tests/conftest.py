import asyncio
import random
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from stockmedia.models.session import Credentials, ScraperSettings
from stockmedia.providers.freepik import FREEPIK_PROFILE
from stockmedia.session_manager.manager import SessionManager

LOGIN_URL = "https://www.freepik.com/login"
HOME_URL = "https://www.freepik.com/"
SEARCH_URL = "https://www.freepik.com/search"
ITEM_URL = "https://www.freepik.com/item/123"
FILE_URL = "https://downloads.freepik.com/files/123.zip"
UNREACHABLE_HOST = "unreachable.example"

SEARCH_HTML = """
<html><body><section class="showcase">
  <figure class="showcase__item" data-id="101">
    <a data-type="photo" href="/free-photo/green-forest_101.htm">
      <img class="showcase__image" src="https://img.freepik.com/101.jpg">
    </a>
    <p class="showcase__title">  Green   forest </p>
    <span class="author">Jane Doe</span>
    <span class="showcase__username">@jane</span>
  </figure>
  <figure class="showcase__item" data-id="102">
    <a class="showcase__link" href="https://www.freepik.com/free-vector/leaf_102.htm"></a>
    <span class="title">Leaf</span>
    <img class="showcase__image" data-src="/previews/102.jpg">
  </figure>
  <figure class="showcase__item" data-id="">
    <a data-type="psd" href="/free-psd/no-id.htm"></a>
    <span class="title">No id</span>
  </figure>
  <figure class="showcase__item" data-id="104">
    <span class="title">No link</span>
  </figure>
</section></body></html>
"""


class FakeElement:
    def __init__(self, text: str = "", attrs: Optional[Dict[str, str]] = None):
        self.text = text
        self.attrs = dict(attrs or {})
        self.selector = ""
        self.page: Optional["FakePage"] = None
        self.clicks = 0

    async def text_content(self) -> str:
        return self.text

    async def get_attribute(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    async def click(self) -> None:
        self.clicks += 1
        if self.page is not None:
            await self.page._perform(self.selector)


@dataclass
class FakeView:
    url: str
    html: str = "<html><body></body></html>"
    elements: Dict[str, FakeElement] = field(default_factory=dict)
    # View the page turns into once its markup has been read, e.g. a challenge that clears
    settles_to: Optional["FakeView"] = None


class FakeSite:
    """Scripted provider: views by URL prefix plus what clicking a selector does."""

    def __init__(self):
        self.views: Dict[str, FakeView] = {}
        self.click_actions: Dict[str, Tuple[str, Any]] = {}
        self.log: List[Tuple[str, str]] = []
        self.goto_delay = 0.0
        self.screenshot_error: Optional[Exception] = None

    def add(self, view: FakeView) -> FakeView:
        self.views[view.url] = view
        return view

    def route(self, url: str) -> FakeView:
        matches = [prefix for prefix in self.views if url.startswith(prefix)]
        if not matches:
            return FakeView(url=url)
        return self.views[max(matches, key=len)]

    def gotos(self, prefix: str) -> List[str]:
        return [url for kind, url in self.log if kind == "goto" and url.startswith(prefix)]


class FakePage:
    def __init__(self, site: FakeSite):
        self.site = site
        self.url = "about:blank"
        self.html = ""
        self.elements: Dict[str, FakeElement] = {}
        self.headers: Dict[str, str] = {}
        self.fills: Dict[str, str] = {}
        self.screenshots: List[str] = []
        self.closed = False
        self._navigated = False
        self._settles_to: Optional[FakeView] = None

    def _load(self, view: FakeView, url: Optional[str] = None):
        self.url = url or view.url
        self.html = view.html
        self.elements = {}
        for selector, element in view.elements.items():
            self._attach(selector, element)
        self._settles_to = view.settles_to
        self._navigated = True

    def _attach(self, selector: str, element: FakeElement):
        copy = FakeElement(element.text, element.attrs)
        copy.selector = selector
        copy.page = self
        self.elements[selector] = copy

    async def _perform(self, selector: str):
        self.site.log.append(("click", selector))
        action = self.site.click_actions.get(selector)
        if action is None:
            return
        kind, payload = action
        if kind == "navigate":
            self._load(payload)
        elif kind == "reveal":
            for sel, element in payload.items():
                self._attach(sel, element)

    async def set_extra_http_headers(self, headers: Dict[str, str]):
        self.headers.update(headers)

    async def goto(self, url: str, wait_until: Optional[str] = None, timeout: Optional[int] = None):
        self.site.log.append(("goto", url))
        if self.site.goto_delay:
            await asyncio.sleep(self.site.goto_delay)
        view = self.site.route(url)
        self._load(view, url)

    async def content(self) -> str:
        html = self.html
        if self._settles_to is not None:
            self._load(self._settles_to, self.url)
        return html

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        for part in selector.split(","):
            element = self.elements.get(part.strip())
            if element is not None:
                return element
        return None

    async def wait_for_selector(self, selector: str, state: str = "visible", timeout: Optional[int] = None):
        element = await self.query_selector(selector)
        if element is None:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")
        return element

    async def fill(self, selector: str, value: str):
        self.fills[selector] = value

    async def click(self, selector: str):
        element = await self.wait_for_selector(selector)
        await element.click()

    @asynccontextmanager
    async def expect_navigation(self, wait_until: Optional[str] = None, timeout: Optional[int] = None):
        self._navigated = False
        yield
        if not self._navigated:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for navigation")

    async def screenshot(self, path: str, full_page: bool = False):
        if self.site.screenshot_error is not None:
            raise self.site.screenshot_error
        Path(path).write_bytes(b"\x89PNG")
        self.screenshots.append(path)

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, site: FakeSite):
        self.site = site
        self.pages: List[FakePage] = []
        self.cookie_list: List[dict] = [{"name": "session", "value": "abc", "domain": ".freepik.com"}]
        self.closed = False
        self.navigation_timeout = None

    def set_default_navigation_timeout(self, timeout: int):
        self.navigation_timeout = timeout

    async def new_page(self) -> FakePage:
        page = FakePage(self.site)
        self.pages.append(page)
        return page

    async def cookies(self, url: Optional[str] = None) -> List[dict]:
        return list(self.cookie_list)

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, site: FakeSite):
        self.site = site
        self.connected = True
        self.contexts: List[FakeContext] = []
        self._handlers: Dict[str, list] = {}

    def on(self, event: str, callback):
        self._handlers.setdefault(event, []).append(callback)

    def is_connected(self) -> bool:
        return self.connected

    async def new_context(self, viewport=None) -> FakeContext:
        context = FakeContext(self.site)
        self.contexts.append(context)
        return context

    def disconnect(self):
        self.connected = False
        for callback in self._handlers.get("disconnected", []):
            callback(self)

    async def close(self):
        if self.connected:
            self.disconnect()


class FakeLauncher:
    def __init__(self, site: FakeSite):
        self.site = site
        self.browsers: List[FakeBrowser] = []
        self.shutdowns = 0
        self.failures: List[Exception] = []

    @property
    def launches(self) -> int:
        return len(self.browsers)

    @property
    def browser(self) -> FakeBrowser:
        return self.browsers[-1]

    @property
    def pages(self) -> List[FakePage]:
        return [p for b in self.browsers for c in b.contexts for p in c.pages]

    async def __call__(self, settings: ScraperSettings):
        if self.failures:
            raise self.failures.pop(0)
        browser = FakeBrowser(self.site)
        self.browsers.append(browser)

        async def shutdown():
            self.shutdowns += 1

        return browser, shutdown


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def login_view() -> FakeView:
    return FakeView(
        url=LOGIN_URL,
        elements={
            "#username": FakeElement(),
            "#password": FakeElement(),
            'button[type="submit"]': FakeElement("Log in"),
        },
    )


@pytest.fixture()
def site() -> FakeSite:
    """A provider that accepts the login and serves one results page and one item page."""
    site = FakeSite()
    site.add(login_view())
    site.click_actions['button[type="submit"]'] = ("navigate", FakeView(url=HOME_URL))
    site.add(
        FakeView(
            url=SEARCH_URL,
            html=SEARCH_HTML,
            elements={".showcase__item": FakeElement()},
        )
    )
    site.add(FakeView(url=ITEM_URL, elements={".download-button": FakeElement("Download")}))
    site.click_actions[".download-button"] = (
        "reveal",
        {".download__link": FakeElement("Get file", {"href": FILE_URL})},
    )
    return site


@pytest.fixture()
def launcher(site: FakeSite) -> FakeLauncher:
    return FakeLauncher(site)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings(tmp_path) -> ScraperSettings:
    return ScraperSettings(
        request_delay_ms=0,
        login_typing_delay_ms=0,
        results_timeout_ms=50,
        download_timeout_ms=50,
        navigation_timeout_ms=100,
        capture_auth_screenshots=False,
        challenge_timeout_ms=60,
        challenge_poll_interval=0.01,
        debug_dir=tmp_path / "debug",
    )


@pytest.fixture()
def credentials() -> Credentials:
    return Credentials(identifier="bot@example.com", secret="hunter2")


@pytest.fixture()
def file_requests() -> List[httpx.Request]:
    return []


@pytest.fixture()
def transport(file_requests) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        file_requests.append(request)
        if request.url.host == UNREACHABLE_HOST:
            raise httpx.ConnectError("connection refused", request=request)
        if str(request.url) == FILE_URL:
            return httpx.Response(200, content=b"zip-bytes")
        return httpx.Response(404)

    return httpx.MockTransport(handler)


@pytest.fixture()
def make_manager(credentials, settings, launcher, clock, transport):
    def _make(credentials=credentials, settings=settings, **overrides) -> SessionManager:
        kwargs = dict(launcher=launcher, clock=clock, rng=random.Random(7), transport=transport)
        kwargs.update(overrides)
        return SessionManager(FREEPIK_PROFILE, credentials, settings, **kwargs)

    return _make
