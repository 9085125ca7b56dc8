"""Per-operation page work: open a tab, navigate, scrape, always close the tab."""

from __future__ import annotations

import logging
import random
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Sequence

import httpx
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..constants import USER_AGENTS
from ..errors import DownloadError, DownloadLinkMissing, ExtractionTimeout, ScrapeError
from ..models.resource import Resource
from ..models.session import ScraperSettings
from ..providers.base import SiteProfile
from .blockers import find_error_marker, handle_challenge
from .browser import BrowserSession, goto
from .diagnostics import Diagnostics
from .parser import parse_search_results, resolve_download_href

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class PageExtractor:
    """Turns provider pages into Resource lists and download links into bytes."""

    def __init__(
        self,
        profile: SiteProfile,
        settings: ScraperSettings,
        diagnostics: Diagnostics,
        rng: Optional[random.Random] = None,
        user_agents: Sequence[str] = USER_AGENTS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._profile = profile
        self._settings = settings
        self._diagnostics = diagnostics
        self._rng = rng or random.Random()
        self._user_agents = list(user_agents)
        self._transport = transport

    def pick_user_agent(self) -> str:
        return self._rng.choice(self._user_agents)

    @asynccontextmanager
    async def open_tab(self, session: BrowserSession, user_agent: Optional[str] = None) -> AsyncIterator[Page]:
        page = await session.new_page(user_agent or self.pick_user_agent())
        try:
            yield page
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.warning(f"Error closing tab: {e}")

    # ── Search ──────────────────────────────────────────────────────────────

    async def search(self, session: BrowserSession, query: str) -> list[Resource]:
        """Scrape one search results page.

        A results container that never shows up yields [] (with the page
        markup saved for inspection) rather than an error.
        """
        search_url = self._profile.build_search_url(query)
        logger.info(f"[SEARCH] Searching {self._profile.name} for: '{query}'")

        async with self.open_tab(session) as page:
            try:
                return await self._scrape_results(page, search_url)
            except Exception as e:
                logger.error(f"[SEARCH] Search failed for '{query}': {e}")
                await self._diagnostics.screenshot(page, "error")
                raise

    async def _scrape_results(self, page: Page, search_url: str) -> list[Resource]:
        await goto(page, search_url, self._settings.navigation_timeout_ms)
        await self._raise_if_blocked(page)

        try:
            await self._wait_for_results(page)
        except ExtractionTimeout as e:
            logger.warning(f"[SEARCH] {e}")
            await self._diagnostics.dump_html(page, "no-results")
            return []

        html = await page.content()
        resources = parse_search_results(html, self._profile, page.url)
        logger.info(f"[SEARCH] Extracted {len(resources)} resources")
        return resources

    async def _raise_if_blocked(self, page: Page):
        cleared = await handle_challenge(
            page,
            self._profile.challenge_indicators,
            self._settings.challenge_timeout_ms,
            self._settings.challenge_poll_interval,
        )
        if not cleared:
            raise ScrapeError(
                f"Challenge page on {self._profile.name} did not clear; automated access is blocked."
            )

        marker = await find_error_marker(page, self._profile.error_markers)
        if marker is not None:
            raise ScrapeError(marker or "Search failed")

    async def _wait_for_results(self, page: Page):
        selector = self._profile.results_selector
        timeout = self._settings.results_timeout_ms
        try:
            await page.wait_for_selector(selector, state="visible", timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise ExtractionTimeout(
                f"Results container '{selector}' did not appear within {timeout} ms"
            ) from e

    # ── Download ────────────────────────────────────────────────────────────

    async def download(self, session: BrowserSession, item_url: str) -> bytes:
        """Reveal an item's download link in the browser, then fetch it directly."""
        logger.info(f"[DOWNLOAD] Resolving download link for {item_url}")
        user_agent = self.pick_user_agent()

        async with self.open_tab(session, user_agent) as page:
            try:
                link = await self._find_download_link(page, item_url)
                cookies = await session.cookies(link)
                return await self.fetch(link, cookies, user_agent)
            except Exception as e:
                logger.error(f"[DOWNLOAD] Download failed for {item_url}: {e}")
                await self._diagnostics.screenshot(page, "download-error")
                raise

    async def _find_download_link(self, page: Page, item_url: str) -> str:
        profile = self._profile
        timeout = self._settings.results_timeout_ms

        await goto(page, item_url, self._settings.download_timeout_ms)

        try:
            button = await page.wait_for_selector(
                profile.download_button_selector, state="visible", timeout=timeout
            )
        except PlaywrightTimeoutError as e:
            raise DownloadLinkMissing(f"Download button not found on {item_url}") from e
        await button.click()

        try:
            link = await page.wait_for_selector(
                profile.download_link_selector, state="visible", timeout=timeout
            )
        except PlaywrightTimeoutError as e:
            raise DownloadLinkMissing("Download URL not found") from e

        download_url = resolve_download_href(await link.get_attribute("href"), page.url)
        if not download_url:
            raise DownloadLinkMissing("Download URL not found")
        return download_url

    async def fetch(
        self, url: str, cookies: Optional[list[dict]] = None, user_agent: Optional[str] = None
    ) -> bytes:
        """Fetch raw bytes with the browser session's cookies."""
        jar = {c["name"]: c["value"] for c in cookies or [] if "name" in c and "value" in c}
        headers = {"User-Agent": user_agent or self.pick_user_agent()}

        try:
            async with httpx.AsyncClient(
                cookies=jar,
                headers=headers,
                follow_redirects=True,
                timeout=self._settings.download_fetch_timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"[DOWNLOAD] Transport error fetching {url}: {e!r}")
            raise DownloadError(0, url, reason=str(e) or type(e).__name__) from e

        if not response.is_success:
            raise DownloadError(response.status_code, url)

        logger.info(f"[DOWNLOAD] Fetched {len(response.content)} bytes from {url}")
        return response.content
