"""Browser process lifecycle: launch, disconnect detection, lazy relaunch."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Awaitable, Callable, Optional

from camoufox.async_api import AsyncCamoufox
from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import SessionInitError
from ..models.session import ScraperSettings

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)

Shutdown = Callable[[], Awaitable[None]]
Launcher = Callable[[ScraperSettings], Awaitable[tuple[Browser, Shutdown]]]


async def launch_browser(settings: ScraperSettings) -> tuple[Browser, Shutdown]:
    """Start a browser process for the configured engine.

    Returns the browser plus a coroutine function that tears down the driver
    (Playwright server or Camoufox wrapper) once the browser is gone.
    """
    executable_path = settings.executable_path or None

    if settings.engine == "camoufox":
        logger.info(f"Launching Camoufox (headless={settings.headless})...")
        camoufox = AsyncCamoufox(
            headless=settings.headless,
            humanize=True,
            executable_path=executable_path,
            i_know_what_im_doing=True,
        )
        browser = await camoufox.__aenter__()

        async def _shutdown_camoufox():
            await camoufox.__aexit__(None, None, None)

        return browser, _shutdown_camoufox

    logger.info(
        f"Launching Chromium (headless={settings.headless}, "
        f"executable={executable_path or 'bundled'}, args={settings.launch_args})..."
    )
    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(
            headless=settings.headless,
            executable_path=executable_path,
            args=settings.launch_args,
            timeout=settings.navigation_timeout_ms,
        )
    except Exception:
        await playwright.stop()
        raise
    return browser, playwright.stop


class BrowserSession:
    """Owns one long-lived browser process and the context that carries its login cookies."""

    def __init__(
        self,
        settings: ScraperSettings,
        launcher: Launcher = launch_browser,
        on_disconnect: Optional[Callable[[], None]] = None,
    ):
        self._settings = settings
        self._launcher = launcher
        self._on_disconnect = on_disconnect
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._shutdown: Optional[Shutdown] = None
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def is_alive(self) -> bool:
        return (
            self._browser is not None
            and self._context is not None
            and self._browser.is_connected()
        )

    @property
    def generation(self) -> int:
        """Incremented on every successful launch; a relaunch invalidates prior logins."""
        return self._generation

    async def ensure_session(self) -> BrowserSession:
        """Return the live session, launching a new browser if there is none."""
        async with self._lock:
            if self.is_alive:
                return self

            # Leftovers from a disconnected browser
            await self._teardown()

            try:
                browser, shutdown = await self._launcher(self._settings)
            except Exception as e:
                logger.error(f"Failed to start browser: {e}")
                raise SessionInitError(e) from e

            try:
                context = await browser.new_context(viewport=self._settings.viewport)
                context.set_default_navigation_timeout(self._settings.navigation_timeout_ms)
            except Exception as e:
                logger.error(f"Failed to create browser context: {e}")
                self._browser, self._shutdown = browser, shutdown
                await self._teardown()
                raise SessionInitError(e) from e

            browser.on("disconnected", self._handle_disconnected)
            self._browser = browser
            self._context = context
            self._shutdown = shutdown
            self._generation += 1
            logger.info(f"Browser session ready (generation {self._generation}).")
            return self

    def _handle_disconnected(self, browser: Browser) -> None:
        if browser is not self._browser:
            return
        logger.warning("Browser disconnected; it will be relaunched on next access.")
        self._browser = None
        self._context = None
        if self._on_disconnect:
            self._on_disconnect()

    async def new_page(self, user_agent: Optional[str] = None) -> Page:
        """Open a tab in the shared context. Callers own and must close it."""
        if not self.is_alive:
            raise RuntimeError("Browser is not running.")
        page = await self._context.new_page()
        if user_agent:
            await page.set_extra_http_headers({"User-Agent": user_agent})
        return page

    async def cookies(self, url: Optional[str] = None) -> list[dict]:
        """Cookies of the authenticated context, optionally scoped to a URL."""
        if self._context is None:
            return []
        try:
            return await self._context.cookies(url) if url else await self._context.cookies()
        except Exception as e:
            logger.warning(f"Failed to read context cookies: {e}")
            return []

    async def _teardown(self):
        context, self._context = self._context, None
        browser, self._browser = self._browser, None
        shutdown, self._shutdown = self._shutdown, None

        try:
            if context:
                await context.close()
        except Exception as e:
            logger.warning(f"Error closing context: {e}")

        try:
            if browser:
                await browser.close()
        except Exception as e:
            logger.warning(f"Error closing browser: {e}")

        try:
            if shutdown:
                await shutdown()
        except Exception as e:
            logger.warning(f"Error stopping browser driver: {e}")

    async def stop(self):
        """Close the context, the browser and its driver. Never raises."""
        logger.info("Stopping browser session...")
        async with self._lock:
            await self._teardown()
        logger.info("Browser session stopped.")


async def goto(page: Page, url: str, timeout_ms: int):
    """Navigate, retrying once with a laxer wait condition if DOM content never settles."""
    logger.info(f"Navigating to {url}")
    try:
        await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
    except PlaywrightTimeoutError:
        logger.warning("domcontentloaded timed out, retrying with commit...")
        await page.goto(url, wait_until="commit", timeout=timeout_ms)
    logger.info(f"Landed on URL: {page.url}")
