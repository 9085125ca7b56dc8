"""Login flow for a scraped provider and the staleness rule that decides when to run it."""

from __future__ import annotations

import asyncio
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import AuthenticationError
from ..models.session import Credentials, ScraperSettings
from ..providers.base import SiteProfile
from .blockers import find_error_marker
from .browser import BrowserSession, goto
from .diagnostics import Diagnostics

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class Authenticator:
    """Logs a browser session into the provider and remembers when it did.

    Authentication is stale when the session is gone, when the browser was
    relaunched since the last login, or when the last login is older than the
    configured window.
    """

    def __init__(
        self,
        profile: SiteProfile,
        credentials: Credentials,
        settings: ScraperSettings,
        diagnostics: Diagnostics,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._profile = profile
        self._credentials = credentials
        self._settings = settings
        self._diagnostics = diagnostics
        self._clock = clock
        self._sleep = sleep
        self._last_authenticated_at: Optional[float] = None
        self._authenticated_generation: Optional[int] = None
        self._authenticated_on: Optional[datetime] = None
        self.attempts = 0

    @property
    def last_authenticated_at(self) -> Optional[float]:
        return self._last_authenticated_at

    @property
    def authenticated_on(self) -> Optional[datetime]:
        """Wall-clock time of the last successful login, for status reporting."""
        return self._authenticated_on

    def is_stale(self, session: Optional[BrowserSession]) -> bool:
        if session is None or not session.is_alive:
            return True
        if self._last_authenticated_at is None:
            return True
        if self._authenticated_generation != session.generation:
            return True
        age_ms = (self._clock() - self._last_authenticated_at) * 1000
        return age_ms > self._settings.auth_timeout_ms

    def invalidate(self):
        self._last_authenticated_at = None
        self._authenticated_generation = None

    async def ensure_authenticated(self, session: BrowserSession):
        """Log in if the current authentication is stale. Raises AuthenticationError on rejection."""
        if not self.is_stale(session):
            return
        await self._login(session)

    async def _login(self, session: BrowserSession):
        self.attempts += 1
        profile = self._profile
        timeout = self._settings.navigation_timeout_ms

        logger.info(f"[AUTH] Attempting authentication with {profile.name}...")
        logger.info(f"[AUTH] Username: {'Present' if self._credentials.identifier else 'Missing'}")
        if not self._credentials.present:
            raise AuthenticationError(f"Credentials for {profile.name} are not configured.")

        page = await session.new_page()
        try:
            await goto(page, profile.login_url, timeout)
            await page.wait_for_selector(profile.username_selector, state="visible", timeout=timeout)

            # Some login forms reject input typed the instant they render
            await self._sleep(self._settings.login_typing_delay_ms / 1000)

            await page.fill(profile.username_selector, self._credentials.identifier)
            await page.fill(profile.password_selector, self._credentials.secret.get_secret_value())
            if self._settings.capture_auth_screenshots:
                await self._diagnostics.screenshot(page, "filled-form", full_page=False)

            try:
                async with page.expect_navigation(wait_until="domcontentloaded", timeout=timeout):
                    await page.click(profile.submit_selector)
                logger.info("[AUTH] Submitted login form")
            except PlaywrightTimeoutError:
                marker = await find_error_marker(page, profile.error_markers)
                if marker is not None:
                    raise AuthenticationError(marker or "Login failed")
                raise AuthenticationError("Login did not complete: no navigation after submit.")

            marker = await find_error_marker(page, profile.error_markers)
            if marker is not None:
                logger.error(f"[AUTH] Login failed: {marker}")
                raise AuthenticationError(marker or "Login failed")

            if profile.is_login_url(page.url):
                raise AuthenticationError("Login was not accepted; still on the login page.")

            self._last_authenticated_at = self._clock()
            self._authenticated_generation = session.generation
            self._authenticated_on = datetime.now(timezone.utc)
            logger.info("[AUTH] Authentication successful")

        except Exception as e:
            logger.error(f"[AUTH] Authentication error: {e}")
            if self._settings.capture_auth_screenshots:
                await self._diagnostics.screenshot(page, "login-failed")
            raise

        finally:
            try:
                await page.close()
            except Exception as e:
                logger.warning(f"[AUTH] Error closing login tab: {e}")
