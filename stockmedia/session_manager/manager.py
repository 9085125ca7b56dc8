"""Session Manager: composition root for one scraped provider.

Every public operation runs the same three stages, in order:

    authenticate  ->  throttle-admit  ->  extract

and propagates the first failing stage's error unchanged. The manager owns
the browser session (and therefore every tab) and tracks an explicit state:

    uninitialized -> ready                     first successful launch
    ready -> authenticating -> ready           each login
    any -> degraded                            browser disconnected
    degraded -> ready                          relaunch on next access
    any -> closed                              close(); terminal
"""

from __future__ import annotations

import asyncio
import logging
import random
import sys
import time
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from ..errors import SessionClosedError
from ..models.resource import Resource
from ..models.session import Credentials, ScraperSettings, SessionState, SessionStatus
from ..providers.base import SiteProfile
from .auth import Authenticator
from .browser import BrowserSession, Launcher, launch_browser
from .diagnostics import Diagnostics
from .extractor import PageExtractor
from .throttle import RequestThrottle

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)

T = TypeVar("T")


class SessionManager:
    """Search, download and random-feed access to one provider through an authenticated browser."""

    def __init__(
        self,
        profile: SiteProfile,
        credentials: Credentials,
        settings: ScraperSettings,
        launcher: Launcher = launch_browser,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.name = profile.name
        self._profile = profile
        self._state = SessionState.UNINITIALIZED
        self._auth_lock = asyncio.Lock()

        diagnostics = Diagnostics(settings.debug_dir)
        self._browser = BrowserSession(settings, launcher=launcher, on_disconnect=self._handle_disconnect)
        self._authenticator = Authenticator(
            profile, credentials, settings, diagnostics, clock=clock, sleep=sleep
        )
        self._throttle = RequestThrottle(settings.request_delay_ms / 1000)
        self._extractor = PageExtractor(profile, settings, diagnostics, rng=rng, transport=transport)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def authenticator(self) -> Authenticator:
        return self._authenticator

    @property
    def throttle(self) -> RequestThrottle:
        return self._throttle

    def status(self) -> SessionStatus:
        authenticated_on = self._authenticator.authenticated_on
        return SessionStatus(
            provider=self.name,
            state=self._state,
            is_alive=self._browser.is_alive,
            generation=self._browser.generation,
            last_authenticated_at=authenticated_on.isoformat() if authenticated_on else None,
            requests_completed=self._throttle.completed,
            requests_pending=self._throttle.pending,
        )

    # ── Public operations ───────────────────────────────────────────────────

    async def search(self, query: str) -> list[Resource]:
        session = await self._ensure_ready()
        return await self._throttle.schedule(
            lambda: self._admitted(session, lambda s: self._extractor.search(s, query))
        )

    async def get_random_items(self) -> list[Resource]:
        return await self.search(self._profile.random_query)

    async def download(self, url: str) -> bytes:
        session = await self._ensure_ready()
        return await self._throttle.schedule(
            lambda: self._admitted(session, lambda s: self._extractor.download(s, url))
        )

    async def close(self):
        """Shut the browser down. Idempotent; later operations raise SessionClosedError."""
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED
        self._authenticator.invalidate()
        await self._browser.stop()
        logger.info(f"{self.name} session manager closed.")

    async def __aenter__(self) -> SessionManager:
        return self

    async def __aexit__(self, *args):
        await self.close()

    # ── Internals ───────────────────────────────────────────────────────────

    def _check_open(self):
        if self._state is SessionState.CLOSED:
            raise SessionClosedError(f"{self.name} session manager is closed.")

    def _handle_disconnect(self):
        if self._state is SessionState.CLOSED:
            return
        logger.warning(f"{self.name} browser disconnected; session degraded.")
        self._state = SessionState.DEGRADED
        self._authenticator.invalidate()

    async def _ensure_ready(self) -> BrowserSession:
        """Launch (or relaunch) the browser and log in if needed.

        The lock makes the staleness check and the login one step, so
        concurrent callers that all find the login stale trigger one login.
        """
        self._check_open()
        async with self._auth_lock:
            self._check_open()
            session = await self._browser.ensure_session()
            if self._state in (SessionState.UNINITIALIZED, SessionState.DEGRADED):
                self._state = SessionState.READY

            if self._authenticator.is_stale(session):
                self._state = SessionState.AUTHENTICATING
                try:
                    await self._authenticator.ensure_authenticated(session)
                finally:
                    if self._state is SessionState.AUTHENTICATING:
                        self._state = SessionState.READY
            return session

    async def _admitted(
        self, session: BrowserSession, operation: Callable[[BrowserSession], Awaitable[T]]
    ) -> T:
        # The queue may have held this call across a close(), a disconnect,
        # or a relaunch whose login failed
        self._check_open()
        if not session.is_alive or self._authenticator.is_stale(session):
            session = await self._ensure_ready()
        return await operation(session)
