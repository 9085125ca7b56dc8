"""Plumbing shared by providers reached over a key-authenticated HTTP API (no browser)."""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

import httpx

from ..constants import API_USER_AGENT
from ..errors import DownloadError, ProviderAPIError, SessionClosedError
from ..models.resource import Resource
from ..session_manager.throttle import RequestThrottle

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class HttpAPIAdapter:
    """One long-lived httpx client carrying the API credentials, behind a RequestThrottle.

    Subclasses set `name` and implement search/get_random_items on top of
    `_get_json`. Downloads go through a separate client so the API
    credentials never reach third-party file hosts.
    """

    name = ""

    def __init__(
        self,
        auth_headers: dict[str, str],
        request_delay: float = 2.0,
        max_results: int = 5,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._max_results = max_results
        self._timeout = timeout
        self._transport = transport
        self._throttle = RequestThrottle(request_delay)
        self._closed = False
        self._client = httpx.AsyncClient(
            headers={**auth_headers, "User-Agent": API_USER_AGENT},
            follow_redirects=True,
            timeout=timeout,
            transport=transport,
        )

    @property
    def throttle(self) -> RequestThrottle:
        return self._throttle

    def _check_open(self):
        if self._closed:
            raise SessionClosedError(f"{self.name} adapter is closed.")

    def _finish(self, resources: list[Resource]) -> list[Resource]:
        """Drop records without id or url, then cap the list."""
        return [r for r in resources if r.has_identity][: self._max_results]

    async def _get_json(self, url: str, params: Optional[dict] = None) -> Any:
        self._check_open()
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.error(f"{self.name} API transport error: {e!r}")
            raise ProviderAPIError(0, str(e) or type(e).__name__) from e
        if not response.is_success:
            logger.error(
                f"{self.name} API Error: status={response.status_code} "
                f"reason={response.reason_phrase} details={response.text[:500]}"
            )
            raise ProviderAPIError(response.status_code, response.reason_phrase)
        return response.json()

    async def _request(self, url: str, params: Optional[dict] = None) -> Any:
        return await self._throttle.schedule(lambda: self._get_json(url, params))

    async def download(self, url: str) -> bytes:
        self._check_open()

        async def _fetch() -> bytes:
            self._check_open()
            try:
                async with httpx.AsyncClient(
                    headers={"User-Agent": API_USER_AGENT},
                    follow_redirects=True,
                    timeout=self._timeout,
                    transport=self._transport,
                ) as client:
                    response = await client.get(url)
            except httpx.HTTPError as e:
                logger.error(f"[DOWNLOAD] Transport error fetching {url}: {e!r}")
                raise DownloadError(0, url, reason=str(e) or type(e).__name__) from e
            if not response.is_success:
                raise DownloadError(response.status_code, url)
            return response.content

        logger.info(f"[DOWNLOAD] Fetching {url}")
        return await self._throttle.schedule(_fetch)

    async def close(self):
        if self._closed:
            return
        self._closed = True
        await self._client.aclose()
        logger.info(f"{self.name} adapter closed.")
