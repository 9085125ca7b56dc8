"""Unsplash photo adapter (HTTP API with a Client-ID access key)."""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

import httpx

from ..constants import PROVIDER_UNSPLASH, UNSPLASH_RANDOM_URL, UNSPLASH_SEARCH_URL
from ..models.resource import Author, Resource
from .http_api import HttpAPIAdapter

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def parse_photo(photo: dict[str, Any]) -> Resource:
    """Map one Unsplash photo object. The item url is the photo page, else the full-size image."""
    urls = photo.get("urls") or {}
    links = photo.get("links") or {}
    user = photo.get("user") or {}
    description = photo.get("description") or ""
    return Resource(
        id=photo.get("id") or "",
        url=links.get("html") or urls.get("full") or "",
        title=description or photo.get("alt_description") or "",
        description=description,
        preview_url=urls.get("small") or urls.get("regular") or "",
        author=Author(name=user.get("name") or "", username=user.get("username") or ""),
        provider=PROVIDER_UNSPLASH,
        kind="photo",
    )


class UnsplashAdapter(HttpAPIAdapter):
    """Photo search, random photos and download against the Unsplash API."""

    name = PROVIDER_UNSPLASH

    def __init__(
        self,
        access_key: str,
        request_delay: float = 2.0,
        max_results: int = 9,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not access_key:
            raise ValueError("UNSPLASH_ACCESS_KEY not configured")
        super().__init__(
            {"Authorization": f"Client-ID {access_key}", "Accept-Version": "v1"},
            request_delay=request_delay,
            max_results=max_results,
            timeout=timeout,
            transport=transport,
        )

    async def search(self, query: str) -> list[Resource]:
        self._check_open()
        logger.info(f"[SEARCH] Searching Unsplash with query: '{query}'")
        data = await self._request(
            UNSPLASH_SEARCH_URL, {"query": query, "page": 1, "per_page": self._max_results}
        )
        photos = (data or {}).get("results") or []
        logger.info(f"[SEARCH] Unsplash photos found: {len(photos)}")
        return self._finish([parse_photo(p) for p in photos])

    async def get_random_items(self) -> list[Resource]:
        self._check_open()
        logger.info("Getting random Unsplash photos")
        data = await self._request(UNSPLASH_RANDOM_URL, {"count": self._max_results})
        # Without `count` the endpoint answers with a single photo object
        photos = data if isinstance(data, list) else [data] if data else []
        return self._finish([parse_photo(p) for p in photos])
