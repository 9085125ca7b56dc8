"""Token-authenticated Envato Market adapter (HTTP API, no browser)."""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

import httpx

from ..constants import ENVATO_POPULAR_URL, ENVATO_SEARCH_URL, PROVIDER_ENVATO
from ..models.resource import Author, Resource
from .http_api import HttpAPIAdapter

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def _preview_url(item: dict[str, Any]) -> str:
    previews = item.get("previews") or {}
    for key in ("landscape_preview", "icon_with_landscape_preview"):
        url = (previews.get(key) or {}).get("landscape_url")
        if url:
            return url
    return item.get("preview_url") or item.get("thumbnail") or ""


def parse_search_item(item: dict[str, Any]) -> Resource:
    category = item.get("category")
    if isinstance(category, dict):
        category = category.get("name")
    return Resource(
        id=item.get("id") or "",
        url=item.get("url") or "",
        title=item.get("name") or "",
        description=item.get("description") or "",
        preview_url=_preview_url(item),
        author=Author(username=item.get("author_username") or ""),
        provider=PROVIDER_ENVATO,
        kind="marketplace",
        price_cents=item.get("price_cents"),
        category=category or item.get("classification") or "Unknown",
    )


def parse_popular_item(item: dict[str, Any]) -> Resource:
    return Resource(
        id=item.get("id") or "",
        url=item.get("url") or "",
        title=item.get("item") or item.get("name") or "",
        preview_url=_preview_url(item),
        author=Author(username=item.get("user") or item.get("author_username") or ""),
        provider=PROVIDER_ENVATO,
        kind="marketplace",
        price_cents=item.get("price_cents") or 0,
        category=item.get("category") or "Unknown",
    )


def _popular_items(data: Any) -> list[dict]:
    if isinstance(data, list):
        return data
    popular = (data or {}).get("popular") or {}
    return popular.get("items_last_week") or popular.get("items_last_three_months") or []


class EnvatoAdapter(HttpAPIAdapter):
    """Search, random feed and download against the Envato Market API."""

    name = PROVIDER_ENVATO

    def __init__(
        self,
        token: str,
        request_delay: float = 2.0,
        max_results: int = 5,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not token:
            raise ValueError("ENVATO_PERSONAL_TOKEN not configured")
        super().__init__(
            {"Authorization": f"Bearer {token}"},
            request_delay=request_delay,
            max_results=max_results,
            timeout=timeout,
            transport=transport,
        )

    async def search(self, query: str) -> list[Resource]:
        self._check_open()
        logger.info(f"[SEARCH] Searching Envato with query: '{query}'")
        data = await self._request(ENVATO_SEARCH_URL, {"term": query})
        matches = (data or {}).get("matches") or []
        logger.info(f"[SEARCH] Envato items found: {len(matches)}")
        return self._finish([parse_search_item(m) for m in matches])

    async def get_random_items(self) -> list[Resource]:
        self._check_open()
        logger.info("Getting popular Envato items")
        items = _popular_items(await self._request(ENVATO_POPULAR_URL))
        logger.info(f"Envato popular items found: {len(items)}")
        return self._finish([parse_popular_item(i) for i in items])
