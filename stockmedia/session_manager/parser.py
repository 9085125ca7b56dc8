"""Parse rendered provider pages into Resource records.

Extraction strategy:
1. Select every result card with the profile's results selector
2. For each field, try its selector strategies in order (primary, then fallback)
3. A field nothing matches becomes "" instead of aborting the record
4. Drop any record without an id or a URL
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Optional, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from ..models.resource import Author, Resource
from ..providers.base import SelectorStrategy, SiteProfile

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)

URL_FIELDS = ("url", "preview_url")


# ── Utility Functions ────────────────────────────────────────────────────────


def _clean_text(text: str | None) -> str:
    """Strip whitespace and normalize text."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def _read(element: Tag, attribute: Optional[str]) -> str:
    if attribute is None:
        return _clean_text(element.get_text())
    value = element.get(attribute)
    if isinstance(value, list):
        value = " ".join(value)
    return _clean_text(value)


def extract_field(card: Tag, strategies: Sequence[SelectorStrategy]) -> str:
    """Return the first non-empty value produced by the strategies, or ""."""
    for strategy in strategies:
        element = card.select_one(strategy.selector) if strategy.selector else card
        if element is None:
            continue
        value = _read(element, strategy.attribute)
        if value:
            return value
    return ""


# ── Search Results ───────────────────────────────────────────────────────────


def parse_result_card(card: Tag, profile: SiteProfile, base_url: str = "") -> Resource:
    """Project one result card onto a Resource. Missing fields are empty strings."""
    values = {name: extract_field(card, strategies) for name, strategies in profile.fields.items()}

    for name in URL_FIELDS:
        if values.get(name):
            values[name] = urljoin(base_url or profile.base_url, values[name])

    return Resource(
        id=values.get("id", ""),
        url=values.get("url", ""),
        title=values.get("title", ""),
        description=values.get("description", ""),
        preview_url=values.get("preview_url", ""),
        author=Author(
            name=values.get("author.name", ""),
            username=values.get("author.username", ""),
        ),
        provider=profile.name,
        kind=values.get("kind") or profile.default_kind,
    )


def parse_search_results(html: str, profile: SiteProfile, base_url: str = "") -> list[Resource]:
    """Extract every identifiable result card from a rendered search page."""
    soup = BeautifulSoup(html, "html.parser")
    cards = soup.select(profile.results_selector)

    resources = []
    for card in cards:
        resource = parse_result_card(card, profile, base_url)
        if resource.has_identity:
            resources.append(resource)

    dropped = len(cards) - len(resources)
    logger.info(
        f"[PARSER] {profile.name}: {len(cards)} cards, {len(resources)} resources"
        + (f", dropped {dropped} without id/url" if dropped else "")
    )
    return resources


# ── Item Page ────────────────────────────────────────────────────────────────


def resolve_download_href(href: str | None, page_url: str) -> str:
    """Absolute download URL from a link's href, or "" when there is none."""
    href = _clean_text(href)
    if not href or href.startswith(("javascript:", "#")):
        return ""
    return urljoin(page_url, href)
