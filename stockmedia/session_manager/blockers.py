"""Detection of pages that block scraping: error/restriction markers and challenge interstitials."""

from __future__ import annotations

import asyncio
import logging
import re
import sys
from typing import Optional, Sequence

from playwright.async_api import Page

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


async def find_error_marker(page: Page, selectors: Sequence[str]) -> Optional[str]:
    """Return the text of the first error/restriction marker on the page.

    None means no marker is present; an empty string means a marker without text.
    """
    if not selectors:
        return None
    element = await page.query_selector(", ".join(selectors))
    if element is None:
        return None
    text = await element.text_content()
    return re.sub(r"\s+", " ", text or "").strip()


async def handle_challenge(
    page: Page,
    indicators: Sequence[str],
    timeout_ms: int,
    poll_interval: float = 2.0,
) -> bool:
    """Give an interstitial challenge page time to clear on its own.

    The page counts as challenged while its markup contains any of the
    profile's indicator strings. Returns True once the page is clear (at
    once if it never was), False when the deadline passes first.
    """
    if not indicators:
        return True

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_ms / 1000
    waiting = False

    while True:
        try:
            markup = await page.content()
        except Exception as e:
            logger.warning(f"[CHALLENGE] Could not read page markup: {e}")
            markup = ""

        if not any(indicator in markup for indicator in indicators):
            if waiting:
                logger.info(f"[CHALLENGE] Challenge cleared on {page.url}")
            return True

        if not waiting:
            logger.info(f"[CHALLENGE] Challenge page on {page.url}; waiting up to {timeout_ms} ms")
            waiting = True

        remaining = deadline - loop.time()
        if remaining <= 0:
            logger.warning(f"[CHALLENGE] Challenge still present after {timeout_ms} ms")
            return False
        await asyncio.sleep(min(poll_interval, remaining))
