"""Best-effort debugging artifacts written on failure paths."""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Optional

from playwright.async_api import Page

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class Diagnostics:
    """Writes timestamped screenshots and markup dumps into one directory.

    Every method swallows and logs its own failures so a broken capture never
    replaces the error being diagnosed.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path_for(self, label: str, suffix: str) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory / f"{label}-{int(time.time() * 1000)}.{suffix}"

    async def screenshot(self, page: Page, label: str, full_page: bool = True) -> Optional[Path]:
        try:
            path = self._path_for(label, "png")
            await page.screenshot(path=str(path), full_page=full_page)
            logger.info(f"[DIAG] Screenshot saved to {path}")
            return path
        except Exception as e:
            logger.warning(f"[DIAG] Could not save screenshot '{label}': {e}")
            return None

    async def dump_html(self, page: Page, label: str) -> Optional[Path]:
        try:
            html = await page.content()
            path = self._path_for(label, "html")
            path.write_text(html, encoding="utf-8")
            logger.info(f"[DIAG] Page markup saved to {path}")
            return path
        except Exception as e:
            logger.warning(f"[DIAG] Could not save page markup '{label}': {e}")
            return None
