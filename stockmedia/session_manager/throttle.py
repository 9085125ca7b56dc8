"""Serialized FIFO admission of page operations with a minimum spacing."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)

T = TypeVar("T")


class RequestThrottle:
    """Runs one operation at a time, in submission order.

    Each operation starts no earlier than `min_delay` seconds after the
    previous one finished, whether it succeeded or failed. asyncio.Lock hands
    the lock to waiters in arrival order, which gives the FIFO guarantee.
    """

    def __init__(self, min_delay: float):
        self._min_delay = max(0.0, min_delay)
        self._lock = asyncio.Lock()
        self._last_finished: Optional[float] = None
        self._pending = 0
        self._completed = 0

    @property
    def pending(self) -> int:
        """Operations queued or running."""
        return self._pending

    @property
    def completed(self) -> int:
        return self._completed

    async def schedule(self, operation: Callable[[], Awaitable[T]]) -> T:
        self._pending += 1
        try:
            async with self._lock:
                await self._wait_for_slot()
                try:
                    return await operation()
                finally:
                    self._last_finished = asyncio.get_running_loop().time()
                    self._completed += 1
        finally:
            self._pending -= 1

    async def _wait_for_slot(self):
        if self._last_finished is None:
            return
        remaining = self._last_finished + self._min_delay - asyncio.get_running_loop().time()
        if remaining > 0:
            logger.info(f"[THROTTLE] Waiting {remaining:.2f}s before next request")
            await asyncio.sleep(remaining)
