"""Provider dispatch used by bot handlers and REST controllers."""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Iterable

from .errors import UnsupportedProviderError
from .models.resource import ResourceResponse
from .providers.base import ResourceAdapter

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class ResourceService:
    """Routes calls to the adapter registered under a provider name.

    Constructed once by the entry point and passed to callers; close() shuts
    every adapter down.
    """

    def __init__(self, adapters: Iterable[ResourceAdapter]):
        self._adapters: dict[str, ResourceAdapter] = {a.name: a for a in adapters}

    @property
    def providers(self) -> list[str]:
        return list(self._adapters)

    def adapter(self, provider: str) -> ResourceAdapter:
        try:
            return self._adapters[provider]
        except KeyError:
            raise UnsupportedProviderError(provider) from None

    async def search(self, query: str, provider: str) -> ResourceResponse:
        adapter = self.adapter(provider)
        try:
            resources = await adapter.search(query)
        except Exception as e:
            logger.error(
                f"Search error ({provider}): query='{query}' error='{e}' "
                f"timestamp={datetime.now(timezone.utc).isoformat()}"
            )
            raise
        return ResourceResponse.of(provider, resources)

    async def get_random_items(self, provider: str) -> ResourceResponse:
        """Random feed for a provider. Failures degrade to an empty response."""
        adapter = self.adapter(provider)
        try:
            resources = await adapter.get_random_items()
        except Exception as e:
            logger.error(f"Random items error ({provider}): {e}")
            return ResourceResponse.of(provider, [])
        return ResourceResponse.of(provider, resources)

    async def download(self, url: str, provider: str) -> bytes:
        return await self.adapter(provider).download(url)

    async def close(self):
        results = await asyncio.gather(
            *(adapter.close() for adapter in self._adapters.values()),
            return_exceptions=True,
        )
        for name, result in zip(self._adapters, results):
            if isinstance(result, Exception):
                logger.warning(f"Error closing {name} adapter: {result}")
