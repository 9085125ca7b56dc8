"""REST service entry point for the stock-media bot back-end.

Endpoints:
    GET  /status      - Session state of every provider
    POST /search      - {provider, query} -> resources
    POST /random      - {provider} -> popular resources
    POST /download    - {provider, url} -> raw bytes

The service objects are built once here and handed to the application.
aiohttp turns SIGINT/SIGTERM into a graceful shutdown whose cleanup hook
closes every adapter, so no browser process outlives the server.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from aiohttp import web
from pydantic import BaseModel, Field

from .config import (
    API_KEY,
    ENVATO_MAX_RESULTS,
    ENVATO_PERSONAL_TOKEN,
    FREEPIK_PASSWORD,
    FREEPIK_USERNAME,
    SERVICE_HOST,
    SERVICE_PORT,
    UNSPLASH_ACCESS_KEY,
    UNSPLASH_MAX_RESULTS,
    ensure_dirs,
)
from .errors import (
    AuthenticationError,
    DownloadError,
    DownloadLinkMissing,
    ProviderAPIError,
    ScrapeError,
    SessionClosedError,
    SessionInitError,
    UnsupportedProviderError,
)
from .models.session import Credentials, ScraperSettings
from .providers.envato import EnvatoAdapter
from .providers.freepik import create_freepik_manager
from .providers.unsplash import UnsplashAdapter
from .resources import ResourceService

logger = logging.getLogger("stockmedia")

# Most specific first
ERROR_STATUS = [
    (UnsupportedProviderError, 400),
    (DownloadLinkMissing, 404),
    (SessionClosedError, 503),
    (SessionInitError, 503),
    (AuthenticationError, 502),
    (ScrapeError, 502),
    (DownloadError, 502),
    (ProviderAPIError, 502),
]


class SearchRequest(BaseModel):
    provider: str
    query: str = Field(min_length=1)


class RandomRequest(BaseModel):
    provider: str


class DownloadRequest(BaseModel):
    provider: str
    url: str = Field(min_length=1)


def _error_response(e: Exception) -> web.Response:
    for error_type, status in ERROR_STATUS:
        if isinstance(e, error_type):
            return web.json_response({"error": str(e)}, status=status)
    logger.error(f"Unhandled error: {e}", exc_info=True)
    return web.json_response({"error": str(e)}, status=500)


async def _parse(request: web.Request, model: type[BaseModel]):
    try:
        body = await request.json() if request.can_read_body else {}
        if not isinstance(body, dict):
            raise ValueError("request body must be a JSON object")
        return model(**body), None
    except ValueError as e:
        return None, web.json_response({"error": f"Invalid params: {e}"}, status=400)


# ── Middleware ───────────────────────────────────────────────────────────────


@web.middleware
async def api_key_middleware(request: web.Request, handler):
    api_key = request.app["api_key"]
    if api_key:
        token = request.headers.get("Authorization", "")
        if token not in (api_key, f"Bearer {api_key}"):
            return web.json_response({"message": "Unauthorized"}, status=401)
    return await handler(request)


# ── HTTP Handlers ────────────────────────────────────────────────────────────


async def handle_status(request: web.Request) -> web.Response:
    service: ResourceService = request.app["service"]
    sessions = []
    for provider in service.providers:
        adapter = service.adapter(provider)
        status = getattr(adapter, "status", None)
        sessions.append(
            status().model_dump(mode="json") if callable(status) else {"provider": provider}
        )
    return web.json_response({"providers": service.providers, "sessions": sessions})


async def handle_search(request: web.Request) -> web.Response:
    service: ResourceService = request.app["service"]
    params, error = await _parse(request, SearchRequest)
    if error:
        return error

    try:
        logger.info(f"[SEARCH] provider={params.provider} query='{params.query}'")
        response = await service.search(params.query, params.provider)
        return web.json_response(response.model_dump(mode="json"))
    except Exception as e:
        return _error_response(e)


async def handle_random(request: web.Request) -> web.Response:
    service: ResourceService = request.app["service"]
    params, error = await _parse(request, RandomRequest)
    if error:
        return error

    try:
        response = await service.get_random_items(params.provider)
        return web.json_response(response.model_dump(mode="json"))
    except Exception as e:
        return _error_response(e)


async def handle_download(request: web.Request) -> web.Response:
    service: ResourceService = request.app["service"]
    params, error = await _parse(request, DownloadRequest)
    if error:
        return error

    try:
        data = await service.download(params.url, params.provider)
        return web.Response(body=data, content_type="application/octet-stream")
    except Exception as e:
        return _error_response(e)


# ── App Factory ──────────────────────────────────────────────────────────────


async def on_cleanup(app: web.Application):
    service: ResourceService = app["service"]
    logger.info("Cleaning up...")
    await service.close()
    logger.info("All provider sessions closed.")


def create_app(service: ResourceService, api_key: str = "") -> web.Application:
    app = web.Application(middlewares=[api_key_middleware])
    app["service"] = service
    app["api_key"] = api_key
    app.on_cleanup.append(on_cleanup)

    app.router.add_get("/status", handle_status)
    app.router.add_post("/search", handle_search)
    app.router.add_post("/random", handle_random)
    app.router.add_post("/download", handle_download)

    return app


def build_service(settings: Optional[ScraperSettings] = None) -> ResourceService:
    """Construct every configured provider adapter once."""
    settings = settings or ScraperSettings.from_env()
    adapters = [
        create_freepik_manager(
            Credentials(identifier=FREEPIK_USERNAME, secret=FREEPIK_PASSWORD),
            settings,
        )
    ]
    if ENVATO_PERSONAL_TOKEN:
        adapters.append(
            EnvatoAdapter(
                ENVATO_PERSONAL_TOKEN,
                request_delay=settings.request_delay_ms / 1000,
                max_results=ENVATO_MAX_RESULTS,
            )
        )
    else:
        logger.warning("ENVATO_PERSONAL_TOKEN not configured; envato provider disabled.")
    if UNSPLASH_ACCESS_KEY:
        adapters.append(
            UnsplashAdapter(
                UNSPLASH_ACCESS_KEY,
                request_delay=settings.request_delay_ms / 1000,
                max_results=UNSPLASH_MAX_RESULTS,
            )
        )
    else:
        logger.warning("UNSPLASH_ACCESS_KEY not configured; unsplash provider disabled.")
    return ResourceService(adapters)


# ── Entry Point ──────────────────────────────────────────────────────────────


def main():
    """Run the REST service until interrupted."""
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    ensure_dirs()
    app = create_app(build_service(), API_KEY)
    logger.info(f"Starting stockmedia service on {SERVICE_HOST}:{SERVICE_PORT}")
    web.run_app(app, host=SERVICE_HOST, port=SERVICE_PORT)


if __name__ == "__main__":
    main()
