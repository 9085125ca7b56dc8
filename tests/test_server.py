import pytest
import pytest_asyncio
from aiohttp import test_utils

from stockmedia.errors import DownloadLinkMissing, SessionClosedError
from stockmedia.models.session import SessionState, SessionStatus
from stockmedia.resources import ResourceService
from stockmedia.server import create_app
from test_resources import StubAdapter, resource


class StatusAdapter(StubAdapter):
    def status(self):
        return SessionStatus(provider=self.name, state=SessionState.READY, is_alive=True, generation=1)


@pytest.fixture()
def freepik():
    return StatusAdapter("freepik", [resource(1)])


@pytest.fixture()
def envato():
    return StubAdapter("envato")


@pytest.fixture()
def service(freepik, envato):
    return ResourceService([freepik, envato])


@pytest_asyncio.fixture()
async def make_client(service):
    clients = []

    async def _make(api_key=""):
        client = test_utils.TestClient(test_utils.TestServer(create_app(service, api_key)))
        await client.start_server()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.close()


@pytest.mark.asyncio
async def test_search_returns_resources(make_client, freepik):
    client = await make_client()

    resp = await client.post("/search", json={"provider": "freepik", "query": "nature"})

    assert resp.status == 200
    body = await resp.json()
    assert body["type"] == "freepik"
    assert body["total"] == 1
    assert body["data"][0]["url"] == "https://www.freepik.com/item/1"
    assert freepik.calls == [("search", "nature")]


@pytest.mark.asyncio
async def test_invalid_body_is_rejected(make_client):
    client = await make_client()

    resp = await client.post("/search", json={"provider": "freepik", "query": ""})
    assert resp.status == 400
    assert "Invalid params" in (await resp.json())["error"]

    resp = await client.post("/search", json=["freepik"])
    assert resp.status == 400


@pytest.mark.asyncio
async def test_unknown_provider_is_bad_request(make_client):
    client = await make_client()

    resp = await client.post("/random", json={"provider": "pexels"})

    assert resp.status == 400
    assert (await resp.json())["error"] == "Unsupported resource type: pexels"


@pytest.mark.asyncio
async def test_api_key_is_enforced(make_client):
    client = await make_client(api_key="s3cret")

    resp = await client.get("/status")
    assert resp.status == 401
    assert await resp.json() == {"message": "Unauthorized"}

    resp = await client.get("/status", headers={"Authorization": "Bearer s3cret"})
    assert resp.status == 200
    resp = await client.get("/status", headers={"Authorization": "s3cret"})
    assert resp.status == 200


@pytest.mark.asyncio
async def test_status_lists_sessions(make_client):
    client = await make_client()

    body = await (await client.get("/status")).json()

    assert body["providers"] == ["freepik", "envato"]
    assert body["sessions"][0]["state"] == "ready"
    assert body["sessions"][0]["generation"] == 1
    assert body["sessions"][1] == {"provider": "envato"}


@pytest.mark.asyncio
async def test_download_streams_bytes(make_client):
    client = await make_client()

    resp = await client.post("/download", json={"provider": "freepik", "url": "https://x/1"})

    assert resp.status == 200
    assert resp.content_type == "application/octet-stream"
    assert await resp.read() == b"bytes:https://x/1"


@pytest.mark.asyncio
async def test_domain_errors_map_to_statuses(make_client, freepik):
    client = await make_client()

    freepik.error = DownloadLinkMissing("Download URL not found")
    resp = await client.post("/download", json={"provider": "freepik", "url": "https://x/1"})
    assert resp.status == 404
    assert (await resp.json())["error"] == "Download URL not found"

    freepik.error = SessionClosedError()
    resp = await client.post("/search", json={"provider": "freepik", "query": "nature"})
    assert resp.status == 503

    freepik.error = RuntimeError("boom")
    resp = await client.post("/search", json={"provider": "freepik", "query": "nature"})
    assert resp.status == 500


@pytest.mark.asyncio
async def test_random_soft_fails_to_empty(make_client, freepik):
    client = await make_client()
    freepik.error = RuntimeError("blocked")

    resp = await client.post("/random", json={"provider": "freepik"})

    assert resp.status == 200
    assert (await resp.json())["data"] == []


@pytest.mark.asyncio
async def test_shutdown_closes_every_adapter(make_client, freepik, envato):
    client = await make_client()

    await client.close()

    assert freepik.closed == 1
    assert envato.closed == 1
