import pytest

from stockmedia.errors import ScrapeError, UnsupportedProviderError
from stockmedia.models.resource import Resource
from stockmedia.resources import ResourceService


class StubAdapter:
    def __init__(self, name, resources=(), error=None, close_error=None):
        self.name = name
        self.resources = list(resources)
        self.error = error
        self.close_error = close_error
        self.calls = []
        self.closed = 0

    async def search(self, query):
        self.calls.append(("search", query))
        if self.error:
            raise self.error
        return self.resources

    async def get_random_items(self):
        self.calls.append(("random", None))
        if self.error:
            raise self.error
        return self.resources

    async def download(self, url):
        self.calls.append(("download", url))
        if self.error:
            raise self.error
        return b"bytes:" + url.encode()

    async def close(self):
        self.closed += 1
        if self.close_error:
            raise self.close_error


def resource(i):
    return Resource(id=str(i), url=f"https://www.freepik.com/item/{i}", provider="freepik")


@pytest.mark.asyncio
async def test_search_dispatches_to_named_provider():
    freepik = StubAdapter("freepik", [resource(1), resource(2)])
    envato = StubAdapter("envato")
    service = ResourceService([freepik, envato])

    response = await service.search("nature", "freepik")

    assert response.type == "freepik"
    assert response.total == 2
    assert response.page == 1
    assert freepik.calls == [("search", "nature")]
    assert envato.calls == []
    assert service.providers == ["freepik", "envato"]


@pytest.mark.asyncio
async def test_unknown_provider_is_rejected():
    service = ResourceService([StubAdapter("freepik")])

    with pytest.raises(UnsupportedProviderError, match="Unsupported resource type: pexels"):
        await service.search("nature", "pexels")
    with pytest.raises(UnsupportedProviderError):
        await service.download("https://example.com/a", "pexels")


@pytest.mark.asyncio
async def test_search_errors_propagate():
    service = ResourceService([StubAdapter("freepik", error=ScrapeError("Access restricted"))])

    with pytest.raises(ScrapeError, match="Access restricted"):
        await service.search("nature", "freepik")


@pytest.mark.asyncio
async def test_random_items_degrade_to_empty():
    service = ResourceService([StubAdapter("freepik", error=ScrapeError("blocked"))])

    response = await service.get_random_items("freepik")

    assert response.type == "freepik"
    assert response.data == []
    assert response.total == 0


@pytest.mark.asyncio
async def test_download_returns_bytes():
    service = ResourceService([StubAdapter("freepik")])

    assert await service.download("https://x/1", "freepik") == b"bytes:https://x/1"


@pytest.mark.asyncio
async def test_close_reaches_every_adapter_despite_failures():
    broken = StubAdapter("freepik", close_error=RuntimeError("browser already gone"))
    healthy = StubAdapter("envato")
    service = ResourceService([broken, healthy])

    await service.close()

    assert broken.closed == 1
    assert healthy.closed == 1
