"""Provider adapter contract and the site profile that drives scraped adapters."""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field

from ..models.resource import Resource


class SelectorStrategy(BaseModel):
    """One way to read a field from a result card.

    An empty selector targets the card element itself. A None attribute reads
    the element's text instead of an attribute.
    """

    model_config = ConfigDict(frozen=True)

    selector: str = ""
    attribute: Optional[str] = None


class SiteProfile(BaseModel):
    """Everything provider-specific a scraped adapter needs: URLs, selectors, field strategies."""

    model_config = ConfigDict(frozen=True)

    name: str
    base_url: str
    login_url: str
    search_url: str
    search_param: str = "query"
    random_query: str = "popular"

    username_selector: str
    password_selector: str
    submit_selector: str
    error_markers: list[str] = Field(default_factory=list)
    challenge_indicators: list[str] = Field(default_factory=list)

    results_selector: str
    fields: dict[str, list[SelectorStrategy]] = Field(default_factory=dict)
    default_kind: str = ""

    download_button_selector: str
    download_link_selector: str

    def build_search_url(self, query: str) -> str:
        return f"{self.search_url}?{urlencode({self.search_param: query})}"

    def is_login_url(self, url: str) -> bool:
        return url.split("?", 1)[0].rstrip("/") == self.login_url.rstrip("/")


@runtime_checkable
class ResourceAdapter(Protocol):
    """The contract bot handlers and REST controllers call."""

    name: str

    async def search(self, query: str) -> list[Resource]: ...

    async def get_random_items(self) -> list[Resource]: ...

    async def download(self, url: str) -> bytes: ...

    async def close(self) -> None: ...
