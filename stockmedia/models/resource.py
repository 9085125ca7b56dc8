"""Pydantic models for extracted stock-media resources."""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field


class Author(BaseModel):
    name: str = ""
    username: str = ""


class Resource(BaseModel):
    """A normalized stock-media record extracted from one provider page or API payload."""

    # Identity
    id: Union[int, str] = Field(description="Provider-native item ID")
    url: str = Field(description="Canonical item page")

    # Display
    title: str = ""
    description: str = ""
    preview_url: str = ""
    author: Author = Field(default_factory=Author)

    # Provider-specific discriminators
    provider: str = ""
    kind: str = ""  # "vector", "photo", "psd", "marketplace"
    price_cents: Optional[int] = None
    category: str = ""

    @property
    def has_identity(self) -> bool:
        return str(self.id) != "" and self.url != ""


class ResourceResponse(BaseModel):
    """Search or random-feed response for a single provider."""

    type: str
    data: list[Resource] = Field(default_factory=list)
    total: int = 0
    page: int = 1

    @classmethod
    def of(cls, provider: str, resources: list[Resource]) -> ResourceResponse:
        return cls(type=provider, data=resources, total=len(resources), page=1)
