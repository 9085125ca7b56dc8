"""Exception taxonomy for the scraping session pipeline."""

from __future__ import annotations

from typing import Optional


class StockMediaError(Exception):
    """Base class for every error raised by stockmedia."""


class SessionInitError(StockMediaError):
    """The browser process failed to start. The next call retries the launch."""

    def __init__(self, cause: BaseException):
        super().__init__(f"Browser initialization failed: {cause}")
        self.cause = cause


class SessionClosedError(StockMediaError):
    """An operation was requested after close()."""

    def __init__(self, message: str = "Session manager is closed."):
        super().__init__(message)


class AuthenticationError(StockMediaError):
    """The provider rejected the credentials or flagged the account."""


class ScrapeError(StockMediaError):
    """The provider answered with an explicit error or restriction marker."""


class ExtractionTimeout(StockMediaError):
    """The results container never appeared. Resolved as an empty result."""


class DownloadLinkMissing(StockMediaError):
    """The item page never exposed a usable download link."""


class DownloadError(StockMediaError):
    """The direct fetch of a download link failed.

    `status` is the HTTP status, or 0 when no response arrived (connection
    refused, timeout); `reason` then carries the transport error.
    """

    def __init__(self, status: int, url: str = "", reason: str = ""):
        if status:
            message = f"Download failed with status: {status}"
        else:
            message = f"Download failed: {reason or 'no response'}"
        super().__init__(message)
        self.status = status
        self.url = url
        self.reason = reason


class ProviderAPIError(StockMediaError):
    """A token-authenticated provider API returned a non-success status."""

    def __init__(self, status: int, reason: Optional[str] = None):
        super().__init__(f"Provider API error: {status} {reason or ''}".rstrip())
        self.status = status
        self.reason = reason or ""


class UnsupportedProviderError(StockMediaError):
    """No adapter is registered under the requested provider name."""

    def __init__(self, provider: str):
        super().__init__(f"Unsupported resource type: {provider}")
        self.provider = provider
