"""Pydantic models for session state and scraper settings."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    AUTHENTICATING = "authenticating"
    DEGRADED = "degraded"
    CLOSED = "closed"


class SessionStatus(BaseModel):
    """Current state of a provider session."""

    provider: str
    state: SessionState = SessionState.UNINITIALIZED
    is_alive: bool = False
    generation: int = 0
    last_authenticated_at: Optional[str] = None
    requests_completed: int = 0
    requests_pending: int = 0
    message: str = ""


class Credentials(BaseModel):
    """Login identifier/secret pair, sourced once at startup."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    secret: SecretStr

    @property
    def present(self) -> bool:
        return bool(self.identifier) and bool(self.secret.get_secret_value())


class ScraperSettings(BaseModel):
    """Timing and launch configuration handed to a session manager."""

    model_config = ConfigDict(frozen=True)

    engine: str = "chromium"  # "chromium" or "camoufox"
    headless: bool = True
    executable_path: str = ""
    launch_args: list[str] = Field(default_factory=list)
    viewport: dict[str, int] = Field(default_factory=lambda: {"width": 1920, "height": 1080})
    navigation_timeout_ms: int = 120000
    auth_timeout_ms: int = 3600000
    request_delay_ms: int = 2000
    results_timeout_ms: int = 10000
    download_timeout_ms: int = 30000
    download_fetch_timeout: float = 60.0
    challenge_timeout_ms: int = 30000
    challenge_poll_interval: float = 2.0
    login_typing_delay_ms: int = 2000
    capture_auth_screenshots: bool = True
    debug_dir: Path = Path("data/debug")

    @classmethod
    def from_env(cls) -> ScraperSettings:
        """Collect the environment-driven values from config into one immutable object."""
        from .. import config

        return cls(
            engine=config.BROWSER_ENGINE,
            headless=config.BROWSER_HEADLESS,
            executable_path=config.CHROME_PATH,
            launch_args=list(config.BROWSER_ARGS),
            viewport=dict(config.VIEWPORT),
            navigation_timeout_ms=config.BROWSER_TIMEOUT,
            auth_timeout_ms=config.AUTH_TIMEOUT_MS,
            request_delay_ms=config.REQUEST_DELAY_MS,
            results_timeout_ms=config.RESULTS_TIMEOUT_MS,
            download_timeout_ms=config.DOWNLOAD_TIMEOUT_MS,
            download_fetch_timeout=config.DOWNLOAD_FETCH_TIMEOUT,
            challenge_timeout_ms=config.CHALLENGE_TIMEOUT_MS,
            login_typing_delay_ms=config.LOGIN_TYPING_DELAY_MS,
            capture_auth_screenshots=config.CAPTURE_AUTH_SCREENSHOTS,
            debug_dir=config.DEBUG_DIR,
        )
