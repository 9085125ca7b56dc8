"""Freepik site profile and session-manager factory."""

from __future__ import annotations

from typing import Optional

from ..constants import (
    CHALLENGE_INDICATORS,
    ERROR_MARKER_SELECTORS,
    FREEPIK_BASE,
    FREEPIK_DEFAULT_KIND,
    FREEPIK_FIELDS,
    FREEPIK_LOGIN_URL,
    FREEPIK_RANDOM_QUERY,
    FREEPIK_SEARCH_URL,
    FREEPIK_SELECTORS,
    PROVIDER_FREEPIK,
)
from ..models.session import Credentials, ScraperSettings
from ..session_manager.manager import SessionManager
from .base import SelectorStrategy, SiteProfile

FREEPIK_PROFILE = SiteProfile(
    name=PROVIDER_FREEPIK,
    base_url=FREEPIK_BASE,
    login_url=FREEPIK_LOGIN_URL,
    search_url=FREEPIK_SEARCH_URL,
    search_param="query",
    random_query=FREEPIK_RANDOM_QUERY,
    username_selector=FREEPIK_SELECTORS["login_username"],
    password_selector=FREEPIK_SELECTORS["login_password"],
    submit_selector=FREEPIK_SELECTORS["login_submit"],
    error_markers=list(ERROR_MARKER_SELECTORS),
    challenge_indicators=list(CHALLENGE_INDICATORS),
    results_selector=FREEPIK_SELECTORS["results_item"],
    fields={
        field: [SelectorStrategy(selector=sel, attribute=attr) for sel, attr in strategies]
        for field, strategies in FREEPIK_FIELDS.items()
    },
    default_kind=FREEPIK_DEFAULT_KIND,
    download_button_selector=FREEPIK_SELECTORS["download_button"],
    download_link_selector=FREEPIK_SELECTORS["download_link"],
)


def create_freepik_manager(
    credentials: Credentials,
    settings: Optional[ScraperSettings] = None,
    **kwargs,
) -> SessionManager:
    """Build the Freepik session manager. Extra kwargs reach SessionManager (test seams)."""
    return SessionManager(
        FREEPIK_PROFILE,
        credentials,
        settings or ScraperSettings.from_env(),
        **kwargs,
    )
