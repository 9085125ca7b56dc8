"""Provider URLs, CSS selectors, selector fallback chains, and user-agent pool."""

# ── Freepik URLs ─────────────────────────────────────────────────────────────

FREEPIK_BASE = "https://www.freepik.com"
FREEPIK_LOGIN_URL = f"{FREEPIK_BASE}/login"
FREEPIK_SEARCH_URL = f"{FREEPIK_BASE}/search"  # ?query=
FREEPIK_RANDOM_QUERY = "popular"

# ── Freepik Selectors ────────────────────────────────────────────────────────

FREEPIK_SELECTORS = {
    # Login page
    "login_username": "#username",
    "login_password": "#password",
    "login_submit": 'button[type="submit"]',

    # Search results page
    "results_item": ".showcase__item",

    # Item page
    "download_button": ".download-button, .download__button",
    "download_link": ".download-link, .download__link",
}

# Each field maps to an ordered list of (css selector, attribute) strategies.
# An empty selector means the result card itself; a None attribute means text.
FREEPIK_FIELDS = {
    "id": [("", "data-id")],
    "title": [(".title", None), (".showcase__title", None)],
    "description": [(".description", None), (".showcase__description", None)],
    "url": [("a[data-type]", "href"), ("a.showcase__link", "href")],
    "preview_url": [("img.showcase__image", "src"), ("img.showcase__image", "data-src")],
    "author.name": [(".author", None), (".showcase__author", None)],
    "author.username": [(".username", None), (".showcase__username", None)],
    "kind": [("a[data-type]", "data-type")],
}

FREEPIK_DEFAULT_KIND = "vector"

# ── Error / Restriction Markers ──────────────────────────────────────────────

ERROR_MARKER_SELECTORS = [".error-message", ".restriction-message"]

# ── Challenge Interstitials ─────────────────────────────────────────────────

CHALLENGE_INDICATORS = [
    "Just a moment...",
    "Checking your browser",
    "cf-challenge",
    "challenge-platform",
]

# ── User Agents ──────────────────────────────────────────────────────────────

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Edge/120.0.0.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:120.0) Gecko/20100101 Firefox/120.0",
]

# ── Envato Market API ────────────────────────────────────────────────────────

ENVATO_API_URL = "https://api.envato.com/v1/market"
ENVATO_SEARCH_URL = f"{ENVATO_API_URL}/search/item"  # ?term=
ENVATO_POPULAR_URL = f"{ENVATO_API_URL}/popular:themeforest.json"

# ── Unsplash API ─────────────────────────────────────────────────────────────

UNSPLASH_API_URL = "https://api.unsplash.com"
UNSPLASH_SEARCH_URL = f"{UNSPLASH_API_URL}/search/photos"  # ?query=&per_page=
UNSPLASH_RANDOM_URL = f"{UNSPLASH_API_URL}/photos/random"  # ?count=

API_USER_AGENT = "stockmedia-bot/1.0"

# ── Providers ────────────────────────────────────────────────────────────────

PROVIDER_FREEPIK = "freepik"
PROVIDER_ENVATO = "envato"
PROVIDER_UNSPLASH = "unsplash"
