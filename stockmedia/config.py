"""Application configuration loaded from environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_list(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# Paths
DATA_DIR = Path(os.getenv("DATA_DIR", Path(__file__).parent.parent / "data"))
DEBUG_DIR = Path(os.getenv("DEBUG_DIR", DATA_DIR / "debug"))

# Service
SERVICE_HOST = os.getenv("SERVICE_HOST", "127.0.0.1")
SERVICE_PORT = int(os.getenv("SERVICE_PORT", "5000"))
API_KEY = os.getenv("API_KEY", "")

# Provider credentials
FREEPIK_USERNAME = os.getenv("FREEPIK_USERNAME", "")
FREEPIK_PASSWORD = os.getenv("FREEPIK_PASSWORD", "")
ENVATO_PERSONAL_TOKEN = os.getenv("ENVATO_PERSONAL_TOKEN", "")
UNSPLASH_ACCESS_KEY = os.getenv("UNSPLASH_ACCESS_KEY", "")

# Browser
BROWSER_ENGINE = os.getenv("BROWSER_ENGINE", "chromium").lower()
BROWSER_HEADLESS = os.getenv("BROWSER_HEADLESS", "true").lower() == "true"
CHROME_PATH = os.getenv("CHROME_PATH", "")
BROWSER_ARGS = _env_list(
    "BROWSER_ARGS", "--no-sandbox,--disable-setuid-sandbox,--disable-dev-shm-usage"
)
BROWSER_TIMEOUT = int(os.getenv("BROWSER_TIMEOUT", "120000"))
VIEWPORT = {"width": 1920, "height": 1080}

# Session / scraping
AUTH_TIMEOUT_MS = int(os.getenv("AUTH_TIMEOUT_MS", "3600000"))  # 1 hour
REQUEST_DELAY_MS = int(os.getenv("REQUEST_DELAY_MS", "2000"))
RESULTS_TIMEOUT_MS = int(os.getenv("RESULTS_TIMEOUT_MS", "10000"))
DOWNLOAD_TIMEOUT_MS = int(os.getenv("DOWNLOAD_TIMEOUT_MS", "30000"))
DOWNLOAD_FETCH_TIMEOUT = 60.0
CHALLENGE_TIMEOUT_MS = int(os.getenv("CHALLENGE_TIMEOUT_MS", "30000"))
LOGIN_TYPING_DELAY_MS = int(os.getenv("LOGIN_TYPING_DELAY_MS", "2000"))
CAPTURE_AUTH_SCREENSHOTS = os.getenv("CAPTURE_AUTH_SCREENSHOTS", "true").lower() == "true"
ENVATO_MAX_RESULTS = 5
UNSPLASH_MAX_RESULTS = 9


def ensure_dirs():
    """Create required data directories if they don't exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    DEBUG_DIR.mkdir(parents=True, exist_ok=True)
