import os
import random
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ["1", "true", "yes"]


PORT = int(os.environ.get("PORT", "5000"))

LINKEDIN_EMAIL = os.environ.get("LINKEDIN_EMAIL") or None
LINKEDIN_PASSWORD = os.environ.get("LINKEDIN_PASSWORD") or None

# Anything but an explicit "false" keeps the browser headless
HEADLESS = os.environ.get("HEADLESS", "").strip().lower() != "false"
USER_DATA_DIR = os.environ.get("USER_DATA_DIR", "./user_data")
COOKIES_FILE = os.environ.get("COOKIES_PATH", "./cookies/linkedin.json")
SLOW_MO_MS = int(os.environ.get("SCRAPER_SLOW_MO_MS", "0"))

CACHE_TTL = int(os.environ.get("CACHE_TTL", "3600"))

RATE_LIMIT_WINDOW_MS = int(os.environ.get("RATE_LIMIT_WINDOW_MS", "900000"))
RATE_LIMIT_MAX = int(os.environ.get("RATE_LIMIT_MAX", "30"))

WAVE_SIZE = int(os.environ.get("SCRAPER_WAVE_SIZE", "3"))
TASK_TIMEOUT_MS = int(os.environ.get("SCRAPER_TASK_TIMEOUT_MS", "90000"))
NAV_TIMEOUT_MS = int(os.environ.get("SCRAPER_NAV_TIMEOUT_MS", "30000"))
MANUAL_LOGIN_TIMEOUT_MS = int(os.environ.get("SCRAPER_MANUAL_LOGIN_TIMEOUT_MS", "300000"))
SNAPSHOT_ON_EMPTY = _env_bool("SCRAPER_SNAPSHOT_ON_EMPTY", True)

DEBUG_DIR = os.environ.get("DEBUG_DIR", "./debug")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.environ.get("LOG_FILE") or None

FEED_URL = "https://www.linkedin.com/feed/"
LOGIN_URL = "https://www.linkedin.com/login"


class ScraperSettings(BaseModel):
    """Tunable values consumed by the session manager and the orchestrator.

    Defaults come from the environment; tests build instances directly with
    zero delays and short timeouts.
    """
    headless: bool = True
    email: Optional[str] = None
    password: Optional[str] = None
    user_data_dir: str = "./user_data"
    cookies_path: Optional[str] = None
    slow_mo_ms: int = 0

    wave_size: int = 3
    task_timeout_ms: int = 90000
    nav_timeout_ms: int = 30000
    detail_ready_timeout_ms: int = 10000
    header_timeout_ms: int = 20000
    login_redirect_timeout_ms: int = 15000
    manual_login_timeout_ms: int = 300000

    stagger_min_ms: int = 100
    stagger_max_ms: int = 1500
    wave_rest_min_ms: int = 1000
    wave_rest_max_ms: int = 4000

    snapshot_on_empty: bool = True
    debug_dir: str = "./debug"

    @property
    def has_credentials(self) -> bool:
        return bool(self.email and self.password)

    @classmethod
    def from_env(cls) -> "ScraperSettings":
        return cls(
            headless=HEADLESS,
            email=LINKEDIN_EMAIL,
            password=LINKEDIN_PASSWORD,
            user_data_dir=USER_DATA_DIR,
            cookies_path=COOKIES_FILE,
            slow_mo_ms=SLOW_MO_MS,
            wave_size=max(1, WAVE_SIZE),
            task_timeout_ms=TASK_TIMEOUT_MS,
            nav_timeout_ms=NAV_TIMEOUT_MS,
            manual_login_timeout_ms=MANUAL_LOGIN_TIMEOUT_MS,
            snapshot_on_empty=SNAPSHOT_ON_EMPTY,
            debug_dir=DEBUG_DIR,
        )


def user_agents():
    """Return a curated pool of desktop Chrome user agents.

    Rotating across a small, realistic set of user agents reduces the chance
    of fingerprinting correlating all sessions to a single static UA.
    """
    return [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    ]


def random_user_agent():
    """Pick a random user agent from the pool."""
    return random.choice(user_agents())


def timezones():
    return [
        "America/New_York",
        "America/Chicago",
        "America/Los_Angeles",
        "Europe/London",
    ]


def random_timezone():
    return random.choice(timezones())


def random_viewport() -> dict:
    """A desktop viewport with a little noise so sessions do not share one size."""
    return {
        "width": 1280 + random.randint(0, 100),
        "height": 720 + random.randint(0, 100),
    }
