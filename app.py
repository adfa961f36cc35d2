import logging
import time
from collections import deque
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from linkedin_profile_pkg.browser import SessionManager
from linkedin_profile_pkg.cache import ProfileCache
from linkedin_profile_pkg.config import CACHE_TTL, PORT, RATE_LIMIT_MAX, RATE_LIMIT_WINDOW_MS, ScraperSettings
from linkedin_profile_pkg.errors import InvalidProfileUrl, RateLimited, ScraperError
from linkedin_profile_pkg.orchestrator import ProfileScraper
from linkedin_profile_pkg.scraper_logging import setup_logging
from response import INVALID_URL_MESSAGE, build_error, build_response, validate_linkedin_url

setup_logging()
logger = logging.getLogger("linkedin_profile_pkg.app")


class RateLimiter:
    """Sliding-window request counter per client address.

    Clients with no hits left inside the window are dropped on the next
    sweep, at most once per window.
    """

    def __init__(self, window_ms: int, max_requests: int, clock: Callable[[], float] = time.monotonic):
        self.window = window_ms / 1000.0
        self.max_requests = max_requests
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def _prune(self, hits: Deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        for key in list(self._hits):
            self._prune(self._hits[key], now)
            if not self._hits[key]:
                del self._hits[key]
        self._last_sweep = now

    def hit(self, key: str) -> bool:
        now = self._clock()
        if now - self._last_sweep >= self.window:
            self._sweep(now)
        hits = self._hits.setdefault(key, deque())
        self._prune(hits, now)
        if len(hits) >= self.max_requests:
            return False
        hits.append(now)
        return True

    def __len__(self) -> int:
        return len(self._hits)


limiter = RateLimiter(RATE_LIMIT_WINDOW_MS, RATE_LIMIT_MAX)

_scraper: Optional[ProfileScraper] = None


def get_scraper() -> ProfileScraper:
    """Build the process-wide scraper on first use; the browser itself launches lazily."""
    global _scraper
    if _scraper is None:
        settings = ScraperSettings.from_env()
        _scraper = ProfileScraper(SessionManager(settings), ProfileCache(CACHE_TTL), settings)
    return _scraper


async def rate_limit(request: Request) -> None:
    client = request.client.host if request.client else "unknown"
    if not limiter.hit(client):
        raise RateLimited()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _scraper is not None:
        logger.info("Shutting down, closing browser session...")
        await _scraper.session.close()


app = FastAPI(title="LinkedIn Profile Scraper", lifespan=lifespan, dependencies=[Depends(rate_limit)])
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


@app.exception_handler(ScraperError)
async def scraper_error_handler(request: Request, exc: ScraperError):
    if exc.status_code >= 500:
        logger.error("❌ %s: %s", exc.code, exc.message)
    else:
        logger.warning("%s: %s", exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=build_error(exc.message, exc.code))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("❌ Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content=build_error("Internal server error"))


def _profile_url(url: Optional[str]) -> str:
    profile_url = validate_linkedin_url(url)
    if not profile_url:
        raise InvalidProfileUrl(INVALID_URL_MESSAGE)
    return profile_url


def _int_or(value: Optional[str], default: int) -> int:
    """Parse a non-negative count from a query string, else the default."""
    try:
        return max(0, int(value)) if value else default
    except ValueError:
        return default


@app.get("/api/health")
async def health():
    return build_response({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})


@app.get("/api/scrape/profile")
async def scrape_profile(
    url: Optional[str] = None,
    fresh: Optional[str] = None,
    maxPosts: Optional[str] = None,
    scraper: ProfileScraper = Depends(get_scraper),
):
    profile_url = _profile_url(url)
    logger.info("Scrape request for: %s", profile_url)
    document = await scraper.scrape_profile(
        profile_url,
        skip_cache=fresh == "true",
        max_posts=_int_or(maxPosts, 10),
    )
    return build_response(document)


@app.get("/api/scrape/complete")
async def scrape_complete(
    url: Optional[str] = None,
    fresh: Optional[str] = None,
    maxPosts: Optional[str] = None,
    scraper: ProfileScraper = Depends(get_scraper),
):
    return await scrape_profile(url=url, fresh=fresh, maxPosts=maxPosts, scraper=scraper)


@app.get("/api/scrape/posts")
async def scrape_posts(
    url: Optional[str] = None,
    max: Optional[str] = None,
    scraper: ProfileScraper = Depends(get_scraper),
):
    profile_url = _profile_url(url)
    logger.info("Posts scrape request for: %s", profile_url)
    return build_response(await scraper.scrape_posts(profile_url, _int_or(max, 20)))


@app.get("/api/scrape/images")
async def scrape_images(url: Optional[str] = None, scraper: ProfileScraper = Depends(get_scraper)):
    profile_url = _profile_url(url)
    logger.info("Images scrape request for: %s", profile_url)
    return build_response(await scraper.scrape_images(profile_url))


@app.post("/api/auth/login")
async def login(scraper: ProfileScraper = Depends(get_scraper)):
    logger.info("Login request received")
    await scraper.session.ensure_authenticated()
    return build_response(await scraper.session.check_session())


@app.get("/api/auth/status")
async def auth_status(scraper: ProfileScraper = Depends(get_scraper)):
    return build_response(await scraper.session.check_session())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host="0.0.0.0", port=PORT)
