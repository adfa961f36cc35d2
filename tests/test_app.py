import pytest
from fastapi.testclient import TestClient

import app as app_module
from linkedin_profile_pkg.errors import (
    AuthenticationRequired,
    BrowserContextCrash,
    LoginFailedHeadless,
    ManualLoginTimeout,
)
from linkedin_profile_pkg.models import AggregatedProfile, ProfileHeader

from conftest import FakeSession

CANONICAL = "https://www.linkedin.com/in/jane-doe"


class FakeScraper:
    def __init__(self, error=None):
        self.session = FakeSession()
        self.error = error
        self.calls = []

    async def scrape_profile(self, url, skip_cache=False, max_posts=10):
        self.calls.append(("profile", url, skip_cache, max_posts))
        if self.error is not None:
            raise self.error
        return AggregatedProfile(profile=ProfileHeader(name="Jane Doe"))

    async def scrape_posts(self, url, max_posts=20):
        self.calls.append(("posts", url, max_posts))
        return {"posts": [], "meta": {"count": 0}}

    async def scrape_images(self, url):
        self.calls.append(("images", url))
        return {"images": {"all_urls": []}, "meta": {}}


@pytest.fixture
def make_client(monkeypatch):
    monkeypatch.setattr(app_module, "limiter", app_module.RateLimiter(60000, 1000))

    def _make(scraper, raise_server_exceptions=True):
        app_module.app.dependency_overrides[app_module.get_scraper] = lambda: scraper
        return TestClient(app_module.app, raise_server_exceptions=raise_server_exceptions)

    yield _make
    app_module.app.dependency_overrides.clear()


def test_health(make_client):
    resp = make_client(FakeScraper()).get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "ok"


def test_invalid_url_is_rejected_before_scraping(make_client):
    scraper = FakeScraper()
    resp = make_client(scraper).get("/api/scrape/profile", params={"url": "https://example.com/jane"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "invalid_url"
    assert scraper.calls == []


def test_profile_route_passes_normalized_url_and_options(make_client):
    scraper = FakeScraper()
    resp = make_client(scraper).get(
        "/api/scrape/profile", params={"url": "linkedin.com/in/jane-doe/", "fresh": "true", "maxPosts": "5"}
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["profile"]["name"] == "Jane Doe"
    assert scraper.calls == [("profile", CANONICAL, True, 5)]


def test_complete_is_an_alias(make_client):
    scraper = FakeScraper()
    resp = make_client(scraper).get("/api/scrape/complete", params={"url": "jane-doe"})
    assert resp.status_code == 200
    assert scraper.calls == [("profile", CANONICAL, False, 10)]


def test_posts_and_images_routes(make_client):
    scraper = FakeScraper()
    client = make_client(scraper)
    assert client.get("/api/scrape/posts", params={"url": "jane-doe", "max": "oops"}).status_code == 200
    assert client.get("/api/scrape/images", params={"url": "jane-doe"}).status_code == 200
    assert scraper.calls == [("posts", CANONICAL, 20), ("images", CANONICAL)]


@pytest.mark.parametrize(
    "error, status, code",
    [
        (AuthenticationRequired("walled"), 401, "authentication_required"),
        (LoginFailedHeadless(), 401, "login_failed_headless"),
        (ManualLoginTimeout(), 408, "manual_login_timeout"),
        (BrowserContextCrash("Target closed"), 503, "browser_context_crash"),
    ],
)
def test_scraper_errors_map_to_status_codes(make_client, error, status, code):
    resp = make_client(FakeScraper(error=error)).get("/api/scrape/profile", params={"url": "jane-doe"})
    assert resp.status_code == status
    assert resp.json()["code"] == code


def test_unexpected_errors_are_generic(make_client):
    client = make_client(FakeScraper(error=RuntimeError("page.goto: net::ERR_ABORTED")), raise_server_exceptions=False)
    resp = client.get("/api/scrape/profile", params={"url": "jane-doe"})
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Internal server error", "code": "internal_error"}


def test_rate_limit(make_client, monkeypatch):
    client = make_client(FakeScraper())
    monkeypatch.setattr(app_module, "limiter", app_module.RateLimiter(60000, 2))
    assert client.get("/api/health").status_code == 200
    assert client.get("/api/health").status_code == 200
    resp = client.get("/api/health")
    assert resp.status_code == 429
    assert resp.json()["code"] == "rate_limited"


def test_auth_routes(make_client):
    scraper = FakeScraper()
    client = make_client(scraper)
    assert client.get("/api/auth/status").json()["data"] == {"valid": True, "state": "AUTHENTICATED"}
    assert client.post("/api/auth/login").status_code == 200
    assert scraper.session.auth_calls == 1


def test_rate_limiter_window_slides():
    now = [0.0]
    limiter = app_module.RateLimiter(1000, 1, clock=lambda: now[0])
    assert limiter.hit("a") is True
    assert limiter.hit("a") is False
    assert limiter.hit("b") is True
    now[0] = 1.0
    assert limiter.hit("a") is True


def test_negative_counts_are_clamped(make_client):
    scraper = FakeScraper()
    client = make_client(scraper)
    client.get("/api/scrape/profile", params={"url": "jane-doe", "maxPosts": "-3"})
    client.get("/api/scrape/posts", params={"url": "jane-doe", "max": "-1"})
    assert scraper.calls == [("profile", CANONICAL, False, 0), ("posts", CANONICAL, 0)]


def test_rate_limiter_forgets_idle_clients():
    now = [0.0]
    limiter = app_module.RateLimiter(1000, 5, clock=lambda: now[0])
    for client in ("10.0.0.1", "10.0.0.2", "10.0.0.3"):
        limiter.hit(client)
    assert len(limiter) == 3

    now[0] = 2.0
    assert limiter.hit("10.0.0.4") is True
    assert len(limiter) == 1
