from contextlib import asynccontextmanager

import pytest

from linkedin_profile_pkg import navigation
from linkedin_profile_pkg.config import ScraperSettings


class FakeLocator:
    """Stands in for a Playwright Locator: visible or not, with fixed text."""

    def __init__(self, visible=True, text="", count=None, error=None):
        self.visible = visible
        self.text = text
        self._count = (1 if visible else 0) if count is None else count
        self.error = error
        self.waits = []

    @property
    def first(self):
        return self

    def locator(self, selector):
        return FakeLocator(visible=False)

    async def wait_for(self, state="visible", timeout=None):
        self.waits.append(timeout)
        if self.error is not None:
            raise self.error
        if not self.visible:
            from playwright.async_api import Error as PlaywrightError

            raise PlaywrightError(f"Timeout {timeout}ms exceeded.")

    async def count(self):
        return self._count

    async def is_visible(self):
        return self.visible

    async def text_content(self):
        return self.text


class FakePage:
    def __init__(self, url="about:blank", locators=None, redirect_to=None):
        self.url = url
        self.closed = False
        self.goto_calls = []
        self.locators = locators or {}
        self.redirect_to = redirect_to

    async def goto(self, url, **kwargs):
        self.goto_calls.append(url)
        self.url = self.redirect_to or url

    async def wait_for_selector(self, selector, **kwargs):
        return None

    async def evaluate(self, script, *args):
        return None

    def locator(self, selector):
        return self.locators.get(selector, FakeLocator(visible=False))

    async def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, page=None, auth_error=None):
        self.page = page or FakePage()
        self.auth_error = auth_error
        self.is_live = True
        self.auth_calls = 0
        self.opened = []
        self.closed = False
        self.state = "AUTHENTICATED"

    async def ensure_authenticated(self):
        self.auth_calls += 1
        if self.auth_error is not None:
            raise self.auth_error
        return True

    async def acquire_page(self):
        return self.page

    @asynccontextmanager
    async def ephemeral_page(self):
        page = FakePage()
        self.opened.append(page)
        try:
            yield page
        finally:
            await page.close()

    async def mark_crashed(self):
        self.is_live = False

    async def check_session(self):
        return {"valid": self.is_live, "state": self.state}

    async def close(self):
        self.closed = True


@pytest.fixture
def settings():
    return ScraperSettings(
        wave_size=3,
        task_timeout_ms=200,
        nav_timeout_ms=100,
        detail_ready_timeout_ms=100,
        header_timeout_ms=100,
        stagger_min_ms=0,
        stagger_max_ms=0,
        wave_rest_min_ms=0,
        wave_rest_max_ms=0,
        snapshot_on_empty=False,
    )


@pytest.fixture
def no_delays(monkeypatch):
    """Turn the humanized waits and scrolls into no-ops."""
    async def _noop(*args, **kwargs):
        return None

    monkeypatch.setattr(navigation, "jitter_delay", _noop)
    monkeypatch.setattr(navigation, "human_scroll", _noop)
    monkeypatch.setattr(navigation, "navigate_to_detail", _noop)


@pytest.fixture
def fake_session():
    return FakeSession(page=FakePage())
