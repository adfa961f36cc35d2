import pytest
from playwright.async_api import Error as PlaywrightError

from linkedin_profile_pkg import navigation
from linkedin_profile_pkg.navigation import goto_with_retry, human_scroll

DESTROYED = "Execution context was destroyed, most likely because of a navigation"


class Mouse:
    def __init__(self, fail_after=None):
        self.steps = []
        self.fail_after = fail_after

    async def wheel(self, dx, dy):
        if self.fail_after is not None and len(self.steps) >= self.fail_after:
            raise PlaywrightError(DESTROYED)
        self.steps.append(dy)


class ScrollPage:
    def __init__(self, heights, mouse):
        self.heights = list(heights)
        self.mouse = mouse
        self.evaluations = 0

    async def evaluate(self, script, *args):
        self.evaluations += 1
        height = self.heights.pop(0)
        if isinstance(height, Exception):
            raise height
        return height


@pytest.fixture(autouse=True)
def instant_delays(monkeypatch):
    async def _noop(*args, **kwargs):
        return None

    monkeypatch.setattr(navigation, "jitter_delay", _noop)


async def test_human_scroll_stops_quietly_when_wheel_hits_a_dead_document():
    mouse = Mouse(fail_after=3)
    page = ScrollPage([1_000_000], mouse)
    await human_scroll(page)
    assert len(mouse.steps) == 3


async def test_human_scroll_stops_quietly_when_height_check_fails():
    mouse = Mouse()
    page = ScrollPage([500, PlaywrightError(DESTROYED)], mouse)
    await human_scroll(page)
    assert page.evaluations == 2
    assert mouse.steps


async def test_human_scroll_ends_when_page_stops_growing():
    mouse = Mouse()
    page = ScrollPage([300, 300], mouse)
    await human_scroll(page, max_steps=40)
    assert page.evaluations == 2
    assert len([s for s in mouse.steps if s > 0]) == 1


class FlakyPage:
    def __init__(self, failures):
        self.failures = failures
        self.calls = []

    async def goto(self, url, **kwargs):
        self.calls.append(url)
        if len(self.calls) <= self.failures:
            raise PlaywrightError("net::ERR_TIMED_OUT")


async def test_goto_with_retry_recovers_on_second_try():
    page = FlakyPage(failures=1)
    assert await goto_with_retry(page, "https://www.linkedin.com/in/jane", timeout_ms=100) == (True, "")
    assert len(page.calls) == 2


async def test_goto_with_retry_reports_last_error():
    page = FlakyPage(failures=5)
    ok, err = await goto_with_retry(page, "https://www.linkedin.com/in/jane", timeout_ms=100, tries=2)
    assert ok is False
    assert "ERR_TIMED_OUT" in err
    assert len(page.calls) == 2
