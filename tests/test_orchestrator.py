import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from linkedin_profile_pkg import orchestrator
from linkedin_profile_pkg.cache import ProfileCache
from linkedin_profile_pkg.errors import (
    AuthenticationRequired,
    BrowserContextCrash,
    LoginFailedHeadless,
    NavigationTimeout,
)
from linkedin_profile_pkg.models import (
    ExperienceEntry,
    ImageCollection,
    PostEntry,
    ProfileHeader,
    SkillEntry,
)
from linkedin_profile_pkg.orchestrator import ProfileScraper, ScrapeTask, chunk_waves, safe_extract

from conftest import FakePage, FakeSession

URL = "https://www.linkedin.com/in/janedoe"


@pytest.fixture
def stub_posts_and_images(monkeypatch):
    async def fake_posts(page, base_url, max_posts, settings):
        return [PostEntry(text="hello world", images=["https://media.licdn.com/p.jpg"])]

    async def fake_images(page, document):
        return ImageCollection(post_images=[u for p in document.posts for u in p.images])

    monkeypatch.setattr(orchestrator, "extract_posts", fake_posts)
    monkeypatch.setattr(orchestrator, "extract_images", fake_images)


async def _profile(page, settings):
    return ProfileHeader(name="Jane Doe")


def _task(name, fn):
    return ScrapeTask(name, fn, list, name)


def make_scraper(session, settings, tasks=(), primary=None, cache=None):
    if primary is None:
        primary = (ScrapeTask("profile", _profile, ProfileHeader),)
    return ProfileScraper(session, cache or ProfileCache(3600), settings, tasks=tasks, primary=primary)


def test_chunk_waves_splits_in_order():
    tasks = [_task(str(i), None) for i in range(7)]
    waves = chunk_waves(tasks, 3)
    assert [[t.name for t in w] for w in waves] == [["0", "1", "2"], ["3", "4", "5"], ["6"]]
    assert len(chunk_waves(tasks, 0)) == 7


async def test_safe_extract_turns_errors_into_empty_default():
    async def boom():
        raise ValueError("bad markup")

    result = await safe_extract("skills", boom, list)
    assert result.degraded is True
    assert result.value == []
    assert "bad markup" in result.cause


async def test_safe_extract_reraises_fatal_errors():
    async def walled():
        raise AuthenticationRequired("authwall")

    with pytest.raises(AuthenticationRequired):
        await safe_extract("profile", walled, ProfileHeader)


async def test_failed_task_does_not_affect_siblings(fake_session, settings, no_delays, stub_posts_and_images):
    async def ok_experience(page, s):
        return [ExperienceEntry(title="Engineer", company="Acme")]

    async def broken_skills(page, s):
        raise RuntimeError("selector exploded")

    async def slow_projects(page, s):
        await asyncio.sleep(5)
        return ["never"]

    tasks = (
        _task("experience", ok_experience),
        _task("skills", broken_skills),
        _task("projects", slow_projects),
    )
    scraper = make_scraper(fake_session, settings, tasks=tasks)
    doc = await scraper.scrape_profile(URL)

    assert doc.experience[0].company == "Acme"
    assert doc.skills == []
    assert doc.projects == []
    assert doc.meta.degraded_sections["projects"] == "timeout"
    assert "selector exploded" in doc.meta.degraded_sections["skills"]
    assert "experience" not in doc.meta.degraded_sections
    assert doc.profile.name == "Jane Doe"
    assert doc.posts[0].text == "hello world"
    assert doc.images.post_images == ["https://media.licdn.com/p.jpg"]
    assert all(page.closed for page in fake_session.opened)


async def test_waves_run_one_after_another(fake_session, settings, no_delays, stub_posts_and_images):
    in_flight = 0
    peak = 0
    order = []

    def tracked(name):
        async def run(page, s):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            order.append(("start", name))
            await asyncio.sleep(0.01)
            order.append(("end", name))
            in_flight -= 1
            return []
        return run

    tasks = tuple(_task(n, tracked(n)) for n in ("a", "b", "c", "d"))
    settings.wave_size = 2
    scraper = make_scraper(fake_session, settings, tasks=tasks)
    await scraper.scrape_profile(URL)

    assert peak == 2
    first_wave_done = max(order.index(("end", "a")), order.index(("end", "b")))
    second_wave_start = min(order.index(("start", "c")), order.index(("start", "d")))
    assert first_wave_done < second_wave_start
    assert len(fake_session.opened) == 4


async def test_navigation_timeout_degrades_section(fake_session, settings, monkeypatch, no_delays, stub_posts_and_images):
    async def fail_nav(page, base_url, section, s):
        raise NavigationTimeout(f"{section} detail page did not load")

    monkeypatch.setattr(orchestrator.navigation, "navigate_to_detail", fail_nav)

    async def never_called(page, s):
        raise AssertionError("extractor should not run")

    scraper = make_scraper(fake_session, settings, tasks=(_task("education", never_called),))
    doc = await scraper.scrape_profile(URL)
    assert doc.education == []
    assert "did not load" in doc.meta.degraded_sections["education"]


async def test_cache_hit_skips_browser(fake_session, settings, no_delays, stub_posts_and_images):
    async def skills(page, s):
        return [SkillEntry(name="Python")]

    scraper = make_scraper(fake_session, settings, tasks=(_task("skills", skills),))
    first = await scraper.scrape_profile(URL)
    assert first.meta.from_cache is False

    second = await scraper.scrape_profile(URL + "/")
    assert second.meta.from_cache is True
    assert second.skills[0].name == "Python"
    assert fake_session.auth_calls == 1

    second.skills.clear()
    third = await scraper.scrape_profile(URL)
    assert third.skills[0].name == "Python"

    await scraper.scrape_profile(URL, skip_cache=True)
    assert fake_session.auth_calls == 2


async def test_auth_failure_stops_before_any_task(settings, no_delays, stub_posts_and_images):
    session = FakeSession(auth_error=LoginFailedHeadless())

    async def should_not_run(page, s):
        raise AssertionError("task ran without a session")

    scraper = make_scraper(session, settings, tasks=(_task("skills", should_not_run),))
    with pytest.raises(LoginFailedHeadless):
        await scraper.scrape_profile(URL)
    assert session.opened == []
    assert len(scraper.cache) == 0


async def test_auth_wall_redirect_raises(settings, no_delays, stub_posts_and_images):
    page = FakePage(redirect_to="https://www.linkedin.com/authwall?trk=profile")
    scraper = make_scraper(FakeSession(page=page), settings)
    with pytest.raises(AuthenticationRequired):
        await scraper.scrape_profile(URL)


async def test_context_loss_during_wave_is_fatal(fake_session, settings, no_delays, stub_posts_and_images):
    async def kills_context(page, s):
        await fake_session.mark_crashed()
        raise RuntimeError("Target page, context or browser has been closed")

    scraper = make_scraper(fake_session, settings, tasks=(_task("interests", kills_context),))
    with pytest.raises(BrowserContextCrash):
        await scraper.scrape_profile(URL)


async def test_scrape_posts_is_never_cached(fake_session, settings, no_delays, stub_posts_and_images):
    scraper = make_scraper(fake_session, settings)
    data = await scraper.scrape_posts(URL, max_posts=5)
    assert data["posts"][0]["text"] == "hello world"
    assert data["meta"]["count"] == 1
    assert len(scraper.cache) == 0


async def test_scrape_images_prefers_cache(fake_session, settings, no_delays, stub_posts_and_images):
    scraper = make_scraper(fake_session, settings)
    first = await scraper.scrape_images(URL)
    assert first["images"]["post_images"] == ["https://media.licdn.com/p.jpg"]
    assert fake_session.auth_calls == 1

    second = await scraper.scrape_images(URL)
    assert second["meta"]["from_cache"] is True
    assert fake_session.auth_calls == 1


class ClosedTabPage(FakePage):
    async def goto(self, url, **kwargs):
        self.goto_calls.append(url)
        raise PlaywrightError("Target page, context or browser has been closed")


async def test_closed_primary_tab_marks_session_crashed(settings, no_delays, stub_posts_and_images):
    session = FakeSession(page=ClosedTabPage())
    scraper = make_scraper(session, settings)
    with pytest.raises(BrowserContextCrash):
        await scraper.scrape_profile(URL)
    assert session.is_live is False
    assert len(scraper.cache) == 0


async def test_fatal_error_lets_the_rest_of_the_wave_settle(fake_session, settings, no_delays, stub_posts_and_images):
    finished = []

    async def walled(page, s):
        raise AuthenticationRequired("authwall on details page")

    async def slower(page, s):
        await asyncio.sleep(0.02)
        finished.append("skills")
        return []

    scraper = make_scraper(fake_session, settings, tasks=(_task("projects", walled), _task("skills", slower)))
    with pytest.raises(AuthenticationRequired):
        await scraper.scrape_profile(URL)
    assert finished == ["skills"]
    assert all(page.closed for page in fake_session.opened)
