"""Profile scrape orchestration.

One authenticated primary tab reads the profile page itself; every
`/details/<section>/` sub-page gets its own short-lived tab. Sub-pages run
in small concurrent waves so the account never has more than a few tabs
open at once.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from . import navigation
from .browser import SessionManager, is_closed_error
from .cache import ProfileCache
from .config import ScraperSettings
from .cookies_auth import check_login_status, is_auth_wall_url
from .errors import FATAL_ERRORS, AuthenticationRequired, BrowserContextCrash
from .extractors import (
    extract_accomplishments,
    extract_certifications,
    extract_contact,
    extract_education,
    extract_experience,
    extract_images,
    extract_interests,
    extract_posts,
    extract_profile,
    extract_projects,
    extract_recommendations,
    extract_skills,
)
from .models import (
    Accomplishments,
    AggregatedProfile,
    ExtractionResult,
    ImageCollection,
    ProfileHeader,
    ProfileMeta,
    Recommendations,
)
from .scraper_logging import add_debug

logger = logging.getLogger(__name__)

Extractor = Callable[[Page, ScraperSettings], Awaitable[Any]]

HEADER_READY = "h1, [data-view-name='profile-top-card-member-photo'], main"


@dataclass(frozen=True)
class ScrapeTask:
    """One section of the aggregated document and how to fill it."""
    name: str
    extractor: Extractor
    default: Callable[[], Any] = list
    detail_path: str = ""


DETAIL_TASKS = (
    ScrapeTask("experience", extract_experience, list, "experience"),
    ScrapeTask("education", extract_education, list, "education"),
    ScrapeTask("certifications", extract_certifications, list, "certifications"),
    ScrapeTask("skills", extract_skills, list, "skills"),
    ScrapeTask("projects", extract_projects, list, "projects"),
    ScrapeTask("interests", extract_interests, list, "interests"),
)

PRIMARY_TASKS = (
    ScrapeTask("profile", extract_profile, ProfileHeader),
    ScrapeTask("contact", extract_contact, lambda: None),
    ScrapeTask("recommendations", extract_recommendations, Recommendations),
    ScrapeTask("accomplishments", extract_accomplishments, Accomplishments),
)


def chunk_waves(tasks: Sequence[ScrapeTask], size: int) -> List[List[ScrapeTask]]:
    size = max(1, size)
    return [list(tasks[i:i + size]) for i in range(0, len(tasks), size)]


async def safe_extract(
    name: str,
    fn: Callable[[], Awaitable[Any]],
    default: Callable[[], Any],
) -> ExtractionResult:
    """Run one extractor; anything short of a fatal error becomes its empty default."""
    try:
        return ExtractionResult.ok(await fn())
    except FATAL_ERRORS:
        raise
    except asyncio.TimeoutError:
        logger.warning("⏱️ %s timed out", name)
        return ExtractionResult.empty(default(), "timeout")
    except Exception as e:
        logger.warning("⚠️ %s extraction failed: %s", name, str(e)[:120])
        return ExtractionResult.empty(default(), f"{type(e).__name__}: {str(e)[:200]}")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class ProfileScraper:
    def __init__(
        self,
        session: SessionManager,
        cache: ProfileCache,
        settings: ScraperSettings,
        tasks: Sequence[ScrapeTask] = DETAIL_TASKS,
        primary: Sequence[ScrapeTask] = PRIMARY_TASKS,
    ):
        self.session = session
        self.cache = cache
        self.settings = settings
        self.tasks = tuple(tasks)
        self.primary = tuple(primary)

    async def _crash_if_closed(self, err: Any) -> None:
        if is_closed_error(err) or not self.session.is_live:
            await self.session.mark_crashed()
            raise BrowserContextCrash(f"Browser context closed: {str(err)[:200]}")

    async def _extract(self, name: str, fn, default) -> ExtractionResult:
        result = await safe_extract(name, fn, default)
        if result.degraded and not self.session.is_live:
            await self.session.mark_crashed()
            raise BrowserContextCrash(f"Browser context closed during {name}")
        return result

    async def _open_profile(self, page: Page, url: str, debug: List[str]) -> None:
        """Load the profile on the primary tab and make sure we are not walled."""
        ok, err = await navigation.goto_with_retry(page, url, timeout_ms=self.settings.nav_timeout_ms)
        if not ok:
            if err and is_closed_error(err):
                await self._crash_if_closed(err)
            add_debug(debug, f"ProfileNav:{(err or '')[:40]}")

        try:
            await page.wait_for_selector(HEADER_READY, timeout=self.settings.header_timeout_ms)
        except PlaywrightError as e:
            if is_closed_error(e):
                await self._crash_if_closed(e)
            add_debug(debug, "HeaderTimeout")

        if is_auth_wall_url(page.url):
            raise AuthenticationRequired(f"Redirected to auth wall: {page.url}")
        is_guest, login_debug = await check_login_status(page)
        for tag in login_debug:
            add_debug(debug, tag)
        if is_guest:
            raise AuthenticationRequired("Profile is behind an auth wall")

    async def _reset_scroll(self, page: Page) -> None:
        try:
            await page.evaluate("window.scrollTo(0, 0)")
        except PlaywrightError as e:
            if is_closed_error(e):
                await self._crash_if_closed(e)

    async def _run_detail_task(self, task: ScrapeTask, base_url: str) -> ExtractionResult:
        await navigation.jitter_delay(self.settings.stagger_min_ms, self.settings.stagger_max_ms)

        async def work():
            async with self.session.ephemeral_page() as page:
                await navigation.navigate_to_detail(page, base_url, task.detail_path, self.settings)
                return await task.extractor(page, self.settings)

        timeout = self.settings.task_timeout_ms / 1000.0
        return await self._extract(task.name, lambda: asyncio.wait_for(work(), timeout=timeout), task.default)

    async def _run_waves(self, base_url: str, document: AggregatedProfile, meta: ProfileMeta) -> None:
        waves = chunk_waves(self.tasks, self.settings.wave_size)
        for idx, wave in enumerate(waves, start=1):
            logger.info("🌊 Wave %d/%d: %s", idx, len(waves), ", ".join(t.name for t in wave))
            results = await asyncio.gather(
                *(self._run_detail_task(t, base_url) for t in wave), return_exceptions=True
            )
            # Let the whole wave settle before a fatal error escapes
            for result in results:
                if isinstance(result, BaseException):
                    raise result
            for task, result in zip(wave, results):
                self._apply(document, meta, task.name, result)
            if idx < len(waves):
                await navigation.human_delay(self.settings.wave_rest_min_ms, self.settings.wave_rest_max_ms)

    @staticmethod
    def _apply(document: AggregatedProfile, meta: ProfileMeta, name: str, result: ExtractionResult) -> None:
        setattr(document, name, result.value)
        if result.degraded:
            meta.degraded_sections[name] = result.cause or "unknown"
            add_debug(meta.debug, f"{name}:degraded")

    async def scrape_profile(self, url: str, skip_cache: bool = False, max_posts: int = 10) -> AggregatedProfile:
        """Scrape every section of one profile into an AggregatedProfile.

        A cache hit returns a copy flagged `from_cache`. Only session and
        auth failures escape; every section failure degrades to that
        section's empty value and is listed in `meta.degraded_sections`.
        """
        started = time.monotonic()
        base_url = url.strip().rstrip("/")

        if not skip_cache:
            cached = self.cache.get(base_url)
            if cached is not None:
                if cached.meta is not None:
                    cached.meta.from_cache = True
                return cached

        await self.session.ensure_authenticated()

        logger.info("🔍 Scraping profile: %s", base_url)
        document = AggregatedProfile()
        meta = ProfileMeta(profile_url=base_url, scraped_at=_now_iso())

        page = await self.session.acquire_page()
        await self._open_profile(page, base_url, meta.debug)
        await navigation.human_scroll(page)
        await self._reset_scroll(page)
        await navigation.jitter_delay(500, 1000)

        for task in self.primary:
            result = await self._extract(task.name, lambda t=task: t.extractor(page, self.settings), task.default)
            self._apply(document, meta, task.name, result)

        await self._run_waves(base_url, document, meta)

        result = await self._extract(
            "posts", lambda: extract_posts(page, base_url, max_posts, self.settings), list
        )
        self._apply(document, meta, "posts", result)

        # Posts left the primary tab on the activity feed
        ok, err = await navigation.goto_with_retry(page, base_url, timeout_ms=self.settings.nav_timeout_ms)
        if not ok and err and is_closed_error(err):
            await self._crash_if_closed(err)
        result = await self._extract("images", lambda: extract_images(page, document), ImageCollection)
        self._apply(document, meta, "images", result)

        meta.duration_ms = _elapsed_ms(started)
        document.meta = meta
        self.cache.set(base_url, document)
        logger.info(
            "✅ Scrape complete in %d ms (%d degraded sections)",
            meta.duration_ms,
            len(meta.degraded_sections),
        )
        return document

    async def scrape_posts(self, url: str, max_posts: int = 20) -> Dict[str, Any]:
        """Posts only; always live, never cached."""
        started = time.monotonic()
        base_url = url.strip().rstrip("/")
        await self.session.ensure_authenticated()
        page = await self.session.acquire_page()
        result = await self._extract(
            "posts", lambda: extract_posts(page, base_url, max_posts, self.settings), list
        )
        return {
            "posts": [p.model_dump() for p in result.value],
            "meta": {
                "profile_url": base_url,
                "scraped_at": _now_iso(),
                "duration_ms": _elapsed_ms(started),
                "count": len(result.value),
                "degraded": result.cause,
            },
        }

    async def scrape_images(self, url: str) -> Dict[str, Any]:
        """Images from the cached document when there is one, else a full scrape."""
        cached: Optional[AggregatedProfile] = self.cache.get(url)
        if cached is not None:
            meta = cached.meta.model_dump() if cached.meta else {}
            meta["from_cache"] = True
            return {"images": cached.images.model_dump(), "meta": meta}

        document = await self.scrape_profile(url)
        return {"images": document.images.model_dump(), "meta": document.meta.model_dump()}
