import logging
from typing import Dict, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..config import ScraperSettings
from ..models import PostEntry
from ..navigation import jitter_delay, scroll_to_bottom

logger = logging.getLogger(__name__)

POST_CONTAINERS = (
    ".feed-shared-update-v2, .occludable-update, .profile-creator-shared-feed-update__container"
)

# Raw fields for each post; classification happens in Python
_READ_POSTS = """([sel, max]) => {
    const textSelectors = [
        '.feed-shared-update-v2__description .break-words span[dir="ltr"]',
        '.feed-shared-inline-show-more-text span[dir="ltr"]',
        '.feed-shared-text span[aria-hidden="true"]',
        '.update-components-text span[dir="ltr"]',
        '.feed-shared-update-v2__description span[aria-hidden="true"]',
    ];
    const textOf = (post, s) => {
        const el = post.querySelector(s);
        return el ? el.innerText.trim() : null;
    };
    return Array.from(document.querySelectorAll(sel)).slice(0, max).map((post) => {
        let text = null;
        for (const s of textSelectors) {
            const t = textOf(post, s);
            if (t && t.length > 5) { text = t; break; }
        }
        const video = post.querySelector('video source, video');
        return {
            text,
            images: Array.from(post.querySelectorAll(
                '.feed-shared-image__container img, .update-components-image img, .feed-shared-carousel img, .ivm-image-view-model img'
            )).map((img) => img.src || img.getAttribute('data-delayed-url')).filter(Boolean),
            video: video ? (video.src || video.querySelector('source')?.src || null) : null,
            reactions: textOf(post, '.social-details-social-counts__reactions-count, button[aria-label*="reaction"] span, .social-details-social-counts__social-proof-text'),
            comments: textOf(post, 'button[aria-label*="comment"] span, .social-details-social-counts__comments'),
            reposts: textOf(post, 'button[aria-label*="repost"] span'),
            date: textOf(post, '.feed-shared-actor__sub-description span[aria-hidden="true"], time, .update-components-actor__sub-description span[aria-hidden="true"]'),
            article: !!post.querySelector('.feed-shared-article'),
            poll: !!post.querySelector('.feed-shared-poll'),
        };
    });
}"""


def activity_url(profile_url: str) -> str:
    return profile_url.rstrip("/") + "/recent-activity/all/"


def classify_post(raw: Dict) -> str:
    """Later checks override earlier ones: carousel beats video beats poll beats article."""
    kind = "post"
    if raw.get("article"):
        kind = "article"
    if raw.get("poll"):
        kind = "poll"
    if raw.get("video"):
        kind = "video"
    if len(raw.get("images") or []) > 1:
        kind = "carousel"
    return kind


def parse_posts(raw_posts: List[Dict], max_posts: int) -> List[PostEntry]:
    posts: List[PostEntry] = []
    for raw in raw_posts[:max_posts]:
        images = raw.get("images") or []
        if not (raw.get("text") or images or raw.get("video")):
            continue
        posts.append(
            PostEntry(
                text=raw.get("text"),
                images=images,
                video=raw.get("video"),
                reactions=raw.get("reactions"),
                comments=raw.get("comments"),
                reposts=raw.get("reposts"),
                date=raw.get("date"),
                type=classify_post(raw),
            )
        )
    return posts


async def extract_posts(
    page: Page,
    base_url: str,
    max_posts: int = 10,
    settings: Optional[ScraperSettings] = None,
) -> List[PostEntry]:
    logger.info("Extracting posts (max: %d)...", max_posts)
    nav_timeout = settings.nav_timeout_ms if settings else 20000
    ready_timeout = settings.detail_ready_timeout_ms if settings else 10000

    try:
        await page.goto(activity_url(base_url), wait_until="domcontentloaded", timeout=nav_timeout)
        await jitter_delay(1000, 2500)
    except PlaywrightError as e:
        logger.warning("Failed to navigate to activity page: %s", str(e)[:80])
        return []

    try:
        await page.wait_for_selector(POST_CONTAINERS, timeout=ready_timeout)
    except PlaywrightError:
        logger.info("No posts found on activity page")
        return []

    await scroll_to_bottom(page, max(1, min(max_posts // 2, 3)))
    await jitter_delay(500, 1000)

    try:
        raw_posts = await page.evaluate(_READ_POSTS, [POST_CONTAINERS, max_posts])
    except PlaywrightError as e:
        logger.warning("Failed to read posts: %s", str(e)[:80])
        return []

    posts = parse_posts(raw_posts or [], max_posts)
    logger.info("Extracted %d posts", len(posts))
    return posts
