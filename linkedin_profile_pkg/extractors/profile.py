"""Profile header and About extractor.

JSON-LD structured data is read first, then the rendered top card. DOM values
win and JSON-LD fills the gaps.
"""
import logging
import re
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..config import ScraperSettings
from ..errors import SelectorNotFound
from ..models import ProfileHeader
from ..navigation import jitter_delay
from ..selectors import LocatorStrategy, SectionSelectors, first_visible_text, locate_section, probe_first

logger = logging.getLogger(__name__)

ABOUT = SectionSelectors(
    title="About",
    sdui="[data-view-name='profile-card-about']",
    legacy="#about",
)

NAME_SELECTORS = [
    "[data-view-name='profile-top-card-verified-badge'] h2",
    "h1",
    ".text-heading-xlarge",
    "[data-view-name='profile-top-card-member-photo'] ~ div h2",
]

HEADLINE_SELECTORS = [
    "[data-view-name='profile-top-card-verified-badge'] ~ p",
    "[data-view-name='profile-top-card-verified-badge'] + div + p",
    ".text-body-medium.break-words",
]

LOCATION_PATTERN = re.compile(r"[A-Za-z]+, [A-Za-z]+")

_READ_JSON_LD = """() => {
    for (const script of document.querySelectorAll('script[type="application/ld+json"]')) {
        try {
            const json = JSON.parse(script.textContent);
            if (json['@type'] === 'Person' || json['@type'] === 'ProfilePage') return json;
            if (json['@graph']) {
                const person = json['@graph'].find(
                    (item) => item['@type'] === 'Person' || item['@type'] === 'ProfilePage'
                );
                if (person) return person;
            }
        } catch (e) {}
    }
    return null;
}"""

_TOP_CARD_TEXTS = """() => Array.from(
    document.querySelectorAll('[componentkey*="Topcard"] p, .pv-text-details__left-panel span, main section:first-of-type span')
).map((el) => (el.textContent || '').trim()).filter(Boolean).slice(0, 40)"""


def parse_json_ld(data: Optional[dict]) -> ProfileHeader:
    if not data:
        return ProfileHeader()
    address = data.get("address") if isinstance(data.get("address"), dict) else {}
    image = data.get("image")
    if isinstance(image, dict):
        image = image.get("contentUrl")
    return ProfileHeader(
        name=data.get("name"),
        headline=data.get("jobTitle") if isinstance(data.get("jobTitle"), str) else data.get("headline"),
        location=data.get("addressLocality") or address.get("addressLocality"),
        profile_image=image if isinstance(image, str) else None,
        about=data.get("description"),
    )


def merge_headers(dom: ProfileHeader, json_ld: ProfileHeader) -> ProfileHeader:
    """DOM first, JSON-LD for whatever the DOM left empty."""
    merged = dom.model_copy()
    for field in ("name", "headline", "location", "profile_image", "about"):
        if not getattr(merged, field):
            setattr(merged, field, getattr(json_ld, field))
    return merged


def pick_top_card_fields(texts: list, header: ProfileHeader) -> None:
    """Fill headline, location, connections and followers from top-card text."""
    for text in texts:
        if not header.headline and len(text) > 5 and text != header.name:
            header.headline = text
            continue
        if not header.location and LOCATION_PATTERN.search(text) and len(text) < 50 and text != header.headline:
            header.location = text
            continue
        lowered = text.lower()
        if not header.connections and "connection" in lowered:
            header.connections = text
        elif not header.followers and "follower" in lowered:
            header.followers = text
        elif "open to work" in lowered:
            header.open_to_work = True


async def _attribute(page: Page, selector: str, name: str) -> Optional[str]:
    try:
        el = page.locator(selector).first
        if await el.count() == 0:
            return None
        return await el.get_attribute(name)
    except PlaywrightError:
        return None


async def extract_about(page: Page) -> Optional[str]:
    section, strat = await locate_section(page, ABOUT, timeout_ms=3000)
    if section is None:
        return None
    try:
        see_more = section.locator(
            "button.inline-show-more-text__button, button[aria-label*='see more'], "
            ".pv-shared-text-with-see-more__full-text-toggle"
        ).first
        if await see_more.count() > 0 and await see_more.is_visible():
            logger.info("Clicking \"see more\" on About section...")
            await see_more.click()
            await jitter_delay(500, 1000)

        text_el = section.locator(".inline-show-more-text, .pv-shared-text-with-see-more span[aria-hidden='true']").first
        text = await text_el.inner_text() if await text_el.count() > 0 else await section.inner_text()
    except PlaywrightError as e:
        logger.warning("Failed to extract About (%s): %s", strat, str(e)[:80])
        return None
    text = re.sub(r"^About\s*\n", "", text or "", flags=re.I).strip()
    return text or None


async def extract_profile(page: Page, settings: ScraperSettings) -> ProfileHeader:
    logger.info("Extracting profile header & about...")
    try:
        json_ld = parse_json_ld(await page.evaluate(_READ_JSON_LD))
    except PlaywrightError:
        json_ld = ProfileHeader()

    top_card, _ = await probe_first(page, [
        LocatorStrategy(
            "TopCard",
            "[data-view-name='profile-top-card-member-photo'], [data-view-name='profile-card-about'], h1",
            15000,
        )
    ])
    if top_card is None:
        logger.warning("Profile header did not load in time")
    await jitter_delay(1000, 2000)

    dom = ProfileHeader()
    dom.name = await first_visible_text(page, NAME_SELECTORS)
    dom.headline = await first_visible_text(page, HEADLINE_SELECTORS)
    try:
        texts = await page.evaluate(_TOP_CARD_TEXTS)
    except PlaywrightError:
        texts = []
    pick_top_card_fields(texts, dom)
    if not dom.open_to_work:
        try:
            dom.open_to_work = await page.locator("[data-view-name*='open-to-work'], img[alt*='#OPEN_TO_WORK']").count() > 0
        except PlaywrightError:
            pass

    dom.profile_image = await _attribute(page, "[data-view-name='profile-top-card-member-photo'] img, img.pv-top-card-profile-picture__image--show", "src")
    dom.banner_image = await _attribute(page, "figure[aria-label='Cover photo'] img, .profile-background-image img", "src")
    dom.about = await extract_about(page)

    profile = merge_headers(dom, json_ld)
    if top_card is None and not profile.name:
        raise SelectorNotFound("Profile header not found")
    logger.info("Profile extracted: %s", profile.name or "Unknown")
    return profile
