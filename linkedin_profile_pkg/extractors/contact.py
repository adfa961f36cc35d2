import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..config import ScraperSettings
from ..models import ContactInfo, Website
from ..navigation import jitter_delay, micro_delay
from ..selectors import LocatorStrategy, probe_first

logger = logging.getLogger(__name__)

CONTACT_LINKS = [
    LocatorStrategy("OverlayHref", "a[href*='overlay/contact-info']", 2000),
    LocatorStrategy("TopCardId", "#top-card-text-details-contact-info", 1000),
    LocatorStrategy("ControlName", "a[data-control-name*='contact_see_more']", 1000),
    LocatorStrategy("LinkText", "a:has-text('Contact info')", 1000),
]

MODAL = ".pv-contact-info, .artdeco-modal, [role='dialog']"
DISMISS = ".artdeco-modal__dismiss, button[aria-label='Dismiss'], button[aria-label='Close']"

# Sections of the overlay, flattened to (header, hrefs, link labels, texts)
_READ_MODAL = """() => {
    const modal = document.querySelector('.artdeco-modal, [role="dialog"], .pv-contact-info');
    if (!modal) return null;
    return Array.from(modal.querySelectorAll('section, .pv-contact-info__contact-type')).map((section) => ({
        header: (section.querySelector('header, h3, h2')?.innerText || '').trim(),
        links: Array.from(section.querySelectorAll('a')).map((a) => ({
            href: a.href || '',
            label: (a.querySelector('span')?.innerText || a.innerText || '').trim(),
        })),
        texts: Array.from(section.querySelectorAll('span[aria-hidden="true"], .t-14, .t-black--light'))
            .map((s) => (s.innerText || '').trim()).filter(Boolean),
    }));
}"""


def parse_contact_sections(sections: list) -> ContactInfo:
    """Route each overlay section by its header text."""
    contact = ContactInfo()
    for section in sections or []:
        header = (section.get("header") or "").lower()
        links = section.get("links") or []
        texts = section.get("texts") or []
        hrefs = [link.get("href") or "" for link in links]

        mailto = next((h for h in hrefs if h.startswith("mailto:")), None)
        tel = next((h for h in hrefs if h.startswith("tel:")), None)
        if mailto and not contact.email:
            contact.email = mailto.replace("mailto:", "").strip()
        if tel and not contact.phone:
            contact.phone = tel.replace("tel:", "").strip()

        first_text = texts[0] if texts else None
        if "website" in header or "url" in header:
            for link in links:
                href = link.get("href") or ""
                if href and not href.startswith(("mailto:", "tel:")):
                    contact.websites.append(Website(label=link.get("label") or "Website", url=href))
        elif "twitter" in header or "x.com" in header:
            contact.twitter = (hrefs[0] if hrefs else None) or first_text
        elif "birthday" in header:
            contact.birthday = first_text
        elif "connected" in header:
            contact.connected_date = first_text
        elif "address" in header:
            contact.address = first_text
        elif "phone" in header and not contact.phone and first_text and any(ch.isdigit() for ch in first_text):
            contact.phone = first_text
    return contact


async def _close_overlay(page: Page) -> None:
    try:
        btn = page.locator(DISMISS).first
        if await btn.count() > 0 and await btn.is_visible():
            await btn.click()
            await micro_delay()
    except PlaywrightError:
        pass


async def extract_contact(page: Page, settings: ScraperSettings) -> Optional[ContactInfo]:
    logger.info("Extracting contact info...")
    link, strat = await probe_first(page, CONTACT_LINKS)
    if link is None:
        logger.warning("Contact info link not found")
        return None

    try:
        await link.click()
        await jitter_delay(1500, 3000)
        await page.wait_for_selector(MODAL, timeout=8000)
        await jitter_delay(500, 1000)
        sections = await page.evaluate(_READ_MODAL)
    except PlaywrightError as e:
        logger.warning("Contact info overlay did not appear (%s): %s", strat, str(e)[:80])
        await _close_overlay(page)
        return None

    contact = parse_contact_sections(sections or [])
    await _close_overlay(page)
    logger.info("Contact info extracted")
    return contact
