import logging
from typing import Dict, List

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..config import ScraperSettings
from ..extraction import item_lines
from ..models import InterestEntry

logger = logging.getLogger(__name__)

TITLE = "Interests"

# Interests render as a lazy column of bare children, not a list
_READ_CHILDREN = """() => {
    const container = document.querySelector('.scaffold-finite-scroll')
        || document.querySelector('[data-testid="lazy-column"]')
        || document.querySelector('main');
    if (!container) return [];
    return Array.from(container.children)
        .filter((el) => el.tagName !== 'HR' && el.clientHeight >= 10)
        .map((el) => ({
            text: el.innerText || '',
            link: el.querySelector('a')?.href || null,
        }));
}"""


def parse_interests(items: List[Dict]) -> List[InterestEntry]:
    results: List[InterestEntry] = []
    for item in items:
        lines = item_lines({"text": item.get("text")}, TITLE)
        if not lines:
            continue
        results.append(
            InterestEntry(
                name=lines[0],
                subtitle=lines[1] if len(lines) > 1 else None,
                link=item.get("link"),
            )
        )
    return results


async def extract_interests(page: Page, settings: ScraperSettings) -> List[InterestEntry]:
    logger.info("Extracting interests from detail page...")
    try:
        await page.wait_for_selector(".scaffold-finite-scroll, main", timeout=settings.detail_ready_timeout_ms)
        items = await page.evaluate(_READ_CHILDREN)
    except PlaywrightError as e:
        logger.info("No interests content found: %s", str(e)[:80])
        return []
    interests = parse_interests(items)
    logger.info("Extracted %d interests", len(interests))
    return interests
