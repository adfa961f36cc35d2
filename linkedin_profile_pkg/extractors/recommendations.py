import logging
from typing import Dict, List

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..config import ScraperSettings
from ..extraction import collect_item_texts, item_lines
from ..models import RecommendationEntry, Recommendations
from ..navigation import scroll_into_view
from ..selectors import SectionSelectors, locate_section

logger = logging.getLogger(__name__)

SECTION = SectionSelectors(
    title="Recommendations",
    sdui="[data-view-name='profile-card-recommendations']",
    legacy="#recommendations",
)

REC_ITEMS = "li.artdeco-list__item, li.pvs-list__paged-list-item, div[componentkey^='entity-collection-item']"
RECOMMENDATION_MIN_LENGTH = 80


def parse_recommendations(items: List[Dict]) -> List[RecommendationEntry]:
    """Author, author title, then the first long line as the recommendation."""
    results: List[RecommendationEntry] = []
    for item in items:
        lines = item_lines(item, SECTION.title)
        if not lines:
            continue
        results.append(
            RecommendationEntry(
                name=lines[0],
                title=lines[1] if len(lines) > 1 else None,
                photo=item.get("img"),
                text=next((t for t in lines if len(t) > RECOMMENDATION_MIN_LENGTH), None),
            )
        )
    return results


async def extract_recommendations(page: Page, settings: ScraperSettings) -> Recommendations:
    logger.info("Extracting recommendations...")
    await scroll_into_view(page, SECTION.legacy)
    section, strat = await locate_section(page, SECTION, timeout_ms=3000)
    if section is None:
        logger.info("No recommendations section found")
        return Recommendations()

    # Received and given are separate tabs; the first panel is "received"
    scope = section
    try:
        panels = section.locator("[role='tabpanel']")
        if await panels.count() > 0:
            scope = panels.first
    except PlaywrightError:
        pass

    received = parse_recommendations(await collect_item_texts(scope, REC_ITEMS))
    logger.info("Extracted %d received recommendations (%s)", len(received), strat)
    return Recommendations(received=received)
