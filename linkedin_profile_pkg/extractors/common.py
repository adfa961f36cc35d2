import logging
from typing import Dict, List, Optional, Tuple

from playwright.async_api import Locator, Page

from ..config import ScraperSettings
from ..extraction import ITEM_SELECTOR, collect_item_texts
from ..scraper_logging import save_debug_files
from ..selectors import (
    MAIN_CONTAINERS,
    LocatorStrategy,
    SectionSelectors,
    expand_show_all,
    locate_section,
    probe_first,
    return_to,
)
from ..navigation import scroll_into_view

logger = logging.getLogger(__name__)


async def main_container(page: Page, timeout_ms: int) -> Tuple[Optional[Locator], str]:
    return await probe_first(page, [LocatorStrategy("Main", MAIN_CONTAINERS, timeout_ms)])


async def read_section(
    page: Page,
    selectors: SectionSelectors,
    detail_path: str,
    settings: ScraperSettings,
    item_selector: str = ITEM_SELECTOR,
) -> Tuple[List[Dict], str]:
    """Locate a section's list and read its items.

    On the section's own detail page the main container is the list. On the
    profile page the section is found with the SDUI/legacy/header chain and
    expanded through "Show all" when present; the tab is then sent back to
    where it started.
    """
    if f"/details/{detail_path}" in page.url:
        container, strat = await main_container(page, settings.detail_ready_timeout_ms)
        if container is None:
            return [], strat
        return await collect_item_texts(container, item_selector), f"Detail{strat}"

    origin = page.url
    await scroll_into_view(page, selectors.sdui)
    container, strat = await locate_section(page, selectors)
    if container is None:
        return [], strat

    navigated = await expand_show_all(page, container, settings.nav_timeout_ms)
    if navigated:
        container, strat = await main_container(page, settings.detail_ready_timeout_ms)
        strat = f"ShowAll{strat}"
    items = await collect_item_texts(container, item_selector) if container is not None else []
    if navigated:
        await return_to(page, origin, settings.nav_timeout_ms)
    return items, strat


async def snapshot_if_empty(page: Page, section: str, results: list, settings: ScraperSettings) -> Optional[dict]:
    """Dump a screenshot and HTML when a section that usually has data came back empty."""
    if results or not settings.snapshot_on_empty:
        return None
    logger.warning("%s extraction returned 0 items. Capturing debug info...", section.capitalize())
    return await save_debug_files(page, f"debug_{section}_empty", settings.debug_dir)
