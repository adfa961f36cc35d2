import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from .navigation import jitter_delay

logger = logging.getLogger(__name__)

MAIN_CONTAINERS = "main, .scaffold-finite-scroll"
SHOW_ALL_REGEX = re.compile(r"Show all|See all|Tampilkan semua|Lihat semua", re.I)


@dataclass(frozen=True)
class LocatorStrategy:
    """One way of finding an element, tried with its own timeout."""
    name: str
    selector: str
    timeout_ms: int = 2000


@dataclass(frozen=True)
class SectionSelectors:
    """Where a profile section lives in the current and older markup."""
    title: str
    sdui: str
    legacy: str = ""
    min_children: int = 2


async def probe_first(
    scope: Page | Locator,
    strategies: Iterable[LocatorStrategy],
) -> Tuple[Optional[Locator], str]:
    """Try each strategy in order; the first one that becomes visible wins.

    Returns (locator, strategy_name) or (None, "NotFound").
    """
    for strategy in strategies:
        if not strategy.selector:
            continue
        candidate = scope.locator(strategy.selector).first
        try:
            await candidate.wait_for(state="visible", timeout=strategy.timeout_ms)
            return candidate, strategy.name
        except PlaywrightError:
            continue
    return None, "NotFound"


async def find_by_header(
    scope: Page | Locator,
    title: str,
    min_children: int = 2,
    max_depth: int = 8,
) -> Optional[Locator]:
    """Find the header reading exactly `title`, then climb to the list wrapper.

    The first ancestor with more than `min_children` element children is the
    smallest container that plausibly holds the section's items.
    """
    exact = re.compile(rf"^\s*{re.escape(title)}\s*$", re.I)
    headers = scope.locator("h2, h3, span[aria-hidden='true']").filter(has_text=exact)
    try:
        if await headers.count() == 0:
            return None
    except PlaywrightError:
        return None

    node = headers.first
    for _ in range(max_depth):
        node = node.locator("xpath=..")
        try:
            children = await node.evaluate("(el) => el.children.length")
        except PlaywrightError:
            return None
        if children > min_children:
            return node
    return None


async def locate_section(
    page: Page,
    section: SectionSelectors,
    timeout_ms: int = 2000,
) -> Tuple[Optional[Locator], str]:
    """Dual-path section lookup: SDUI marker, then legacy anchor, then header text."""
    strategies = [LocatorStrategy("SDUI", section.sdui, timeout_ms)]
    if section.legacy:
        legacy = ", ".join(
            f"section:has({sel.strip()})" for sel in section.legacy.split(",") if sel.strip()
        )
        strategies.append(LocatorStrategy("Legacy", legacy, max(500, timeout_ms // 2)))

    found, strat = await probe_first(page, strategies)
    if found is not None:
        return found, strat

    main, _ = await probe_first(page, [LocatorStrategy("Main", MAIN_CONTAINERS, max(500, timeout_ms // 2))])
    if main is not None:
        wrapper = await find_by_header(main, section.title, section.min_children)
        if wrapper is not None:
            return wrapper, "HeaderText"

    return None, "NotFound"


async def find_show_all_button(section: Locator) -> Optional[Locator]:
    """Find a "Show all" link or button inside (or just after) a section."""
    candidates = [
        section.locator("a, button").filter(has_text=SHOW_ALL_REGEX).first,
        section.locator("[id*='navigation-index']").first,
        section.locator(".pvs-list__footer-wrapper a, .pvs-footer__text, .artdeco-card__action").first,
    ]
    for btn in candidates:
        try:
            if await btn.count() > 0 and await btn.is_visible():
                return btn
        except PlaywrightError:
            continue
    return None


async def expand_show_all(page: Page, section: Locator, timeout_ms: int = 15000) -> bool:
    """Click "Show all" if present and wait for the expanded view to settle.

    Returns True when the click moved the tab to another URL; the caller is
    then responsible for navigating back with `return_to`.
    """
    btn = await find_show_all_button(section)
    if btn is None:
        return False

    before = page.url
    try:
        await btn.scroll_into_view_if_needed()
        await btn.click(timeout=min(12000, timeout_ms))
        try:
            await page.wait_for_load_state("domcontentloaded", timeout=timeout_ms)
        except PlaywrightError:
            logger.warning("⚠️ Show-all load timeout, continuing anyway...")
        await jitter_delay(2000, 3500)
    except PlaywrightError as e:
        logger.warning("⚠️ Show all click failed: %s", str(e)[:80])
        return False
    return page.url != before


async def return_to(page: Page, url: str, timeout_ms: int = 15000) -> None:
    """Go back to the originating page after a show-all expansion."""
    try:
        await page.go_back(wait_until="domcontentloaded", timeout=timeout_ms)
        if page.url.rstrip("/") != url.rstrip("/"):
            await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        await jitter_delay(1500, 2500)
    except PlaywrightError as e:
        logger.warning("Could not return to %s: %s", url, str(e)[:80])


async def first_visible_text(scope: Page | Locator, selectors: Sequence[str]) -> Optional[str]:
    """Text of the first visible, non-empty match among selectors."""
    for sel in selectors:
        el = scope.locator(sel).first
        try:
            if await el.is_visible():
                text = (await el.text_content() or "").strip()
                if text:
                    return text
        except PlaywrightError:
            continue
    return None
