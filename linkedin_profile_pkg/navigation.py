import asyncio
import logging
import random
from typing import Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .errors import NavigationTimeout

logger = logging.getLogger(__name__)


async def jitter_delay(min_ms: int = 800, max_ms: int = 2500) -> None:
    """Sleep for a uniformly sampled duration in [min_ms, max_ms] milliseconds.

    Randomized waits avoid the fixed-interval rhythm that gives automation
    away. Bounds are clamped so a misconfigured range never raises.
    """
    low = max(0, min(min_ms, max_ms))
    high = max(0, max(min_ms, max_ms))
    await asyncio.sleep(random.uniform(low, high) / 1000.0)


async def micro_delay() -> None:
    await jitter_delay(300, 900)


async def human_delay(min_ms: int = 1000, max_ms: int = 4000) -> None:
    """Longer rest used between waves of tabs."""
    await jitter_delay(min_ms, max_ms)


async def type_with_jitter(
    page: Page,
    selector: str,
    text: str,
    min_delay_ms: int = 50,
    max_delay_ms: int = 180,
) -> None:
    """Type text character by character with a random pause between keys."""
    await page.click(selector)
    for char in text:
        await page.keyboard.type(char)
        await jitter_delay(min_delay_ms, max_delay_ms)


async def human_scroll(page: Page, max_steps: int = 40) -> None:
    """Scroll down in uneven wheel steps until the document stops growing.

    Mostly short pauses, sometimes a longer "reading" pause, and now and
    then a small scroll back up. Navigation can tear the document down
    mid-scroll; that simply ends the scroll.
    """
    try:
        height = await page.evaluate("document.body.scrollHeight")
        covered = 0
        for _ in range(max_steps):
            step = random.randint(300, 700)
            covered += step
            await page.mouse.wheel(0, step)

            if random.random() > 0.7:
                await jitter_delay(800, 2000)
            else:
                await jitter_delay(100, 400)

            if random.random() > 0.9:
                await page.mouse.wheel(0, -100)
                await jitter_delay(300, 600)

            if covered >= height:
                new_height = await page.evaluate("document.body.scrollHeight")
                if new_height <= height:
                    break
                height = new_height
    except PlaywrightError as e:
        logger.debug("Human scroll stopped: %s", str(e)[:80])


async def scroll_to_bottom(page: Page, max_scrolls: int = 15) -> None:
    """Scroll by most of a viewport until the page height stops changing."""
    previous_height = 0
    for _ in range(max(1, int(max_scrolls))):
        try:
            current_height = await page.evaluate("document.body.scrollHeight")
            if current_height == previous_height:
                break
            previous_height = current_height

            viewport_height = await page.evaluate("window.innerHeight")
            amount = int(viewport_height * (0.6 + random.random() * 0.3))
            await page.evaluate(
                "(amount) => window.scrollBy({ top: amount, behavior: 'smooth' })", amount
            )
            await jitter_delay(1000, 2500)
        except PlaywrightError:
            # Context destroyed by navigation
            break


async def scroll_into_view(page: Page, selector: str) -> bool:
    """Centre the first element matching selector, if there is one."""
    try:
        found = await page.evaluate(
            """(sel) => {
                const el = document.querySelector(sel);
                if (el) el.scrollIntoView({ behavior: 'smooth', block: 'center' });
                return !!el;
            }""",
            selector,
        )
        if found:
            await jitter_delay(800, 1500)
        return bool(found)
    except PlaywrightError:
        return False


async def goto_with_retry(
    page: Page,
    url: str,
    timeout_ms: int,
    tries: int = 2,
    wait_until: str = "domcontentloaded",
) -> Tuple[bool, str]:
    """Navigate to a URL with bounded retries.

    Returns (success, error_message) instead of raising so callers decide
    whether a failed navigation is fatal.
    """
    last_err = ""
    for attempt in range(tries):
        try:
            await page.goto(url, timeout=timeout_ms, wait_until=wait_until)
            return True, ""
        except PlaywrightError as e:
            last_err = str(e)
            logger.warning("Navigation to %s failed (attempt %d/%d): %s", url, attempt + 1, tries, last_err[:120])
            if attempt < tries - 1:
                await jitter_delay(1000, 2000)
    return False, last_err


async def navigate_to_detail(page: Page, base_url: str, section: str, settings) -> str:
    """Open `<profile>/details/<section>/` and let its lazy list render.

    Raises NavigationTimeout when the sub-page never loads; the wave that
    owns this tab turns that into the section's empty default.
    """
    detail_url = f"{base_url}/details/{section}/"
    logger.info("Navigating to %s details: %s", section, detail_url)

    ok, err = await goto_with_retry(page, detail_url, timeout_ms=settings.nav_timeout_ms, tries=1)
    if not ok:
        raise NavigationTimeout(f"{section} detail page did not load: {err[:120]}")

    try:
        await page.wait_for_selector(
            "main, .scaffold-finite-scroll", timeout=settings.detail_ready_timeout_ms
        )
    except PlaywrightError as e:
        raise NavigationTimeout(f"{section} detail page never rendered: {str(e)[:120]}") from e

    await jitter_delay(settings.wave_rest_min_ms, settings.wave_rest_max_ms)
    await human_scroll(page)
    await jitter_delay(500, 1000)
    return detail_url
