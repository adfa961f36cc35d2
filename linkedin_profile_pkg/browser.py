import asyncio
import logging
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from playwright.async_api import BrowserContext, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .config import (
    FEED_URL,
    LOGIN_URL,
    ScraperSettings,
    random_timezone,
    random_user_agent,
    random_viewport,
)
from .cookies_auth import apply_cookies, load_cookies
from .errors import BrowserContextCrash, LoginFailedHeadless, ManualLoginTimeout
from .navigation import jitter_delay, type_with_jitter

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-infobars",
    "--window-position=0,0",
    "--disable-dev-shm-usage",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--no-first-run",
    "--mute-audio",
]

STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
window.chrome = { runtime: {} };

const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) => (
  parameters.name === 'notifications'
    ? Promise.resolve({ state: Notification.permission })
    : originalQuery(parameters)
);
"""

CLOSED_MARKERS = ("Target closed", "has been closed", "Browser closed", "Target page, context or browser has been closed")


class SessionState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    LAUNCHING = "LAUNCHING"
    CHECKING_AUTH = "CHECKING_AUTH"
    LOGIN_ATTEMPT = "LOGIN_ATTEMPT"
    AUTHENTICATED = "AUTHENTICATED"
    LOGIN_FAILED = "LOGIN_FAILED"


def is_closed_error(err: Union[BaseException, str]) -> bool:
    return any(marker in str(err) for marker in CLOSED_MARKERS)


async def launch_persistent_context(
    playwright,
    user_data_dir: str,
    headless: bool = True,
    slow_mo_ms: int = 0,
) -> BrowserContext:
    """Launch Chromium with a persistent user data directory.

    Cookies and localStorage survive process restarts, which is what lets
    repeat runs skip the login flow. Viewport, user agent and timezone are
    randomized per launch.
    """
    Path(user_data_dir).mkdir(parents=True, exist_ok=True)
    return await playwright.chromium.launch_persistent_context(
        str(Path(user_data_dir).resolve()),
        headless=headless,
        slow_mo=slow_mo_ms if slow_mo_ms > 0 else None,
        user_agent=random_user_agent(),
        viewport=random_viewport(),
        locale="en-US",
        timezone_id=random_timezone(),
        permissions=["geolocation"],
        accept_downloads=True,
        has_touch=False,
        is_mobile=False,
        args=LAUNCH_ARGS,
        ignore_default_args=["--enable-automation"],
    )


async def apply_stealth(context: BrowserContext) -> None:
    """Inject lightweight anti-detection scripts to patch common fingerprints.

    We avoid over-mocking and focus on the essentials: webdriver, plugins,
    languages, minimal `window.chrome`, and permission overrides.
    """
    await context.add_init_script(STEALTH_SCRIPT)


class SessionManager:
    """Owns the single persistent browser context and its login state.

    Built lazily and injected into the orchestrator. Tabs are lent out
    through `ephemeral_page()`, which always closes them. When the context
    dies underneath us the state drops back to UNINITIALIZED and the next
    caller relaunches it.
    """

    def __init__(self, settings: ScraperSettings, playwright_factory=async_playwright):
        self.settings = settings
        self.state = SessionState.UNINITIALIZED
        self._playwright_factory = playwright_factory
        self._playwright = None
        self._context: Optional[BrowserContext] = None
        self._launch_lock = asyncio.Lock()
        self._auth_lock = asyncio.Lock()

    @property
    def is_live(self) -> bool:
        return self._context is not None

    async def acquire_context(self) -> BrowserContext:
        if self._context is not None:
            return self._context
        async with self._launch_lock:
            if self._context is not None:
                return self._context

            self.state = SessionState.LAUNCHING
            logger.info(
                "🚀 Launching persistent browser context (headless: %s, user data: %s)",
                self.settings.headless,
                self.settings.user_data_dir,
            )
            try:
                if self._playwright is None:
                    self._playwright = await self._playwright_factory().start()
                context = await launch_persistent_context(
                    self._playwright,
                    self.settings.user_data_dir,
                    headless=self.settings.headless,
                    slow_mo_ms=self.settings.slow_mo_ms,
                )
                await apply_stealth(context)
            except PlaywrightError as e:
                self.state = SessionState.UNINITIALIZED
                logger.error("❌ Failed to launch browser: %s", e)
                raise BrowserContextCrash(f"Failed to launch browser: {e}") from e

            if self.settings.cookies_path:
                cookies = load_cookies(self.settings.cookies_path)
                loaded, has_li_at = await apply_cookies(context, cookies)
                if loaded:
                    logger.info("🍪 Seeded %d cookies (li_at: %s)", len(cookies), has_li_at)

            context.on("close", self._on_context_close)
            self._context = context
            return context

    def _on_context_close(self, *_args) -> None:
        if self._context is not None:
            logger.warning("⚠️ Browser context closed")
        self._context = None
        self.state = SessionState.UNINITIALIZED

    async def mark_crashed(self) -> None:
        """Close and forget the current context so the next access relaunches it.

        A closed tab reports the same error text as a closed context, so the
        context may still be alive and holding the profile directory lock.
        """
        context = self._context
        self._on_context_close()
        if context is None:
            return
        try:
            await context.close()
        except PlaywrightError as e:
            logger.debug("Context close after crash: %s", e)

    async def acquire_page(self) -> Page:
        """The shared primary tab, brought to the foreground."""
        context = await self.acquire_context()
        try:
            pages = context.pages
            if pages:
                page = pages[0]
                await page.bring_to_front()
                return page
            return await context.new_page()
        except PlaywrightError as e:
            if is_closed_error(e):
                await self.mark_crashed()
                raise BrowserContextCrash(str(e)) from e
            raise

    async def acquire_ephemeral_page(self) -> Page:
        """A brand-new tab; the caller must close it."""
        context = await self.acquire_context()
        try:
            return await context.new_page()
        except PlaywrightError as e:
            if is_closed_error(e):
                await self.mark_crashed()
                raise BrowserContextCrash(str(e)) from e
            raise

    @asynccontextmanager
    async def ephemeral_page(self) -> AsyncIterator[Page]:
        page = await self.acquire_ephemeral_page()
        try:
            yield page
        finally:
            try:
                await page.close()
            except PlaywrightError:
                pass

    async def ensure_authenticated(self) -> bool:
        """Drive the login state machine until AUTHENTICATED or a fatal error.

        CHECKING_AUTH lands on the feed when the persisted session is still
        valid. Otherwise LOGIN_ATTEMPT tries stored credentials, then (only
        with a visible browser) waits for a human to finish logging in.
        """
        async with self._auth_lock:
            if self.state == SessionState.AUTHENTICATED and self.is_live:
                return True
            if (
                self.state == SessionState.LOGIN_FAILED
                and self.is_live
                and self.settings.headless
                and not self.settings.has_credentials
            ):
                raise LoginFailedHeadless(
                    "Login failed and running in headless mode. Cannot create session."
                )

            page = await self.acquire_page()

            self.state = SessionState.CHECKING_AUTH
            logger.info("Checking login status...")
            try:
                await page.goto(FEED_URL, wait_until="domcontentloaded", timeout=20000)
            except PlaywrightError as e:
                if is_closed_error(e):
                    await self.mark_crashed()
                    raise BrowserContextCrash(str(e)) from e
                logger.warning("Initial navigation timeout, checking URL...")

            if "/feed" in page.url:
                logger.info("✓ Already logged in (session persisted).")
                self.state = SessionState.AUTHENTICATED
                return True

            self.state = SessionState.LOGIN_ATTEMPT
            logger.info("Not logged in. Attempting login flow...")
            try:
                await page.goto(LOGIN_URL, wait_until="domcontentloaded", timeout=20000)
            except PlaywrightError as e:
                logger.warning("Login page navigation failed: %s", str(e)[:80])

            if "/feed" in page.url:
                logger.info("✓ Redirected to feed directly.")
                self.state = SessionState.AUTHENTICATED
                return True

            if self.settings.has_credentials:
                logger.info("Attempting automated login...")
                try:
                    await type_with_jitter(page, "#username", self.settings.email)
                    await jitter_delay(500, 1000)
                    await type_with_jitter(page, "#password", self.settings.password)
                    await jitter_delay(500, 1500)
                    await page.click('button[type="submit"]')
                    await page.wait_for_url("**/feed/**", timeout=self.settings.login_redirect_timeout_ms)
                    logger.info("✅ Automated login successful.")
                    self.state = SessionState.AUTHENTICATED
                    return True
                except PlaywrightError as e:
                    logger.warning("⚠️ Automated login failed/challenged: %s", str(e)[:120])

            if not self.settings.headless:
                logger.warning("Manual login required. Waiting for user to reach the feed...")
                try:
                    await page.wait_for_url("**/feed/**", timeout=self.settings.manual_login_timeout_ms)
                except PlaywrightError as e:
                    self.state = SessionState.LOGIN_FAILED
                    raise ManualLoginTimeout("Timeout waiting for manual login.") from e
                logger.info("✅ Manual login detected.")
                self.state = SessionState.AUTHENTICATED
                return True

            self.state = SessionState.LOGIN_FAILED
            raise LoginFailedHeadless("Login failed and running in headless mode. Cannot create session.")

    async def check_session(self) -> dict:
        """Report whether the current context looks logged in; never raises."""
        if not self.is_live:
            return {"valid": False, "state": self.state.value}
        try:
            urls = [p.url for p in self._context.pages]
        except PlaywrightError as e:
            return {"valid": False, "state": self.state.value, "error": str(e)}
        valid = self.state == SessionState.AUTHENTICATED or any("/feed" in u for u in urls)
        return {"valid": valid, "state": self.state.value}

    async def close(self) -> None:
        context, self._context = self._context, None
        if context is not None:
            try:
                await context.close()
                logger.info("Browser context closed")
            except PlaywrightError as e:
                logger.debug("Context close error: %s", e)
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError:
                pass
            self._playwright = None
        self.state = SessionState.UNINITIALIZED
