"""Error taxonomy shared by the session manager, orchestrator and HTTP layer."""


class ScraperError(Exception):
    """Base error; carries a stable machine-readable code and an HTTP status."""

    code = "scraper_error"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = str(self)


class NavigationTimeout(ScraperError):
    """A page or sub-page did not load within its timeout."""

    code = "navigation_timeout"
    status_code = 504


class SelectorNotFound(ScraperError):
    """No locator strategy matched a visible element."""

    code = "selector_not_found"
    status_code = 404


class AuthenticationRequired(ScraperError):
    """Navigation landed on a login or auth wall."""

    code = "authentication_required"
    status_code = 401


class ManualLoginTimeout(ScraperError):
    """Nobody completed the login in the visible browser in time."""

    code = "manual_login_timeout"
    status_code = 408


class LoginFailedHeadless(ScraperError):
    """Login failed and a headless browser cannot ask for a human."""

    code = "login_failed_headless"
    status_code = 401


class BrowserContextCrash(ScraperError):
    """The shared browser context went away during a critical step."""

    code = "browser_context_crash"
    status_code = 503


FATAL_ERRORS = (
    AuthenticationRequired,
    ManualLoginTimeout,
    LoginFailedHeadless,
    BrowserContextCrash,
)


class InvalidProfileUrl(ScraperError):
    """Invalid LinkedIn profile URL. Example: https://www.linkedin.com/in/username"""

    code = "invalid_url"
    status_code = 400


class RateLimited(ScraperError):
    """Too many requests. Please try again later."""

    code = "rate_limited"
    status_code = 429
