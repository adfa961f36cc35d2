import pytest
from playwright.async_api import Error as PlaywrightError

from linkedin_profile_pkg import browser
from linkedin_profile_pkg.browser import SessionManager, SessionState
from linkedin_profile_pkg.config import ScraperSettings
from linkedin_profile_pkg.errors import BrowserContextCrash, LoginFailedHeadless, ManualLoginTimeout


class AuthPage:
    """A tab that lands on the feed only when the account is logged in."""

    def __init__(self, account):
        self.account = account
        self.url = "about:blank"
        self.gotos = []
        self.clicks = []
        self.closed = False

    async def goto(self, url, **kwargs):
        self.gotos.append(url)
        if "/feed" in url and not self.account["logged_in"]:
            self.url = "https://www.linkedin.com/login"
        else:
            self.url = url

    async def bring_to_front(self):
        return None

    async def click(self, selector, **kwargs):
        self.clicks.append(selector)
        if selector == 'button[type="submit"]' and self.account["password_ok"]:
            self.account["logged_in"] = True

    async def wait_for_url(self, pattern, timeout=None):
        if not self.account["logged_in"]:
            raise PlaywrightError(f"Timeout {timeout}ms exceeded.")
        self.url = "https://www.linkedin.com/feed/"

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, account):
        self.account = account
        self.pages = [AuthPage(account)]
        self.handlers = {}
        self.closed = False
        self.new_page_error = None

    def on(self, event, callback):
        self.handlers[event] = callback

    async def add_init_script(self, script):
        return None

    async def add_cookies(self, cookies):
        return None

    async def new_page(self):
        if self.new_page_error is not None:
            raise self.new_page_error
        page = AuthPage(self.account)
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True
        if "close" in self.handlers:
            self.handlers["close"](self)

    def fire_close(self):
        self.handlers["close"](self)


class FakePlaywright:
    def __init__(self, account):
        self.account = account
        self.launches = 0
        self.stopped = False
        self.contexts = []
        self.chromium = self

    def __call__(self):
        return self

    async def start(self):
        return self

    async def stop(self):
        self.stopped = True

    async def launch_persistent_context(self, user_data_dir, **kwargs):
        self.launches += 1
        context = FakeContext(self.account)
        self.contexts.append(context)
        return context


@pytest.fixture
def account():
    return {"logged_in": False, "password_ok": False}


@pytest.fixture
def fake_pw(account):
    return FakePlaywright(account)


@pytest.fixture
def make_session(tmp_path, fake_pw, monkeypatch):
    async def _noop(*args, **kwargs):
        return None

    monkeypatch.setattr(browser, "jitter_delay", _noop)
    monkeypatch.setattr(browser, "type_with_jitter", _noop)

    def _make(**overrides):
        settings = ScraperSettings(user_data_dir=str(tmp_path / "profile"), **overrides)
        return SessionManager(settings, playwright_factory=fake_pw)

    return _make


async def test_persisted_session_is_authenticated_once(make_session, account, fake_pw):
    account["logged_in"] = True
    session = make_session()
    assert session.state == SessionState.UNINITIALIZED

    assert await session.ensure_authenticated() is True
    assert session.state == SessionState.AUTHENTICATED
    page = fake_pw.contexts[0].pages[0]
    assert len(page.gotos) == 1

    await session.ensure_authenticated()
    assert len(page.gotos) == 1


async def test_credentials_login(make_session, account):
    account["password_ok"] = True
    session = make_session(email="jane@example.com", password="secret")
    await session.ensure_authenticated()
    assert session.state == SessionState.AUTHENTICATED


async def test_headless_without_credentials_fails_fast(make_session, fake_pw):
    session = make_session(headless=True)
    with pytest.raises(LoginFailedHeadless):
        await session.ensure_authenticated()
    assert session.state == SessionState.LOGIN_FAILED

    page = fake_pw.contexts[0].pages[0]
    attempts = len(page.gotos)
    with pytest.raises(LoginFailedHeadless):
        await session.ensure_authenticated()
    assert len(page.gotos) == attempts


async def test_visible_browser_times_out_waiting_for_human(make_session):
    session = make_session(headless=False, manual_login_timeout_ms=10)
    with pytest.raises(ManualLoginTimeout):
        await session.ensure_authenticated()
    assert session.state == SessionState.LOGIN_FAILED


async def test_context_close_resets_and_relaunches(make_session, account, fake_pw):
    account["logged_in"] = True
    session = make_session()
    await session.ensure_authenticated()

    fake_pw.contexts[0].fire_close()
    assert session.state == SessionState.UNINITIALIZED
    assert session.is_live is False

    await session.acquire_context()
    assert fake_pw.launches == 2


async def test_ephemeral_page_is_closed_on_error(make_session, fake_pw):
    session = make_session()
    with pytest.raises(RuntimeError):
        async with session.ephemeral_page() as page:
            raise RuntimeError("extractor blew up")
    assert page.closed is True
    assert page in fake_pw.contexts[0].pages


async def test_check_session_and_idempotent_close(make_session, account, fake_pw):
    session = make_session()
    assert await session.check_session() == {"valid": False, "state": "UNINITIALIZED"}

    account["logged_in"] = True
    await session.ensure_authenticated()
    assert (await session.check_session())["valid"] is True

    await session.close()
    await session.close()
    assert fake_pw.contexts[0].closed is True
    assert fake_pw.stopped is True
    assert session.state == SessionState.UNINITIALIZED


async def test_closed_tab_error_closes_the_old_context_before_relaunch(make_session, account, fake_pw):
    account["logged_in"] = True
    session = make_session()
    await session.ensure_authenticated()

    old = fake_pw.contexts[0]
    old.new_page_error = PlaywrightError("Target page, context or browser has been closed")
    with pytest.raises(BrowserContextCrash):
        await session.acquire_ephemeral_page()

    assert old.closed is True
    assert session.state == SessionState.UNINITIALIZED
    assert session.is_live is False

    context = await session.acquire_context()
    assert fake_pw.launches == 2
    assert context is fake_pw.contexts[1]
    assert context.closed is False
