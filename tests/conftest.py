"""Fake Playwright objects shared by the test modules.

FakePage answers locator queries from a set of "visible" selector keys and
records every browser-facing call in page.events, so tests can assert on
the exact order of navigation, interaction, waits and captures.
"""

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from run_reporter import RunReporter
from shot_models import Credential, Role, RunConfig


BASE_URL = "https://portal.example.test"
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


class FakeLocator:
    def __init__(self, page, key):
        self.page = page
        self.key = key

    @property
    def first(self):
        return self

    async def wait_for(self, state="visible", timeout=None):
        self.page.events.append(("wait_for", self.key))
        if self.key not in self.page.visible:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {self.key}")

    async def is_visible(self):
        return self.key in self.page.visible

    async def click(self, timeout=None):
        if self.key in self.page.broken:
            raise PlaywrightError(f"Element is detached: {self.key}")
        self.page.events.append(("click", self.key))
        action = self.page.on_click.get(self.key)
        if action:
            action(self.page)

    async def fill(self, value, timeout=None):
        if self.key in self.page.broken:
            raise PlaywrightError(f"Element is not editable: {self.key}")
        self.page.events.append(("fill", self.key, value))


class FakeKeyboard:
    def __init__(self, page):
        self.page = page

    async def press(self, key):
        self.page.events.append(("press", key))


class FakePage:
    def __init__(self, visible=(), on_click=None, fail_urls=(), broken=()):
        self.visible = set(visible)
        self.on_click = dict(on_click or {})
        self.fail_urls = set(fail_urls)
        self.broken = set(broken)
        self.events = []
        self.url = "about:blank"
        self.waited = 0
        self.keyboard = FakeKeyboard(self)
        self.default_timeout = None

    # Locator factories mirror the keys produced by build_locator.
    def locator(self, selector):
        return FakeLocator(self, selector)

    def get_by_text(self, text):
        return FakeLocator(self, f"text={text}")

    def get_by_role(self, role, name=None):
        return FakeLocator(self, f"role={role}" + (f":text={name}" if name else ""))

    def get_by_label(self, label):
        return FakeLocator(self, f"label={label}")

    def get_by_placeholder(self, text):
        return FakeLocator(self, f"placeholder={text}")

    def get_by_test_id(self, test_id):
        return FakeLocator(self, f"testid={test_id}")

    async def goto(self, url):
        self.events.append(("goto", url))
        if url in self.fail_urls:
            raise PlaywrightError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        self.url = url

    async def wait_for_timeout(self, ms):
        self.events.append(("wait", ms))
        self.waited += ms

    async def screenshot(self, path, full_page=False):
        Path(path).write_bytes(PNG_BYTES)
        self.events.append(("screenshot", Path(path).name, full_page))

    async def set_viewport_size(self, size):
        self.events.append(("viewport", size["width"], size["height"]))

    def set_default_timeout(self, ms):
        self.default_timeout = ms

    async def evaluate(self, script):
        self.events.append(("evaluate", script))

    def urls(self):
        return [e[1] for e in self.events if e[0] == "goto"]

    def captures(self):
        return [e[1] for e in self.events if e[0] == "screenshot"]


class FakeContext:
    def __init__(self, page):
        self.page = page
        self.viewport = None

    async def clear_cookies(self):
        self.page.events.append(("clear_cookies",))

    async def new_page(self):
        return self.page


class FakeBrowser:
    def __init__(self, page):
        self.context = FakeContext(page)
        self.closed = False

    async def new_context(self, viewport=None):
        self.context.viewport = viewport
        return self.context

    async def close(self):
        self.closed = True


class FakePlaywright:
    def __init__(self, browser):
        self.chromium = SimpleNamespace(launch=AsyncMock(return_value=browser))

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def leave_login(page):
    page.url = BASE_URL + "/home"


LOGIN_CONTROLS = {
    '[role=tab]:has-text("Consumer")',
    '[role=tab]:has-text("Retailer")',
    'input[type="tel"]',
    'input[type="email"]',
    'input[type="password"]',
    'button[type="submit"]',
}


@pytest.fixture
def page():
    return FakePage()


@pytest.fixture
def login_page():
    """A page whose login form works and redirects away from /login on submit."""
    return FakePage(visible=LOGIN_CONTROLS, on_click={'button[type="submit"]': leave_login})


@pytest.fixture
def reporter():
    return RunReporter(verbose=True)


@pytest.fixture
def credentials():
    return {
        Role.CONSUMER: Credential(role=Role.CONSUMER, identifier="250788100001", secret="1234"),
        Role.RETAILER: Credential(role=Role.RETAILER, identifier="retailer@example.test", secret="retailer123"),
    }


@pytest.fixture
def config(tmp_path, credentials):
    return RunConfig(
        base_url=BASE_URL,
        output_dir=tmp_path / "shots",
        selector_timeout_ms=100,
        credentials=credentials,
    )
