"""
Shared fixtures: an in-memory fake of the Playwright page/element API and a
fake Playwright launcher for BrowserSession.
"""
from __future__ import annotations

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

os.environ.setdefault("AUTOPILOT_LOG_FILE", "0")

from internpilot.browser import BrowserSession
from internpilot.selectors import any_of, load_selectors
from internpilot.session_store import SessionStore


class FakeElement:
    def __init__(self, text="", href=None, visible=True, children=None, on_click=None, click_error=None):
        self.text = text
        self.href = href
        self.visible = visible
        self.children = dict(children or {})
        self.on_click = on_click
        self.click_error = click_error
        self.clicks = 0
        self.files: list[str] = []

    async def query_selector(self, selector):
        return self.children.get(selector)

    async def inner_text(self):
        return self.text

    async def get_attribute(self, name):
        return self.href if name == "href" else None

    async def click(self, **kwargs):
        self.clicks += 1
        if self.click_error is not None:
            raise self.click_error
        if self.on_click is not None:
            self.on_click()

    async def is_visible(self):
        return self.visible

    async def set_input_files(self, path):
        self.files.append(path)


class FakePage:
    """Enough of playwright's async Page for the workflows under test."""

    def __init__(self, url="about:blank", elements=None, cards=None):
        self.url = url
        self.elements = dict(elements or {})
        self.cards = dict(cards or {})
        self.visited: list[str] = []
        self.typed: list[tuple[str, str]] = []
        self.redirects: dict[str, str] = {}
        self.overlay_elements: list[FakeElement] = []
        self.overlay_selector = None
        self.keyboard = MagicMock()
        self.keyboard.press = AsyncMock()
        self.mouse = MagicMock()
        self.mouse.move = AsyncMock()
        self.context = MagicMock()
        self.context.cookies = AsyncMock(return_value=[{"name": "sid", "value": "fresh"}])

    @property
    def overlays(self):
        """Overlays still rendered; hidden ones remain in the DOM."""
        return sum(1 for o in self.overlay_elements if o.visible)

    @overlays.setter
    def overlays(self, count):
        self.overlay_elements = [FakeElement() for _ in range(count)]

    def set_default_timeout(self, ms):
        pass

    async def goto(self, url, **kwargs):
        self.visited.append(url)
        self.url = self.redirects.get(url, url)

    async def query_selector(self, selector):
        if self.overlay_elements and selector == self.overlay_selector:
            return self.overlay_elements[0]
        return self.elements.get(selector)

    async def query_selector_all(self, selector):
        if selector == self.overlay_selector:
            return list(self.overlay_elements)
        return list(self.cards.get(selector, []))

    async def evaluate(self, script, arg=None):
        if isinstance(arg, FakeElement):
            return arg.visible
        if isinstance(arg, list) and arg and isinstance(arg[0], FakeElement):
            arg[0].visible = False
        return None

    async def wait_for_selector(self, selector, **kwargs):
        return None

    async def wait_for_function(self, script, **kwargs):
        return True

    async def wait_for_load_state(self, state=None, **kwargs):
        return None

    async def wait_for_url(self, predicate, **kwargs):
        if not predicate(self.url):
            raise TimeoutError("still on the login page")

    async def type(self, selector, text, **kwargs):
        self.typed.append((selector, text))

    async def select_option(self, selector, value):
        return [value]


def make_card(title, company, href, stipend="₹ 10,000 /month", location="Remote",
              duration="3 Months", button=None):
    """A results-page card keyed on the first selector of each cascade."""
    children = {
        ".job-internship-name": FakeElement(title),
        ".company-name": FakeElement(company),
        ".locations": FakeElement(location),
        ".stipend": FakeElement(stipend),
        ".row-1-item:has(.ic-16-calendar) span": FakeElement(duration),
        'a[href*="/internship/detail"]': FakeElement(href=href),
    }
    if button is not None:
        children["a.view_detail_button"] = button
    return FakeElement(children=children)


def make_playwright(page):
    """(factory, browser, playwright) where factory() mimics async_playwright()."""
    context = MagicMock()
    context.add_init_script = AsyncMock()
    context.new_page = AsyncMock(return_value=page)
    context.cookies = page.context.cookies
    context.add_cookies = AsyncMock()
    page.context = context

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    pw = MagicMock()
    pw.chromium.launch = AsyncMock(return_value=browser)
    pw.stop = AsyncMock()

    manager = MagicMock()
    manager.start = AsyncMock(return_value=pw)
    return (lambda: manager), browser, pw


@pytest.fixture
def selectors():
    return load_selectors()


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "sessions")


@pytest.fixture
def fake_page(selectors):
    page = FakePage(url="https://internshala.com/internships")
    page.overlay_selector = any_of(selectors.overlay_containers)
    return page


@pytest.fixture
def session_factory(fake_page):
    """Factory usable as ``session_factory``; records every BrowserSession it makes."""
    factory, browser, pw = make_playwright(fake_page)
    sessions: list[BrowserSession] = []

    def make(headless=True):
        session = BrowserSession(headless=headless, playwright_factory=factory)
        sessions.append(session)
        return session

    make.browser = browser
    make.playwright = pw
    make.sessions = sessions
    return make


@pytest.fixture(autouse=True)
def _isolate_data(tmp_path, monkeypatch):
    from internpilot import tracker

    monkeypatch.setattr(tracker, "APPLICATIONS_CSV", tmp_path / "applications.csv")
    monkeypatch.delenv("RAPIDAPI_KEY", raising=False)
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    monkeypatch.delenv("HUGGINGFACE_API_KEY", raising=False)
