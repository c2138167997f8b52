"""Headless browser session (Playwright async API) and DOM helpers."""
from __future__ import annotations

import asyncio
import random
from typing import Any, Callable

from internpilot.config import USER_AGENTS, VIEWPORT
from internpilot.log import get_logger

log = get_logger(__name__)

LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-blink-features=AutomationControlled"]
DEFAULT_TIMEOUT_MS = 20_000

_VISIBLE_JS = """(el) => {
    const style = window.getComputedStyle(el);
    return !!style && style.display !== 'none' && style.visibility !== 'hidden' && style.opacity !== '0';
}"""
_READY_JS = "() => document.readyState === 'complete'"


def _default_playwright():
    from playwright.async_api import async_playwright

    return async_playwright()


class BrowserSession:
    """Owns one browser/context/page triple for a single request.

    Use as ``async with BrowserSession() as session:``; the browser is closed
    on every exit path, including cancellation by an outer timeout.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        user_agent: str | None = None,
        viewport: dict[str, int] | None = None,
        playwright_factory: Callable[[], Any] | None = None,
    ) -> None:
        self.headless = headless
        self.user_agent = user_agent or random.choice(USER_AGENTS)
        self.viewport = viewport or dict(VIEWPORT)
        self._playwright_factory = playwright_factory or _default_playwright
        self._pw = None
        self.browser = None
        self.context = None
        self.page = None
        self.closed = False
        self.detached = False

    async def open(self) -> "BrowserSession":
        self._pw = await self._playwright_factory().start()
        try:
            self.browser = await self._pw.chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
            self.context = await self.browser.new_context(
                viewport=self.viewport,
                user_agent=self.user_agent,
                locale="en-IN",
            )
            await self.context.add_init_script(
                "Object.defineProperty(navigator, 'webdriver', {get: () => undefined})"
            )
            self.page = await self.context.new_page()
            self.page.set_default_timeout(DEFAULT_TIMEOUT_MS)
        except BaseException:
            await self.close()
            raise
        log.info("Browser launched (headless=%s)", self.headless)
        return self

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            if self.browser is not None:
                await self.browser.close()
                log.info("Browser closed")
        except Exception as exc:
            log.warning("Browser close failed: %s", exc)
        finally:
            if self._pw is not None:
                try:
                    await self._pw.stop()
                except Exception as exc:
                    log.debug("Playwright stop failed: %s", exc)

    def detach(self) -> None:
        """Leave the browser open on context exit; caller must close() later."""
        self.detached = True

    async def cookies(self) -> list[dict[str, Any]]:
        return await self.context.cookies()

    async def add_cookies(self, cookies: list[dict[str, Any]]) -> None:
        await self.context.add_cookies(cookies)

    async def __aenter__(self) -> "BrowserSession":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.detached and exc_type is None:
            log.info("Leaving browser open for the user")
            return
        # Shield so an outer cancellation cannot interrupt the close itself.
        await asyncio.shield(self.close())


# ---------------------------------------------------------------------------
# DOM helpers
# ---------------------------------------------------------------------------

async def first_match(root, selectors: list[str]):
    """First element matching any selector in order, or None. Never throws."""
    for sel in selectors:
        try:
            el = await root.query_selector(sel)
        except Exception:
            continue
        if el is not None:
            return el
    return None


async def text_from_cascade(root, selectors: list[str], default: str) -> str:
    """Trimmed inner text of the first non-empty match in the cascade."""
    for sel in selectors:
        try:
            el = await root.query_selector(sel)
            if el is None:
                continue
            text = (await el.inner_text()).strip()
        except Exception:
            continue
        if text:
            return text
    return default


async def is_visible(page, handle) -> bool:
    """Computed-style visibility: display, visibility and opacity."""
    try:
        return bool(await page.evaluate(_VISIBLE_JS, handle))
    except Exception:
        return False


async def wait_ready(page, timeout_ms: int = 5_000) -> bool:
    try:
        await page.wait_for_function(_READY_JS, timeout=timeout_ms)
        return True
    except Exception as exc:
        log.debug("Page not ready within %dms: %s", timeout_ms, exc)
        return False


async def human_type(page, selector: str, text: str, delay_ms: int = 100) -> None:
    await page.type(selector, text, delay=delay_ms)


async def wiggle_mouse(page, settle: float = 1.0) -> None:
    await page.mouse.move(500, 300, steps=10)
    if settle:
        await asyncio.sleep(settle)
