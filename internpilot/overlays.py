"""Best-effort removal of modal overlays that block clicks."""
from __future__ import annotations

import asyncio

from internpilot.browser import is_visible
from internpilot.log import get_logger
from internpilot.selectors import SelectorConfig, any_of, load_selectors

log = get_logger(__name__)

MAX_ATTEMPTS = 5

_HIDE_AND_CLOSE_JS = """([overlay, closeSel]) => {
    overlay.style.display = 'none';
    const close = closeSel ? document.querySelector(closeSel) : null;
    if (close) close.click();
}"""


async def _visible_overlay(page, overlay_sel: str):
    """First matching overlay that is still rendered; hidden ones stay in the DOM."""
    for candidate in await page.query_selector_all(overlay_sel):
        if await is_visible(page, candidate):
            return candidate
    return None


async def dismiss_overlays(
    page,
    selectors: SelectorConfig | None = None,
    *,
    max_attempts: int = MAX_ATTEMPTS,
    pause: float = 1.5,
) -> int:
    """Hide visible overlays until none remain or ``max_attempts`` is reached.

    Returns the number of overlays handled. Never raises.
    """
    cfg = selectors or load_selectors()
    if not cfg.overlay_containers:
        return 0
    overlay_sel = any_of(cfg.overlay_containers)
    close_sel = any_of(cfg.overlay_close)

    handled = 0
    while handled < max_attempts:
        try:
            overlay = await _visible_overlay(page, overlay_sel)
        except Exception as exc:
            log.debug("Overlay probe failed: %s", exc)
            return handled
        if overlay is None:
            return handled
        handled += 1
        log.info("Overlay found (%d), attempting to close...", handled)
        try:
            await page.evaluate(_HIDE_AND_CLOSE_JS, [overlay, close_sel])
        except Exception as exc:
            log.debug("Overlay close script failed: %s", exc)
        if pause:
            await asyncio.sleep(pause)

    log.warning("Max overlay attempts (%d) reached, proceeding anyway", max_attempts)
    return handled
