"""Scrape portal search results into deduplicated listing records."""
from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin

from internpilot.browser import first_match, human_type, text_from_cascade, wait_ready
from internpilot.log import get_logger
from internpilot.models import SENTINEL, ListingRecord, ListingType, SearchCriteria
from internpilot.parsing import parse_stipend
from internpilot.selectors import SelectorConfig, any_of, load_selectors

log = get_logger(__name__)

# Ordered: first category whose keywords appear in the skills text wins.
ROLE_CATEGORIES: list[tuple[str, tuple[str, ...]]] = [
    ("Software Development", ("python", "javascript", "html", "css", "java")),
    ("Data Science", ("data", "machine learning", "sql")),
]

REQUIRED_FIELDS = ("title", "company", "detail_url", "stipend")


def role_keyword(skills: str) -> str:
    """Map free-text skills to a portal search category, else the raw text."""
    low = (skills or "").lower().strip()
    for category, keywords in ROLE_CATEGORIES:
        if any(k in low for k in keywords):
            return category
    return (skills or "").strip()


@dataclass
class ExtractedListing:
    record: ListingRecord
    position: int
    apply_button: Any = None
    # Results page the card was scraped from; its handles die when the page changes.
    results_url: str | None = None

    @property
    def url(self) -> str:
        return self.record.detail_url


class ListingExtractor:
    def __init__(
        self,
        selectors: SelectorConfig | None = None,
        *,
        settle: float = 2.0,
        wait_timeout_ms: int = 10_000,
        type_delay_ms: int = 50,
    ) -> None:
        self.selectors = selectors or load_selectors()
        self.settle = settle
        self.wait_timeout_ms = wait_timeout_ms
        self.type_delay_ms = type_delay_ms

    async def _pause(self, factor: float = 1.0) -> None:
        if self.settle:
            await asyncio.sleep(self.settle * factor)

    # -- search & filters ---------------------------------------------------

    async def search(self, page, keyword: str) -> bool:
        box = any_of(self.selectors.keyword_box)
        try:
            await page.wait_for_selector(box, timeout=15_000)
            await human_type(page, box, keyword, self.type_delay_ms)
            await page.keyboard.press("Enter")
        except Exception as exc:
            log.error("Failed to set keyword filter %r: %s", keyword, exc)
            return False
        log.info("Searching for %r", keyword)
        await self._pause(1.5)
        return True

    async def apply_filters(self, page, criteria: SearchCriteria) -> None:
        """Best-effort location / stipend / duration filters, then search."""
        cfg = self.selectors
        if criteria.location:
            try:
                loc_input = await page.query_selector(cfg.location_input)
                if loc_input is None and criteria.location.strip().lower() == "remote":
                    toggle = await first_match(page, cfg.remote_toggle)
                    if toggle is not None:
                        log.info("Remote filter found as a checkbox, clicking...")
                        await toggle.click()
                        await wait_ready(page, 2_000)
                if loc_input is not None:
                    await loc_input.click(click_count=3)
                    await loc_input.type(criteria.location, delay=self.type_delay_ms)
                    await page.keyboard.press("Enter")
                    await wait_ready(page, 2_000)
            except Exception as exc:
                log.error("Failed to set location filter: %s", exc)

        if criteria.min_stipend:
            try:
                stipend_input = await page.query_selector(cfg.stipend_input)
                if stipend_input is not None:
                    await stipend_input.click(click_count=3)
                    await stipend_input.type(str(criteria.min_stipend), delay=self.type_delay_ms)
                    await wait_ready(page, 2_000)
            except Exception as exc:
                log.error("Failed to set stipend filter: %s", exc)

        if criteria.duration:
            m = re.search(r"(\d+)\s*month", criteria.duration.lower())
            if m:
                try:
                    if await page.query_selector(cfg.duration_select) is not None:
                        await page.select_option(cfg.duration_select, m.group(1))
                        await wait_ready(page, 2_000)
                except Exception as exc:
                    log.error("Failed to set duration filter: %s", exc)

        submit = cfg.search_submit.get(criteria.type.value)
        if submit:
            try:
                button = await page.query_selector(submit)
                if button is not None:
                    await page.evaluate("(sel) => { const b = document.querySelector(sel); if (b) b.click(); }", submit)
                    await wait_ready(page, 5_000)
            except Exception as exc:
                log.error("Failed to click search button: %s", exc)

    # -- cards ----------------------------------------------------------------

    def _strip_badges(self, text: str) -> str:
        for badge in self.selectors.strip_badges:
            text = re.sub(rf"{re.escape(badge)}\s*", "", text, flags=re.IGNORECASE)
        return text.strip() or SENTINEL

    async def _link(self, page, card) -> str:
        el = await first_match(card, self.selectors.link)
        if el is None:
            return SENTINEL
        try:
            href = await el.get_attribute("href")
        except Exception:
            return SENTINEL
        if not href:
            return SENTINEL
        return urljoin(page.url or "", href)

    async def read_card(self, page, card, position: int) -> ExtractedListing | None:
        """One card → listing; None when a required field is missing."""
        cfg = self.selectors
        values: dict[str, str] = {}
        for name in ("title", "company", "location", "stipend", "duration", "department", "posted"):
            values[name] = await text_from_cascade(card, cfg.cascade(name), SENTINEL)
        values["title"] = self._strip_badges(values["title"])
        values["company"] = self._strip_badges(values["company"])
        values["detail_url"] = await self._link(page, card)

        missing = [f for f in REQUIRED_FIELDS if values[f] == SENTINEL]
        if missing:
            log.debug("Skipping card %d, missing %s", position, ", ".join(missing))
            return None

        record = ListingRecord(
            title=values["title"],
            company=values["company"],
            detail_url=values["detail_url"],
            location=values["location"],
            stipend=values["stipend"],
            stipend_value=parse_stipend(values["stipend"]),
            duration=values["duration"],
            department=values["department"],
            date_posted=None if values["posted"] == SENTINEL else values["posted"],
            source="internshala",
        )
        button = await first_match(card, cfg.apply_button)
        return ExtractedListing(record=record, position=position, apply_button=button)

    async def _cards(self, page, listing_type: ListingType) -> list[Any]:
        containers = self.selectors.cards_for(listing_type)
        try:
            await page.wait_for_selector(any_of(containers), timeout=self.wait_timeout_ms)
        except Exception:
            log.warning("%s listings not found within timeout", listing_type.value)
        for sel in containers:
            try:
                cards = await page.query_selector_all(sel)
            except Exception:
                continue
            if cards:
                return cards
        return []

    async def extract(self, page, listing_type: ListingType, max_pages: int = 3) -> list[ExtractedListing]:
        """Walk up to ``max_pages`` result pages; unique by detail URL."""
        found: dict[str, ExtractedListing] = {}
        page_num = 1
        while page_num <= max_pages:
            log.info("Scraping page %d...", page_num)
            try:
                cards = await self._cards(page, listing_type)
                log.info("Found %d %s card(s) on page %d", len(cards), listing_type.value, page_num)
                for card in cards:
                    try:
                        item = await self.read_card(page, card, len(found))
                    except Exception as exc:
                        log.debug("Card read failed: %s", exc)
                        continue
                    if item is not None and item.url not in found:
                        item.results_url = page.url
                        found[item.url] = item

                next_button = await first_match(page, self.selectors.next_page)
                if next_button is None or page_num >= max_pages:
                    break
                await next_button.click()
                await self._pause(1.5)
                page_num += 1
            except Exception as exc:
                log.error("Error scraping page %d: %s", page_num, exc)
                break

        log.info("Extracted %d unique %s listing(s)", len(found), listing_type.value)
        return list(found.values())

    async def apply_buttons_by_url(self, page, listing_type: ListingType) -> dict[str, Any]:
        """Re-locate apply controls after the results page was reloaded."""
        buttons: dict[str, Any] = {}
        for card in await self._cards(page, listing_type):
            try:
                url = await self._link(page, card)
                if url != SENTINEL and url not in buttons:
                    buttons[url] = await first_match(card, self.selectors.apply_button)
            except Exception:
                continue
        return buttons
