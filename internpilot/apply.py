"""
Click-through apply loop over the top-ranked portal listings.

Each listing gets exactly one attempt and exactly one final status; an
exception on one listing is recorded as an Error outcome and the loop moves
on to the next.
"""
from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Callable, Sequence

from internpilot.browser import first_match, is_visible, wait_ready
from internpilot.extractor import ExtractedListing, ListingExtractor
from internpilot.log import get_logger
from internpilot.models import (
    ApplicationOutcome,
    ApplicationStatus,
    ApplyReport,
    ListingType,
    SearchCriteria,
)
from internpilot.overlays import dismiss_overlays
from internpilot.scorer import TOP_N, rank_by_criteria
from internpilot.selectors import SelectorConfig, load_selectors

log = get_logger(__name__)

OutcomeHook = Callable[[ExtractedListing, ApplicationOutcome], None]


def summarize(total: int, outcomes: Sequence[ApplicationOutcome]) -> dict[str, int]:
    """Count every extracted listing once under its final status."""
    counts = Counter(o.status.value for o in outcomes)
    not_attempted = total - len(outcomes)
    if not_attempted > 0:
        counts[ApplicationStatus.NOT_ATTEMPTED.value] += not_attempted
    return dict(counts)


class ApplyOrchestrator:
    def __init__(
        self,
        extractor: ListingExtractor | None = None,
        selectors: SelectorConfig | None = None,
        *,
        resume_path: Path | None = None,
        overlay_pause: float = 1.5,
        ready_timeout_ms: int = 5_000,
        on_outcome: OutcomeHook | None = None,
    ) -> None:
        self.selectors = selectors or load_selectors()
        self.extractor = extractor or ListingExtractor(self.selectors)
        self.resume_path = resume_path
        self.overlay_pause = overlay_pause
        self.ready_timeout_ms = ready_timeout_ms
        self.on_outcome = on_outcome

    async def _clear(self, page) -> None:
        await dismiss_overlays(page, self.selectors, pause=self.overlay_pause)

    async def run(
        self,
        page,
        listings: Sequence[ExtractedListing],
        criteria: SearchCriteria,
    ) -> ApplyReport:
        ranked = rank_by_criteria([l.record for l in listings], criteria, limit=TOP_N)
        by_position = {i: item for i, item in enumerate(listings)}
        start_url = page.url
        # Page whose apply controls are currently attached, and those controls
        # (None while the handles captured during extraction are still live).
        live_url = start_url
        buttons: dict[str, object] | None = None
        outcomes: list[ApplicationOutcome] = []

        for scored in ranked:
            item = by_position[scored.position]
            outcome = ApplicationOutcome(index=item.position)
            outcomes.append(outcome)
            log.info("Processing %s %d of %d (top %d match, score %.0f): %s @ %s",
                     criteria.type.value, item.position, len(listings), TOP_N,
                     scored.score, item.record.title, item.record.company)
            try:
                button = item.apply_button
                if button is not None:
                    target = item.results_url or start_url
                    if page.url != target or live_url != target:
                        if page.url != target:
                            await page.goto(target, wait_until="domcontentloaded", timeout=30_000)
                        buttons = await self.extractor.apply_buttons_by_url(page, criteria.type)
                        live_url = target
                    if buttons is not None:
                        button = buttons.get(item.url)
                        if button is None:
                            raise LookupError("apply control lost after navigation")
                await self._attempt(page, item, button, outcome)
            except Exception as exc:
                err = str(exc)[:150].split("\n")[0]
                log.error("  ✗ Error applying to %s %d: %s", criteria.type.value, item.position, err)
                if not outcome.finalized:
                    outcome.finalize(ApplicationStatus.ERROR, err)
            if self.on_outcome is not None:
                try:
                    self.on_outcome(item, outcome)
                except Exception as exc:
                    log.warning("Outcome hook failed: %s", exc)

        summary = summarize(len(listings), outcomes)
        self._log_summary(criteria.type, len(listings), summary)
        return ApplyReport(type=criteria.type, total_matched=len(listings), outcomes=outcomes, summary=summary)

    async def _attempt(self, page, item: ExtractedListing, button, outcome: ApplicationOutcome) -> None:
        await self._clear(page)

        if button is None:
            log.info("  Apply button not found for listing %d", item.position)
            outcome.finalize(ApplicationStatus.NO_BUTTON_FOUND)
            return

        if not await is_visible(page, button):
            log.info("  Apply button not visible, skipping")
            outcome.finalize(ApplicationStatus.BUTTON_NOT_VISIBLE)
            return

        await button.click(delay=100)
        await wait_ready(page, self.ready_timeout_ms)

        if self.selectors.apply_url_pattern not in (page.url or ""):
            log.info("  ✓ No redirect to apply page, assuming single-click apply")
            outcome.finalize(ApplicationStatus.SINGLE_CLICK_APPLIED)
            return

        log.info("  Redirected to application page: %s", page.url)
        await self._clear(page)
        await self._submit_form(page, outcome)

    async def _submit_form(self, page, outcome: ApplicationOutcome) -> None:
        form = await first_match(page, self.selectors.apply_form)
        if form is None:
            log.info("  ✗ No application form detected on apply page")
            outcome.finalize(ApplicationStatus.REDIRECTED_NO_FORM)
            return

        # Still IN_PROGRESS until the submit click lands.
        outcome.status = ApplicationStatus.IN_PROGRESS
        if self.resume_path is not None:
            file_input = await form.query_selector(self.selectors.file_input)
            if file_input is not None:
                await file_input.set_input_files(str(self.resume_path))
                log.info("  Resume uploaded")

        submit = await first_match(form, self.selectors.apply_submit)
        if submit is None:
            log.info("  ✗ No submit button found in application form")
            outcome.finalize(ApplicationStatus.FORM_NOT_SUBMITTED)
            return

        await submit.click()
        await wait_ready(page, self.ready_timeout_ms)
        log.info("  ✓ Application submitted")
        outcome.finalize(ApplicationStatus.APPLIED)

    def _log_summary(self, listing_type: ListingType, total: int, summary: dict[str, int]) -> None:
        log.info("=== %s application summary ===", listing_type.value.upper())
        log.info("Total %ss matched: %d", listing_type.value, total)
        for status, count in summary.items():
            log.info("  %s: %d", status, count)

