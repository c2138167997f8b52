"""End-to-end request workflows: apply, login, recommend, multi-platform search.

Each browser workflow owns exactly one ``BrowserSession`` for its duration and
closes it on every exit path, including an outer ``asyncio.wait_for`` timeout.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable

from internpilot import tracker
from internpilot.apply import ApplyOrchestrator
from internpilot.browser import BrowserSession
from internpilot.cache import ResultCache, recommendation_cache
from internpilot.config import (
    APPLY_TIMEOUT,
    INTERNSHIPS_URL,
    JOBS_URL,
    MANUAL_LOGIN_TIMEOUT,
    RECOMMEND_TIMEOUT,
    headless_default,
)
from internpilot.cover_letter import generate_cover_letter
from internpilot.errors import LoginFailed, NoListingsFound
from internpilot.extractor import ExtractedListing, ListingExtractor, role_keyword
from internpilot.log import get_logger
from internpilot.login import LoginFlow, LoginResult
from internpilot.models import (
    ApplicationOutcome,
    ApplyReport,
    Credentials,
    ListingRecord,
    ListingType,
    ScoredListing,
    SearchCriteria,
)
from internpilot.overlays import dismiss_overlays
from internpilot.parsing import parse_stipend
from internpilot.resume_optimizer import optimize_resume
from internpilot.scorer import TOP_N, analyze_skill_match, in_stipend_range, is_it_related, rank_by_similarity
from internpilot.selectors import SelectorConfig, load_selectors
from internpilot.session_store import SessionStore
from internpilot.similarity import SentenceSimilarity
from internpilot.sources import PlatformQuery
from internpilot.sources.aggregator import aggregate

log = get_logger(__name__)

SessionFactory = Callable[..., BrowserSession]

NAVIGATION_TIMEOUT_MS = 60_000
DEFAULT_MAX_STIPEND = 1_000_000

# Shown when the live recommendation pipeline fails.
MOCK_INTERNSHIPS: list[tuple[ListingRecord, float]] = [
    (ListingRecord(
        title="Software Development Intern",
        company="TechCorp",
        stipend="₹10,000/month",
        detail_url="https://internshala.com/internship/detail/software-development-intern",
        source="sample",
        is_placeholder=True,
    ), 80.0),
    (ListingRecord(
        title="Data Science Intern",
        company="DataWorks",
        stipend="₹8,000/month",
        detail_url="https://internshala.com/internship/detail/data-science-intern",
        source="sample",
        is_placeholder=True,
    ), 75.0),
    (ListingRecord(
        title="Marketing Intern",
        company="Brandify",
        stipend="₹5,000/month",
        detail_url="https://internshala.com/internship/detail/marketing-internship",
        source="sample",
        is_placeholder=True,
    ), 70.0),
]

# Headed sessions left open for the user by auto_login(keep_open=True).
_kept_open: list[BrowserSession] = []


def _number(value: Any, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# Session establishment
# ---------------------------------------------------------------------------

async def manual_login(
    creds: Credentials,
    *,
    store: SessionStore,
    selectors: SelectorConfig,
    session_factory: SessionFactory = BrowserSession,
    timeout: float = MANUAL_LOGIN_TIMEOUT,
) -> LoginResult:
    """Open a visible browser, pre-fill credentials and wait for the human."""
    async with session_factory(headless=False) as headed:
        flow = LoginFlow(store, selectors, headless=False)
        return await flow.complete_manually(headed.page, creds, timeout=timeout)


async def ensure_login(
    session: BrowserSession,
    creds: Credentials,
    *,
    store: SessionStore,
    selectors: SelectorConfig,
    session_factory: SessionFactory = BrowserSession,
    probe_url: str = INTERNSHIPS_URL,
    manual_timeout: float = MANUAL_LOGIN_TIMEOUT,
) -> None:
    """Reuse stored cookies when still valid, otherwise run the login flow.

    A CAPTCHA that needs a human moves the login into a separate headed
    session; its cookies are then loaded into ``session``.
    """
    page = session.page
    cookies = store.load(creds.email)
    if cookies:
        await session.add_cookies(cookies)
        if await store.validate(page, probe_url, selectors.login.logged_out_marker):
            log.info("Reusing stored session for %s", creds.email)
            return
        log.info("Session expired, proceeding with login")
    else:
        log.info("No stored session, proceeding with login")

    flow = LoginFlow(store, selectors, headless=session.headless)
    result = await flow.run(page, creds)
    if not result.needs_manual_login:
        return

    log.info("Switching to a visible browser for manual login")
    await manual_login(creds, store=store, selectors=selectors,
                       session_factory=session_factory, timeout=manual_timeout)
    cookies = store.load(creds.email)
    if not cookies:
        raise LoginFailed("Manual login did not produce a session")
    await session.add_cookies(cookies)


# ---------------------------------------------------------------------------
# Auto-apply
# ---------------------------------------------------------------------------

def _track(item: ExtractedListing, outcome: ApplicationOutcome) -> None:
    tracker.record_outcome(item.record, outcome)


async def _auto_apply(
    creds: Credentials,
    criteria: SearchCriteria,
    *,
    resume_path: Path | None,
    store: SessionStore,
    selectors: SelectorConfig,
    session_factory: SessionFactory,
    headless: bool,
    track: bool,
) -> ApplyReport:
    async with session_factory(headless=headless) as session:
        page = session.page
        await ensure_login(session, creds, store=store, selectors=selectors, session_factory=session_factory)

        base_url = INTERNSHIPS_URL if criteria.type is ListingType.INTERNSHIP else JOBS_URL
        await page.goto(base_url, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)
        log.info("Applying %s filters...", criteria.type.value)
        await dismiss_overlays(page, selectors)

        extractor = ListingExtractor(selectors)
        await extractor.search(page, criteria.role)
        await extractor.apply_filters(page, criteria)
        await dismiss_overlays(page, selectors)

        listings = await extractor.extract(page, criteria.type)
        if not listings:
            raise NoListingsFound(f"No {criteria.type.value}s found matching the criteria")

        orchestrator = ApplyOrchestrator(
            extractor,
            selectors,
            resume_path=resume_path,
            on_outcome=_track if track else None,
        )
        return await orchestrator.run(page, listings, criteria)


async def auto_apply(
    creds: Credentials,
    criteria: SearchCriteria,
    *,
    resume_path: Path | None = None,
    store: SessionStore | None = None,
    selectors: SelectorConfig | None = None,
    session_factory: SessionFactory = BrowserSession,
    headless: bool | None = None,
    timeout: float = APPLY_TIMEOUT,
    track: bool = True,
) -> ApplyReport:
    """Log in, scrape, rank and apply to the top listings within ``timeout``.

    Raises LoginFailed, LoginFormNotFound, NoListingsFound or
    ``asyncio.TimeoutError``; per-listing failures become outcomes instead.
    """
    return await asyncio.wait_for(
        _auto_apply(
            creds,
            criteria,
            resume_path=resume_path,
            store=store or SessionStore(),
            selectors=selectors or load_selectors(),
            session_factory=session_factory,
            headless=headless_default() if headless is None else headless,
            track=track,
        ),
        timeout=timeout,
    )


# ---------------------------------------------------------------------------
# Auto-login
# ---------------------------------------------------------------------------

async def auto_login(
    creds: Credentials,
    *,
    store: SessionStore | None = None,
    selectors: SelectorConfig | None = None,
    session_factory: SessionFactory = BrowserSession,
    keep_open: bool = True,
) -> LoginResult:
    """Log in with a visible browser and save the session cookies.

    With ``keep_open`` the browser stays up for the user after a successful
    login; ``close_kept_sessions`` releases it later.
    """
    store = store or SessionStore()
    selectors = selectors or load_selectors()
    session = session_factory(headless=False)
    async with session:
        flow = LoginFlow(store, selectors, headless=False)
        result = await flow.run(session.page, creds)
        if keep_open:
            session.detach()
            _kept_open.append(session)
    return result


async def close_kept_sessions() -> int:
    closed = 0
    while _kept_open:
        session = _kept_open.pop()
        await session.close()
        closed += 1
    return closed


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

def mock_recommendations(skills: str, min_stipend: float = 0, max_stipend: float = DEFAULT_MAX_STIPEND) -> list[ScoredListing]:
    """Sample listings whose title contains ``skills`` and stipend is in range."""
    needle = (skills or "").lower().strip()
    picked = []
    for i, (record, score) in enumerate(MOCK_INTERNSHIPS):
        stipend = parse_stipend(record.stipend)
        if needle in record.title.lower() and min_stipend <= stipend <= max_stipend:
            picked.append(ScoredListing(listing=record, score=score, position=i))
    return picked[:TOP_N]


async def _scrape_and_rank(
    skills: str,
    min_stipend: float,
    max_stipend: float,
    creds: Credentials | None,
    *,
    store: SessionStore,
    selectors: SelectorConfig,
    session_factory: SessionFactory,
    headless: bool,
) -> list[ScoredListing]:
    async with session_factory(headless=headless) as session:
        page = session.page
        if creds is not None:
            await ensure_login(session, creds, store=store, selectors=selectors, session_factory=session_factory)
        else:
            # Without credentials only the shared stored session can be used.
            cookies = store.load()
            if not cookies:
                raise LoginFailed("No cookies or credentials provided")
            await session.add_cookies(cookies)

        await page.goto(INTERNSHIPS_URL, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)
        if "login" in (page.url or ""):
            raise LoginFailed("Invalid cookies, login required")
        await dismiss_overlays(page, selectors)

        extractor = ListingExtractor(selectors)
        await extractor.search(page, role_keyword(skills))
        items = await extractor.extract(page, ListingType.INTERNSHIP)

    candidates = [
        item.record for item in items
        if in_stipend_range(item.record, min_stipend, max_stipend) and is_it_related(item.record)
    ]
    log.info("%d of %d scraped internship(s) pass the stipend/IT filter", len(candidates), len(items))
    return rank_by_similarity(skills, candidates)


async def recommend(
    skills: str,
    min_stipend: Any = None,
    max_stipend: Any = None,
    creds: Credentials | None = None,
    *,
    store: SessionStore | None = None,
    selectors: SelectorConfig | None = None,
    session_factory: SessionFactory = BrowserSession,
    headless: bool | None = None,
    cache: ResultCache = recommendation_cache,
    timeout: float = RECOMMEND_TIMEOUT,
) -> dict[str, Any]:
    """Up to five recommendations for ``skills``; never raises on pipeline failure."""
    key = cache.key_for(skills, min_stipend, max_stipend)
    cached = cache.get(key)
    if cached is not None:
        log.info("Returning cached recommendations for %r", key)
        return cached

    low = _number(min_stipend, 0)
    high = _number(max_stipend, DEFAULT_MAX_STIPEND)
    try:
        ranked = await asyncio.wait_for(
            _scrape_and_rank(
                skills,
                low,
                high,
                creds,
                store=store or SessionStore(),
                selectors=selectors or load_selectors(),
                session_factory=session_factory,
                headless=headless_default() if headless is None else headless,
            ),
            timeout=timeout,
        )
    except Exception as exc:
        log.error("Recommendation pipeline failed (%s); using sample data", exc or type(exc).__name__)
        ranked = mock_recommendations(skills, low, high)

    payload = {"recommendations": [s.to_dict() for s in ranked], "appliedCount": 0}
    cache.set(key, payload)
    return payload


# ---------------------------------------------------------------------------
# Non-browser workflows
# ---------------------------------------------------------------------------

def search_platforms(
    platforms: list[str],
    skills: str,
    field: str,
    min_stipend: Any,
    max_stipend: Any,
) -> list[dict[str, Any]]:
    query = PlatformQuery(
        skills=skills,
        field=field,
        min_stipend=_number(min_stipend, 0),
        max_stipend=_number(max_stipend, DEFAULT_MAX_STIPEND),
    )
    return [record.to_dict() for record in aggregate(query, platforms)]


def skill_match(user_skills: str, job_requirements: str, backend: SentenceSimilarity | None = None) -> dict[str, Any]:
    return analyze_skill_match(user_skills, job_requirements, backend).to_dict()


def cover_letter(job_description: str) -> dict[str, str]:
    return {"coverLetter": generate_cover_letter(job_description)}


def resume_optimize(job_description: str, resume_text: str) -> dict[str, str]:
    return optimize_resume(job_description, resume_text).to_dict()
