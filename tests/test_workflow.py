"""End-to-end workflows over a fake browser: cleanup, session reuse, fallbacks."""
import asyncio

import pytest

from conftest import FakeElement, make_card
from internpilot import tracker, workflow
from internpilot.cache import ResultCache
from internpilot.errors import NoListingsFound
from internpilot.login import LoginFlow, LoginResult, LoginState
from internpilot.models import ApplicationStatus, Credentials, ListingType, SearchCriteria

CREDS = Credentials(email="student@example.com", password="hunter2")
CRITERIA = SearchCriteria(role="Data Analyst", type=ListingType.INTERNSHIP)
STORED = [{"name": "sid", "value": "stored"}]


@pytest.fixture
def no_delays(monkeypatch):
    async def instant(delay, result=None):
        return result

    monkeypatch.setattr(asyncio, "sleep", instant)


def wire_login_form(page):
    """Login form whose submit clears the logged-out marker."""
    page.elements["#loginModal"] = FakeElement()
    page.elements["form"] = FakeElement()

    def submit():
        page.elements.pop("#loginModal", None)
        page.redirects.clear()
        page.url = "https://internshala.com/student/dashboard"

    page.elements['button[type="submit"]'] = FakeElement(on_click=submit)


class TestAutoApply:
    async def test_success_closes_browser_once(self, fake_page, store, selectors, session_factory, no_delays):
        store.save(STORED, identity=CREDS.email)
        fake_page.cards[".individual_internship"] = [
            make_card("Data Analyst", "Acme", "/internship/detail/a", button=FakeElement()),
        ]

        report = await workflow.auto_apply(
            CREDS, CRITERIA, store=store, selectors=selectors, session_factory=session_factory, headless=True
        )

        assert [o.status for o in report.outcomes] == [ApplicationStatus.SINGLE_CLICK_APPLIED]
        assert report.to_dict()["message"] == "Auto-apply for internships completed successfully"
        session_factory.browser.close.assert_awaited_once()
        fake_page.context.add_cookies.assert_awaited_once_with(STORED)
        rows = tracker.get_applications()
        assert [(r["title"], r["status"]) for r in rows] == [("Data Analyst", "Single-click applied")]

    async def test_stale_cookies_fall_through_to_login(self, fake_page, store, selectors, session_factory, no_delays):
        store.save([{"name": "sid", "value": "stale"}], identity=CREDS.email)
        wire_login_form(fake_page)

        with pytest.raises(NoListingsFound):
            await workflow.auto_apply(
                CREDS, CRITERIA, store=store, selectors=selectors, session_factory=session_factory, headless=True
            )

        assert ("#email", CREDS.email) in fake_page.typed
        assert store.load(CREDS.email) == [{"name": "sid", "value": "fresh"}]
        session_factory.browser.close.assert_awaited_once()

    async def test_timeout_closes_browser_once(self, store, selectors, session_factory, monkeypatch):
        async def hang(*args, **kwargs):
            await asyncio.Event().wait()

        monkeypatch.setattr(workflow, "ensure_login", hang)

        with pytest.raises(asyncio.TimeoutError):
            await workflow.auto_apply(
                CREDS, CRITERIA, store=store, selectors=selectors,
                session_factory=session_factory, headless=True, timeout=0.05,
            )
        session_factory.browser.close.assert_awaited_once()
        assert session_factory.sessions[0].closed

    async def test_captcha_switches_to_headed_session(self, fake_page, store, selectors, session_factory,
                                                      monkeypatch, no_delays):
        async def needs_human(self, page, creds):
            return LoginResult(LoginState.REQUIRES_MANUAL_INTERVENTION, message="captcha")

        async def human_logs_in(self, page, creds, timeout=None):
            self.store.save(STORED, identity=creds.email)
            return LoginResult(LoginState.LOGGED_IN, cookies=STORED)

        monkeypatch.setattr(LoginFlow, "run", needs_human)
        monkeypatch.setattr(LoginFlow, "complete_manually", human_logs_in)

        with pytest.raises(NoListingsFound):
            await workflow.auto_apply(
                CREDS, CRITERIA, store=store, selectors=selectors, session_factory=session_factory, headless=True
            )

        headless, headed = session_factory.sessions
        assert headless.headless and not headed.headless
        assert headless.closed and headed.closed
        assert session_factory.browser.close.await_count == 2
        fake_page.context.add_cookies.assert_awaited_once_with(STORED)


class TestAutoLogin:
    async def test_keep_open_leaves_browser_until_released(self, store, selectors, session_factory, monkeypatch):
        async def logged_in(self, page, creds):
            return LoginResult(LoginState.LOGGED_IN)

        monkeypatch.setattr(LoginFlow, "run", logged_in)

        result = await workflow.auto_login(CREDS, store=store, selectors=selectors, session_factory=session_factory)

        assert result.logged_in
        assert session_factory.sessions[0].headless is False
        session_factory.browser.close.assert_not_awaited()
        assert await workflow.close_kept_sessions() == 1
        session_factory.browser.close.assert_awaited_once()


class TestRecommend:
    async def test_falls_back_to_flagged_samples(self, store, selectors, session_factory, no_delays):
        cache = ResultCache()
        payload = await workflow.recommend(
            "data science", store=store, selectors=selectors, session_factory=session_factory,
            headless=True, cache=cache,
        )

        assert payload["appliedCount"] == 0
        [rec] = payload["recommendations"]
        assert rec["title"] == "Data Science Intern"
        assert rec["score"] == 75
        assert rec["placeholder"] is True
        session_factory.browser.close.assert_awaited_once()

        again = await workflow.recommend(
            "data science", store=store, selectors=selectors, session_factory=session_factory,
            headless=True, cache=cache,
        )
        assert again == payload
        assert len(session_factory.sessions) == 1

    async def test_ranks_scraped_listings(self, fake_page, store, selectors, session_factory, no_delays):
        store.save(STORED)
        fake_page.cards[".individual_internship"] = [
            make_card("Python Developer", "TechSoft", "/internship/detail/py"),
            make_card("Marketing Executive", "Brandify", "/internship/detail/mk"),
        ]

        payload = await workflow.recommend(
            "python developer", store=store, selectors=selectors, session_factory=session_factory,
            headless=True, cache=ResultCache(),
        )

        [rec] = payload["recommendations"]
        assert rec["title"] == "Python Developer"
        assert rec["score"] >= 70
        assert rec["placeholder"] is False

    async def test_stale_session_with_credentials_logs_in(self, fake_page, store, selectors, session_factory,
                                                           no_delays):
        store.save([{"name": "sid", "value": "stale"}], identity=CREDS.email)
        fake_page.redirects["https://internshala.com/internships"] = "https://internshala.com/login/user"
        wire_login_form(fake_page)
        fake_page.cards[".individual_internship"] = [
            make_card("Python Developer", "TechSoft", "/internship/detail/py"),
        ]

        payload = await workflow.recommend(
            "python developer", creds=CREDS, store=store, selectors=selectors,
            session_factory=session_factory, headless=True, cache=ResultCache(),
        )

        assert ("#email", CREDS.email) in fake_page.typed
        assert store.load(CREDS.email) == [{"name": "sid", "value": "fresh"}]
        [rec] = payload["recommendations"]
        assert rec["title"] == "Python Developer"
        assert rec["placeholder"] is False
        session_factory.browser.close.assert_awaited_once()

    def test_mock_filter_respects_stipend_range(self):
        assert [s.listing.title for s in workflow.mock_recommendations("intern", 6000, 9000)] == [
            "Data Science Intern"
        ]
        assert workflow.mock_recommendations("intern", 0, 1_000_000)[0].score == 80
