"""Request validation and error-to-status mapping."""
import asyncio
from unittest.mock import MagicMock

import pytest

from internpilot import api, tracker, workflow
from internpilot import cover_letter as cover_letter_module
from internpilot import resume_optimizer
from internpilot.errors import LoginFailed, NoListingsFound
from internpilot.models import (
    ApplicationOutcome,
    ApplicationStatus,
    ApplyReport,
    ListingRecord,
    ListingType,
)

APPLY_BODY = {
    "email": "student@example.com",
    "password": "hunter2",
    "role": "Data Analyst",
    "type": "internship",
    "location": "Remote",
    "minStipend": "10000",
    "duration": "3 months",
}


class TestAutoApplyHandler:
    async def test_missing_type_rejected_without_browser(self):
        factory = MagicMock()
        body = {k: v for k, v in APPLY_BODY.items() if k != "type"}

        status, payload = await api.handle_auto_apply(body, session_factory=factory)

        assert status == 400
        assert payload == {"error": "Email, password, role, and type (internship/job) are required"}
        factory.assert_not_called()

    async def test_invalid_type(self):
        status, payload = await api.handle_auto_apply(dict(APPLY_BODY, type="gig"))
        assert status == 400
        assert "internship" in payload["error"]

    async def test_non_numeric_stipend(self):
        status, payload = await api.handle_auto_apply(dict(APPLY_BODY, minStipend="lots"))
        assert status == 400
        assert "minStipend" in payload["error"]

    @pytest.mark.parametrize("exc,expected", [
        (LoginFailed("Login failed: bad password"), 401),
        (NoListingsFound("No internships found matching the criteria"), 500),
        (asyncio.TimeoutError(), 500),
    ])
    async def test_error_mapping(self, monkeypatch, exc, expected):
        async def failing(*args, **kwargs):
            raise exc

        monkeypatch.setattr(workflow, "auto_apply", failing)
        status, payload = await api.handle_auto_apply(APPLY_BODY)
        assert status == expected
        assert payload["error"]

    async def test_success_payload(self, monkeypatch):
        captured = {}

        async def fake_apply(creds, criteria, **kwargs):
            captured["criteria"] = criteria
            outcome = ApplicationOutcome(index=0)
            outcome.finalize(ApplicationStatus.APPLIED)
            return ApplyReport(ListingType.INTERNSHIP, 3, [outcome], {"Applied": 1, "Not attempted (outside top 5)": 2})

        monkeypatch.setattr(workflow, "auto_apply", fake_apply)
        status, payload = await api.handle_auto_apply(APPLY_BODY)

        assert status == 200
        assert payload["totalMatched"] == 3
        assert payload["statuses"] == [{"index": 0, "status": "Applied"}]
        assert captured["criteria"].min_stipend == 10000
        assert captured["criteria"].type is ListingType.INTERNSHIP


class TestOtherHandlers:
    async def test_login_requires_credentials(self):
        assert await api.handle_auto_login({"email": "a@b.c"}) == (400, {"error": "Email and password are required"})

    async def test_recommend_validation(self):
        assert (await api.handle_recommend({}))[0] == 400
        status, payload = await api.handle_recommend({"skills": ["python"]})
        assert (status, payload) == (400, {"error": "Skills must be a string"})

    def test_jobs_validation(self):
        assert api.handle_jobs({"platforms": "Remotive", "skills": "py", "field": "x",
                                "minStipend": 0, "maxStipend": 10}) == (400, {"error": "Missing required parameters"})
        assert api.handle_jobs({"platforms": ["Remotive"], "skills": "py", "field": "x",
                                "minStipend": 0})[0] == 400

    def test_jobs_returns_flat_list(self, monkeypatch):
        monkeypatch.setattr(workflow, "search_platforms", lambda *a: [{"title": "x"}])
        body = {"platforms": ["Remotive"], "skills": "py", "field": "x", "minStipend": 0, "maxStipend": 10}
        assert api.handle_jobs(body) == (200, [{"title": "x"}])

    def test_skill_match_keyword_fallback(self):
        assert api.handle_skill_match(None) == (400, {"error": "Request body is missing"})
        status, payload = api.handle_skill_match(
            {"userSkills": "python, sql", "jobRequirements": "python, machine learning, sql"}
        )
        assert status == 200
        assert payload["similarityScore"] == pytest.approx(0.6667, abs=1e-3)
        assert payload["missingSkills"] == ["machine learning"]

    def test_cover_letter_template_without_key(self):
        assert api.handle_cover_letter({})[0] == 400
        status, payload = api.handle_cover_letter({"jobDescription": "Python intern at Acme"})
        assert status == 200
        assert payload["coverLetter"].startswith("Dear Hiring Team")
        assert "Python intern at Acme" in payload["coverLetter"]

    def test_applications_filtered_by_status(self):
        listing = ListingRecord(title="Data Analyst", company="Acme", detail_url="https://x/a")
        for status in (ApplicationStatus.APPLIED, ApplicationStatus.NO_BUTTON_FOUND):
            outcome = ApplicationOutcome(index=0)
            outcome.finalize(status)
            tracker.record_outcome(listing, outcome)

        status, rows = api.handle_applications("Applied")
        assert status == 200
        assert [r["status"] for r in rows] == ["Applied"]
        assert len(api.handle_applications()[1]) == 2


class TestCoverLetter:
    def test_uses_completion_when_configured(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk_test")
        monkeypatch.setattr(cover_letter_module, "_call_groq", lambda key, model, prompt: "Dear team, hire me.")
        assert cover_letter_module.generate_cover_letter("Backend intern") == "Dear team, hire me."

    def test_completion_failure_uses_template(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk_test")

        def down(key, model, prompt):
            raise ConnectionError("groq down")

        monkeypatch.setattr(cover_letter_module, "_call_groq", down)
        assert cover_letter_module.generate_cover_letter("Backend intern").startswith("Dear Hiring Team")


JOB_DESCRIPTION = "Python developer with Django and SQL experience. Python APIs."
RESUME = "Built Flask APIs in Python"


class TestResumeOptimize:
    def test_requires_both_texts(self):
        assert api.handle_resume_optimize({"jobDescription": "x"}) == (
            400, {"error": "Job description and resume text are required"}
        )

    def test_keyword_analysis_without_key(self):
        status, payload = api.handle_resume_optimize({"jobDescription": JOB_DESCRIPTION, "resumeText": RESUME})

        assert status == 200
        assert payload["atsScore"] == "33%"
        assert payload["optimizedResume"] == RESUME
        assert "django" in payload["suggestions"]
        assert all(line.startswith("- ") for line in payload["suggestions"].splitlines())

    def test_uses_completions_when_configured(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk_test")
        replies = iter(["- Mention Django", "Rewritten resume", "ATS score: 85"])
        monkeypatch.setattr(resume_optimizer, "_call_groq", lambda key, model, prompt, max_tokens=400: next(replies))

        assert resume_optimizer.optimize_resume(JOB_DESCRIPTION, RESUME).to_dict() == {
            "optimizedResume": "Rewritten resume",
            "suggestions": "- Mention Django",
            "atsScore": "85%",
        }

    def test_unparsable_score_is_estimated(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk_test")
        replies = iter(["- Mention Django", "Rewritten resume", "n/a"])
        monkeypatch.setattr(resume_optimizer, "_call_groq", lambda key, model, prompt, max_tokens=400: next(replies))

        assert resume_optimizer.optimize_resume(JOB_DESCRIPTION, RESUME).ats_score == 33
