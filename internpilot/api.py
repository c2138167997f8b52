"""Request handlers: validate a JSON-style body, run a workflow, map errors.

Every handler returns ``(http_status, payload)``. Validation failures return
400 before any browser is launched.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from internpilot import tracker, workflow
from internpilot.config import APPLY_TIMEOUT
from internpilot.errors import AutopilotError, LoginFailed, ValidationError
from internpilot.log import get_logger
from internpilot.models import Credentials, ListingType, SearchCriteria

log = get_logger(__name__)

Response = tuple[int, Any]


def _error(status: int, message: str) -> Response:
    return status, {"error": message}


def _optional_int(body: dict, key: str) -> int | None:
    raw = body.get(key)
    if raw is None or raw == "":
        return None
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")


def parse_apply_request(body: dict | None) -> tuple[Credentials, SearchCriteria, Path | None]:
    body = body or {}
    email, password = body.get("email"), body.get("password")
    role, type_ = body.get("role"), body.get("type")
    if not (email and password and role and type_):
        raise ValidationError("Email, password, role, and type (internship/job) are required")
    try:
        listing_type = ListingType.parse(type_)
    except ValueError as exc:
        raise ValidationError(str(exc))
    criteria = SearchCriteria(
        role=str(role).strip(),
        type=listing_type,
        location=body.get("location") or None,
        min_stipend=_optional_int(body, "minStipend"),
        max_stipend=_optional_int(body, "maxStipend"),
        duration=body.get("duration") or None,
    )
    resume = body.get("resumeFile")
    return Credentials(email=email, password=password), criteria, Path(resume) if resume else None


async def handle_auto_apply(body: dict | None, **workflow_kwargs: Any) -> Response:
    log.info("Received auto-apply request for role=%r type=%r",
             (body or {}).get("role"), (body or {}).get("type"))
    try:
        creds, criteria, resume = parse_apply_request(body)
    except ValidationError as exc:
        log.info("Validation failed: %s", exc)
        return _error(400, str(exc))

    timeout = workflow_kwargs.pop("timeout", APPLY_TIMEOUT)
    try:
        report = await workflow.auto_apply(creds, criteria, resume_path=resume, timeout=timeout, **workflow_kwargs)
    except LoginFailed as exc:
        log.error("Auto-apply %s login error: %s", criteria.type.value, exc)
        return _error(401, str(exc))
    except asyncio.TimeoutError:
        log.error("Auto-apply %s timed out after %.0fs", criteria.type.value, timeout)
        return _error(500, f"Auto-apply timed out after {timeout:.0f} seconds")
    except AutopilotError as exc:
        log.error("Auto-apply %s error: %s", criteria.type.value, exc)
        return _error(500, str(exc))
    except Exception as exc:
        log.exception("Auto-apply %s failed", criteria.type.value)
        return _error(500, str(exc))
    return 200, report.to_dict()


async def handle_auto_login(body: dict | None, **workflow_kwargs: Any) -> Response:
    body = body or {}
    email, password = body.get("email"), body.get("password")
    if not (email and password):
        return _error(400, "Email and password are required")
    try:
        await workflow.auto_login(Credentials(email=email, password=password), **workflow_kwargs)
    except LoginFailed as exc:
        log.error("Auto-login error: %s", exc)
        return _error(401, str(exc))
    except Exception as exc:
        log.error("Auto-login error: %s", exc)
        return _error(500, str(exc))
    return 200, {"message": "Login successful, browser is open for you to see"}


async def handle_recommend(body: dict | None, **workflow_kwargs: Any) -> Response:
    body = body or {}
    skills = body.get("skills")
    if not skills:
        return _error(400, "Skills are required")
    if not isinstance(skills, str):
        return _error(400, "Skills must be a string")
    creds = None
    if body.get("email") and body.get("password"):
        creds = Credentials(email=body["email"], password=body["password"])
    payload = await workflow.recommend(
        skills, body.get("minStipend"), body.get("maxStipend"), creds, **workflow_kwargs
    )
    return 200, payload


def handle_jobs(body: dict | None) -> Response:
    body = body or {}
    platforms = body.get("platforms")
    required = ("skills", "field", "minStipend", "maxStipend")
    if not isinstance(platforms, list) or any(body.get(k) in (None, "") for k in required):
        return _error(400, "Missing required parameters")
    try:
        jobs = workflow.search_platforms(
            platforms, body["skills"], body["field"], body["minStipend"], body["maxStipend"]
        )
    except Exception as exc:
        log.error("Error fetching jobs: %s", exc)
        return _error(500, "Failed to fetch jobs")
    return 200, jobs


def handle_skill_match(body: dict | None) -> Response:
    if body is None:
        return _error(400, "Request body is missing")
    user_skills, requirements = body.get("userSkills"), body.get("jobRequirements")
    if not user_skills or not requirements:
        return _error(400, "User skills and job requirements are required")
    return 200, workflow.skill_match(user_skills, requirements)


def handle_cover_letter(body: dict | None) -> Response:
    description = (body or {}).get("jobDescription")
    if not description:
        return _error(400, "Job description is required")
    try:
        return 200, workflow.cover_letter(description)
    except Exception as exc:
        log.error("Cover letter error: %s", exc)
        return _error(500, str(exc))


def handle_resume_optimize(body: dict | None) -> Response:
    body = body or {}
    description, resume_text = body.get("jobDescription"), body.get("resumeText")
    if not description or not resume_text:
        return _error(400, "Job description and resume text are required")
    try:
        return 200, workflow.resume_optimize(description, resume_text)
    except Exception as exc:
        log.error("Resume optimization error: %s", exc)
        return _error(500, str(exc))


def handle_applications(status: str | None = None) -> Response:
    return 200, tracker.get_applications(status)
