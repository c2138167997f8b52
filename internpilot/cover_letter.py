"""Generate cover letters from a job description using Groq (or a template)."""
from __future__ import annotations

from internpilot.config import get_env
from internpilot.log import get_logger
from internpilot.retry import retry

log = get_logger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "llama-3.3-70b-versatile"
EXCERPT_CHARS = 1500


@retry(retries=1, base_delay=2.0, retryable=(Exception,))
def _call_groq(api_key: str, model: str, prompt: str, max_tokens: int = 400) -> str:
    from openai import OpenAI

    client = OpenAI(api_key=api_key, base_url=GROQ_BASE_URL)
    r = client.chat.completions.create(
        model=model,
        messages=[{"role": "user", "content": prompt}],
        max_tokens=max_tokens,
    )
    return (r.choices[0].message.content or "").strip()


def _candidate_name() -> str:
    return get_env("CANDIDATE_NAME") or "Candidate"


def generate_cover_letter(job_description: str) -> str:
    api_key = get_env("GROQ_API_KEY")
    if not api_key:
        log.debug("No GROQ_API_KEY — using template cover letter")
        return fallback_letter(job_description)

    model = get_env("GROQ_LLM_MODEL", DEFAULT_MODEL)
    name = _candidate_name()
    prompt = f"""Write a short, professional cover letter (under 200 words) for an internship applicant.
Candidate name: {name}
Job description (excerpt): {job_description[:EXCERPT_CHARS]}

Mention 2-3 skills the description asks for. End with a clear one-line call to action.
Use "I" and "my" for the candidate. End the letter with "Best regards," followed by {name}. Do not use placeholders like [Your Name]."""

    try:
        letter = _call_groq(api_key, model, prompt)
    except Exception as exc:
        log.warning("Cover letter generation failed (%s), using template", exc)
        return fallback_letter(job_description)
    if not letter:
        log.warning("Empty completion, using template")
        return fallback_letter(job_description)
    log.info("Cover letter generated (%d chars)", len(letter))
    return letter


def fallback_letter(job_description: str) -> str:
    first_line = next((ln.strip() for ln in job_description.splitlines() if ln.strip()), "this opportunity")
    return f"""Dear Hiring Team,

I am writing to express my interest in the role described as: {first_line[:120]}

The responsibilities outlined match what I have been learning and building, and I am eager to contribute while growing with your team.

I would welcome the opportunity to discuss how I can help.

Best regards,
{_candidate_name()}"""
