"""Tailor resume text to a job description: suggestions, rewrite and ATS score.

Uses Groq when ``GROQ_API_KEY`` is set. Without a key, or when any completion
fails, a keyword comparison between the two texts stands in for all three.
"""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass

from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

from internpilot.config import get_env
from internpilot.cover_letter import DEFAULT_MODEL, EXCERPT_CHARS, _call_groq
from internpilot.log import get_logger

log = get_logger(__name__)

RESUME_CHARS = 4000
REWRITE_MAX_TOKENS = 1200
TOP_KEYWORDS = 15

_WORD = re.compile(r"[a-z][a-z+#.\-]{2,}")

FORMATTING_TIPS = (
    "Use standard headings (Summary, Skills, Experience, Education, Projects).",
    "Keep one bullet point per achievement and start each with an action verb.",
    "Avoid tables, columns and images so ATS parsers read the text in order.",
)


@dataclass
class ResumeOptimization:
    optimized_resume: str
    suggestions: str
    ats_score: int

    def to_dict(self) -> dict:
        return {
            "optimizedResume": self.optimized_resume,
            "suggestions": self.suggestions,
            "atsScore": f"{self.ats_score}%",
        }


def keywords(text: str, limit: int = TOP_KEYWORDS) -> list[str]:
    """Most frequent non-stop-word terms, first occurrence breaking ties."""
    words = [w.strip(".-") for w in _WORD.findall((text or "").lower())]
    counts = Counter(w for w in words if len(w) > 2 and w not in ENGLISH_STOP_WORDS)
    return [w for w, _ in counts.most_common(limit)]


def keyword_gap(job_description: str, resume_text: str) -> tuple[list[str], list[str]]:
    """(present, missing) job keywords relative to the resume text."""
    resume = (resume_text or "").lower()
    present, missing = [], []
    for word in keywords(job_description):
        (present if word in resume else missing).append(word)
    return present, missing


def keyword_ats_score(job_description: str, resume_text: str) -> int:
    present, missing = keyword_gap(job_description, resume_text)
    total = len(present) + len(missing)
    return round(100 * len(present) / total) if total else 0


def parse_score(text: str) -> int | None:
    m = re.search(r"\d+", text or "")
    if not m:
        return None
    return max(0, min(100, int(m.group())))


def fallback_optimization(job_description: str, resume_text: str) -> ResumeOptimization:
    present, missing = keyword_gap(job_description, resume_text)
    lines = []
    if missing:
        lines.append(f"- Add or emphasize these keywords from the job description: {', '.join(missing)}")
    if present:
        lines.append(f"- Keep these matching keywords prominent: {', '.join(present)}")
    lines.extend(f"- {tip}" for tip in FORMATTING_TIPS)
    return ResumeOptimization(
        optimized_resume=resume_text.strip(),
        suggestions="\n".join(lines),
        ats_score=keyword_ats_score(job_description, resume_text),
    )


def _prompts(job_description: str, resume_text: str) -> dict[str, str]:
    context = (
        f"Resume:\n{resume_text[:RESUME_CHARS]}\n\n"
        f"Job description:\n{job_description[:EXCERPT_CHARS]}\n"
    )
    name = get_env("CANDIDATE_NAME") or "the candidate"
    return {
        "suggestions": f"""{context}
List specific suggestions to align this resume with the job: keywords to add or emphasize,
skills and experiences to highlight, sections to add or remove, and ATS formatting fixes.
Write one suggestion per line, each starting with "- ".""",
        "rewrite": f"""{context}
Rewrite the resume for this job. Work in the relevant keywords and skills, tailor the summary,
experience and skills sections, and use plain ATS-friendly headings and bullet points.
The resume belongs to {name}. Do not invent employers, degrees or dates. Return only the resume.""",
        "score": f"""{context}
Score the resume's ATS compatibility for this job from 0 to 100: keywords 40%,
ATS-friendly formatting 30%, alignment of skills and experience 30%.
Reply with the number only.""",
    }


def optimize_resume(job_description: str, resume_text: str) -> ResumeOptimization:
    api_key = get_env("GROQ_API_KEY")
    if not api_key:
        log.debug("No GROQ_API_KEY — using keyword resume analysis")
        return fallback_optimization(job_description, resume_text)

    model = get_env("GROQ_LLM_MODEL", DEFAULT_MODEL)
    prompts = _prompts(job_description, resume_text)
    try:
        suggestions = _call_groq(api_key, model, prompts["suggestions"])
        rewritten = _call_groq(api_key, model, prompts["rewrite"], max_tokens=REWRITE_MAX_TOKENS)
        score_text = _call_groq(api_key, model, prompts["score"], max_tokens=10)
    except Exception as exc:
        log.warning("Resume optimization failed (%s), using keyword analysis", exc)
        return fallback_optimization(job_description, resume_text)

    if not suggestions or not rewritten:
        log.warning("Empty completion, using keyword analysis")
        return fallback_optimization(job_description, resume_text)

    score = parse_score(score_text)
    if score is None:
        log.warning("No ATS score in completion %r, estimating from keywords", score_text)
        score = keyword_ats_score(job_description, resume_text)
    log.info("Resume optimized (%d chars, ATS %d%%)", len(rewritten), score)
    return ResumeOptimization(optimized_resume=rewritten, suggestions=suggestions, ats_score=score)
