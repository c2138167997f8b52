"""Rank listings against search criteria or a free-text skills query."""
from __future__ import annotations

from typing import Sequence

from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity

from internpilot.log import get_logger
from internpilot.models import ListingRecord, ScoredListing, SearchCriteria, SkillMatch
from internpilot.similarity import SentenceSimilarity, SimilarityUnavailable

log = get_logger(__name__)

TOP_N = 5
SIMILARITY_THRESHOLD = 70.0
# Cosine similarity is scaled by this factor before capping at 100.
SIMILARITY_GAIN = 200.0
STRONG_MATCH = 0.7

ROLE_POINTS = 30
LOCATION_POINTS = 30
STIPEND_POINTS = 20
DURATION_POINTS = 20

IT_TITLE_WORDS = ("software", "developer", "programmer")


def _normalize(s: str | None) -> str:
    return (s or "").lower().strip()


# ---------------------------------------------------------------------------
# Criteria mode
# ---------------------------------------------------------------------------

def criteria_score(listing: ListingRecord, criteria: SearchCriteria) -> int:
    """Additive 30/30/20/20 score; unset criteria contribute nothing."""
    score = 0
    if criteria.role and _normalize(criteria.role) in _normalize(listing.title):
        score += ROLE_POINTS
    if criteria.location and _normalize(criteria.location) in _normalize(listing.location):
        score += LOCATION_POINTS
    if criteria.min_stipend and listing.stipend_value >= criteria.min_stipend:
        score += STIPEND_POINTS
    if criteria.duration and _normalize(criteria.duration) in _normalize(listing.duration):
        score += DURATION_POINTS
    return score


def rank_all_by_criteria(listings: Sequence[ListingRecord], criteria: SearchCriteria) -> list[ScoredListing]:
    scored = [ScoredListing(listing=l, score=float(criteria_score(l, criteria)), position=i)
              for i, l in enumerate(listings)]
    # sorted() is stable, so equal scores keep extraction order.
    return sorted(scored, key=lambda s: -s.score)


def rank_by_criteria(
    listings: Sequence[ListingRecord], criteria: SearchCriteria, limit: int = TOP_N
) -> list[ScoredListing]:
    ranked = rank_all_by_criteria(listings, criteria)[: min(limit, TOP_N)]
    log.info("Scored %d listing(s) → top %d: %s", len(listings), len(ranked),
             ", ".join(f"{s.score:.0f}" for s in ranked))
    return ranked


# ---------------------------------------------------------------------------
# Keyword overlap
# ---------------------------------------------------------------------------

def split_skills(text: str | None) -> list[str]:
    """Comma-separated, lower-cased, trimmed, non-empty tokens."""
    return [t.strip() for t in (text or "").lower().split(",") if t.strip()]


def _token_match(a: str, b: str) -> bool:
    return a in b or b in a


def keyword_overlap(user_skills: str, requirements: str) -> tuple[float, list[str]]:
    """Share of requirement tokens covered by user skills, plus the uncovered ones."""
    user = split_skills(user_skills)
    reqs = split_skills(requirements)
    if not reqs:
        return 0.0, []
    missing = [r for r in reqs if not any(_token_match(u, r) for u in user)]
    return (len(reqs) - len(missing)) / len(reqs), missing


# ---------------------------------------------------------------------------
# Text-similarity mode
# ---------------------------------------------------------------------------

def listing_text(listing: ListingRecord) -> str:
    department = "" if listing.department == "N/A" else listing.department
    return f"{listing.title} {listing.company} {department}".lower().strip()


def in_stipend_range(listing: ListingRecord, min_stipend: float, max_stipend: float) -> bool:
    return min_stipend <= listing.stipend_value <= max_stipend


def is_it_related(listing: ListingRecord) -> bool:
    title = _normalize(listing.title)
    department = _normalize(listing.department)
    return (
        any(w in title for w in IT_TITLE_WORDS)
        or "tech" in _normalize(listing.company)
        or "it" in department.replace(",", " ").split()
        or "technology" in department
    )


def _tfidf_scores(query: str, docs: list[str]) -> list[float]:
    vec = TfidfVectorizer(lowercase=True, ngram_range=(1, 2))
    matrix = vec.fit_transform([query] + docs)
    sims = cosine_similarity(matrix[0:1], matrix[1:]).flatten()
    return [float(s) for s in sims]


def _overlap_scores(query: str, docs: list[str]) -> list[float]:
    return [keyword_overlap(query, ", ".join(d.split()))[0] for d in docs]


def similarity_scores(skills: str, listings: Sequence[ListingRecord]) -> list[float]:
    """Per-listing relevance in [0, 100]."""
    if not listings:
        return []
    query = _normalize(skills)
    docs = [listing_text(l) for l in listings]
    try:
        raw = _tfidf_scores(query, docs)
    except ValueError as exc:
        # Empty vocabulary, e.g. a query made only of stop words.
        log.warning("TF-IDF unavailable (%s); using keyword overlap", exc)
        return [round(r * 100.0, 2) for r in _overlap_scores(query, docs)]
    return [round(min(100.0, s * SIMILARITY_GAIN), 2) for s in raw]


def rank_by_similarity(
    skills: str,
    listings: Sequence[ListingRecord],
    threshold: float = SIMILARITY_THRESHOLD,
    limit: int = TOP_N,
) -> list[ScoredListing]:
    """Keep listings scoring at least ``threshold``; best ``limit`` first."""
    scores = similarity_scores(skills, listings)
    kept = [
        ScoredListing(listing=l, score=s, position=i)
        for i, (l, s) in enumerate(zip(listings, scores))
        if s >= threshold
    ]
    ranked = sorted(kept, key=lambda s: -s.score)[: min(limit, TOP_N)]
    log.info("Similarity: %d candidate(s) → %d at or above %.0f", len(listings), len(ranked), threshold)
    return ranked


# ---------------------------------------------------------------------------
# Skill-match analysis
# ---------------------------------------------------------------------------

def analyze_skill_match(
    user_skills: str,
    job_requirements: str,
    backend: SentenceSimilarity | None = None,
) -> SkillMatch:
    backend_name = "sentence-similarity"
    try:
        similarity = (backend or SentenceSimilarity()).scores(user_skills, [job_requirements])[0]
    except SimilarityUnavailable as exc:
        log.info("Similarity backend unavailable (%s); using keyword overlap", exc)
        similarity, _ = keyword_overlap(user_skills, job_requirements)
        backend_name = "keyword-overlap"

    _, missing = keyword_overlap(user_skills, job_requirements)

    if missing:
        suggestions = (
            "Consider adding or emphasizing the following skills in your resume to better "
            f"match the job: {', '.join(missing)}. "
        )
        if similarity < STRONG_MATCH:
            suggestions += ("Focus on tailoring your experience to highlight these skills, "
                            "or consider upskilling in these areas.")
        else:
            suggestions += "Adding these skills could make your application even stronger."
    else:
        suggestions = ("Your skills are well-aligned with the job requirements. Ensure your resume "
                       "highlights these skills with specific achievements or projects.")

    verdict = ("Your skills are a strong match for this job!" if similarity > STRONG_MATCH
               else "You may need to highlight more relevant skills for this job.")
    analysis = (f"Similarity score between your skills and the job requirements: "
                f"{similarity * 100:.2f}%. {verdict}")

    return SkillMatch(
        similarity=round(similarity, 4),
        missing_skills=missing,
        analysis=analysis,
        suggestions=suggestions,
        backend=backend_name,
    )
