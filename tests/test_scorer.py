"""Criteria scoring, similarity gating and keyword-overlap analysis."""
import itertools

import pytest

from internpilot import scorer
from internpilot.models import ListingRecord, ListingType, SearchCriteria
from internpilot.scorer import (
    SIMILARITY_THRESHOLD,
    TOP_N,
    analyze_skill_match,
    criteria_score,
    is_it_related,
    keyword_overlap,
    rank_by_criteria,
    rank_by_similarity,
    similarity_scores,
)
from internpilot.similarity import SimilarityUnavailable


def listing(title="Intern", location="", stipend_value=0.0, duration="", company="Acme", department="", url=None):
    return ListingRecord(
        title=title,
        company=company,
        detail_url=url or f"https://internshala.com/internship/detail/{title.lower().replace(' ', '-')}",
        location=location,
        stipend_value=stipend_value,
        duration=duration,
        department=department,
    )


SCENARIO_A = SearchCriteria(
    role="Data Analyst",
    type=ListingType.INTERNSHIP,
    location="Remote",
    min_stipend=10000,
    duration="3 months",
)


class TestCriteriaScore:
    def test_full_match_scores_100(self):
        item = listing("Data Analyst Intern", "Remote", 12000, "3 months")
        assert criteria_score(item, SCENARIO_A) == 100

    def test_matching_is_case_insensitive(self):
        item = listing("DATA ANALYST intern", "remote, India", 12000, "3 Months")
        assert criteria_score(item, SCENARIO_A) == 100

    def test_scores_are_sums_of_components(self):
        allowed = {0, 20, 30, 40, 50, 60, 70, 80, 100}
        titles = ["Data Analyst Intern", "Marketing Intern"]
        locations = ["Remote", "Delhi"]
        stipends = [12000, 5000]
        durations = ["3 months", "6 months"]
        for t, l, s, d in itertools.product(titles, locations, stipends, durations):
            item = listing(t, l, s, d)
            score = criteria_score(item, SCENARIO_A)
            assert score in allowed
            assert criteria_score(item, SCENARIO_A) == score

    def test_unset_criteria_contribute_nothing(self):
        criteria = SearchCriteria(role="Data Analyst")
        assert criteria_score(listing("Data Analyst Intern", "Remote", 12000, "3 months"), criteria) == 30


class TestRankByCriteria:
    def test_caps_at_top_five(self):
        items = [listing(f"Data Analyst {i}") for i in range(12)]
        ranked = rank_by_criteria(items, SCENARIO_A, limit=50)
        assert len(ranked) == TOP_N

    def test_ties_keep_extraction_order(self):
        items = [listing(f"Intern {i}") for i in range(4)] + [listing("Data Analyst Intern")]
        ranked = rank_by_criteria(items, SCENARIO_A)
        assert ranked[0].listing.title == "Data Analyst Intern"
        assert [s.position for s in ranked[1:]] == [0, 1, 2, 3]


class TestSimilarity:
    def test_scores_within_bounds(self):
        items = [listing("Python Developer", company="TechSoft"), listing("Sales Executive")]
        scores = similarity_scores("python developer", items)
        assert all(0 <= s <= 100 for s in scores)
        assert scores[0] > scores[1]

    def test_threshold_gate(self):
        items = [
            listing("Python Developer Intern", company="Python Tech"),
            listing("Content Writing Intern", company="Wordsmith"),
            listing("Graphic Design Intern", company="Pixel"),
        ]
        ranked = rank_by_similarity("python developer", items)
        assert all(s.score >= SIMILARITY_THRESHOLD for s in ranked)
        kept = {s.listing.title for s in ranked}
        scores = dict(zip((l.title for l in items), similarity_scores("python developer", items)))
        for title, score in scores.items():
            if title not in kept:
                assert score < SIMILARITY_THRESHOLD

    def test_never_more_than_five(self):
        items = [listing(f"Python Developer {i}", url=f"https://x/{i}") for i in range(9)]
        assert len(rank_by_similarity("python developer", items, threshold=0)) <= TOP_N

    def test_empty_input(self):
        assert rank_by_similarity("python", []) == []

    def test_overlap_fallback_is_a_plain_percentage(self, monkeypatch):
        def no_vocabulary(query, docs):
            raise ValueError("empty vocabulary; perhaps the documents only contain stop words")

        monkeypatch.setattr(scorer, "_tfidf_scores", no_vocabulary)
        items = [listing("Python Developer", company="Acme")]

        assert similarity_scores("python, sql", items) == [pytest.approx(33.33)]
        assert rank_by_similarity("python, sql", items) == []


class TestKeywordOverlap:
    def test_partial_overlap(self):
        ratio, missing = keyword_overlap("python, sql", "python, machine learning, sql")
        assert ratio == pytest.approx(2 / 3, abs=1e-3)
        assert missing == ["machine learning"]

    def test_no_requirements(self):
        assert keyword_overlap("python", "") == (0.0, [])


class TestAnalyzeSkillMatch:
    def test_falls_back_to_overlap_without_backend(self):
        class Down:
            def scores(self, source, sentences):
                raise SimilarityUnavailable("down")

        result = analyze_skill_match("python, sql", "python, machine learning, sql", backend=Down())

        assert result.backend == "keyword-overlap"
        assert result.similarity == pytest.approx(0.6667, abs=1e-3)
        assert result.missing_skills == ["machine learning"]
        assert "machine learning" in result.suggestions

    def test_uses_backend_score(self):
        class Backend:
            def scores(self, source, sentences):
                return [0.91]

        result = analyze_skill_match("python", "python", backend=Backend())
        assert result.similarity == pytest.approx(0.91)
        assert result.missing_skills == []
        assert "strong match" in result.analysis
        assert result.to_dict()["similarityScore"] == pytest.approx(0.91)


class TestIsItRelated:
    @pytest.mark.parametrize("kwargs,expected", [
        ({"title": "Software Engineer Intern"}, True),
        ({"title": "Marketing Intern", "company": "FinTech Labs"}, True),
        ({"title": "Marketing Intern", "department": "IT"}, True),
        ({"title": "Marketing Intern", "department": "Editorial"}, False),
    ])
    def test_classification(self, kwargs, expected):
        assert is_it_related(listing(**kwargs)) is expected
