"""Placeholder Internshala source.

Internshala has no public listings API, so this source emits sample records
flagged ``is_placeholder`` so callers never mistake them for real postings.
"""
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from internpilot.log import get_logger
from internpilot.models import Description, ListingRecord
from internpilot.sources.base import ListingSource, PlatformQuery

log = get_logger(__name__)

COMPANIES = ["TechTrend Innovations", "GrowEasy Analytics", "CodeZap Solutions", "DigitalWave Ltd"]
LOCATIONS = ["Remote", "Bengaluru, KA", "Mumbai, MH", "Delhi, DL"]
PLACEHOLDER_COUNT = 3


def _description(company: str, field: str, skills: str) -> Description:
    return {
        "About the Company": [
            {"type": "text", "text": f"{company} is a growing startup in the {field} space."},
        ],
        "About the Internship": [
            {"type": "list", "items": [
                f"Work on live {field} projects",
                "Collaborate with the core team",
                "Weekly mentorship sessions",
            ]},
        ],
        "Requirements": [
            {"type": "list", "items": [f"Working knowledge of {skills}", "Good communication skills"]},
        ],
    }


class InternshalaPlaceholderSource(ListingSource):
    name = "Internshala"

    def __init__(self, *args, seed: int | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._rng = random.Random(seed)

    def fetch(self, query: PlatformQuery) -> list[ListingRecord]:
        log.info("Internshala has no listings API — generating %d placeholder record(s)", PLACEHOLDER_COUNT)
        now = datetime.now(timezone.utc)
        low, high = int(query.min_stipend), int(query.max_stipend)
        salary = f"{low} - {high} INR"
        records = []
        for i in range(PLACEHOLDER_COUNT):
            company = self._rng.choice(COMPANIES)
            posted = now - timedelta(days=self._rng.randint(0, 6))
            records.append(
                ListingRecord(
                    title=f"{query.skills} Internship {i + 1}",
                    company=company,
                    location=self._rng.choice(LOCATIONS),
                    detail_url=f"https://internshala.com/internship/detail/sample-internship-{i + 1}",
                    stipend=salary,
                    stipend_value=float(low),
                    department=query.field,
                    description=_description(company, query.field, query.skills),
                    date_posted=posted.isoformat(),
                    source=self.name,
                    is_placeholder=True,
                )
            )
        return records
