"""Remote listings from the public Remotive feed, searched by skill and category.

Docs: https://remotive.com/api/remote-jobs
"""
from __future__ import annotations

from internpilot.errors import TransientProviderError
from internpilot.log import get_logger
from internpilot.models import ListingRecord
from internpilot.parsing import parse_description, parse_salary_number
from internpilot.retry import retry
from internpilot.sources.base import ListingSource, PlatformQuery

log = get_logger(__name__)

API_URL = "https://remotive.com/api/remote-jobs"


class RemotiveSource(ListingSource):
    name = "Remotive"

    @retry(retries=2, base_delay=1.0, retryable=(TransientProviderError,))
    def fetch(self, query: PlatformQuery) -> list[ListingRecord]:
        params = {"search": query.skills}
        if query.field:
            params["category"] = query.field
        data = self._get_json(API_URL, params=params)

        records: list[ListingRecord] = []
        for hit in data.get("jobs", []):
            salary = hit.get("salary") or "Not disclosed"
            records.append(
                ListingRecord(
                    title=hit.get("title", ""),
                    company=hit.get("company_name", ""),
                    location=hit.get("candidate_required_location") or "Remote",
                    detail_url=hit.get("url", ""),
                    stipend=salary,
                    stipend_value=parse_salary_number(salary),
                    department=hit.get("category", ""),
                    description=parse_description(hit.get("description")),
                    date_posted=hit.get("publication_date"),
                    source=self.name,
                )
            )
        return records
