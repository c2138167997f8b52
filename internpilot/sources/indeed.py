"""Indeed listings via the ``indeed12`` RapidAPI wrapper (India locality)."""
from __future__ import annotations

from internpilot.errors import TransientProviderError
from internpilot.log import get_logger
from internpilot.models import ListingRecord
from internpilot.parsing import parse_description, parse_salary_number
from internpilot.retry import retry
from internpilot.sources.base import ListingSource, PlatformQuery

log = get_logger(__name__)

API_HOST = "indeed12.p.rapidapi.com"
API_URL = f"https://{API_HOST}/jobs/search"


class IndeedSource(ListingSource):
    name = "Indeed"

    def available(self) -> bool:
        return bool(self.env("RAPIDAPI_KEY"))

    @retry(retries=2, base_delay=1.0, retryable=(TransientProviderError,))
    def fetch(self, query: PlatformQuery) -> list[ListingRecord]:
        data = self._get_json(
            API_URL,
            params={"query": f"{query.skills} {query.field}", "locality": "in", "start": 1},
            headers={"x-rapidapi-host": API_HOST, "x-rapidapi-key": self.env("RAPIDAPI_KEY")},
        )
        records: list[ListingRecord] = []
        for hit in data.get("hits", []):
            salary_info = hit.get("salary") or {}
            if salary_info:
                salary = (f"{salary_info.get('min') or query.min_stipend} - "
                          f"{salary_info.get('max') or query.max_stipend} INR")
            else:
                salary = "Not disclosed"
            url = hit.get("url") or f"https://in.indeed.com/viewjob?jk={hit.get('jobkey', '')}"
            records.append(
                ListingRecord(
                    title=hit.get("title", ""),
                    company=hit.get("company_name", ""),
                    location=hit.get("location") or "Not specified",
                    detail_url=url,
                    stipend=salary,
                    stipend_value=parse_salary_number(salary),
                    description=parse_description(hit.get("description")),
                    date_posted=hit.get("date_posted"),
                    source=self.name,
                )
            )
        return records
