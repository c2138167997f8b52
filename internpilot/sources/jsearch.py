"""Google-for-Jobs listings through the JSearch endpoint on RapidAPI."""
from __future__ import annotations

from internpilot.errors import TransientProviderError
from internpilot.log import get_logger
from internpilot.models import ListingRecord
from internpilot.parsing import parse_description, parse_salary_number
from internpilot.retry import retry
from internpilot.sources.base import ListingSource, PlatformQuery

log = get_logger(__name__)

API_HOST = "jsearch.p.rapidapi.com"


class JSearchSource(ListingSource):
    name = "JSearch"

    def available(self) -> bool:
        return bool(self.env("RAPIDAPI_KEY"))

    @retry(retries=2, base_delay=1.0, retryable=(TransientProviderError,))
    def fetch(self, query: PlatformQuery) -> list[ListingRecord]:
        data = self._get_json(
            f"https://{API_HOST}/search",
            params={
                "query": f"{query.skills} {query.field} jobs",
                "page": "1",
                "num_pages": "1",
                "country": "in",
                "date_posted": "all",
            },
            headers={"x-rapidapi-host": API_HOST, "x-rapidapi-key": self.env("RAPIDAPI_KEY")},
        )
        records: list[ListingRecord] = []
        for hit in data.get("data", []):
            city = hit.get("job_city")
            location = (", ".join(p for p in (city, hit.get("job_state"), hit.get("job_country")) if p)
                        if city else "Not specified")
            low = hit.get("job_min_salary") or hit.get("job_salary_min")
            high = hit.get("job_max_salary") or hit.get("job_salary_max")
            if low or high or hit.get("job_salary"):
                salary = (f"{low or query.min_stipend} - {high or query.max_stipend} "
                          f"{hit.get('job_salary_currency') or 'INR'}")
            else:
                salary = "Not disclosed"
            records.append(
                ListingRecord(
                    title=hit.get("job_title", ""),
                    company=hit.get("employer_name", ""),
                    location=location,
                    detail_url=hit.get("job_apply_link") or "Not available",
                    stipend=salary,
                    stipend_value=parse_salary_number(salary),
                    description=parse_description(hit.get("job_description")),
                    date_posted=hit.get("job_posted_at_datetime_utc"),
                    source=self.name,
                )
            )
        return records
