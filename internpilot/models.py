"""Data models for listings, search criteria and application outcomes."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

SENTINEL = "N/A"

# {"Requirements": [{"type": "list", "items": [...]}, {"type": "text", "text": "..."}]}
Description = dict[str, list[dict[str, Any]]]


class ListingType(str, Enum):
    INTERNSHIP = "internship"
    JOB = "job"

    @classmethod
    def parse(cls, value: str) -> "ListingType":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValueError(f"type must be 'internship' or 'job', got {value!r}") from None


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r}, password='***')"


@dataclass(frozen=True)
class SearchCriteria:
    role: str
    type: ListingType = ListingType.INTERNSHIP
    location: str | None = None
    min_stipend: int | None = None
    max_stipend: int | None = None
    duration: str | None = None


@dataclass
class ListingRecord:
    title: str
    company: str
    detail_url: str
    location: str = ""
    stipend: str = ""
    stipend_value: float = 0.0
    duration: str = ""
    department: str = ""
    source: str = "internshala"
    date_posted: str | None = None
    description: Description = field(default_factory=dict)
    is_placeholder: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "salary": self.stipend,
            "salaryValue": self.stipend_value,
            "duration": self.duration,
            "department": self.department,
            "url": self.detail_url,
            "source": self.source,
            "datePosted": self.date_posted,
            "description": self.description,
            "placeholder": self.is_placeholder,
        }


@dataclass
class ScoredListing:
    listing: ListingRecord
    score: float
    position: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = self.listing.to_dict()
        data["score"] = self.score
        return data


class ApplicationStatus(str, Enum):
    APPLIED = "Applied"
    IN_PROGRESS = "In Progress"
    FORM_NOT_SUBMITTED = "Form detected, but not submitted"
    REDIRECTED_NO_FORM = "Redirected, but no form"
    SINGLE_CLICK_APPLIED = "Single-click applied"
    BUTTON_NOT_VISIBLE = "Button not visible"
    NO_BUTTON_FOUND = "No button found"
    ERROR = "Error"
    NOT_ATTEMPTED = "Not attempted (outside top 5)"


@dataclass
class ApplicationOutcome:
    index: int
    status: ApplicationStatus = ApplicationStatus.IN_PROGRESS
    message: str = ""
    finalized: bool = False

    def finalize(self, status: ApplicationStatus, message: str = "") -> None:
        if self.finalized:
            raise RuntimeError(f"outcome for listing {self.index} already finalized as {self.status.value}")
        self.status = status
        self.message = message
        self.finalized = True

    @property
    def label(self) -> str:
        if self.status is ApplicationStatus.ERROR:
            return f"Error: {self.message}"
        return self.status.value

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "status": self.label}


@dataclass
class ApplyReport:
    type: ListingType
    total_matched: int
    outcomes: list[ApplicationOutcome]
    summary: dict[str, int]

    @property
    def message(self) -> str:
        return f"Auto-apply for {self.type.value}s completed successfully"

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "totalMatched": self.total_matched,
            "statuses": [o.to_dict() for o in self.outcomes],
            "summary": dict(self.summary),
        }


@dataclass
class SkillMatch:
    similarity: float
    missing_skills: list[str]
    analysis: str
    suggestions: str
    backend: str = "keyword-overlap"

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["similarityScore"] = data.pop("similarity")
        data["missingSkills"] = data.pop("missing_skills")
        return data
