"""Track apply outcomes in a CSV log with file locking."""
from __future__ import annotations

import csv
import fcntl
from datetime import datetime, timezone
from pathlib import Path

from internpilot.config import DATA_DIR
from internpilot.log import get_logger
from internpilot.models import ApplicationOutcome, ListingRecord

log = get_logger(__name__)

APPLICATIONS_CSV: Path = DATA_DIR / "applications.csv"
HEADERS: list[str] = ["listing_url", "title", "company", "status", "message", "applied_at"]


def _lock(f, exclusive: bool = True) -> None:
    fcntl.flock(f.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)


def _unlock(f) -> None:
    fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def ensure_tracker(path: Path | None = None) -> Path:
    path = path or APPLICATIONS_CSV
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        with open(path, "w", newline="", encoding="utf-8") as f:
            _lock(f)
            csv.writer(f).writerow(HEADERS)
            _unlock(f)
        log.info("Created application tracker → %s", path.name)
    return path


def record_outcome(
    listing: ListingRecord,
    outcome: ApplicationOutcome,
    path: Path | None = None,
) -> None:
    path = ensure_tracker(path)
    row = {
        "listing_url": listing.detail_url,
        "title": listing.title,
        "company": listing.company,
        "status": outcome.status.value,
        "message": outcome.message,
        "applied_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M"),
    }
    with open(path, "a", newline="", encoding="utf-8") as f:
        _lock(f)
        csv.DictWriter(f, fieldnames=HEADERS).writerow(row)
        _unlock(f)
    log.debug("Tracked: %s @ %s [%s]", listing.title, listing.company, outcome.status.value)


def get_applications(status: str | None = None, path: Path | None = None) -> list[dict[str, str]]:
    """All tracked rows, oldest first; ``status`` filters on the exact label."""
    path = ensure_tracker(path)
    with open(path, "r", encoding="utf-8") as f:
        _lock(f, exclusive=False)
        rows = list(csv.DictReader(f))
        _unlock(f)
    if status is not None:
        rows = [r for r in rows if r.get("status") == status]
    return rows
