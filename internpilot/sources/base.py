from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

import requests

from internpilot.config import PROVIDER_HTTP_TIMEOUT, get_env
from internpilot.errors import TransientProviderError
from internpilot.log import get_logger
from internpilot.models import ListingRecord

log = get_logger(__name__)

EnvGetter = Callable[..., str]


@dataclass(frozen=True)
class PlatformQuery:
    skills: str
    field: str
    min_stipend: float = 0
    max_stipend: float = 1_000_000


class ListingSource(ABC):
    """One listing provider. ``search`` never raises; failures yield ``[]``."""

    name: str = "unknown"

    def __init__(self, env_getter: EnvGetter = get_env, timeout: float = PROVIDER_HTTP_TIMEOUT) -> None:
        self.env = env_getter
        self.timeout = timeout

    def available(self) -> bool:
        return True

    @abstractmethod
    def fetch(self, query: PlatformQuery) -> list[ListingRecord]:
        """Provider call plus normalization; may raise."""

    def search(self, query: PlatformQuery) -> list[ListingRecord]:
        if not self.available():
            log.warning("%s not configured — skipping", self.name)
            return []
        try:
            records = self.fetch(query)
        except Exception as exc:
            log.error("Error fetching from %s: %s", self.name, exc)
            return []
        kept = [r for r in records if query.min_stipend <= r.stipend_value <= query.max_stipend]
        log.info("%s returned %d listing(s), %d within stipend range", self.name, len(records), len(kept))
        return kept

    def _get_json(self, url: str, *, params: dict | None = None, headers: dict | None = None) -> Any:
        r = requests.get(url, params=params, headers=headers, timeout=self.timeout)
        if r.status_code == 429:
            raise TransientProviderError(self.name, 429, "Too Many Requests - Rate limit exceeded")
        if r.status_code >= 500:
            raise TransientProviderError(self.name, r.status_code, r.reason or "Server Error")
        r.raise_for_status()
        return r.json()
