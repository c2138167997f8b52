"""Persisted portal cookies, one JSON jar per user, guarded by file locks."""
from __future__ import annotations

import fcntl
import hashlib
import json
import os
from pathlib import Path
from typing import Any, Callable

from internpilot.config import SESSIONS_DIR
from internpilot.log import get_logger

log = get_logger(__name__)

Cookies = list[dict[str, Any]]

DEFAULT_IDENTITY = "default"


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


def _valid_cookies(data: Any) -> bool:
    return isinstance(data, list) and all(
        isinstance(c, dict) and "name" in c and "value" in c for c in data
    )


class SessionStore:
    """Cookie jars keyed by user identity (the login email).

    Every write takes an exclusive lock on a sidecar ``.lock`` file so that
    concurrent logins for the same user serialize instead of interleaving.
    """

    def __init__(self, directory: Path | None = None) -> None:
        self.directory = Path(directory or SESSIONS_DIR)

    def path_for(self, identity: str | None) -> Path:
        key = (identity or "").strip().lower()
        name = hashlib.sha256(key.encode()).hexdigest()[:16] if key else DEFAULT_IDENTITY
        return self.directory / f"{name}.json"

    def _lock_path(self, path: Path) -> Path:
        return path.with_suffix(".lock")

    def load(self, identity: str | None = None) -> Cookies | None:
        """Stored cookies, or None when the jar is missing or unreadable."""
        path = self.path_for(identity)
        if not path.exists():
            log.debug("No stored session at %s", path.name)
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                _lock(f, exclusive=False)
                try:
                    data = json.load(f)
                finally:
                    _unlock(f)
        except (OSError, ValueError) as exc:
            log.warning("Ignoring unreadable session %s: %s", path.name, exc)
            return None
        if not _valid_cookies(data) or not data:
            log.warning("Ignoring malformed session %s", path.name)
            return None
        log.info("Loaded %d cookie(s) from %s", len(data), path.name)
        return data

    def save(self, cookies: Cookies, identity: str | None = None) -> Path:
        """Overwrite the jar for ``identity`` with ``cookies``."""
        return self.update(lambda _old: cookies, identity)

    def update(
        self,
        mutate: Callable[[Cookies | None], Cookies],
        identity: str | None = None,
    ) -> Path:
        """Read-modify-write the jar while holding the exclusive lock."""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(identity)
        with open(self._lock_path(path), "a+", encoding="utf-8") as lf:
            _lock(lf)
            try:
                current = None
                if path.exists():
                    try:
                        current = json.loads(path.read_text(encoding="utf-8"))
                    except ValueError:
                        current = None
                new = mutate(current if _valid_cookies(current) else None)
                tmp = path.with_suffix(".tmp")
                tmp.write_text(json.dumps(new, indent=2), encoding="utf-8")
                os.replace(tmp, path)
            finally:
                _unlock(lf)
        log.info("Saved %d cookie(s) → %s", len(new), path.name)
        return path

    def clear(self, identity: str | None = None) -> bool:
        path = self.path_for(identity)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        log.info("Cleared stored session %s", path.name)
        return True

    async def validate(self, page, probe_url: str, logged_out_marker: str = "#loginModal") -> bool:
        """Navigate to an authenticated page; True when no login prompt shows."""
        try:
            await page.goto(probe_url, wait_until="networkidle", timeout=60_000)
        except Exception as exc:
            log.warning("Session probe navigation failed: %s", exc)
            return False
        if "login" in (page.url or "").lower():
            log.info("Session probe bounced to %s — session expired", page.url)
            return False
        marker = await page.query_selector(logged_out_marker)
        if marker is not None:
            log.info("Login prompt present — session expired")
            return False
        return True
