"""Versioned selector cascades loaded from ``config/selectors.yaml``.

Keeping the portal's CSS selectors in data means markup drift is fixed by
editing YAML; the extraction and apply control flow never changes for it.
"""
from __future__ import annotations

import functools
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from internpilot.config import SELECTORS_PATH, load_yaml
from internpilot.log import get_logger
from internpilot.models import ListingType

log = get_logger(__name__)

CARD_FIELDS = ("title", "company", "location", "stipend", "duration", "department", "posted")


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def any_of(selectors: list[str]) -> str:
    """Collapse a cascade into one CSS selector group (for existence checks)."""
    return ", ".join(selectors)


@dataclass
class LoginSelectors:
    email: str
    password: str
    submit: str
    form: str
    logged_out_marker: str
    errors: list[str]
    captcha_checkbox: str
    captcha_invisible: str
    captcha_challenge: list[str]


@dataclass
class SelectorConfig:
    version: str
    login: LoginSelectors
    overlay_containers: list[str]
    overlay_close: list[str]
    keyword_box: list[str]
    location_input: str
    remote_toggle: list[str]
    stipend_input: str
    duration_select: str
    search_submit: dict[str, str]
    next_page: list[str]
    card_containers: dict[str, list[str]]
    card_fields: dict[str, list[str]]
    link: list[str]
    apply_button: list[str]
    strip_badges: list[str]
    apply_url_pattern: str
    apply_form: list[str]
    file_input: str
    apply_submit: list[str]
    source: Path | None = field(default=None, compare=False)

    def cards_for(self, listing_type: ListingType) -> list[str]:
        return self.card_containers.get(listing_type.value) or self.card_containers.get("internship", [])

    def cascade(self, name: str) -> list[str]:
        return self.card_fields.get(name, [])

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: Path | None = None) -> "SelectorConfig":
        login = data.get("login", {})
        overlays = data.get("overlays", {})
        search = data.get("search", {})
        cards = data.get("cards", {})
        apply = data.get("apply", {})
        fields = {name: _as_list(cards.get("fields", {}).get(name)) for name in CARD_FIELDS}
        missing = [name for name in ("title", "company", "stipend") if not fields[name]]
        if missing or not _as_list(cards.get("link")):
            raise ValueError(f"selector config lacks cascades for: {missing or ['link']}")

        return cls(
            version=str(data.get("version", "unversioned")),
            login=LoginSelectors(
                email=login.get("email", "#email"),
                password=login.get("password", "#password"),
                submit=login.get("submit", 'button[type="submit"]'),
                form=login.get("form", "form"),
                logged_out_marker=login.get("logged_out_marker", "#loginModal"),
                errors=_as_list(login.get("errors")),
                captcha_checkbox=login.get("captcha_checkbox", "#recaptcha-anchor"),
                captcha_invisible=login.get("captcha_invisible", ""),
                captcha_challenge=_as_list(login.get("captcha_challenge")),
            ),
            overlay_containers=_as_list(overlays.get("containers")),
            overlay_close=_as_list(overlays.get("close")),
            keyword_box=_as_list(search.get("keyword_box")),
            location_input=search.get("location", "#location"),
            remote_toggle=_as_list(search.get("remote_toggle")),
            stipend_input=search.get("stipend", "#stipend"),
            duration_select=search.get("duration", "#duration"),
            search_submit=dict(search.get("submit") or {}),
            next_page=_as_list(search.get("next_page")),
            card_containers={k: _as_list(v) for k, v in (cards.get("container") or {}).items()},
            card_fields=fields,
            link=_as_list(cards.get("link")),
            apply_button=_as_list(cards.get("apply_button")),
            strip_badges=_as_list(cards.get("strip_badges")),
            apply_url_pattern=apply.get("url_pattern", "/apply/"),
            apply_form=_as_list(apply.get("form")),
            file_input=apply.get("file_input", 'input[type="file"]'),
            apply_submit=_as_list(apply.get("submit")),
            source=source,
        )


@functools.lru_cache(maxsize=4)
def load_selectors(path: Path | None = None) -> SelectorConfig:
    target = path or SELECTORS_PATH
    cfg = SelectorConfig.from_dict(load_yaml(target), source=target)
    log.debug("Loaded selector config v%s from %s", cfg.version, target.name)
    return cfg
