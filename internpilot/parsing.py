"""Text helpers: stipend parsing and HTML job descriptions."""
from __future__ import annotations

import re

from bs4 import BeautifulSoup

from internpilot.models import Description

_CURRENCY = r"(?:₹|rs\.?|inr|\$|usd)"
_STIPEND_RE = re.compile(
    rf"{_CURRENCY}\s*([\d,]+(?:\.\d+)?)(?:\s*(?:-|–|to)\s*{_CURRENCY}?\s*([\d,]+(?:\.\d+)?))?",
    re.IGNORECASE,
)
_NUMBER_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")
_HEADING_TAGS = {"h1", "h2", "h3", "h4"}

NO_DESCRIPTION = "No description available"


def _to_number(raw: str) -> float:
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return 0.0


def parse_stipend(text: str | None) -> float:
    """Comparable stipend value from portal text such as ``₹ 10,000-15,000 /month``.

    Ranges collapse to their midpoint; text without a currency-prefixed amount
    (``Unpaid``, ``N/A``) yields 0.
    """
    if not text:
        return 0.0
    m = _STIPEND_RE.search(text)
    if not m:
        return 0.0
    low = _to_number(m.group(1))
    high = _to_number(m.group(2)) if m.group(2) else low
    return (low + high) / 2


def parse_salary_number(text: str | None) -> float:
    """Numeric salary reported by a provider; first number wins, 0 if none."""
    if not text:
        return 0.0
    if _STIPEND_RE.search(text):
        return parse_stipend(text)
    m = _NUMBER_RE.search(text)
    return _to_number(m.group(0)) if m else 0.0


def _is_heading(tag) -> bool:
    if tag.name in _HEADING_TAGS:
        return True
    return tag.name == "div" and "h3" in (tag.get("class") or [])


def parse_description(html: str | None) -> Description:
    """Split an HTML job description into ``{heading: [block, ...]}``.

    Headings are ``h1``-``h4`` or ``div.h3``; paragraphs become text blocks
    and ``ul``/``ol`` become list blocks. Content before the first heading
    goes under "Description".
    """
    if not html or not isinstance(html, str):
        return {"Description": [{"type": "text", "text": NO_DESCRIPTION}]}

    soup = BeautifulSoup(html, "html.parser")
    root = soup.body or soup
    sections: Description = {}
    current = None

    for el in root.find_all(recursive=False):
        if _is_heading(el):
            current = el.get_text(" ", strip=True) or "Description"
            sections.setdefault(current, [])
            continue
        if el.name in ("ul", "ol"):
            items = [li.get_text(" ", strip=True) for li in el.find_all("li")]
            items = [i for i in items if i]
            if items:
                sections.setdefault(current or "Description", []).append(
                    {"type": "list", "items": items}
                )
        elif el.name in ("p", "div"):
            text = el.get_text(" ", strip=True)
            if text:
                sections.setdefault(current or "Description", []).append(
                    {"type": "text", "text": text}
                )

    if not any(sections.values()):
        text = soup.get_text(" ", strip=True) or NO_DESCRIPTION
        return {"Description": [{"type": "text", "text": text}]}
    return sections
