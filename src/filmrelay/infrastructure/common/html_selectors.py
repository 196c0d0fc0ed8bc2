"""CSS-selector-based HTML extraction with fallback chains.

Helpers shared by the HTML-scraping sources.  Every extraction function
accepts a primary selector and optional *fallback_selectors*; the first
selector that yields a match wins, so a renamed class on one page variant
does not break the whole source.
"""

from __future__ import annotations

import re
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

_WS_RE = re.compile(r"\s+")
_CSS_URL_RE = re.compile(r"url\(\s*['\"]?(.*?)['\"]?\s*\)")


def parse_html(html: str) -> BeautifulSoup:
    """Parse an HTML string into a BeautifulSoup tree (lxml parser)."""
    return BeautifulSoup(html, "lxml")


def select_items(
    root: BeautifulSoup | Tag,
    selector: str,
    *fallback_selectors: str,
) -> list[Tag]:
    """Select elements via CSS, returning the first non-empty selection."""
    for sel in (selector, *fallback_selectors):
        items = root.select(sel)
        if items:
            return items
    return []


def extract_text(
    element: BeautifulSoup | Tag,
    selector: str,
    *fallback_selectors: str,
    default: str = "",
) -> str:
    """Whitespace-collapsed text of the first matching child element.

    With ``selector=""`` the element's own text is returned.
    """
    if selector == "":
        return collapse_ws(element.get_text(" ")) or default

    for sel in (selector, *fallback_selectors):
        match = element.select_one(sel)
        if match:
            text = collapse_ws(match.get_text(" "))
            if text:
                return text
    return default


def extract_attr(
    element: BeautifulSoup | Tag,
    selector: str,
    attr: str,
    *fallback_selectors: str,
    default: str = "",
) -> str:
    """Extract an HTML attribute from the first matching child element.

    With ``selector=""`` the attribute is read from *element* itself.
    """
    if selector == "":
        val = element.get(attr) if isinstance(element, Tag) else None
        return str(val) if val else default

    for sel in (selector, *fallback_selectors):
        match = element.select_one(sel)
        if match:
            val = match.get(attr)
            if val:
                return str(val)
    return default


def extract_all_texts(element: BeautifulSoup | Tag, selector: str) -> list[str]:
    """Collapsed text of every matching element, empties dropped."""
    texts = (collapse_ws(m.get_text(" ")) for m in element.select(selector))
    return [t for t in texts if t]


def extract_css_url(style: str) -> str:
    """First ``url(...)`` value of an inline style, or ``""``."""
    m = _CSS_URL_RE.search(style or "")
    return m.group(1) if m else ""


def absolute_url(base_url: str, href: str) -> str:
    """Resolve *href* against *base_url*; empty input stays empty."""
    if not href:
        return ""
    return urljoin(base_url if base_url.endswith("/") else f"{base_url}/", href)


def collapse_ws(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()
