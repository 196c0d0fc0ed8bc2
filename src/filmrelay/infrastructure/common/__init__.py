"""Common infrastructure utilities."""

from __future__ import annotations

from .html_selectors import (
    absolute_url,
    extract_attr,
    extract_text,
    parse_html,
    select_items,
)

__all__ = [
    "absolute_url",
    "extract_attr",
    "extract_text",
    "parse_html",
    "select_items",
]
