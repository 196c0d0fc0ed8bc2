"""Title matching for cross-source resolution.

Pure transformation logic: no I/O, no framework dependencies.
Compares the names of source catalog items against a reference title to
pick the one item a source holds for that title (or none).

Edit distance comes from **rapidfuzz** (C++ backend, classic unit-cost
Levenshtein).
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import structlog
from rapidfuzz.distance import Levenshtein

from filmrelay.domain.entities.catalog import CatalogItem, ContentType

log = structlog.get_logger(__name__)

# Everything outside lowercase ASCII letters and digits.
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")

_SLUG_SPLIT_RE = re.compile(r"[-_]+")

DEFAULT_MATCH_THRESHOLD = 0.7


def normalize(title: str) -> str:
    """Lowercase and drop every character outside ``[a-z0-9]``.

    >>> normalize("Le Fabuleux Destin d'Amélie Poulain")
    'lefabuleuxdestindamliepoulain'
    """
    return _NON_ALNUM_RE.sub("", title.lower())


def similarity(a: str, b: str) -> float:
    """``(max_len - levenshtein(a, b)) / max_len`` in ``[0, 1]``.

    Two empty strings are maximally similar.
    """
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return (max_len - Levenshtein.distance(a, b)) / max_len


def title_from_slug(slug: str) -> str:
    """Turn a metadata slug into a searchable title.

    Drops the ``movie/``/``series/`` prefix and a trailing numeric id.

    >>> title_from_slug("movie/le-fabuleux-destin-d-amelie-poulain-0211915")
    'le fabuleux destin d amelie poulain'
    """
    last = slug.rstrip("/").rsplit("/", 1)[-1]
    words = [w for w in _SLUG_SPLIT_RE.split(last) if w]
    if len(words) > 1 and words[-1].isdigit():
        words = words[:-1]
    return " ".join(words)


def select_best(
    items: Iterable[CatalogItem],
    target_title: str,
    target_type: ContentType,
    *,
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> CatalogItem | None:
    """Pick the item that best matches *target_title*, or None.

    Items of *target_type* are preferred; when none has that type the
    whole list is considered.  An exact normalised match wins at once.
    Otherwise an item qualifies through containment (either direction)
    or similarity above *threshold*, and the qualified item with the
    highest similarity is returned (first seen wins ties).
    """
    candidates = list(items)
    typed = [item for item in candidates if item.type == target_type]
    if typed:
        candidates = typed

    norm_target = normalize(target_title)
    best: CatalogItem | None = None
    best_score = -1.0

    for item in candidates:
        norm_name = normalize(item.name)
        if norm_name == norm_target:
            return item

        contains = bool(norm_name and norm_target) and (
            norm_target in norm_name or norm_name in norm_target
        )
        score = similarity(norm_name, norm_target)
        if (contains or score > threshold) and score > best_score:
            best = item
            best_score = score

    if best is not None:
        log.debug(
            "title_match_selected",
            target=target_title,
            name=best.name,
            score=round(best_score, 3),
        )
    return best
