"""Translate a :class:`SearchQuery` into a backend-agnostic structural filter."""
from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, replace

from .models import SearchQuery, SortMode
from .normalization import normalize, tokenize

logger = logging.getLogger(__name__)

# Optional heuristic: price words inside the free text narrow the price range.
# Thresholds are tunable defaults, not catalog rules.
CHEAP_KEYWORDS = ("giá rẻ", "rẻ", "thấp", "tiết kiệm")
PREMIUM_KEYWORDS = ("cao cấp", "đắt", "premium", "sang trọng")
CHEAP_PRICE_MAX = 5_000_000.0
PREMIUM_PRICE_MIN = 20_000_000.0


@dataclass(frozen=True)
class TextHint:
    """Free-text portion a store may use for a coarse containment pre-filter."""

    raw: str
    normalized: str
    tokens: tuple[str, ...] = ()


@dataclass(frozen=True)
class StructuralFilter:
    category_id: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    in_stock_only: bool = False
    min_rating: int | None = None
    text_hint: TextHint | None = None
    limit: int | None = None


@dataclass(frozen=True)
class QueryPlan:
    filter: StructuralFilter
    needs_scoring: bool
    sort_mode: SortMode
    raw_term: str = ""
    normalized_term: str = ""
    price_keyword: str | None = None


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(keyword)}(?!\w)")


_CHEAP_PATTERNS = tuple((keyword, _keyword_pattern(keyword)) for keyword in CHEAP_KEYWORDS)
_PREMIUM_PATTERNS = tuple((keyword, _keyword_pattern(keyword)) for keyword in PREMIUM_KEYWORDS)


def detect_price_keyword(term: str) -> tuple[str, float | None, float | None] | None:
    """Return ``(keyword, price_min, price_max)`` for the first price word in ``term``.

    Keywords match whole words only, so "rẻ" does not fire inside "trẻ".
    """

    lowered = unicodedata.normalize("NFC", term.lower())
    for keyword, pattern in _CHEAP_PATTERNS:
        if pattern.search(lowered):
            return keyword, None, CHEAP_PRICE_MAX
    for keyword, pattern in _PREMIUM_PATTERNS:
        if pattern.search(lowered):
            return keyword, PREMIUM_PRICE_MIN, None
    return None


def plan(query: SearchQuery, *, price_keyword_hints: bool = False) -> QueryPlan:
    term = query.term.strip()
    normalized_term = normalize(term)
    text_hint = None
    if term:
        text_hint = TextHint(
            raw=term,
            normalized=normalized_term,
            tokens=tuple(tokenize(normalized_term)),
        )

    structural = StructuralFilter(
        category_id=query.category_id or None,
        price_min=query.price_min,
        price_max=query.price_max,
        in_stock_only=query.in_stock_only,
        min_rating=query.min_rating,
        text_hint=text_hint,
    )

    price_keyword = None
    if price_keyword_hints and term and query.price_min is None and query.price_max is None:
        detected = detect_price_keyword(term)
        if detected:
            price_keyword, price_min, price_max = detected
            structural = replace(structural, price_min=price_min, price_max=price_max)
            logger.debug("price keyword %r -> min=%s max=%s", price_keyword, price_min, price_max)

    return QueryPlan(
        filter=structural,
        needs_scoring=query.sort_mode == SortMode.RELEVANCE and bool(term),
        sort_mode=query.sort_mode,
        raw_term=term,
        normalized_term=normalized_term,
        price_keyword=price_keyword,
    )
