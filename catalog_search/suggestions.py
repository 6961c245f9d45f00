"""Autocomplete suggestions built from catalog names, past searches and keyword lists."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Iterable, List

from .cache import Clock, InMemoryCache
from .catalog import CatalogStore
from .errors import BackendUnavailable
from .normalization import normalize, tokenize
from .planner import StructuralFilter, TextHint
from .query_log import QueryLog

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTIONS = [
    "iPhone",
    "Samsung Galaxy",
    "MacBook Pro",
    "Dell XPS",
    "iPad",
    "Apple Watch",
    "Điện thoại",
    "Laptop gaming",
    "Tai nghe không dây",
    "Máy tính bảng",
]
POPULAR_KEYWORDS = [
    "smartphone", "điện thoại", "laptop", "máy tính", "tai nghe", "máy ảnh",
    "apple", "samsung", "xiaomi", "oppo", "vivo", "asus", "dell", "hp", "lenovo",
    "gaming", "chơi game", "bluetooth", "không dây", "pin trâu", "sạc nhanh",
    "camera", "chụp ảnh", "màn hình", "bàn phím", "chuột", "loa", "âm thanh",
    "giá rẻ", "cao cấp", "mỏng nhẹ", "chống nước", "chống va đập",
]
TRENDING_KEYWORDS = [
    "iPhone 15",
    "Galaxy S24",
    "MacBook M3",
    "Tai nghe AirPods",
    "Laptop gaming",
    "Màn hình gaming",
    "Bàn phím cơ",
]
FEATURED_PRODUCTS = [
    "iPhone 15 Pro Max",
    "Samsung Galaxy S24 Ultra",
    "MacBook Pro 16 inch",
    "iPad Pro M2",
    "Apple Watch Series 9",
    "AirPods Pro 2",
    "Sony WH-1000XM5",
]
PRODUCT_CANDIDATES = 20
MIN_QUERY_LENGTH = 2


def score_suggestion(suggestion: str, query: str) -> float:
    """Rank a suggestion for a partial query; higher is better, may be negative."""

    text = suggestion.lower()
    needle = query.lower()
    if text == needle:
        return 1000.0

    score = 0.0
    if text.startswith(needle):
        score += 300
        # Prefer short completions over long ones.
        extra = len(text) - len(needle)
        if 0 < extra < 10:
            score += (10 - extra) * 10
        elif extra >= 10:
            score -= min(extra - 10, 50)

    words = text.split()
    if words and words[0].startswith(needle):
        score += 200

    if needle in text and not text.startswith(needle):
        score += 150
        score += max(0, 50 - text.index(needle))

    query_words = tokenize(needle)
    matched = 0
    for query_word in query_words:
        for word in words:
            if word == query_word:
                score += 40
            elif word.startswith(query_word):
                score += 30
            elif query_word in word and len(query_word) > 2:
                score += 20
            else:
                continue
            matched += 1
            break
    if len(query_words) > 1 and matched == len(query_words):
        score += 100

    if any(keyword in text for keyword in POPULAR_KEYWORDS):
        score += 40
    if any(keyword.lower() in text for keyword in TRENDING_KEYWORDS):
        score += 80
    if any(text == product.lower() for product in FEATURED_PRODUCTS):
        score += 100

    if len(text) > 30:
        score -= (len(text) - 30) * 2
    elif len(text) < 5:
        score -= (5 - len(text)) * 10
    if len(words) > 6:
        score -= (len(words) - 6) * 10
    average_word_length = len(text) / max(1, len(words))
    if average_word_length > 15:
        score -= (average_word_length - 15) * 5
    return score


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _keyword_variants(query: str, limit: int) -> List[str]:
    needle = query.lower()
    variants = [
        query if keyword in needle else f"{query} {keyword}"
        for keyword in POPULAR_KEYWORDS
        if keyword in needle or needle in keyword
    ]
    return variants[:limit]


def rank_suggestions(candidates: Iterable[str], query: str, limit: int) -> List[str]:
    unique = _unique(candidates)
    # sorted() is stable, so equal scores keep their gathering order.
    ranked = sorted(unique, key=lambda text: -score_suggestion(text, query))
    return ranked[:limit]


class SuggestionService:
    def __init__(
        self,
        store: CatalogStore,
        *,
        query_log: QueryLog | None = None,
        ttl_seconds: float = 1800,
        clock: Clock = time.monotonic,
    ) -> None:
        self.store = store
        self.query_log = query_log if query_log is not None else QueryLog()
        self.cache = InMemoryCache(ttl_seconds, clock=clock)

    def _trending(self, limit: int) -> List[str]:
        combined = _unique([*self.query_log.recent(7), *TRENDING_KEYWORDS])[:limit]
        return combined or DEFAULT_SUGGESTIONS[:7]

    def _from_catalog(self, query: str, limit: int) -> List[str]:
        normalized = normalize(query)
        structural = StructuralFilter(
            text_hint=TextHint(raw=query, normalized=normalized, tokens=tuple(tokenize(normalized))),
            limit=PRODUCT_CANDIDATES,
        )
        items = self.store.fetch_candidates(structural)
        names = _unique(item.name for item in items)
        categories = _unique(item.category_name or "" for item in items)
        needle = query.lower()
        trending = [keyword for keyword in TRENDING_KEYWORDS if needle in keyword.lower()][:3]
        buying = [f"Mua {query}"] if len(query) > 3 else []
        candidates = [
            *names,
            *self.query_log.matching(query, 15),
            *(f"{query} {name}" for name in categories),
            *_keyword_variants(query, 5),
            *trending,
            *buying,
        ]
        return rank_suggestions(candidates, query, limit)

    def _offline(self, query: str, limit: int) -> List[str]:
        needle = query.lower()
        matches = [text for text in DEFAULT_SUGGESTIONS if needle in text.lower()]
        return rank_suggestions([*matches, *_keyword_variants(query, 3)], query, limit)

    def suggest(self, query: str, limit: int = 10) -> List[str]:
        query = " ".join((query or "").split())
        key = f"suggest:{limit}:{query.lower()}"
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("suggestions cache hit %r", key)
            return list(cached["suggestions"])

        if len(query) < MIN_QUERY_LENGTH:
            suggestions = self._trending(limit)
        else:
            try:
                suggestions = self._from_catalog(query, limit)
            except (BackendUnavailable, OSError) as exc:
                logger.warning("Catalog store failed, using offline suggestions: %s", exc)
                suggestions = self._offline(query, limit)

        self.cache.set(key, {"suggestions": suggestions})
        return suggestions

    async def asuggest(self, query: str, limit: int = 10) -> List[str]:
        return await asyncio.to_thread(self.suggest, query, limit)
