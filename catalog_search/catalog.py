"""Catalog store interface and an in-memory implementation."""
from __future__ import annotations

import logging
from typing import Iterable, List, Protocol, Sequence

from .models import CatalogItem
from .normalization import normalize
from .planner import StructuralFilter

logger = logging.getLogger(__name__)


class CatalogStore(Protocol):
    def fetch_candidates(self, filter: StructuralFilter) -> Sequence[CatalogItem]:
        """Return every item satisfying ``filter``, unpaginated.

        Stores may narrow the result with ``filter.text_hint`` but are not
        required to; callers score and drop non-matches themselves.
        Failures are reported by raising :class:`BackendUnavailable`.
        """
        ...


def matches_structure(item: CatalogItem, filter: StructuralFilter) -> bool:
    if filter.category_id is not None and item.category_id != filter.category_id:
        return False
    if filter.price_min is not None and item.price < filter.price_min:
        return False
    if filter.price_max is not None and item.price > filter.price_max:
        return False
    if filter.in_stock_only and item.stock_count <= 0:
        return False
    if filter.min_rating is not None and (item.avg_rating or 0) < filter.min_rating:
        return False
    return True


def searchable_text(item: CatalogItem) -> str:
    parts = (item.name, item.description, item.category_name, item.brand)
    return normalize(" ".join(part for part in parts if part))


def matches_text(item: CatalogItem, filter: StructuralFilter) -> bool:
    """Coarse pre-filter: the normalized term or any of its tokens occurs in the item text."""

    hint = filter.text_hint
    if hint is None or not hint.normalized:
        return True
    text = searchable_text(item)
    if hint.normalized in text:
        return True
    return any(token in text for token in hint.tokens)


class InMemoryCatalogStore:
    """List-backed store that applies structural filters faithfully."""

    def __init__(self, items: Iterable[CatalogItem], *, apply_text_hint: bool = True) -> None:
        self._items: List[CatalogItem] = list(items)
        self.apply_text_hint = apply_text_hint

    @property
    def items(self) -> List[CatalogItem]:
        return list(self._items)

    def fetch_candidates(self, filter: StructuralFilter) -> List[CatalogItem]:
        candidates = [item for item in self._items if matches_structure(item, filter)]
        if self.apply_text_hint:
            candidates = [item for item in candidates if matches_text(item, filter)]
        if filter.limit is not None:
            candidates = candidates[: filter.limit]
        logger.debug("in-memory store returned %s of %s items", len(candidates), len(self._items))
        return candidates
