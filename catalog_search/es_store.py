"""Primary catalog store backed by an Elasticsearch index."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from elasticsearch import ApiError, Elasticsearch, TransportError

from .errors import BackendUnavailable
from .models import CatalogItem
from .planner import StructuralFilter, TextHint

logger = logging.getLogger(__name__)

SOURCE_FIELDS = [
    "id",
    "name",
    "description",
    "price",
    "stock",
    "categoryId",
    "categoryName",
    "brand",
    "avgRating",
    "unitsSold",
    "createdAt",
]
# Normalized name, description, category and brand; indexed as a ``wildcard`` field.
SEARCH_TEXT_FIELD = "searchText"
SORT = [{"createdAt": {"order": "desc", "missing": "_last"}}, {"id": "asc"}]


def _containment_clause(hint: TextHint) -> Dict[str, Any] | None:
    """Substring match of the normalized term or any of its tokens, like ``matches_text``."""

    needles = [needle for needle in (hint.normalized, *hint.tokens) if needle]
    if not needles:
        return None
    # Normalized text is [0-9a-z ] only, so no wildcard metacharacters need escaping.
    should = [{"wildcard": {SEARCH_TEXT_FIELD: {"value": f"*{needle}*"}}} for needle in dict.fromkeys(needles)]
    return {"bool": {"should": should, "minimum_should_match": 1}}


def build_es_query(structural: StructuralFilter, size: int, search_after: Sequence[Any] | None = None) -> Dict[str, Any]:
    """Translate a structural filter into a non-scoring bool query.

    Every clause is a filter; ranking is done by the engine, so hits come back
    in a stable ``createdAt``/``id`` order that ``search_after`` can page over.
    """

    filters: List[dict] = []
    if structural.category_id is not None:
        filters.append({"term": {"categoryId": structural.category_id}})
    price: Dict[str, float] = {}
    if structural.price_min is not None:
        price["gte"] = structural.price_min
    if structural.price_max is not None:
        price["lte"] = structural.price_max
    if price:
        filters.append({"range": {"price": price}})
    if structural.in_stock_only:
        filters.append({"range": {"stock": {"gt": 0}}})
    if structural.min_rating is not None:
        filters.append({"range": {"avgRating": {"gte": structural.min_rating}}})
    if structural.text_hint is not None:
        containment = _containment_clause(structural.text_hint)
        if containment is not None:
            filters.append(containment)

    body: Dict[str, Any] = {
        "size": size,
        "_source": SOURCE_FIELDS,
        "query": {"bool": {"filter": filters}},
        "sort": SORT,
        "track_total_hits": False,
    }
    if search_after is not None:
        body["search_after"] = list(search_after)
    return body


class ElasticsearchCatalogStore:
    """Returns every matching document, paging with ``search_after`` until exhausted."""

    def __init__(self, client: Elasticsearch, index: str, *, page_size: int = 500) -> None:
        self.client = client
        self.index = index
        self.page_size = page_size

    def _search(self, body: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug("ES query payload=%s", body)
        try:
            return self.client.search(index=self.index, body=body)
        except (ApiError, TransportError) as exc:
            raise BackendUnavailable(f"Elasticsearch query failed: {exc}") from exc

    def fetch_candidates(self, filter: StructuralFilter) -> List[CatalogItem]:
        items: List[CatalogItem] = []
        search_after = None
        pages = 0
        while True:
            remaining = None if filter.limit is None else filter.limit - len(items)
            if remaining is not None and remaining <= 0:
                break
            size = self.page_size if remaining is None else min(self.page_size, remaining)
            response = self._search(build_es_query(filter, size, search_after))
            pages += 1
            hits = response.get("hits", {}).get("hits", [])
            items.extend(CatalogItem.model_validate(hit.get("_source", {})) for hit in hits)
            if len(hits) < size:
                break
            search_after = hits[-1].get("sort")
            if search_after is None:
                break
        logger.info("es fetch hits=%s pages=%s", len(items), pages)
        return items
