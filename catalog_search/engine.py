"""Search orchestration: cache, candidate fetch, ranking and pagination."""
from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import List, Sequence, Tuple

from pydantic import ValidationError

from .cache import ResultCache, build_cache, cache_key
from .catalog import CatalogStore
from .config import Settings
from .errors import BackendUnavailable
from .fallback import FallbackCatalog
from .models import CatalogItem, PriceBucket, PriceRange, ScoredItem, SearchQuery, SearchResult, SortMode
from .planner import QueryPlan, StructuralFilter, plan
from .query_log import QueryLog
from .scoring import score

logger = logging.getLogger(__name__)

PRICE_BUCKETS = 20
DEFAULT_MAX_PRICE = 10_000_000.0


def _scored(item: CatalogItem, relevance: float | None = None) -> ScoredItem:
    return ScoredItem.model_validate({**item.model_dump(), "relevance_score": relevance})


def rank(candidates: Sequence[CatalogItem], query_plan: QueryPlan) -> List[ScoredItem]:
    """Order candidates for ``query_plan``; ties keep candidate order.

    With scoring enabled, items that no textual rule matched are dropped.
    """

    indexed = list(enumerate(candidates))
    if query_plan.needs_scoring:
        scored: List[Tuple[float, int, CatalogItem]] = []
        for index, item in indexed:
            relevance = score(item, query_plan.raw_term, query_plan.normalized_term)
            if relevance > 0:
                scored.append((relevance, index, item))
        scored.sort(key=lambda entry: (-entry[0], entry[1]))
        return [_scored(item, relevance) for relevance, _, item in scored]

    mode = query_plan.sort_mode
    if mode == SortMode.PRICE_ASC:
        indexed.sort(key=lambda entry: (entry[1].price, entry[0]))
    elif mode == SortMode.PRICE_DESC:
        indexed.sort(key=lambda entry: (-entry[1].price, entry[0]))
    elif mode == SortMode.NEWEST:
        indexed.sort(
            key=lambda entry: (
                entry[1].created_at is None,
                -entry[1].created_at.timestamp() if entry[1].created_at else 0.0,
                entry[0],
            )
        )
    elif mode == SortMode.POPULAR:
        indexed.sort(key=lambda entry: (-(entry[1].units_sold or 0), entry[0]))
    return [_scored(item) for _, item in indexed]


def paginate(items: Sequence[ScoredItem], page: int, page_size: int) -> List[ScoredItem]:
    start = (page - 1) * page_size
    return list(items[start : start + page_size])


def price_distribution(prices: Sequence[float], buckets: int = PRICE_BUCKETS) -> PriceRange:
    """Min/max price plus a histogram of ``buckets`` equal-width ranges (last one inclusive)."""

    if not prices:
        return PriceRange(min=0.0, max=DEFAULT_MAX_PRICE, distribution=[])
    low, high = min(prices), max(prices)
    width = (high - low) / buckets
    if width <= 0:
        return PriceRange(min=low, max=high, distribution=[PriceBucket(price=low, count=len(prices))])
    distribution = []
    for idx in range(buckets):
        start = low + idx * width
        end = start + width
        last = idx == buckets - 1
        count = sum(1 for price in prices if price >= start and (price <= end if last else price < end))
        distribution.append(PriceBucket(price=round(start), count=count))
    return PriceRange(min=low, max=high, distribution=distribution)


class SearchEngine:
    """Read-only search façade over a catalog store.

    ``fallback_enabled`` is fixed at construction: when it is off, a store
    failure surfaces as :class:`BackendUnavailable` and the fallback catalog is
    never consulted.
    """

    def __init__(
        self,
        store: CatalogStore,
        cache: ResultCache,
        *,
        fallback: CatalogStore | None = None,
        fallback_enabled: bool = False,
        bypass_page_size: int = 50,
        backend_timeout: float = 5.0,
        query_log: QueryLog | None = None,
        price_keyword_hints: bool = False,
    ) -> None:
        self.store = store
        self.cache = cache
        self.fallback = fallback
        self.fallback_enabled = fallback_enabled
        self.bypass_page_size = bypass_page_size
        self.backend_timeout = backend_timeout
        self.query_log = query_log
        self.price_keyword_hints = price_keyword_hints

    def should_bypass(self, query: SearchQuery) -> bool:
        return query.bypass_cache or query.page_size > self.bypass_page_size

    def _cached_result(self, key: str) -> SearchResult | None:
        payload = self.cache.get(key)
        if payload is None:
            return None
        try:
            return SearchResult.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Discarding malformed cache entry %r: %s", key, exc.error_count())
            return None

    async def _call_store(self, store: CatalogStore, structural: StructuralFilter) -> List[CatalogItem]:
        try:
            items = await asyncio.wait_for(
                asyncio.to_thread(store.fetch_candidates, structural),
                timeout=self.backend_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise BackendUnavailable(f"Catalog store timed out after {self.backend_timeout}s") from exc
        except (ConnectionError, OSError) as exc:
            raise BackendUnavailable(f"Catalog store unreachable: {exc}") from exc
        return list(items)

    async def fetch(self, structural: StructuralFilter) -> Tuple[List[CatalogItem], str]:
        """Fetch candidates from the primary store, degrading to the fallback when allowed."""

        try:
            return await self._call_store(self.store, structural), "primary"
        except BackendUnavailable as exc:
            if not self.fallback_enabled or self.fallback is None:
                logger.error("Catalog store failed and fallback is disabled: %s", exc)
                raise
            logger.warning("Catalog store failed, serving fallback catalog: %s", exc)
        try:
            return await self._call_store(self.fallback, structural), "fallback"
        except BackendUnavailable as exc:
            logger.error("Fallback catalog failed: %s", exc)
            raise

    async def search(self, query: SearchQuery) -> SearchResult:
        t0 = perf_counter()
        bypass = self.should_bypass(query)
        key = cache_key(query)
        if not bypass:
            cached = self._cached_result(key)
            if cached is not None:
                total_ms = (perf_counter() - t0) * 1000
                logger.info("timing: total=%.2fms cache_hit=1 q=%r key=%s", total_ms, query.term, key)
                self._record(query)
                return cached

        query_plan = plan(query, price_keyword_hints=self.price_keyword_hints)
        t1 = perf_counter()
        candidates, source = await self.fetch(query_plan.filter)
        t2 = perf_counter()
        ranked = rank(candidates, query_plan)
        result = SearchResult.build(
            paginate(ranked, query.page, query.page_size),
            total=len(ranked),
            page=query.page,
            page_size=query.page_size,
        )
        t3 = perf_counter()

        if not bypass:
            self.cache.set(key, result.to_payload())
            logger.debug("cache_store key=%s ttl=%s", key, self.cache.ttl_seconds)

        logger.info(
            "timing: total=%.2fms plan=%.2fms fetch=%.2fms rank=%.2fms cache_hit=0 bypass=%d "
            "source=%s q=%r candidates=%s total=%s",
            (t3 - t0) * 1000,
            (t1 - t0) * 1000,
            (t2 - t1) * 1000,
            (t3 - t2) * 1000,
            int(bypass),
            source,
            query.term,
            len(candidates),
            result.total_matching,
        )
        self._record(query)
        return result

    async def price_range(self, category_id: str | None = None) -> PriceRange:
        items, _ = await self.fetch(StructuralFilter(category_id=category_id or None))
        return price_distribution([item.price for item in items])

    def _record(self, query: SearchQuery) -> None:
        if self.query_log is not None and query.term.strip():
            self.query_log.record(query.term)


def build_store(settings: Settings) -> CatalogStore:
    if settings.use_sample_data:
        logger.info("Serving the sample catalog as the primary store")
        return FallbackCatalog()
    from .es_client import get_client
    from .es_store import ElasticsearchCatalogStore

    return ElasticsearchCatalogStore(get_client(), settings.es_index, page_size=settings.es_page_size)


def build_engine(settings: Settings, *, store: CatalogStore | None = None, query_log: QueryLog | None = None) -> SearchEngine:
    """Wire an engine from settings; the fallback flag is resolved here, once."""

    return SearchEngine(
        store if store is not None else build_store(settings),
        build_cache(settings),
        fallback=FallbackCatalog(),
        fallback_enabled=settings.enable_fallback_on_error,
        bypass_page_size=settings.cache_bypass_page_size,
        backend_timeout=settings.es_request_timeout,
        query_log=query_log,
        price_keyword_hints=settings.price_keyword_hints,
    )
