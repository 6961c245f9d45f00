"""FastAPI application wiring the search engine."""
from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Optional

from elasticsearch import ApiError, TransportError
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .config import settings
from .engine import SearchEngine, build_engine
from .errors import BackendUnavailable, InvalidQuery
from .models import PriceRange, SearchQuery, SearchResult, SuggestionResponse
from .query_log import QueryLog
from .suggestions import SuggestionService

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

# Force a predictable logging setup even when run under uvicorn; ``force=True``
# replaces uvicorn's default handlers.
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())

app = FastAPI(title="Catalog Search Service")


@lru_cache(maxsize=1)
def get_query_log() -> QueryLog:
    return QueryLog()


@lru_cache(maxsize=1)
def get_engine() -> SearchEngine:
    return build_engine(settings, query_log=get_query_log())


@lru_cache(maxsize=1)
def get_suggestion_service() -> SuggestionService:
    return SuggestionService(
        get_engine().store,
        query_log=get_query_log(),
        ttl_seconds=settings.suggestion_ttl_seconds,
    )


@app.exception_handler(InvalidQuery)
async def invalid_query_handler(request: Request, exc: InvalidQuery) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid Query", "message": str(exc), "details": exc.errors},
    )


@app.exception_handler(BackendUnavailable)
async def backend_unavailable_handler(request: Request, exc: BackendUnavailable) -> JSONResponse:
    raw_limit = request.query_params.get("limit", "")
    raw_page = request.query_params.get("page", "")
    limit = int(raw_limit) if raw_limit.isdigit() else settings.default_page_size
    page = int(raw_page) if raw_page.isdigit() else 1
    return JSONResponse(
        status_code=503,
        content={
            "error": "Backend Unavailable",
            "message": str(exc),
            "products": [],
            "total": 0,
            "page": page,
            "limit": limit,
            "totalPages": 0,
        },
    )


@app.on_event("startup")
async def startup_event() -> None:
    if settings.use_sample_data or not settings.load_on_startup:
        return
    from .es_client import get_client
    from .importer import import_if_empty
    from .indexing import ensure_index

    es = get_client()
    try:
        await ensure_index(es)
        imported = await import_if_empty(es)
    except (ApiError, TransportError):
        # The engine answers with the fallback gate while the store is down.
        logger.exception("Catalog bootstrap failed")
        return
    if imported:
        logger.info("Imported %s products on startup", imported)


@app.get("/health")
async def health() -> dict:
    engine = get_engine()
    payload = {"fallback_enabled": engine.fallback_enabled, "index": settings.es_index}
    if settings.use_sample_data:
        return {**payload, "store": "sample"}
    from .es_client import get_client
    from .indexing import index_is_empty

    es = get_client()
    try:
        status = await asyncio.to_thread(es.cluster.health)
        empty = await index_is_empty(es)
    except (ApiError, TransportError) as exc:
        logger.warning("Health check failed: %s", exc)
        return {**payload, "elasticsearch": "unreachable"}
    return {**payload, "elasticsearch": status.get("status"), "empty": empty}


@app.get("/api/products/search")
async def search(
    q: str = Query("", description="Search query"),
    category: Optional[str] = Query(None),
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    sort: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    in_stock: Optional[str] = Query(None, alias="inStock"),
    rating: Optional[str] = Query(None),
    bypass_cache: Optional[str] = Query(None),
    engine: SearchEngine = Depends(get_engine),
) -> dict:
    # Raw strings go straight to SearchQuery so bad values surface as InvalidQuery (400).
    fields = {
        "category_id": category,
        "price_min": min_price,
        "price_max": max_price,
        "sort_mode": sort,
        "page": page,
        "page_size": limit,
        "in_stock_only": in_stock,
        "min_rating": rating,
        "bypass_cache": bypass_cache,
    }
    query = SearchQuery.parse(
        term=q,
        **{name: value for name, value in fields.items() if value is not None and value.strip()},
    )
    result: SearchResult = await engine.search(query)
    return result.to_payload()


@app.get("/api/products/suggestions", response_model=SuggestionResponse)
async def suggestions(
    q: str = Query("", description="Partial query"),
    service: SuggestionService = Depends(get_suggestion_service),
) -> SuggestionResponse:
    return SuggestionResponse(suggestions=await service.asuggest(q))


@app.get("/api/products/price-range", response_model=PriceRange)
async def price_range(
    category: Optional[str] = Query(None),
    engine: SearchEngine = Depends(get_engine),
) -> PriceRange:
    return await engine.price_range(category)


@app.post("/reindex")
async def reindex() -> dict:
    from .es_client import get_client
    from .importer import reindex_data

    count = await reindex_data(get_client())
    get_engine().cache.clear()
    return {"indexed": count}
