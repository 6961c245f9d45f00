"""Index creation and maintenance helpers."""
from __future__ import annotations

import asyncio
import logging

from elasticsearch import Elasticsearch
from elasticsearch.exceptions import BadRequestError, NotFoundError

from .config import settings

logger = logging.getLogger(__name__)

PRODUCT_MAPPING: dict = {
    "settings": {
        "analysis": {
            "analyzer": {
                "folded": {
                    "type": "custom",
                    "tokenizer": "standard",
                    "filter": ["lowercase", "asciifolding"],
                }
            }
        }
    },
    "mappings": {
        "properties": {
            "id": {"type": "keyword"},
            "name": {"type": "text", "analyzer": "folded"},
            "nameNormalized": {"type": "text"},
            "description": {"type": "text", "analyzer": "folded"},
            "descriptionNormalized": {"type": "text"},
            "searchText": {"type": "wildcard"},
            "price": {"type": "double"},
            "stock": {"type": "integer"},
            "categoryId": {"type": "keyword"},
            "categoryName": {"type": "text", "analyzer": "folded"},
            "brand": {"type": "text", "analyzer": "folded"},
            "avgRating": {"type": "float"},
            "unitsSold": {"type": "integer"},
            "createdAt": {"type": "date"},
        }
    },
}

async def ensure_index(es: Elasticsearch, index: str | None = None) -> bool:
    """Create the catalog index with :data:`PRODUCT_MAPPING`; returns True if created."""

    name = index or settings.es_index
    if await asyncio.to_thread(es.indices.exists, index=name):
        return False
    logger.info("Creating catalog index %s", name)
    try:
        await asyncio.to_thread(
            es.indices.create,
            index=name,
            settings=PRODUCT_MAPPING["settings"],
            mappings=PRODUCT_MAPPING["mappings"],
        )
    except BadRequestError as exc:
        # Another worker won the race.
        if exc.error == "resource_already_exists_exception":
            return False
        logger.error("Catalog index %s could not be created: %s", name, exc)
        raise
    return True


async def drop_index(es: Elasticsearch, index: str | None = None) -> None:
    name = index or settings.es_index
    try:
        await asyncio.to_thread(es.indices.delete, index=name)
    except NotFoundError:
        logger.debug("Catalog index %s did not exist", name)


async def document_count(es: Elasticsearch, index: str | None = None) -> int:
    """Number of indexed products; a missing index counts as zero."""

    try:
        response = await asyncio.to_thread(es.count, index=index or settings.es_index)
    except NotFoundError:
        return 0
    return int(response.get("count", 0))


async def index_is_empty(es: Elasticsearch, index: str | None = None) -> bool:
    return await document_count(es, index) == 0
