"""Load a JSON product catalog into Elasticsearch."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Iterable

from elasticsearch import Elasticsearch, helpers

from .catalog import searchable_text
from .config import settings
from .indexing import document_count, drop_index, ensure_index
from .models import CatalogItem
from .normalization import normalize

logger = logging.getLogger(__name__)


def _load_products(path: Path) -> list[dict]:
    if not path.exists():
        logger.warning("Catalog file %s is missing", path)
        return []
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if isinstance(data, dict):
        data = data.get("products", [])
    return list(data)


def prepare_document(raw: dict) -> dict:
    """Validate a raw product and add the normalized fields used for pre-filtering."""

    category = raw.get("category") or {}
    if isinstance(category, dict):
        raw = {
            **raw,
            "categoryId": raw.get("categoryId") or category.get("id"),
            "categoryName": raw.get("categoryName") or category.get("name"),
        }
    if "soldCount" in raw and "unitsSold" not in raw:
        raw = {**raw, "unitsSold": raw["soldCount"]}

    item = CatalogItem.model_validate(raw)
    document = item.model_dump(mode="json", by_alias=True)
    document["nameNormalized"] = normalize(item.name)
    document["descriptionNormalized"] = normalize(item.description)
    document["searchText"] = searchable_text(item)
    return document


def _iter_actions(index: str, documents: Iterable[dict]) -> Iterable[dict]:
    for document in documents:
        yield {
            "_index": index,
            "_id": document["id"],
            "_source": document,
        }


async def import_products(es: Elasticsearch, index: str | None = None, path: Path | None = None) -> int:
    """Bulk-index every product in the catalog file; returns the number indexed."""

    name = index or settings.es_index
    products = _load_products(path or Path(settings.catalog_path))
    if not products:
        return 0
    documents = [prepare_document(item) for item in products]
    indexed, _ = await asyncio.to_thread(helpers.bulk, es, _iter_actions(name, documents), refresh="wait_for")
    logger.info("Indexed %s products into %s", indexed, name)
    return indexed


async def import_if_empty(es: Elasticsearch, index: str | None = None) -> int:
    if await document_count(es, index) > 0:
        return 0
    return await import_products(es, index)


async def reindex_data(es: Elasticsearch, index: str | None = None) -> int:
    await drop_index(es, index)
    await ensure_index(es, index)
    return await import_products(es, index)
