"""Shared synchronous Elasticsearch client for the catalog index."""
from __future__ import annotations

import logging
from functools import lru_cache

from elasticsearch import Elasticsearch

from .config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_client() -> Elasticsearch:
    logger.info("Connecting to Elasticsearch at %s (timeout %ss)", settings.es_host, settings.es_request_timeout)
    # No client-side retries: a failed fetch is answered by the fallback gate.
    return Elasticsearch(
        settings.es_host,
        request_timeout=settings.es_request_timeout,
        max_retries=0,
        retry_on_timeout=False,
    )
