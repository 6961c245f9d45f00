"""Result caches with an in-memory default and an optional Redis backend."""
from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

import redis

from .config import Settings
from .models import SearchQuery

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class ResultCache(Protocol):
    ttl_seconds: float

    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def set(self, key: str, value: Dict[str, Any]) -> None: ...

    def sweep_expired(self) -> int: ...

    def clear(self) -> None: ...


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Dict[str, Any]
    created_at: float


class InMemoryCache:
    """Process-local cache; entries are immutable and swapped under a lock.

    Expired entries are dropped lazily on ``get`` and, at most once per
    ``sweep_interval`` seconds, by a full sweep piggybacked on ``set``. The
    entry count is therefore bounded by the keys written within roughly two
    TTL windows.
    """

    def __init__(self, ttl_seconds: float, clock: Clock = time.monotonic, sweep_interval: float | None = None) -> None:
        self.ttl_seconds = ttl_seconds
        self.sweep_interval = ttl_seconds if sweep_interval is None else sweep_interval
        self._clock = clock
        self._store: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._next_sweep: float | None = None

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at >= self.ttl_seconds

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, entry in self._store.items() if self._expired(entry, now)]
        for key in expired:
            del self._store[key]
        self._next_sweep = now + self.sweep_interval
        return len(expired)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if self._expired(entry, self._clock()):
                self._store.pop(key, None)
                return None
            return entry.payload

    def set(self, key: str, value: Dict[str, Any]) -> None:
        now = self._clock()
        entry = CacheEntry(key=key, payload=value, created_at=now)
        with self._lock:
            if self._next_sweep is None:
                self._next_sweep = now + self.sweep_interval
            elif now >= self._next_sweep:
                removed = self._sweep_locked(now)
                if removed:
                    logger.debug("cache_sweep removed=%s on write", removed)
            self._store[key] = entry

    def sweep_expired(self) -> int:
        with self._lock:
            removed = self._sweep_locked(self._clock())
        if removed:
            logger.debug("cache_sweep removed=%s", removed)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


@dataclass
class RedisCache:
    client: redis.Redis
    ttl_seconds: float
    prefix: str = "catalog-search:"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            data = self.client.get(self.prefix + key)
        except redis.RedisError as exc:
            logger.warning("Redis get failed: %s", exc)
            return None
        if not data:
            return None
        try:
            payload = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Discarding undecodable cache entry %r", key)
            return None
        return payload if isinstance(payload, dict) else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        try:
            self.client.setex(self.prefix + key, max(1, int(self.ttl_seconds)), json.dumps(value))
        except redis.RedisError as exc:
            logger.warning("Redis set failed: %s", exc)

    def sweep_expired(self) -> int:
        # Redis expires keys on its own.
        return 0

    def clear(self) -> None:
        try:
            keys = list(self.client.scan_iter(match=self.prefix + "*"))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as exc:
            logger.warning("Redis clear failed: %s", exc)


def build_cache(settings: Settings, ttl_seconds: float | None = None) -> ResultCache:
    """Create the configured cache, falling back to memory when Redis is unreachable."""

    ttl = settings.cache_ttl_seconds if ttl_seconds is None else ttl_seconds
    if settings.cache_backend.lower() != "redis":
        return InMemoryCache(ttl)
    try:
        client = redis.Redis(host=settings.redis_host, port=settings.redis_port, decode_responses=False)
        client.ping()
        logger.info("Using Redis cache at %s:%s", settings.redis_host, settings.redis_port)
        return RedisCache(client, ttl)
    except redis.RedisError:
        logger.warning("Redis not available, using in-memory cache")
        return InMemoryCache(ttl)


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def cache_key(query: SearchQuery) -> str:
    """Deterministic key: sorted ``name:value`` pairs, empty and default values omitted.

    Pagination is always part of the key; ``bypass_cache`` never is.
    """

    params = {
        "category": query.category_id,
        "inStock": query.in_stock_only or None,
        "limit": query.page_size,
        "maxPrice": query.price_max,
        "minPrice": query.price_min,
        "page": query.page,
        "query": " ".join(query.term.lower().split()) or None,
        "rating": query.min_rating,
        "sort": None if query.sort_mode.value == "relevance" else query.sort_mode.value,
    }
    parts = [f"{name}:{_format_value(value)}" for name, value in sorted(params.items()) if value not in (None, "")]
    return "search:" + "|".join(parts)
