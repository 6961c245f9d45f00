"""Shared fixtures: fake clocks and instrumented catalog stores."""
from __future__ import annotations

import time

import pytest

from catalog_search.cache import InMemoryCache
from catalog_search.catalog import InMemoryCatalogStore
from catalog_search.engine import SearchEngine
from catalog_search.errors import BackendUnavailable
from catalog_search.fallback import FallbackCatalog
from catalog_search.models import CatalogItem


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SpyStore:
    """In-memory store that counts fetches and never filters by text."""

    def __init__(self, items):
        self.inner = InMemoryCatalogStore(items, apply_text_hint=False)
        self.calls = 0
        self.filters = []

    def fetch_candidates(self, filter):
        self.calls += 1
        self.filters.append(filter)
        return self.inner.fetch_candidates(filter)


class FailingStore:
    def __init__(self, exc: Exception | None = None) -> None:
        self.exc = exc or BackendUnavailable("database is down")
        self.calls = 0

    def fetch_candidates(self, filter):
        self.calls += 1
        raise self.exc


class SlowStore:
    def __init__(self, delay: float) -> None:
        self.delay = delay

    def fetch_candidates(self, filter):
        time.sleep(self.delay)
        return []


@pytest.fixture
def phones():
    return [
        CatalogItem(id=1, name="iPhone 15 Pro Max", price=34990000, stock_count=50),
        CatalogItem(id=2, name="Samsung Galaxy S24", price=31990000, stock_count=45),
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_engine(clock):
    def _make(store, **kwargs):
        cache = kwargs.pop("cache") if "cache" in kwargs else InMemoryCache(600, clock=clock)
        kwargs.setdefault("fallback", FallbackCatalog())
        return SearchEngine(store, cache, **kwargs)

    return _make
