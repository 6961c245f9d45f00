"""HTTP-level tests for the search API."""

import pytest
from fastapi.testclient import TestClient

from catalog_search.fallback import FallbackCatalog
from catalog_search.main import app, get_engine, get_suggestion_service
from catalog_search.suggestions import SuggestionService

from conftest import FailingStore, SpyStore


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def use_engine(make_engine):
    def _use(store, **kwargs):
        engine = make_engine(store, **kwargs)
        app.dependency_overrides[get_engine] = lambda: engine
        return engine

    return _use


def test_search_returns_paginated_payload(client, use_engine, phones):
    use_engine(SpyStore(phones))
    response = client.get("/api/products/search", params={"q": "iphone", "sort": "relevance", "page": 1, "limit": 12})

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"products", "total", "page", "limit", "totalPages"}
    assert body["total"] == 1
    assert body["totalPages"] == 1
    product = body["products"][0]
    assert product["id"] == "1"
    assert product["stock"] == 50
    assert product["relevanceScore"] > 0


def test_structural_filters_map_from_query_params(client, use_engine):
    store = SpyStore(FallbackCatalog().items)
    use_engine(store)
    response = client.get(
        "/api/products/search",
        params={"category": "audio", "inStock": "true", "minPrice": 1000000, "sort": "price_asc"},
    )

    assert response.status_code == 200
    assert [product["id"] for product in response.json()["products"]] == ["7"]
    structural = store.filters[0]
    assert structural.category_id == "audio"
    assert structural.in_stock_only is True
    assert structural.price_min == 1_000_000


@pytest.mark.parametrize(
    "params",
    [
        {"sort": "cheapest"},
        {"minPrice": 10, "maxPrice": 5},
        {"page": 0},
        {"limit": 500},
        {"rating": 9},
        {"page": "abc"},
        {"limit": "x"},
        {"inStock": "maybe"},
        {"minPrice": "cheap"},
        {"rating": "four"},
    ],
)
def test_malformed_queries_return_400(client, use_engine, phones, params):
    store = SpyStore(phones)
    use_engine(store)
    response = client.get("/api/products/search", params=params)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid Query"
    assert body["details"]
    assert store.calls == 0


def test_backend_failure_returns_503_with_empty_result(client, use_engine):
    use_engine(FailingStore(), fallback_enabled=False)
    response = client.get("/api/products/search", params={"q": "iphone", "page": 2, "limit": 5})

    assert response.status_code == 503
    body = response.json()
    assert body["products"] == []
    assert body["total"] == 0
    assert (body["page"], body["limit"]) == (2, 5)


def test_backend_failure_with_fallback_returns_sample_results(client, use_engine):
    use_engine(FailingStore(), fallback_enabled=True)
    response = client.get("/api/products/search", params={"q": "iphone"})

    assert response.status_code == 200
    assert [product["id"] for product in response.json()["products"]] == ["1"]


def test_suggestions_endpoint(client, clock):
    service = SuggestionService(FallbackCatalog(), clock=clock)
    app.dependency_overrides[get_suggestion_service] = lambda: service
    response = client.get("/api/products/suggestions", params={"q": "iphone"})

    assert response.status_code == 200
    assert "iPhone 15 Pro Max" in response.json()["suggestions"]


def test_price_range_endpoint(client, use_engine):
    use_engine(FallbackCatalog())
    response = client.get("/api/products/price-range", params={"category": "laptop"})

    assert response.status_code == 200
    body = response.json()
    assert (body["min"], body["max"]) == (52_990_000, 75_990_000)
    assert sum(bucket["count"] for bucket in body["distribution"]) == 2


def test_blank_and_textual_params_are_coerced(client, use_engine, phones):
    store = SpyStore(phones)
    use_engine(store)
    response = client.get(
        "/api/products/search",
        params={"q": "", "minPrice": "", "page": "1", "limit": "5", "inStock": "true", "sort": "price_asc"},
    )

    assert response.status_code == 200
    assert response.json()["limit"] == 5
    structural = store.filters[0]
    assert structural.price_min is None
    assert structural.in_stock_only is True
