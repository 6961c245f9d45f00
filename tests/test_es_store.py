"""Tests for the Elasticsearch store's query translation and error mapping."""

import asyncio
from fnmatch import fnmatchcase

import pytest
from elasticsearch import ConnectionError as ESConnectionError

from catalog_search.catalog import matches_text, searchable_text
from catalog_search.errors import BackendUnavailable
from catalog_search.es_store import ElasticsearchCatalogStore, build_es_query
from catalog_search.fallback import SAMPLE_PRODUCTS
from catalog_search.indexing import document_count, ensure_index, index_is_empty
from catalog_search.models import SearchQuery
from catalog_search.planner import StructuralFilter, TextHint, plan


def test_filters_translate_to_bool_filter_clauses():
    body = build_es_query(
        StructuralFilter(category_id="laptop", price_min=100, price_max=500, in_stock_only=True, min_rating=4),
        size=50,
    )
    filters = body["query"]["bool"]["filter"]

    assert body["size"] == 50
    assert {"term": {"categoryId": "laptop"}} in filters
    assert {"range": {"price": {"gte": 100, "lte": 500}}} in filters
    assert {"range": {"stock": {"gt": 0}}} in filters
    assert {"range": {"avgRating": {"gte": 4}}} in filters
    assert "should" not in body["query"]["bool"]
    assert "search_after" not in body


def test_text_hint_becomes_containment_filter():
    hint = TextHint(raw="Điện thoại", normalized="dienthoai", tokens=("dienthoai",))
    bool_clause = build_es_query(StructuralFilter(text_hint=hint), size=10)["query"]["bool"]

    assert "should" not in bool_clause
    (containment,) = bool_clause["filter"]
    assert containment["bool"]["minimum_should_match"] == 1
    assert containment["bool"]["should"] == [{"wildcard": {"searchText": {"value": "*dienthoai*"}}}]


def _matches_wildcards(body, text):
    """Evaluate the containment clauses of ``body`` the way a wildcard field would."""

    for clause in body["query"]["bool"]["filter"]:
        if "bool" not in clause:
            continue
        patterns = [should["wildcard"]["searchText"]["value"] for should in clause["bool"]["should"]]
        if not any(fnmatchcase(text, pattern) for pattern in patterns):
            return False
    return True


@pytest.mark.parametrize("term", ["phone", "iphone 15", "max", "dien thoai", "tai nghe sony", "xyz"])
def test_containment_agrees_with_in_memory_prefilter(term):
    structural = plan(SearchQuery(term=term)).filter
    body = build_es_query(structural, size=10)
    for item in SAMPLE_PRODUCTS:
        assert _matches_wildcards(body, searchable_text(item)) == matches_text(item, structural), item.name


def test_substring_of_a_word_is_retrieved():
    structural = plan(SearchQuery(term="phone")).filter
    body = build_es_query(structural, size=10)
    assert _matches_wildcards(body, searchable_text(SAMPLE_PRODUCTS[0]))


class _FakeClient:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def search(self, index, body):
        self.calls.append((index, body))
        if self.exc is not None:
            raise self.exc
        return self.response


def test_hits_are_parsed_into_items():
    client = _FakeClient(
        {
            "took": 3,
            "hits": {"hits": [{"_source": {"id": 7, "name": "Loa JBL Charge 5", "price": 3290000, "stock": 34}}]},
        }
    )
    store = ElasticsearchCatalogStore(client, "products", page_size=200)
    items = store.fetch_candidates(StructuralFilter(limit=500))

    assert [item.id for item in items] == ["7"]
    assert items[0].stock_count == 34
    index, body = client.calls[0]
    assert index == "products"
    assert body["size"] == 200


class _PagingClient:
    """Serves ``total`` documents in sort order, honoring ``size`` and ``search_after``."""

    def __init__(self, total):
        self.docs = [{"id": idx, "name": f"Item {idx}", "price": idx, "stock": 1} for idx in range(total)]
        self.bodies = []

    def search(self, index, body):
        self.bodies.append(body)
        start = body["search_after"][0] + 1 if "search_after" in body else 0
        window = self.docs[start : start + body["size"]]
        return {"hits": {"hits": [{"_source": doc, "sort": [start + pos]} for pos, doc in enumerate(window)]}}


def test_fetch_pages_until_every_match_is_returned():
    client = _PagingClient(1200)
    store = ElasticsearchCatalogStore(client, "products", page_size=500)
    items = store.fetch_candidates(StructuralFilter())

    assert len(items) == 1200
    assert len({item.id for item in items}) == 1200
    assert [body["size"] for body in client.bodies] == [500, 500, 500]
    assert "search_after" not in client.bodies[0]
    assert client.bodies[1]["search_after"] == [499]
    assert client.bodies[2]["search_after"] == [999]


def test_fetch_stops_at_filter_limit():
    client = _PagingClient(1200)
    store = ElasticsearchCatalogStore(client, "products", page_size=500)
    items = store.fetch_candidates(StructuralFilter(limit=20))

    assert len(items) == 20
    assert [body["size"] for body in client.bodies] == [20]


def test_transport_errors_become_backend_unavailable():
    store = ElasticsearchCatalogStore(_FakeClient(exc=ESConnectionError("boom")), "products")
    with pytest.raises(BackendUnavailable):
        store.fetch_candidates(StructuralFilter())


class _FakeIndices:
    def __init__(self, exists):
        self._exists = exists
        self.created = []

    def exists(self, index):
        return self._exists

    def create(self, index, settings, mappings):
        self.created.append(index)
        self._exists = True


class _FakeAdminClient:
    def __init__(self, exists=False, count=0):
        self.indices = _FakeIndices(exists)
        self._count = count

    def count(self, index):
        return {"count": self._count}


def test_ensure_index_creates_only_when_missing():
    client = _FakeAdminClient(exists=False)
    assert asyncio.run(ensure_index(client, "catalog-test")) is True
    assert asyncio.run(ensure_index(client, "catalog-test")) is False
    assert client.indices.created == ["catalog-test"]


def test_index_emptiness_follows_document_count():
    assert asyncio.run(index_is_empty(_FakeAdminClient(count=0), "catalog-test")) is True
    assert asyncio.run(document_count(_FakeAdminClient(count=8), "catalog-test")) == 8
