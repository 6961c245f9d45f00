"""Tests for turning raw catalog records into index documents."""

import json

import pytest
from pydantic import ValidationError

from catalog_search.importer import _iter_actions, _load_products, prepare_document


def test_nested_category_and_sold_count_are_flattened():
    document = prepare_document(
        {
            "id": 6,
            "name": "Tai nghe Sony WH-1000XM5",
            "description": "Tai nghe chống ồn",
            "price": 7490000,
            "stock": 0,
            "category": {"id": "audio", "name": "Âm thanh"},
            "soldCount": 75,
        }
    )

    assert document["id"] == "6"
    assert document["categoryId"] == "audio"
    assert document["categoryName"] == "Âm thanh"
    assert document["unitsSold"] == 75
    assert document["nameNormalized"] == "tainghe sony wh 1000xm5"
    assert document["descriptionNormalized"] == "tainghe chong on"
    assert document["searchText"] == "tainghe sony wh 1000xm5 tainghe chong on amthanh"


def test_invalid_records_are_rejected():
    with pytest.raises(ValidationError):
        prepare_document({"id": 1, "name": "Broken", "price": -5})


def test_load_products_accepts_wrapped_and_missing_files(tmp_path):
    path = tmp_path / "products.json"
    path.write_text(json.dumps({"products": [{"id": 1}]}), encoding="utf-8")
    assert _load_products(path) == [{"id": 1}]
    assert _load_products(tmp_path / "absent.json") == []


def test_bulk_actions_use_document_id():
    actions = list(_iter_actions("products", [{"id": "3", "name": "MacBook"}]))
    assert actions == [{"_index": "products", "_id": "3", "_source": {"id": "3", "name": "MacBook"}}]
