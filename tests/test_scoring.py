"""Tests for the relevance rules and their relative strength."""

from catalog_search.models import CatalogItem
from catalog_search.normalization import normalize
from catalog_search import scoring
from catalog_search.scoring import ItemContext, QueryContext, explain, score

IPHONE = CatalogItem(id=1, name="iPhone 15 Pro Max", price=34990000, stock_count=50)


def _ctx(query, item=IPHONE):
    return QueryContext.build(query), ItemContext.build(item)


def test_empty_query_scores_zero():
    assert score(IPHONE, "") == 0
    assert score(IPHONE, "   ") == 0
    assert explain(IPHONE, "") == {}


def test_exact_beats_prefix_beats_substring_beats_nothing():
    exact = score(IPHONE, "iphone 15 pro max")
    prefix = score(IPHONE, "iphone 15 pro")
    substring = score(IPHONE, "15 pro max")
    nothing = score(IPHONE, "samsung")

    assert exact >= prefix >= substring >= nothing
    assert exact > prefix > substring > 0
    assert nothing == 0


def test_score_is_deterministic():
    first = score(IPHONE, "iphone pro", normalize("iphone pro"))
    second = score(IPHONE, "iphone pro", normalize("iphone pro"))
    assert first == second


def test_boosts_only_apply_to_matching_items():
    """Stock, rating and sales never lift an unrelated item above zero."""

    popular = CatalogItem(
        id=9, name="Samsung Galaxy S24", price=1, stock_count=10, avg_rating=5, units_sold=5000
    )
    assert score(popular, "iphone") == 0
    partials = explain(popular, "galaxy")
    assert partials["availability"] == scoring.IN_STOCK
    assert partials["rating"] == scoring.RATING_MAX
    assert partials["popularity"] == scoring.UNITS_SOLD_MAX


def test_diacritic_free_query_matches_accented_name():
    item = CatalogItem(id=3, name="Điện thoại thông minh", price=1000, stock_count=1)
    partials = explain(item, "dien thoai")
    assert partials["name_prefix"] == scoring.NORMALIZED_NAME_PREFIX
    assert partials["name_contains"] == scoring.NORMALIZED_NAME_CONTAINS
    assert score(item, "dien thoai") > 0


def test_token_matches_count_once_per_query_token():
    query, item = _ctx("pro")
    # "pro" is an exact name token; the "15 Pro Max" tail cannot add more.
    assert scoring.match_tokens(query, item) == (scoring.TOKEN_EXACT, 1, 1)

    query, item = _ctx("ipho")
    assert scoring.match_tokens(query, item) == (scoring.TOKEN_PREFIX, 1, 0)

    query, item = _ctx("phone")
    assert scoring.match_tokens(query, item) == (scoring.TOKEN_SUBSTRING, 1, 0)


def test_completeness_prefers_all_exact_bonus():
    query, item = _ctx("iphone max")
    assert scoring.token_completeness(query, item) == scoring.ALL_TOKENS_EXACT

    query, item = _ctx("iph max")
    assert scoring.token_completeness(query, item) == scoring.ALL_TOKENS_MATCHED

    query, item = _ctx("iphone galaxy")
    assert scoring.token_completeness(query, item) == 0


def test_match_ratio_is_proportional_and_capped():
    query, item = _ctx("iphone galaxy")
    assert scoring.match_ratio(query, item) == 25

    query, item = _ctx("iphone max")
    assert scoring.match_ratio(query, item) == scoring.MATCH_RATIO_MAX


def test_name_match_outranks_description_match():
    by_name = CatalogItem(id=1, name="Tai nghe Sony", price=1, stock_count=1)
    by_description = CatalogItem(
        id=2, name="Galaxy Buds", description="Tai nghe không dây chống ồn", price=1, stock_count=1
    )
    assert score(by_name, "tai nghe") > score(by_description, "tai nghe") > 0


def test_description_token_bonus_is_capped():
    item = CatalogItem(
        id=4,
        name="Widget",
        description="alpha beta gamma delta epsilon zeta eta",
        price=1,
    )
    query, context = _ctx("alpha beta gamma delta epsilon zeta", item)
    assert scoring.description(query, context) == (
        scoring.DESCRIPTION_CONTAINS + scoring.NORMALIZED_DESCRIPTION_CONTAINS + scoring.DESCRIPTION_TOKEN_MAX
    )


def test_category_and_brand_containment():
    item = CatalogItem(
        id=5, name="Galaxy Tab", price=1, category_name="Máy tính bảng", brand="Samsung"
    )
    assert explain(item, "samsung")["brand"] == scoring.FIELD_CONTAINS
    assert explain(item, "may tinh bang")["category"] == scoring.NORMALIZED_FIELD_CONTAINS
