"""Relevance scoring for catalog items.

The score of an item is the sum of independent, named rules. Each rule looks at
the query (raw, lowercased and normalized forms) and at the item, and returns a
partial score. Rule weights only matter relative to each other:

    exact name > name prefix > name substring > per-token matches
    > description / category / brand containment > stock, rating, sales boosts

The stock, rating and sales boosts are gated on relevance: an item none of the
textual rules matched scores exactly 0, which the engine uses to drop it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, NamedTuple

from .models import CatalogItem
from .normalization import normalize, tokenize

logger = logging.getLogger(__name__)

EXACT_NAME = 200.0
NAME_PREFIX = 100.0
NORMALIZED_NAME_PREFIX = 90.0
NAME_CONTAINS = 80.0
NORMALIZED_NAME_CONTAINS = 70.0
TOKEN_EXACT = 50.0
TOKEN_PREFIX = 40.0
TOKEN_SUBSTRING = 30.0
ALL_TOKENS_MATCHED = 100.0
ALL_TOKENS_EXACT = 120.0
MATCH_RATIO_MAX = 50.0
DESCRIPTION_CONTAINS = 25.0
NORMALIZED_DESCRIPTION_CONTAINS = 20.0
DESCRIPTION_TOKEN = 5.0
DESCRIPTION_TOKEN_MAX = 25.0
FIELD_CONTAINS = 20.0
NORMALIZED_FIELD_CONTAINS = 15.0
IN_STOCK = 10.0
RATING_FACTOR = 3.0
RATING_MAX = 15.0
UNITS_SOLD_DIVISOR = 10.0
UNITS_SOLD_MAX = 20.0


@dataclass(frozen=True)
class QueryContext:
    raw: str
    lower: str
    normalized: str
    tokens: tuple[str, ...]

    @classmethod
    def build(cls, raw_query: str, norm_query: str | None = None) -> "QueryContext":
        lower = " ".join((raw_query or "").lower().split())
        normalized = norm_query if norm_query is not None else normalize(raw_query)
        return cls(raw=raw_query or "", lower=lower, normalized=normalized, tokens=tuple(tokenize(lower)))


@dataclass(frozen=True)
class ItemContext:
    item: CatalogItem
    name: str
    normalized_name: str
    name_tokens: tuple[str, ...]
    description: str
    normalized_description: str
    description_tokens: tuple[str, ...]

    @classmethod
    def build(cls, item: CatalogItem) -> "ItemContext":
        name = item.name.lower()
        description = (item.description or "").lower()
        return cls(
            item=item,
            name=name,
            normalized_name=normalize(name),
            name_tokens=tuple(tokenize(name)),
            description=description,
            normalized_description=normalize(description),
            description_tokens=tuple(tokenize(description)),
        )


class TokenMatches(NamedTuple):
    score: float
    matched: int
    exact: int


class ScoringRule(NamedTuple):
    name: str
    apply: Callable[[QueryContext, ItemContext], float]
    textual: bool = True


def _contains(haystack: str, needle: str) -> bool:
    return bool(needle) and needle in haystack


def exact_name(query: QueryContext, item: ItemContext) -> float:
    if item.name == query.lower:
        return EXACT_NAME
    if query.normalized and item.normalized_name == query.normalized:
        return EXACT_NAME
    return 0.0


def name_prefix(query: QueryContext, item: ItemContext) -> float:
    score = 0.0
    if item.name.startswith(query.lower):
        score += NAME_PREFIX
    if query.normalized and item.normalized_name.startswith(query.normalized):
        score += NORMALIZED_NAME_PREFIX
    return score


def name_contains(query: QueryContext, item: ItemContext) -> float:
    score = 0.0
    if _contains(item.name, query.lower):
        score += NAME_CONTAINS
    if _contains(item.normalized_name, query.normalized):
        score += NORMALIZED_NAME_CONTAINS
    return score


def match_tokens(query: QueryContext, item: ItemContext) -> TokenMatches:
    """Score each query token against the name tokens; first qualifying match wins."""

    score = 0.0
    matched = exact = 0
    for token in query.tokens:
        normalized_token = normalize(token)
        for name_token in item.name_tokens:
            if name_token == token:
                score += TOKEN_EXACT
                exact += 1
            elif name_token.startswith(token):
                score += TOKEN_PREFIX
            elif token in name_token:
                score += TOKEN_SUBSTRING
            elif normalized_token and normalize(name_token).startswith(normalized_token):
                score += TOKEN_PREFIX
            else:
                continue
            matched += 1
            break
    return TokenMatches(score, matched, exact)


def name_tokens(query: QueryContext, item: ItemContext) -> float:
    return match_tokens(query, item).score


def token_completeness(query: QueryContext, item: ItemContext) -> float:
    if not query.tokens:
        return 0.0
    matches = match_tokens(query, item)
    if matches.exact == len(query.tokens):
        return ALL_TOKENS_EXACT
    if matches.matched == len(query.tokens):
        return ALL_TOKENS_MATCHED
    return 0.0


def match_ratio(query: QueryContext, item: ItemContext) -> float:
    if len(query.tokens) < 2:
        return 0.0
    matches = match_tokens(query, item)
    return float(round(MATCH_RATIO_MAX * matches.matched / len(query.tokens)))


def description(query: QueryContext, item: ItemContext) -> float:
    if not item.description:
        return 0.0
    score = 0.0
    if _contains(item.description, query.lower):
        score += DESCRIPTION_CONTAINS
    if _contains(item.normalized_description, query.normalized):
        score += NORMALIZED_DESCRIPTION_CONTAINS
    hits = sum(1 for token in query.tokens if any(token in word for word in item.description_tokens))
    score += min(hits * DESCRIPTION_TOKEN, DESCRIPTION_TOKEN_MAX)
    return score


def _field_contains(value: str | None, query: QueryContext) -> float:
    if not value:
        return 0.0
    lowered = value.lower()
    if _contains(lowered, query.lower):
        return FIELD_CONTAINS
    if _contains(normalize(lowered), query.normalized):
        return NORMALIZED_FIELD_CONTAINS
    return 0.0


def category(query: QueryContext, item: ItemContext) -> float:
    return _field_contains(item.item.category_name, query)


def brand(query: QueryContext, item: ItemContext) -> float:
    return _field_contains(item.item.brand, query)


def availability(query: QueryContext, item: ItemContext) -> float:
    return IN_STOCK if item.item.stock_count > 0 else 0.0


def rating(query: QueryContext, item: ItemContext) -> float:
    if not item.item.avg_rating:
        return 0.0
    return min(item.item.avg_rating * RATING_FACTOR, RATING_MAX)


def popularity(query: QueryContext, item: ItemContext) -> float:
    if not item.item.units_sold:
        return 0.0
    return min(item.item.units_sold / UNITS_SOLD_DIVISOR, UNITS_SOLD_MAX)


RULES: tuple[ScoringRule, ...] = (
    ScoringRule("exact_name", exact_name),
    ScoringRule("name_prefix", name_prefix),
    ScoringRule("name_contains", name_contains),
    ScoringRule("name_tokens", name_tokens),
    ScoringRule("token_completeness", token_completeness),
    ScoringRule("match_ratio", match_ratio),
    ScoringRule("description", description),
    ScoringRule("category", category),
    ScoringRule("brand", brand),
    ScoringRule("availability", availability, textual=False),
    ScoringRule("rating", rating, textual=False),
    ScoringRule("popularity", popularity, textual=False),
)


def explain(item: CatalogItem, raw_query: str, norm_query: str | None = None) -> dict[str, float]:
    """Return the partial score of every rule, in rule order."""

    if not (raw_query or "").strip():
        return {}
    query = QueryContext.build(raw_query, norm_query)
    context = ItemContext.build(item)
    partials = {rule.name: rule.apply(query, context) for rule in RULES if rule.textual}
    if not any(partials.values()):
        return partials
    for rule in RULES:
        if not rule.textual:
            partials[rule.name] = rule.apply(query, context)
    return partials


def score(item: CatalogItem, raw_query: str, norm_query: str | None = None) -> float:
    """Relevance of ``item`` for ``raw_query``; 0 when the query is empty or nothing matched."""

    return float(sum(explain(item, raw_query, norm_query).values()))
