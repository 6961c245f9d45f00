"""Pydantic models for queries, catalog items and response payloads."""
from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from .config import settings
from .errors import InvalidQuery


class SortMode(str, Enum):
    RELEVANCE = "relevance"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    NEWEST = "newest"
    POPULAR = "popular"


class SearchQuery(BaseModel):
    """Immutable search request: free text plus structural filters."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    term: str = Field("", description="Free-text search term, may be empty")
    category_id: str | None = None
    price_min: float | None = Field(None, ge=0)
    price_max: float | None = Field(None, ge=0)
    in_stock_only: bool = False
    min_rating: int | None = Field(None, ge=1, le=5)
    sort_mode: SortMode = SortMode.RELEVANCE
    page: int = Field(1, ge=1)
    page_size: int = Field(settings.default_page_size, ge=1, le=settings.max_page_size)
    bypass_cache: bool = False

    @model_validator(mode="after")
    def validate_price_range(self) -> "SearchQuery":
        """Reject inverted price ranges instead of silently swapping them."""
        if self.price_min is not None and self.price_max is not None:
            if self.price_min > self.price_max:
                raise ValueError(f"price_min ({self.price_min}) must be <= price_max ({self.price_max})")
        return self

    @classmethod
    def parse(cls, **fields: Any) -> "SearchQuery":
        """Build a query, converting validation failures into :class:`InvalidQuery`."""
        try:
            return cls(**fields)
        except ValidationError as exc:
            details = exc.errors(include_url=False, include_context=False)
            raise InvalidQuery(f"Invalid search query: {exc.error_count()} error(s)", details) from exc


class CatalogItem(BaseModel):
    """Read-only view of a product as returned by a catalog store."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )

    id: str
    name: str
    description: str | None = None
    price: float = Field(..., ge=0)
    stock_count: int = Field(0, ge=0, alias="stock")
    category_id: str | None = None
    category_name: str | None = None
    brand: str | None = None
    avg_rating: float | None = None
    units_sold: int | None = None
    created_at: datetime | None = None


class ScoredItem(CatalogItem):
    relevance_score: float | None = None


class SearchResult(BaseModel):
    """Paginated result set; serialized with the field names callers expect."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[ScoredItem] = Field(default_factory=list, alias="products")
    total_matching: int = Field(0, ge=0, alias="total")
    page: int = Field(1, ge=1)
    page_size: int = Field(..., ge=1, alias="limit")
    total_pages: int = Field(0, ge=0, alias="totalPages")

    @classmethod
    def build(cls, items: list[ScoredItem], total: int, page: int, page_size: int) -> "SearchResult":
        return cls(
            items=items,
            total_matching=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size),
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PriceBucket(BaseModel):
    price: float
    count: int


class PriceRange(BaseModel):
    min: float
    max: float
    distribution: list[PriceBucket] = Field(default_factory=list)


class SuggestionResponse(BaseModel):
    suggestions: list[str]
