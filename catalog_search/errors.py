"""Error types raised by the search engine."""
from __future__ import annotations

from typing import Any, Sequence


class SearchError(Exception):
    """Base class for errors surfaced to callers of the engine."""


class InvalidQuery(SearchError, ValueError):
    """The inbound query is malformed and was rejected before any backend call."""

    def __init__(self, message: str, errors: Sequence[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class BackendUnavailable(SearchError):
    """The primary store failed to answer and no fallback was permitted."""
