"""Utilities for diacritic-insensitive query normalization.

:func:`normalize` is the single text pipeline shared by the scorer, the query
planner and the indexer:

    1) lowercase and map ``đ`` to ``d`` (NFD leaves that letter intact);
    2) decompose with NFD and drop the combining marks, so ``"Điện Thoại"``
       and ``"dien thoai"`` end up identical;
    3) fold whatever non-ASCII letters remain with ``unidecode``;
    4) strip punctuation, collapse whitespace;
    5) fold spelling/spacing variants of common catalog terms into canonical
       tokens (``"may tinh"`` and ``"laptop"`` both become ``"maytinh"``).

The function is total: any input, including ``None``, yields a string.
"""
from __future__ import annotations

import logging
import re
import unicodedata

from unidecode import unidecode

logger = logging.getLogger(__name__)

# Everything except ASCII letters, digits and whitespace becomes a space.
_NON_ALNUM_SPACE_RE = re.compile(r"[^0-9a-z\s]+")

# Variant -> canonical token. Canonical tokens are never keys of another rule,
# which keeps normalize(normalize(s)) == normalize(s).
SYNONYMS: dict[str, str] = {
    "dien thoai": "dienthoai",
    "smartphone": "dienthoai",
    "may tinh bang": "maytinhbang",
    "may tinh": "maytinh",
    "laptop": "maytinh",
    "tai nghe": "tainghe",
    "am thanh": "amthanh",
    "loa": "amthanh",
    "phu kien": "phukien",
    "man hinh": "manhinh",
    "choi game": "game",
    "gaming": "game",
    "ban phim": "banphim",
    "sac": "pin",
}

# Longest variants first so "may tinh bang" is folded before "may tinh".
_SYNONYM_RULES: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(rf"\b{re.escape(variant)}\b"), canonical)
    for variant, canonical in sorted(SYNONYMS.items(), key=lambda kv: (-len(kv[0]), kv[0]))
)


def strip_diacritics(text: str) -> str:
    """Lowercase ``text`` and remove Vietnamese tone and vowel marks."""

    lowered = (text or "").lower().replace("đ", "d")
    decomposed = unicodedata.normalize("NFD", lowered)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return unidecode(stripped).lower()


def apply_synonyms(text: str) -> str:
    # Repeat until stable: "choi gaming" -> "choi game" -> "game".
    previous = None
    while text != previous:
        previous = text
        canonical = SYNONYMS.get(text)
        if canonical is not None:
            return canonical
        for pattern, replacement in _SYNONYM_RULES:
            text = pattern.sub(replacement, text)
    return text


def normalize(text: str | None) -> str:
    """Normalize free-form text for diacritic-insensitive comparison.

    >>> normalize("Điện Thoại!")
    'dienthoai'
    >>> normalize("  Tai-nghe   Sony ")
    'tainghe sony'
    """

    folded = strip_diacritics(text or "")
    cleaned = _NON_ALNUM_SPACE_RE.sub(" ", folded)
    compact = " ".join(cleaned.split())
    if not compact:
        return ""
    normalized = apply_synonyms(compact)
    logger.debug("normalize raw=%r compact=%r normalized=%r", text, compact, normalized)
    return normalized


def tokenize(text: str | None) -> list[str]:
    """Split on whitespace, keeping tokens longer than one character."""

    return [token for token in (text or "").split() if len(token) > 1]
