"""Helpers for normalizing words and validating provider translations."""

from __future__ import annotations

import unicodedata
from typing import Optional, Tuple

import regex

_PLACEHOLDER_VALUES: Tuple[str, ...] = (
    "",
    "n/a",
    "n / a",
    "not available",
    "no translation",
    "none",
    "null",
    "-",
    "--",
    "?",
)

_EDGE_PUNCTUATION = regex.compile(r"^[\p{P}\p{S}\s]+|[\p{P}\p{S}\s]+$")
_LETTER_PATTERN = regex.compile(r"\p{L}")
_MYMEMORY_WARNING_PREFIXES: Tuple[str, ...] = (
    "mymemory warning",
    "query length limit",
    "invalid language pair",
    "please select two distinct languages",
)


def normalize_word(word: str) -> str:
    """Return the lookup key for ``word``: NFC, lower-cased, dots removed, trimmed."""

    if not word:
        return ""
    normalized = unicodedata.normalize("NFC", word).strip().lower()
    return normalized.replace(".", "").replace("’", "'")


def clean_translation(text: Optional[str]) -> str:
    """Strip surrounding whitespace and punctuation from a provider answer."""

    if not text:
        return ""
    cleaned = unicodedata.normalize("NFC", str(text)).strip()
    return _EDGE_PUNCTUATION.sub("", cleaned)


def is_placeholder_translation(text: Optional[str]) -> bool:
    """Return True when ``text`` is empty, a placeholder, or a provider warning."""

    if text is None:
        return True
    lowered = text.strip().lower()
    if lowered in _PLACEHOLDER_VALUES:
        return True
    if any(lowered.startswith(prefix) for prefix in _MYMEMORY_WARNING_PREFIXES):
        return True
    return not _LETTER_PATTERN.search(lowered)


__all__ = ["clean_translation", "is_placeholder_translation", "normalize_word"]
