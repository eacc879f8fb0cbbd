"""Language codes understood by the engine and its translation providers."""

from __future__ import annotations

from typing import Dict, List, Optional

LANGUAGE_NAMES: Dict[str, str] = {
    "en": "English",
    "el": "Greek",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ja": "Japanese",
    "zh": "Chinese",
    "ko": "Korean",
    "ar": "Arabic",
}

_NAME_TO_CODE: Dict[str, str] = {name.lower(): code for code, name in LANGUAGE_NAMES.items()}


def normalize_language_code(value: Optional[str]) -> Optional[str]:
    """Return a lower-case ISO 639-1 code for ``value`` or ``None``.

    Accepts codes (``"EN"``), regional variants (``"pt_BR"``, ``"zh-CN"``) and
    English language names (``"Greek"``).
    """

    if not value:
        return None
    candidate = value.strip().lower().replace("_", "-")
    if not candidate:
        return None
    if candidate in _NAME_TO_CODE:
        return _NAME_TO_CODE[candidate]
    return candidate.split("-", 1)[0]


def get_language_name(code: str) -> str:
    """Return the display name for ``code``, or the code itself when unknown."""

    return LANGUAGE_NAMES.get(code, code)


def all_language_codes() -> List[str]:
    return list(LANGUAGE_NAMES)


__all__ = [
    "LANGUAGE_NAMES",
    "all_language_codes",
    "get_language_name",
    "normalize_language_code",
]
