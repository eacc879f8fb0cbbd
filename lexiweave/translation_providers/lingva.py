"""Lingva (Google Translate front-end) client."""

from __future__ import annotations

from typing import List
from urllib.parse import quote

from lexiweave.errors import MalformedResponse
from lexiweave.languages import LANGUAGE_NAMES
from lexiweave.text_normalization import clean_translation, is_placeholder_translation

from .base import BaseTranslationProvider, ProviderTranslation

LINGVA_URL = "https://lingva.ml"


class LingvaProvider(BaseTranslationProvider):
    """GET ``/api/v1/{source}/{target}/{text}`` against a Lingva instance."""

    name = "lingva"

    def translate(self, text: str, source: str, target: str) -> ProviderTranslation:
        url = f"{self.base_url}/api/v1/{source}/{target}/{quote(text, safe='')}"
        data = self._request_json("GET", url)
        if not isinstance(data, dict):
            raise MalformedResponse(self.name, "expected a JSON object")
        translated = clean_translation(data.get("translation"))
        if is_placeholder_translation(translated):
            raise MalformedResponse(self.name, "missing translation")
        return ProviderTranslation(translated_text=translated, provider=self.name)

    def supported_languages(self) -> List[str]:
        data = self._request_json("GET", f"{self.base_url}/api/v1/languages")
        languages = data.get("languages") if isinstance(data, dict) else None
        if not isinstance(languages, list):
            raise MalformedResponse(self.name, "expected a languages list")
        codes = {str(item.get("code", "")) for item in languages if isinstance(item, dict)}
        return [code for code in LANGUAGE_NAMES if code in codes]


__all__ = ["LINGVA_URL", "LingvaProvider"]
