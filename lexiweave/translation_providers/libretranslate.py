"""LibreTranslate client with mirror rotation."""

from __future__ import annotations

from typing import Any, Dict, List

from lexiweave.errors import MalformedResponse
from lexiweave.languages import LANGUAGE_NAMES
from lexiweave.text_normalization import clean_translation, is_placeholder_translation

from .base import BaseTranslationProvider, ProviderTranslation

LIBRETRANSLATE_URL = "https://libretranslate.com"
LIBRETRANSLATE_MIRRORS = [
    "https://translate.argosopentech.com",
    "https://translate.terraprint.co",
]


class LibreTranslateProvider(BaseTranslationProvider):
    """POST ``/translate`` against a LibreTranslate instance."""

    name = "libretranslate"
    supports_mirrors = True

    def translate(self, text: str, source: str, target: str) -> ProviderTranslation:
        payload: Dict[str, Any] = {
            "q": text,
            "source": source,
            "target": target,
            "format": "text",
            "api_key": self._config.api_key or "",
        }
        data = self._request_json("POST", f"{self.base_url}/translate", json_body=payload)
        if not isinstance(data, dict):
            raise MalformedResponse(self.name, "expected a JSON object")
        if data.get("error"):
            raise MalformedResponse(self.name, str(data["error"]))
        translated = clean_translation(data.get("translatedText"))
        if is_placeholder_translation(translated):
            raise MalformedResponse(self.name, "missing translatedText")
        return ProviderTranslation(translated_text=translated, provider=self.name)

    def supported_languages(self) -> List[str]:
        data = self._request_json("GET", f"{self.base_url}/languages")
        if not isinstance(data, list):
            raise MalformedResponse(self.name, "expected a list of languages")
        codes = {str(item.get("code", "")) for item in data if isinstance(item, dict)}
        return [code for code in LANGUAGE_NAMES if code in codes]


__all__ = ["LIBRETRANSLATE_MIRRORS", "LIBRETRANSLATE_URL", "LibreTranslateProvider"]
