"""MyMemory translation memory client."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from lexiweave.errors import MalformedResponse, RateLimited
from lexiweave.languages import all_language_codes
from lexiweave.text_normalization import clean_translation, is_placeholder_translation

from .base import BaseTranslationProvider, ProviderTranslation

MYMEMORY_URL = "https://api.mymemory.translated.net"


def _parse_confidence(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class MyMemoryProvider(BaseTranslationProvider):
    """GET ``/get?q=&langpair=`` against MyMemory.

    The configured ``api_key`` is sent as the ``de`` (contact e-mail) parameter,
    which raises the anonymous daily quota.
    """

    name = "mymemory"

    def translate(self, text: str, source: str, target: str) -> ProviderTranslation:
        params: Dict[str, Any] = {"q": text, "langpair": f"{source}|{target}"}
        if self._config.api_key:
            params["de"] = self._config.api_key
        data = self._request_json("GET", f"{self.base_url}/get", params=params)
        if not isinstance(data, dict):
            raise MalformedResponse(self.name, "expected a JSON object")

        status = data.get("responseStatus")
        if str(status) == "429":
            raise RateLimited(self.name, str(data.get("responseDetails") or "quota exceeded"))
        if str(status) != "200":
            raise MalformedResponse(
                self.name, f"responseStatus {status}: {data.get('responseDetails') or ''}".strip()
            )

        response_data = data.get("responseData") or {}
        if not isinstance(response_data, dict):
            raise MalformedResponse(self.name, "responseData is not an object")
        translated = clean_translation(response_data.get("translatedText"))
        if is_placeholder_translation(translated):
            raise MalformedResponse(self.name, "missing translatedText")
        return ProviderTranslation(
            translated_text=translated,
            provider=self.name,
            confidence=_parse_confidence(response_data.get("match")),
        )

    def supported_languages(self) -> List[str]:
        return all_language_codes()


__all__ = ["MYMEMORY_URL", "MyMemoryProvider"]
