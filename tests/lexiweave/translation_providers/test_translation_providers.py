"""Request/response handling of the individual HTTP providers."""

from unittest.mock import MagicMock

import pytest
import requests

from lexiweave.errors import MalformedResponse, NetworkError, ProviderHTTPError, RateLimited
from lexiweave.translation_providers.base import ProviderConfig
from lexiweave.translation_providers.libretranslate import LibreTranslateProvider
from lexiweave.translation_providers.lingva import LingvaProvider
from lexiweave.translation_providers.mymemory import MyMemoryProvider

pytestmark = pytest.mark.translation


def _response(payload=None, status=200, reason="OK"):
    response = MagicMock()
    response.status_code = status
    response.reason = reason
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


def _session(*responses):
    session = MagicMock()
    session.request.side_effect = list(responses)
    return session


def _libre(session, **config):
    return LibreTranslateProvider(
        ProviderConfig(
            name="libretranslate",
            base_url="https://libre.test/",
            mirrors=["https://mirror-a.test", "https://mirror-b.test"],
            **config,
        ),
        session=session,
    )


class TestLibreTranslateProvider:
    def test_translate_posts_json_body(self):
        session = _session(_response({"translatedText": " casa. "}))
        result = _libre(session, api_key="k").translate("house", "en", "es")

        assert result.translated_text == "casa"
        assert result.provider == "libretranslate"
        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "POST"
        assert url == "https://libre.test/translate"
        assert kwargs["json"] == {
            "q": "house",
            "source": "en",
            "target": "es",
            "format": "text",
            "api_key": "k",
        }
        assert kwargs["timeout"] == 10.0

    def test_error_payload_is_malformed(self):
        session = _session(_response({"error": "Invalid API key"}))
        with pytest.raises(MalformedResponse):
            _libre(session).translate("house", "en", "es")

    def test_empty_translation_is_malformed(self):
        session = _session(_response({"translatedText": ""}))
        with pytest.raises(MalformedResponse):
            _libre(session).translate("house", "en", "es")

    def test_http_error(self):
        session = _session(_response(None, status=503, reason="Unavailable"))
        with pytest.raises(ProviderHTTPError) as excinfo:
            _libre(session).translate("house", "en", "es")
        assert excinfo.value.status_code == 503

    def test_timeout_is_network_error(self):
        session = MagicMock()
        session.request.side_effect = requests.Timeout("slow")
        with pytest.raises(NetworkError):
            _libre(session).translate("house", "en", "es")

    def test_non_json_body(self):
        session = _session(_response(ValueError("no json")))
        with pytest.raises(MalformedResponse):
            _libre(session).translate("house", "en", "es")

    def test_rotate_mirror_cycles(self):
        provider = _libre(MagicMock())
        assert provider.base_url == "https://libre.test"
        assert provider.rotate_mirror() == "https://mirror-a.test"
        assert provider.rotate_mirror() == "https://mirror-b.test"
        assert provider.rotate_mirror() == "https://libre.test"

    def test_supported_languages_filters_known_codes(self):
        session = _session(_response([{"code": "es"}, {"code": "xx"}, {"code": "en"}]))
        languages = _libre(session).supported_languages()
        assert "es" in languages and "en" in languages
        assert "xx" not in languages


class TestMyMemoryProvider:
    def _provider(self, session, api_key=None):
        config = ProviderConfig(name="mymemory", base_url="https://mm.test", api_key=api_key)
        return MyMemoryProvider(config, session=session)

    def test_translate_uses_langpair_and_contact(self):
        session = _session(
            _response({"responseStatus": 200, "responseData": {"translatedText": "Casa", "match": 0.98}})
        )
        result = self._provider(session, api_key="reader@example.com").translate("house", "en", "es")

        assert result.translated_text == "Casa"
        assert result.confidence == pytest.approx(0.98)
        kwargs = session.request.call_args.kwargs
        assert kwargs["params"] == {"q": "house", "langpair": "en|es", "de": "reader@example.com"}
        assert session.request.call_args.args == ("GET", "https://mm.test/get")

    def test_quota_exhaustion_is_rate_limited(self):
        session = _session(_response({"responseStatus": 429, "responseDetails": "quota"}))
        with pytest.raises(RateLimited):
            self._provider(session).translate("house", "en", "es")

    def test_http_too_many_requests_is_rate_limited(self):
        session = _session(_response(None, status=429, reason="Too Many Requests"))
        with pytest.raises(RateLimited):
            self._provider(session).translate("house", "en", "es")

    @pytest.mark.parametrize("response_data", ["oops", ["casa"], 7])
    def test_response_data_must_be_an_object(self, response_data):
        session = _session(_response({"responseStatus": 200, "responseData": response_data}))
        with pytest.raises(MalformedResponse):
            self._provider(session).translate("house", "en", "es")

    def test_warning_text_is_malformed(self):
        session = _session(
            _response(
                {
                    "responseStatus": "200",
                    "responseData": {"translatedText": "MYMEMORY WARNING: YOU USED ALL AVAILABLE FREE TRANSLATIONS"},
                }
            )
        )
        with pytest.raises(MalformedResponse):
            self._provider(session).translate("house", "en", "es")

    def test_mirror_rotation_is_a_noop(self):
        provider = self._provider(MagicMock())
        assert provider.rotate_mirror() == "https://mm.test"


class TestLingvaProvider:
    def test_translate_quotes_text_into_path(self):
        session = _session(_response({"translation": "buenos días"}))
        provider = LingvaProvider(ProviderConfig(name="lingva", base_url="https://lingva.test"), session=session)
        result = provider.translate("good day/night", "en", "es")

        assert result.translated_text == "buenos días"
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "https://lingva.test/api/v1/en/es/good%20day%2Fnight"

    def test_missing_translation(self):
        session = _session(_response({"info": {}}))
        provider = LingvaProvider(ProviderConfig(name="lingva", base_url="https://lingva.test"), session=session)
        with pytest.raises(MalformedResponse):
            provider.translate("house", "en", "es")

    def test_close_only_closes_owned_session(self):
        session = MagicMock()
        provider = LingvaProvider(ProviderConfig(name="lingva", base_url="https://lingva.test"), session=session)
        provider.close()
        session.close.assert_not_called()
