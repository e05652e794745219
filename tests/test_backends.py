"""Tests for the network translation backends. All HTTP calls are mocked."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from subtrans.backends.registry import get_registry
from subtrans.backends.translation import (
    DeepLTranslationBackend,
    GoogleTranslationBackend,
    LibreTranslateBackend,
    OpenAITranslationBackend,
)
from subtrans.backends.translation.deepl import deepl_source, deepl_target
from subtrans.backends.translation.http import request_json
from subtrans.backends.translation.openai import build_messages
from subtrans.errors import ProviderFailed

REQUEST = "subtrans.backends.translation.http.requests.request"


def json_response(body, status=200):
    response = MagicMock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.text = str(body)
    response.json.return_value = body
    return response


class TestRequestJson:
    """Tests for request_json()."""

    def test_connection_error(self):
        with patch(REQUEST, side_effect=requests.ConnectionError("refused")):
            with pytest.raises(ProviderFailed) as exc_info:
                request_json("google", "GET", "https://example.invalid")

        assert exc_info.value.provider == "google"

    def test_http_error_status(self):
        with patch(REQUEST, return_value=json_response({"message": "quota"}, status=456)):
            with pytest.raises(ProviderFailed) as exc_info:
                request_json("deepl", "POST", "https://example.invalid")

        assert "HTTP 456" in exc_info.value.reason

    def test_invalid_json(self):
        response = json_response(None)
        response.json.side_effect = ValueError("no json")

        with patch(REQUEST, return_value=response):
            with pytest.raises(ProviderFailed):
                request_json("libretranslate", "POST", "https://example.invalid")

    def test_timeout_passed_through(self):
        with patch(REQUEST, return_value=json_response({})) as mock_request:
            request_json("google", "GET", "https://example.invalid", timeout=3.0, params={"q": "x"})

        mock_request.assert_called_once_with("GET", "https://example.invalid", timeout=3.0, params={"q": "x"})


class TestGoogle:
    """Tests for GoogleTranslationBackend."""

    def test_joins_segments(self):
        body = [[["Olá, ", "Hello, ", None], ["mundo", "world", None]], None, "en"]

        with patch(REQUEST, return_value=json_response(body)) as mock_request:
            result = GoogleTranslationBackend().translate("Hello, world", "en", "pt")

        assert result == "Olá, mundo"
        params = mock_request.call_args.kwargs["params"]
        assert params["sl"] == "en"
        assert params["tl"] == "pt"
        assert params["q"] == "Hello, world"

    def test_unexpected_shape(self):
        with patch(REQUEST, return_value=json_response({"error": "nope"})):
            with pytest.raises(ProviderFailed):
                GoogleTranslationBackend().translate("Hello", "en", "pt")


class TestDeepL:
    """Tests for DeepLTranslationBackend."""

    def test_language_codes(self):
        assert deepl_target("pt") == "PT-BR"
        assert deepl_target("en") == "EN-US"
        assert deepl_target("de") == "DE"
        assert deepl_source("pt-BR") == "PT"

    def test_missing_key(self):
        with pytest.raises(ProviderFailed, match="no API key"):
            DeepLTranslationBackend("").translate("Hello", "en", "pt")

    def test_free_key_uses_free_host(self):
        body = {"translations": [{"text": "Olá"}]}

        with patch(REQUEST, return_value=json_response(body)) as mock_request:
            result = DeepLTranslationBackend("abc:fx").translate("Hello", "en", "pt")

        assert result == "Olá"
        args = mock_request.call_args
        assert args.args[1].startswith("https://api-free.deepl.com")
        assert args.kwargs["json"]["target_lang"] == "PT-BR"
        assert args.kwargs["headers"]["Authorization"] == "DeepL-Auth-Key abc:fx"

    def test_pro_key_uses_pro_host(self):
        assert DeepLTranslationBackend("abc").url.startswith("https://api.deepl.com")


class TestLibreTranslate:
    """Tests for LibreTranslateBackend."""

    def test_translate_with_key(self):
        with patch(REQUEST, return_value=json_response({"translatedText": "Olá"})) as mock_request:
            result = LibreTranslateBackend("http://localhost:5000/", api_key="k").translate("Hello", "en", "pt")

        assert result == "Olá"
        assert mock_request.call_args.args[1] == "http://localhost:5000/translate"
        assert mock_request.call_args.kwargs["json"]["api_key"] == "k"

    def test_empty_translation(self):
        with patch(REQUEST, return_value=json_response({"translatedText": "  "})):
            with pytest.raises(ProviderFailed, match="empty"):
                LibreTranslateBackend("http://localhost:5000").translate("Hello", "en", "pt")


class TestOpenAI:
    """Tests for OpenAITranslationBackend."""

    def test_build_messages_with_history(self):
        messages = build_messages("c", "en", "pt", history=[("a", "A"), ("b", "B")], game_context="A pirate game")

        assert messages[0]["role"] == "system"
        assert "English" in messages[0]["content"]
        assert "Portuguese" in messages[0]["content"]
        assert "A pirate game" in messages[0]["content"]
        assert [m["role"] for m in messages[1:]] == ["user", "assistant", "user", "assistant", "user"]
        assert messages[-1]["content"] == "c"

    def test_build_messages_returns_fresh_list(self):
        first = build_messages("a", "en", "pt")
        first.append({"role": "user", "content": "leak"})
        assert len(build_messages("a", "en", "pt")) == 2

    def test_translate(self):
        body = {"choices": [{"message": {"content": " Olá \n"}}]}

        with patch(REQUEST, return_value=json_response(body)) as mock_request:
            result = OpenAITranslationBackend("sk-test").translate("Hello", "en", "pt", history=[("Hi", "Oi")])

        assert result == "Olá"
        args = mock_request.call_args
        assert args.args[1] == "https://api.openai.com/v1/chat/completions"
        payload = args.kwargs["json"]
        assert payload["model"] == "gpt-4o-mini"
        assert payload["max_tokens"] == 1024
        assert len(payload["messages"]) == 4

    def test_reasoning_model_payload(self):
        body = {"choices": [{"message": {"content": "Olá"}}]}

        with patch(REQUEST, return_value=json_response(body)) as mock_request:
            OpenAITranslationBackend("sk-test", model="gpt-5-mini").translate("Hello", "en", "pt")

        payload = mock_request.call_args.kwargs["json"]
        assert "temperature" not in payload
        assert payload["max_completion_tokens"] == 1024

    def test_missing_key(self):
        with pytest.raises(ProviderFailed, match="no API key"):
            OpenAITranslationBackend("").translate("Hello", "en", "pt")


class TestRegistry:
    """Tests for the backend registry."""

    def test_all_providers_registered(self):
        registry = get_registry()
        ids = {info.id for info in registry.get_translation_backends()}

        assert ids == {"google", "deepl", "libretranslate", "openai"}
        assert registry.get_ocr_backend_by_id("tesseract") is not None
        assert registry.get_translation_backend_by_id("missing") is None
