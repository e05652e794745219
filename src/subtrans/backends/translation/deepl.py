"""DeepL API provider."""

from ...errors import ProviderFailed
from ..base import TranslationBackend, TranslationBackendInfo
from .http import DEFAULT_TIMEOUT_SECS, request_json

DEEPL_FREE_URL = "https://api-free.deepl.com/v2/translate"
DEEPL_PRO_URL = "https://api.deepl.com/v2/translate"

# DeepL rejects bare "EN"/"PT" as target languages
TARGET_VARIANTS = {
    "EN": "EN-US",
    "PT": "PT-BR",
}


def deepl_target(code: str) -> str:
    """Map an ISO code to the DeepL target language code."""
    upper = code.strip().upper().replace("_", "-")
    return TARGET_VARIANTS.get(upper, upper)


def deepl_source(code: str) -> str:
    """Map an ISO code to the DeepL source language code (no regional variant)."""
    return code.strip().upper().replace("_", "-").split("-")[0]


class DeepLTranslationBackend(TranslationBackend):
    """Translates with the DeepL REST API.

    Free-tier keys end in ":fx" and must use the api-free host.
    """

    def __init__(self, api_key: str, timeout: float = DEFAULT_TIMEOUT_SECS):
        self._api_key = api_key
        self._timeout = timeout

    @classmethod
    def from_config(cls, config) -> "DeepLTranslationBackend":
        return cls(config.translation.deepl_api_key, timeout=config.translation.timeout_secs)

    @classmethod
    def get_info(cls) -> TranslationBackendInfo:
        return TranslationBackendInfo(
            id="deepl",
            name="DeepL",
            requires_key=True,
            description="DeepL API (free or pro key)",
        )

    @property
    def url(self) -> str:
        return DEEPL_FREE_URL if self._api_key.endswith(":fx") else DEEPL_PRO_URL

    def translate(self, text, source_language, target_language, history=None) -> str:
        if not self._api_key:
            raise ProviderFailed("deepl", "no API key configured")

        data = request_json(
            "deepl",
            "POST",
            self.url,
            timeout=self._timeout,
            headers={"Authorization": f"DeepL-Auth-Key {self._api_key}"},
            json={
                "text": [text],
                "source_lang": deepl_source(source_language),
                "target_lang": deepl_target(target_language),
            },
        )

        try:
            translated = data["translations"][0]["text"]
        except (IndexError, KeyError, TypeError) as e:
            raise ProviderFailed("deepl", "unexpected response shape") from e

        if not translated or not translated.strip():
            raise ProviderFailed("deepl", "empty translation")
        return translated.strip()
