"""LibreTranslate provider (self-hosted or public instance)."""

from ...errors import ProviderFailed
from ..base import TranslationBackend, TranslationBackendInfo
from .http import DEFAULT_TIMEOUT_SECS, request_json


class LibreTranslateBackend(TranslationBackend):
    """Translates with a LibreTranslate server."""

    def __init__(self, url: str, api_key: str = "", timeout: float = DEFAULT_TIMEOUT_SECS):
        self._url = url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout

    @classmethod
    def from_config(cls, config) -> "LibreTranslateBackend":
        translation = config.translation
        return cls(
            translation.libretranslate_url,
            api_key=translation.libretranslate_api_key,
            timeout=translation.timeout_secs,
        )

    @classmethod
    def get_info(cls) -> TranslationBackendInfo:
        return TranslationBackendInfo(
            id="libretranslate",
            name="LibreTranslate",
            requires_key=False,
            description="Open-source translation server; key needed on public instances",
        )

    def translate(self, text, source_language, target_language, history=None) -> str:
        if not self._url:
            raise ProviderFailed("libretranslate", "no server URL configured")

        payload = {
            "q": text,
            "source": source_language,
            "target": target_language,
            "format": "text",
        }
        if self._api_key:
            payload["api_key"] = self._api_key

        data = request_json(
            "libretranslate",
            "POST",
            f"{self._url}/translate",
            timeout=self._timeout,
            json=payload,
        )

        translated = data.get("translatedText") if isinstance(data, dict) else None
        if not translated or not translated.strip():
            raise ProviderFailed("libretranslate", "empty translation")
        return translated.strip()
