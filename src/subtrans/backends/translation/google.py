"""Google Translate through the public web endpoint (no API key)."""

from ...errors import ProviderFailed
from ..base import TranslationBackend, TranslationBackendInfo
from .http import DEFAULT_TIMEOUT_SECS, request_json

GOOGLE_URL = "https://translate.googleapis.com/translate_a/single"


class GoogleTranslationBackend(TranslationBackend):
    """Translates with Google's gtx endpoint."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECS, url: str = GOOGLE_URL):
        self._timeout = timeout
        self._url = url

    @classmethod
    def from_config(cls, config) -> "GoogleTranslationBackend":
        return cls(timeout=config.translation.timeout_secs)

    @classmethod
    def get_info(cls) -> TranslationBackendInfo:
        return TranslationBackendInfo(
            id="google",
            name="Google Translate",
            requires_key=False,
            description="Free web endpoint, rate limited by Google",
        )

    def translate(self, text, source_language, target_language, history=None) -> str:
        data = request_json(
            "google",
            "GET",
            self._url,
            timeout=self._timeout,
            params={
                "client": "gtx",
                "sl": source_language,
                "tl": target_language,
                "dt": "t",
                "q": text,
            },
        )

        # Response shape: [[["translated", "original", ...], ...], ...]
        try:
            segments = data[0]
            translated = "".join(segment[0] for segment in segments if segment and segment[0])
        except (IndexError, KeyError, TypeError) as e:
            raise ProviderFailed("google", "unexpected response shape") from e

        if not translated.strip():
            raise ProviderFailed("google", "empty translation")
        return translated.strip()
