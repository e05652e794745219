"""Translation providers."""

from .deepl import DeepLTranslationBackend
from .google import GoogleTranslationBackend
from .libretranslate import LibreTranslateBackend
from .openai import OpenAITranslationBackend

__all__ = [
    "DeepLTranslationBackend",
    "GoogleTranslationBackend",
    "LibreTranslateBackend",
    "OpenAITranslationBackend",
]
