"""Abstract base classes for OCR and translation backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import Config
    from ..preprocess import ProcessedFrame


class Language(Enum):
    """Languages with known OCR and provider codes."""

    ENGLISH = "en"
    PORTUGUESE = "pt"
    SPANISH = "es"
    FRENCH = "fr"
    GERMAN = "de"
    ITALIAN = "it"
    DUTCH = "nl"
    POLISH = "pl"
    RUSSIAN = "ru"
    JAPANESE = "ja"
    CHINESE = "zh"
    KOREAN = "ko"

    @property
    def display_name(self) -> str:
        """Human-readable name for the language."""
        names = {
            Language.ENGLISH: "English",
            Language.PORTUGUESE: "Portuguese",
            Language.SPANISH: "Spanish",
            Language.FRENCH: "French",
            Language.GERMAN: "German",
            Language.ITALIAN: "Italian",
            Language.DUTCH: "Dutch",
            Language.POLISH: "Polish",
            Language.RUSSIAN: "Russian",
            Language.JAPANESE: "Japanese",
            Language.CHINESE: "Chinese",
            Language.KOREAN: "Korean",
        }
        return names.get(self, self.value)

    @classmethod
    def from_code(cls, code: str) -> "Language":
        """Look up a language by ISO code ("en", "pt-BR", "PT" all work).

        Raises:
            ValueError: If the code is not a known language.
        """
        base = code.strip().lower().split("-")[0].split("_")[0]
        return cls(base)


@dataclass
class OcrResult:
    """Recognized text for one frame. Empty text means nothing was found."""

    text: str
    confidence: float | None = None


@dataclass
class OCRBackendInfo:
    """Metadata about an OCR backend."""

    id: str
    name: str
    supported_languages: list[Language]
    license: str
    description: str = ""


@dataclass
class TranslationBackendInfo:
    """Metadata about a translation backend."""

    id: str
    name: str
    requires_key: bool
    description: str = ""


class OCRBackend(ABC):
    """An OCR engine that turns a preprocessed frame into one line of text.

    Engines are loaded lazily; recognize() calls load() on first use.
    Words scoring below `confidence_threshold` (0.0-1.0) are dropped.
    """

    def __init__(self, confidence_threshold: float = 0.6):
        self.confidence_threshold = confidence_threshold

    @abstractmethod
    def load(self) -> None:
        """Check the engine is installed and ready; raise OcrFault if not."""

    @abstractmethod
    def recognize(self, frame: "ProcessedFrame") -> OcrResult:
        """Read the text in a frame.

        Returns:
            OcrResult. Finding no text is not an error; the text is empty.

        Raises:
            OcrFault: The engine crashed or rejected the image.
        """

    @abstractmethod
    def is_loaded(self) -> bool: ...

    @classmethod
    @abstractmethod
    def get_info(cls) -> OCRBackendInfo: ...


class TranslationBackend(ABC):
    """Abstract base class for translation providers.

    Instances are built from the live Config by from_config() and carry only
    their own credential block, so one provider failing cannot touch the
    state of another.
    """

    @classmethod
    @abstractmethod
    def from_config(cls, config: "Config") -> "TranslationBackend":
        """Build the provider from its config block."""

    @abstractmethod
    def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
        history: list[tuple[str, str]] | None = None,
    ) -> str:
        """Translate text.

        Args:
            text: Source text to translate.
            source_language: ISO code of the source language.
            target_language: ISO code of the target language.
            history: Recent (original, translated) pairs, oldest first.
                Providers that cannot use conversational context ignore it.

        Returns:
            Translated text.

        Raises:
            ProviderFailed: On HTTP errors, missing credentials or malformed responses.
        """

    @classmethod
    @abstractmethod
    def get_info(cls) -> TranslationBackendInfo:
        """Get metadata about this backend."""
