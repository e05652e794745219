"""Lookup of OCR engines and translation providers by config id.

Provider ids in `translation.providers` resolve here. The registry holds
classes only; instances are built per attempt from the live config.
"""

from .base import OCRBackend, OCRBackendInfo, TranslationBackend, TranslationBackendInfo


class BackendRegistry:
    """Maps backend ids (as reported by get_info()) to backend classes."""

    def __init__(self):
        self._ocr: dict[str, type[OCRBackend]] = {}
        self._translation: dict[str, type[TranslationBackend]] = {}

    def register_ocr_backend(self, backend_class: type[OCRBackend]) -> None:
        self._ocr.setdefault(backend_class.get_info().id, backend_class)

    def register_translation_backend(self, backend_class: type[TranslationBackend]) -> None:
        self._translation.setdefault(backend_class.get_info().id, backend_class)

    def get_ocr_backends(self) -> list[OCRBackendInfo]:
        """Info for every OCR engine, in registration order."""
        return [backend.get_info() for backend in self._ocr.values()]

    def get_translation_backends(self) -> list[TranslationBackendInfo]:
        """Info for every translation provider, in registration order."""
        return [backend.get_info() for backend in self._translation.values()]

    def get_ocr_backend_by_id(self, backend_id: str) -> type[OCRBackend] | None:
        return self._ocr.get(backend_id)

    def get_translation_backend_by_id(self, backend_id: str) -> type[TranslationBackend] | None:
        return self._translation.get(backend_id.strip().lower())


_registry: BackendRegistry | None = None


def get_registry() -> BackendRegistry:
    """Get the process-wide registry, filling it on first use.

    Backend modules are imported lazily so that importing subtrans does not
    pull in pytesseract or requests.
    """
    global _registry
    if _registry is None:
        from .ocr.tesseract import TesseractOCRBackend
        from .translation.deepl import DeepLTranslationBackend
        from .translation.google import GoogleTranslationBackend
        from .translation.libretranslate import LibreTranslateBackend
        from .translation.openai import OpenAITranslationBackend

        registry = BackendRegistry()
        registry.register_ocr_backend(TesseractOCRBackend)
        for backend in (
            GoogleTranslationBackend,
            DeepLTranslationBackend,
            LibreTranslateBackend,
            OpenAITranslationBackend,
        ):
            registry.register_translation_backend(backend)
        _registry = registry
    return _registry
