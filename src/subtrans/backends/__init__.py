"""Pluggable OCR and translation backends."""

from .base import (
    Language,
    OCRBackend,
    OCRBackendInfo,
    OcrResult,
    TranslationBackend,
    TranslationBackendInfo,
)
from .registry import BackendRegistry, get_registry

__all__ = [
    "BackendRegistry",
    "Language",
    "OCRBackend",
    "OCRBackendInfo",
    "OcrResult",
    "TranslationBackend",
    "TranslationBackendInfo",
    "get_registry",
]
