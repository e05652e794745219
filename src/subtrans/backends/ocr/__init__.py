"""OCR backends."""

from .tesseract import TesseractOCRBackend, clean_ocr_text

__all__ = ["TesseractOCRBackend", "clean_ocr_text"]
