"""Tesseract OCR backend."""

import re

from ... import log
from ...capture.convert import to_pil
from ...errors import OcrFault
from ..base import Language, OCRBackend, OCRBackendInfo, OcrResult

logger = log.get_logger()

# Default confidence threshold (Tesseract reports 0-100, normalized to 0-1)
DEFAULT_CONFIDENCE_THRESHOLD = 0.6

# Map Language enum to Tesseract language codes
LANGUAGE_TO_TESSERACT = {
    Language.ENGLISH: "eng",
    Language.PORTUGUESE: "por",
    Language.SPANISH: "spa",
    Language.FRENCH: "fra",
    Language.GERMAN: "deu",
    Language.ITALIAN: "ita",
    Language.DUTCH: "nld",
    Language.POLISH: "pol",
    Language.RUSSIAN: "rus",
    Language.JAPANESE: "jpn",
    Language.CHINESE: "chi_sim",
    Language.KOREAN: "kor",
}

SUPPORTED_LANGUAGES = list(LANGUAGE_TO_TESSERACT.keys())

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
_LONE_PIPE = re.compile(r"(?<!\S)\|(?!\S)")


def clean_ocr_text(text: str) -> str:
    """Clean raw OCR output.

    Joins lines with a space, drops control characters, collapses whitespace
    and turns a standalone "|" into "I" (Tesseract's usual misread of a
    capital I in subtitle fonts).

    Args:
        text: Raw extracted text.

    Returns:
        Cleaned text.
    """
    if not text:
        return ""

    text = _CONTROL_CHARS.sub("", text.replace("\n", " "))
    text = _LONE_PIPE.sub("I", text)
    return " ".join(text.split())


class TesseractOCRBackend(OCRBackend):
    """Extracts text from frames using Tesseract OCR."""

    def __init__(
        self,
        language: Language = Language.ENGLISH,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        psm: int = 6,
    ):
        """Set up the backend; nothing touches tesseract until load().

        Args:
            language: The language to use for OCR.
            confidence_threshold: Minimum word confidence (0.0-1.0).
            psm: Tesseract page segmentation mode (6 = uniform block of text).
        """
        super().__init__(confidence_threshold)
        self._language = language
        self._tesseract_lang = LANGUAGE_TO_TESSERACT.get(language, "eng")
        self._psm = psm
        self._loaded = False

    @classmethod
    def get_info(cls) -> OCRBackendInfo:
        """Get metadata about this backend."""
        return OCRBackendInfo(
            id="tesseract",
            name="Tesseract",
            supported_languages=SUPPORTED_LANGUAGES,
            license="Apache-2.0",
            description="General-purpose OCR engine driven through pytesseract",
        )

    def load(self) -> None:
        """Verify Tesseract is available.

        Raises:
            OcrFault: If Tesseract is not installed.
        """
        if self._loaded:
            return

        try:
            import pytesseract

            version = pytesseract.get_tesseract_version()
        except Exception as e:
            raise OcrFault(
                "Tesseract OCR is not installed or not in PATH. "
                "Please install Tesseract: https://github.com/tesseract-ocr/tesseract"
            ) from e

        logger.info("tesseract ready", version=str(version), language=self._tesseract_lang)
        self._loaded = True

    def is_loaded(self) -> bool:
        """True once load() has found a working tesseract binary."""
        return self._loaded

    def recognize(self, frame) -> OcrResult:
        """Recognize text in a preprocessed frame.

        Words below the confidence threshold are dropped; the reported
        confidence is the mean of the kept words.
        """
        if not self._loaded:
            self.load()

        import pytesseract

        try:
            data = pytesseract.image_to_data(
                to_pil(frame.image),
                lang=self._tesseract_lang,
                config=f"--psm {self._psm}",
                output_type=pytesseract.Output.DICT,
            )
        except Exception as e:
            raise OcrFault(f"tesseract failed: {e}") from e

        lines: list[list[str]] = []
        confidences: list[float] = []
        current_key = None

        for i, raw in enumerate(data.get("text", [])):
            word = raw.strip()
            conf = float(data["conf"][i])
            if not word or conf < 0:
                continue

            normalized_conf = conf / 100.0
            if normalized_conf < self.confidence_threshold:
                continue

            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            if key != current_key:
                lines.append([])
                current_key = key
            lines[-1].append(word)
            confidences.append(normalized_conf)

        text = clean_ocr_text("\n".join(" ".join(words) for words in lines))
        if not text:
            return OcrResult(text="", confidence=None)

        return OcrResult(text=text, confidence=sum(confidences) / len(confidences))
