"""
Tesseract OCR Engine

OCR implementation using the Tesseract binary through pytesseract.
Business cards are read as a single uniform block of text (PSM 6).
"""

import logging
import time
from typing import Dict, List, Optional, Tuple

import pytesseract
from PIL import Image

from ..errors import RecognitionError
from .base import OCREngine
from .result import OCRResult

logger = logging.getLogger(__name__)

# Assume a single uniform block of text
DEFAULT_PSM = 6

# Used when none of the requested languages is installed
FALLBACK_LANG = "eng"


class TesseractOCREngine(OCREngine):
    """
    OCR engine backed by Tesseract.

    Call initialize() once before recognize(); RecognitionWorker does this.
    """

    def __init__(self, tesseract_cmd: Optional[str] = None, psm: int = DEFAULT_PSM):
        """
        Initialize the Tesseract engine.

        Args:
            tesseract_cmd: Optional path to the tesseract binary
            psm: Page segmentation mode
        """
        self._tesseract_cmd = tesseract_cmd
        self._psm = psm
        self._installed_langs: Optional[List[str]] = None

    @property
    def name(self) -> str:
        return "tesseract"

    def configure(self, **kwargs) -> None:
        """
        Configure engine parameters.

        Args:
            tesseract_cmd: Path to the tesseract binary
            psm: Page segmentation mode
        """
        if 'tesseract_cmd' in kwargs:
            self._tesseract_cmd = kwargs['tesseract_cmd']
            self._installed_langs = None
        if 'psm' in kwargs:
            self._psm = int(kwargs['psm'])

    def initialize(self) -> None:
        """Verify the binary and cache the installed language packs."""
        if self._tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd
        try:
            version = pytesseract.get_tesseract_version()
            self._installed_langs = pytesseract.get_languages(config='')
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError, OSError) as e:
            raise RecognitionError(f"Tesseract unavailable: {e}") from e
        logger.info(f"Tesseract {version} ready, languages: {', '.join(self._installed_langs)}")

    def resolve_lang(self, lang: str) -> str:
        """Restrict a 'spa+eng' style hint to installed languages."""
        if self._installed_langs is None:
            return lang
        wanted = [code for code in lang.split("+") if code]
        usable = [code for code in wanted if code in self._installed_langs]
        if usable:
            if len(usable) < len(wanted):
                logger.warning(f"Missing OCR languages, using {'+'.join(usable)} instead of {lang}")
            return "+".join(usable)
        if FALLBACK_LANG in self._installed_langs:
            logger.warning(f"No requested OCR language installed, falling back to {FALLBACK_LANG}")
            return FALLBACK_LANG
        raise RecognitionError(f"No usable OCR language for '{lang}'")

    def recognize(self, image: Image.Image, lang: str) -> OCRResult:
        """
        Recognize text on a preprocessed card image.

        Args:
            image: PIL Image
            lang: Language hint, e.g. "spa+eng"

        Returns:
            OCRResult with line-structured text and mean word confidence
        """
        start_time = time.perf_counter()
        used_lang = self.resolve_lang(lang)

        try:
            data = pytesseract.image_to_data(
                image,
                lang=used_lang,
                config=f"--psm {self._psm}",
                output_type=pytesseract.Output.DICT,
            )
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            raise RecognitionError(f"Tesseract failed: {e}") from e

        text, confidence = _assemble_text(data)
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Recognized {len(text)} characters in {elapsed_ms:.1f}ms")

        return OCRResult(
            text=text,
            confidence=confidence,
            lang=used_lang,
            processing_time_ms=elapsed_ms,
        )


def _assemble_text(data: Dict[str, list]) -> Tuple[str, float]:
    """
    Rebuild line-structured text from image_to_data output.

    Returns:
        Tuple of (text, mean word confidence 0.0-1.0)
    """
    lines: Dict[Tuple[int, int, int], List[str]] = {}
    confidences: List[float] = []

    for i, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        if not word:
            continue
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(word)
        try:
            conf = float(data["conf"][i])
        except (TypeError, ValueError):
            continue
        if conf >= 0:
            confidences.append(conf / 100.0)

    text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
    confidence = sum(confidences) / len(confidences) if confidences else 0.0
    return text, confidence
