"""Turn a cropped frame into text (and, for some backends, its translation).

Two interchangeable backends sit behind ExtractionClient:

- CombinedExtractionClient: a vision-language model reads the image and
  translates it in the same request. No confidence is reported; the
  translation comes back alongside the text.
- OcrExtractionClient: Tesseract reads the image and reports a confidence.
  Translation happens later, through the TranslationCoordinator.

``extract()`` never raises. Transport, parsing, or engine failures produce
an empty result, which the pipeline treats exactly like an unreadable frame.
"""

from __future__ import annotations

import base64
import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image

from region_translator.api import ChatClient
from region_translator.ocr_preprocess import prepare_for_ocr

logger = logging.getLogger(__name__)

JPEG_QUALITY = 80

_ORIGINAL_LABEL = "Original:"
_TRANSLATION_LABEL = "Translation:"

_COMBINED_PROMPT = (
    "First, extract any text visible in the image. Then, translate that text "
    "to {language}.\n"
    "Return the result in the following format ONLY:\n"
    "Original: [extracted text]\n"
    "Translation: [translated text]\n"
    'If there\'s no clear text, return "Original: " and "Translation: " with '
    "empty values."
)

# PSM 6: single uniform block of text. OEM 1: LSTM engine.
_TESSERACT_CONFIG = "--psm 6 --oem 1"


@dataclass(frozen=True)
class ExtractionResult:
    extracted_text: str = ""
    confidence: float | None = None      # 0-100, OCR backend only
    translated_text: str | None = None   # combined backend only

    @classmethod
    def empty(cls) -> ExtractionResult:
        return cls()

    @property
    def has_text(self) -> bool:
        return bool(self.extracted_text)


class ExtractionClient(ABC):
    """Backend-independent entry point used by the pipeline."""

    #: True when results carry their own translation.
    provides_translation: bool = False
    name: str = ""

    def extract(self, image: np.ndarray, target_language: str) -> ExtractionResult:
        try:
            return self._extract(image, target_language)
        except Exception as e:
            logger.warning("%s extraction failed: %s", self.name, e)
            return ExtractionResult.empty()

    @abstractmethod
    def _extract(self, image: np.ndarray, target_language: str) -> ExtractionResult:
        ...


# ---------------------------------------------------------------------------
# Combined: vision-language model
# ---------------------------------------------------------------------------

def encode_jpeg_base64(image: np.ndarray, quality: int = JPEG_QUALITY) -> str:
    buffer = io.BytesIO()
    Image.fromarray(image).convert("RGB").save(buffer, format="JPEG", quality=quality)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def parse_combined_response(text: str) -> tuple[str, str]:
    """Split a model reply into (extracted, translated).

    Missing ``Original:`` label means the reply is not in the expected
    shape and both fields are empty. A missing ``Translation:`` part just
    means there is no confident translation yet.
    """
    text = text.strip()
    if _ORIGINAL_LABEL not in text:
        return "", ""
    parts = text.split(_TRANSLATION_LABEL, 1)
    original = parts[0].replace(_ORIGINAL_LABEL, "", 1).strip()
    translation = parts[1].strip() if len(parts) > 1 else ""
    return original, translation


class CombinedExtractionClient(ExtractionClient):
    provides_translation = True
    name = "vision model"

    def __init__(self, client: ChatClient, model: str) -> None:
        self._client = client
        self.model = model

    def _extract(self, image: np.ndarray, target_language: str) -> ExtractionResult:
        image_b64 = encode_jpeg_base64(image)
        reply = self._client.complete(
            self.model,
            [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "text",
                            "text": _COMBINED_PROMPT.format(language=target_language),
                        },
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"},
                        },
                    ],
                }
            ],
        )
        original, translation = parse_combined_response(reply)
        logger.debug("Vision model: original=%r translation=%r", original[:120], translation[:120])
        return ExtractionResult(extracted_text=original, translated_text=translation)


# ---------------------------------------------------------------------------
# Separate: Tesseract OCR with confidence
# ---------------------------------------------------------------------------

def assemble_ocr_data(data: dict) -> tuple[str, float]:
    """Rebuild text and mean word confidence from ``image_to_data`` output.

    Words are joined with spaces inside a line and lines with newlines.
    Entries with a negative confidence are layout rows, not words.
    """
    lines: dict[tuple[int, int, int], list[str]] = {}
    confidences: list[float] = []

    for i, word in enumerate(data.get("text", [])):
        try:
            conf = float(data["conf"][i])
        except (KeyError, IndexError, TypeError, ValueError):
            continue
        word = (word or "").strip()
        if conf < 0 or not word:
            continue
        key = (
            int(data["block_num"][i]),
            int(data["par_num"][i]),
            int(data["line_num"][i]),
        )
        lines.setdefault(key, []).append(word)
        confidences.append(conf)

    if not confidences:
        return "", 0.0

    text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
    return text, sum(confidences) / len(confidences)


class OcrExtractionClient(ExtractionClient):
    provides_translation = False
    name = "tesseract"

    def __init__(self, language: str = "eng") -> None:
        self.language = language

    def _extract(self, image: np.ndarray, target_language: str) -> ExtractionResult:
        ocr_img = prepare_for_ocr(image)
        data = pytesseract.image_to_data(
            ocr_img,
            lang=self.language,
            config=_TESSERACT_CONFIG,
            output_type=pytesseract.Output.DICT,
        )
        text, confidence = assemble_ocr_data(data)
        logger.debug("OCR (conf %.0f): %r", confidence, text[:200])
        return ExtractionResult(extracted_text=text, confidence=confidence)
