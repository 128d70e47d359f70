"""Decide whether extracted text is real text and whether it is new.

OCR on live video produces a steady stream of junk: digits from a clock,
"||||" from a window border, half a word at the edge of the region. The
filter rejects reads that cannot be worth translating, then compares what
is left against the last accepted text so an unchanged caption is not
translated again on every tick.
"""

from __future__ import annotations

import logging
import re
import unicodedata

logger = logging.getLogger(__name__)

# Reads below this confidence (0-100) are dropped outright.
MIN_CONFIDENCE = 65
# Minimum length of the normalized text.
MIN_TEXT_LENGTH = 4
# Words shorter than this are OCR fragments.
MIN_WORD_LENGTH = 2

# ---------------------------------------------------------------------------
# Normalization patterns
# ---------------------------------------------------------------------------

# Annotations like "[music]", "(laughs)", "{\an8}".
_RE_BRACKETED = re.compile(r"\[[^\]]*\]|\([^)]*\)|\{[^}]*\}")

# Anything that is not a letter, digit, whitespace or basic punctuation.
# \w also matches "_", which is never part of a caption.
_RE_DISALLOWED = re.compile(r"[^\w\s.,!?'\"\-:;。！？、]|_")

_RE_WHITESPACE = re.compile(r"\s+")

_RE_LEADING_FILLER = re.compile(r"^[\s.,!?'\"\-:;。！？、]+")
# Sentence terminals stay at the end: they tell the translator the
# sentence is complete.
_RE_TRAILING_FILLER = re.compile(r"[\s,'\"\-:;、]+$")

# ---------------------------------------------------------------------------
# Garbage patterns (full match)
# ---------------------------------------------------------------------------

_GARBAGE_PATTERNS = (
    re.compile(r"[\d\s.,:;\-]+"),  # clock, counters, page numbers
    re.compile(r"[\W_]+"),           # punctuation only
    re.compile(r"(.)\1{3,}"),        # "aaaa", "----"
    re.compile(r"[^\W\d_]{1,2}"),    # lone 1-2 letter token
)

_RE_NON_ALNUM = re.compile(r"[^\w\s]", re.UNICODE)


def normalize(text: str) -> str:
    """Clean raw OCR output into a single line of plain text."""
    text = _RE_BRACKETED.sub(" ", text)
    text = _RE_DISALLOWED.sub("", text)
    text = _RE_WHITESPACE.sub(" ", text)
    text = _RE_LEADING_FILLER.sub("", text)
    text = _RE_TRAILING_FILLER.sub("", text)
    return text.strip()


def _normalize_for_compare(text: str) -> str:
    """Aggressive normalization used only for change detection.

    Drops punctuation and case so OCR jitter ("Hello world" vs
    "hello world.") does not count as a new caption.
    """
    text = unicodedata.normalize("NFKC", text)
    text = _RE_NON_ALNUM.sub("", text)
    text = text.casefold()
    return " ".join(text.split())


def filter_text(text: str, confidence: float | None = None) -> str | None:
    """Return cleaned text if it is worth translating, otherwise None.

    Checks, in order, stopping at the first failure:
    1. confidence (when the backend reports one) >= MIN_CONFIDENCE
    2. normalized length >= MIN_TEXT_LENGTH
    3. not digits-only, punctuation-only, a repeated character, or a
       1-2 letter token
    4. at least one word of MIN_WORD_LENGTH characters
    """
    if confidence is not None and confidence < MIN_CONFIDENCE:
        logger.debug("Rejected (confidence %.0f): %r", confidence, text[:80])
        return None

    normalized = normalize(text)
    if len(normalized) < MIN_TEXT_LENGTH:
        return None

    for pattern in _GARBAGE_PATTERNS:
        if pattern.fullmatch(normalized):
            logger.debug("Rejected (garbage %s): %r", pattern.pattern, normalized)
            return None

    words = [w for w in normalized.split(" ") if len(w) >= MIN_WORD_LENGTH]
    if not words:
        return None

    return " ".join(words)


class TextQualityFilter:
    """Quality filter plus the single AcceptedText slot of a pipeline run."""

    def __init__(self) -> None:
        self._accepted = ""
        self._accepted_norm = ""

    @property
    def accepted_text(self) -> str:
        return self._accepted

    def filter(self, text: str, confidence: float | None = None) -> str | None:
        return filter_text(text, confidence)

    def accept(self, text: str) -> bool:
        """Record ``text`` as accepted if it differs from the current one."""
        norm = _normalize_for_compare(text)
        if not norm or norm == self._accepted_norm:
            return False
        self._accepted = text
        self._accepted_norm = norm
        logger.info("Accepted text: %r", text[:120])
        return True

    def get_new_text(self, text: str, confidence: float | None = None) -> str | None:
        """Filtered text if it is meaningful and changed, otherwise None."""
        if not text:
            return None
        filtered = self.filter(text, confidence)
        if filtered is None:
            return None
        if not self.accept(filtered):
            return None
        return filtered

    def reset(self) -> None:
        self._accepted = ""
        self._accepted_norm = ""
