"""Cached, debounced translation of accepted text.

OCR output comes in bursts: a caption that is still being typed out, or a
read that flickers between two variants for a couple of ticks. Every
request first checks the cache; a miss starts (or restarts) a debounce
window, and only the newest text of a burst is sent once the window
elapses, and only if it looks like a finished sentence.

State is owned per session by the coordinator instead of living in module
globals: the cache survives pipeline stop/start and is cleared on
teardown only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from PyQt6.QtCore import QObject, QThreadPool, QTimer

from region_translator.workers import BackgroundCall

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 2000

# Longer text is translated even without a sentence terminal.
COMPLETE_TEXT_LENGTH = 50

SENTENCE_ENDINGS = (".", "!", "?", "。", "！", "？")

# Fragments that are never worth a translation call on their own.
FILLER_PHRASES = frozenset({
    "i", "i want", "i want to", "i would", "i would like",
    "the", "a", "an", "and", "or", "but",
    "in", "on", "at", "to", "for", "of", "with", "by", "from",
    "up", "down", "out", "over", "under",
    "again", "further", "then", "once",
})

TranslationCallback = Callable[[str], None]
CacheKey = tuple[str, str]


class Translator(Protocol):
    def translate(self, text: str, target_language: str) -> str:
        """Blocking call; runs on a pool thread. Raises on failure."""
        ...


def is_meaningful_text(text: str) -> bool:
    trimmed = text.strip().lower()
    return trimmed not in FILLER_PHRASES and len(trimmed) > 3


def is_complete_sentence(text: str) -> bool:
    return text.strip().endswith(SENTENCE_ENDINGS)


def should_translate(text: str) -> bool:
    """Meaningful, and either a finished sentence or long enough anyway."""
    return is_meaningful_text(text) and (
        is_complete_sentence(text) or len(text) > COMPLETE_TEXT_LENGTH
    )


@dataclass
class _PendingRequest:
    text: str
    target_language: str
    on_result: TranslationCallback

    @property
    def key(self) -> CacheKey:
        return self.text, self.target_language


class TranslationCoordinator(QObject):
    def __init__(
        self,
        translator: Translator,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        thread_pool: QThreadPool | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._translator = translator
        self._pool = thread_pool or QThreadPool.globalInstance()

        self._cache: dict[CacheKey, str] = {}
        self._pending: _PendingRequest | None = None
        self._in_flight: dict[CacheKey, list[TranslationCallback]] = {}
        self._calls: set[BackgroundCall] = set()
        self._dispatch_count = 0

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(debounce_ms)
        self._timer.timeout.connect(self._on_debounce_elapsed)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def debounce_ms(self) -> int:
        return self._timer.interval()

    def set_debounce_ms(self, debounce_ms: int) -> None:
        self._timer.setInterval(debounce_ms)

    def set_translator(self, translator: Translator) -> None:
        self._translator = translator

    @property
    def dispatch_count(self) -> int:
        """Number of external translation calls issued so far."""
        return self._dispatch_count

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def cached(self, text: str, target_language: str) -> str | None:
        return self._cache.get((text, target_language))

    def request_translation(
        self, text: str, target_language: str, on_result: TranslationCallback,
    ) -> None:
        key = (text, target_language)

        # Newest text wins: any earlier pending request is dropped, even on a cache hit
        self._timer.stop()
        self._pending = None

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit: %r", text[:80])
            on_result(cached)
            return

        if key in self._in_flight:
            self._add_waiter(key, on_result)
            return

        self._pending = _PendingRequest(text, target_language, on_result)
        self._timer.start()

    def remember(self, text: str, target_language: str, translation: str) -> None:
        """Store a translation obtained elsewhere (combined extraction)."""
        if text and translation:
            self._cache[(text, target_language)] = translation

    def cancel_pending(self) -> None:
        self._timer.stop()
        self._pending = None

    def clear_cache(self) -> None:
        self._cache.clear()

    def teardown(self) -> None:
        self.cancel_pending()
        self.clear_cache()
        self._in_flight.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _on_debounce_elapsed(self) -> None:
        pending = self._pending
        self._pending = None
        if pending is None:
            return

        if not should_translate(pending.text):
            logger.debug("Not translating incomplete text: %r", pending.text[:80])
            return

        key = pending.key
        cached = self._cache.get(key)
        if cached is not None:
            pending.on_result(cached)
            return
        if key in self._in_flight:
            self._add_waiter(key, pending.on_result)
            return

        self._dispatch(pending)

    def _dispatch(self, pending: _PendingRequest) -> None:
        key = pending.key
        self._in_flight[key] = [pending.on_result]
        self._dispatch_count += 1

        call = BackgroundCall(key, self._translator.translate, pending.text, pending.target_language)
        call.signals.finished.connect(self._on_translated)
        call.signals.failed.connect(self._on_translation_failed)
        self._calls.add(call)
        self._pool.start(call)

    def _add_waiter(self, key: CacheKey, on_result: TranslationCallback) -> None:
        waiters = self._in_flight[key]
        if on_result not in waiters:
            waiters.append(on_result)

    def _forget_call(self, key: CacheKey) -> None:
        self._calls = {c for c in self._calls if c.tag != key}

    def _on_translated(self, key: CacheKey, translation: object) -> None:
        self._forget_call(key)
        waiters = self._in_flight.pop(key, None)
        if waiters is None:
            # Torn down while the call was running
            return
        if not isinstance(translation, str) or not translation:
            logger.warning("Translator returned no text for %r", key[0][:80])
            return
        self._cache[key] = translation
        for on_result in waiters:
            on_result(translation)

    def _on_translation_failed(self, key: CacheKey, message: str) -> None:
        self._forget_call(key)
        self._in_flight.pop(key, None)
        logger.warning("Translation failed for %r: %s", key[0][:80], message)
