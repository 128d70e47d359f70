import threading

import pytest
from PyQt6.QtTest import QTest

from region_translator.translation_coordinator import (
    TranslationCoordinator,
    is_complete_sentence,
    is_meaningful_text,
    should_translate,
)

DEBOUNCE_MS = 50


class FakeTranslator:
    def __init__(self):
        self.calls = []
        self.fail = False
        self.gate: threading.Event | None = None

    def translate(self, text, target_language):
        self.calls.append((text, target_language))
        if self.gate is not None:
            self.gate.wait(5)
        if self.fail:
            raise RuntimeError("service unavailable")
        return f"[{target_language}] {text}"


@pytest.fixture
def translator():
    return FakeTranslator()


@pytest.fixture
def coordinator(qapp, translator):
    c = TranslationCoordinator(translator, debounce_ms=DEBOUNCE_MS)
    yield c
    if translator.gate is not None:
        translator.gate.set()
    c.teardown()


class TestShouldTranslate:
    @pytest.mark.parametrize("text", ["the", "The", " and ", "I want to", "ok."])
    def test_filler_and_short_text_is_not_meaningful(self, text):
        assert not is_meaningful_text(text)

    def test_sentence_terminals(self):
        assert is_complete_sentence("Hello world.")
        assert is_complete_sentence("本当ですか？")
        assert not is_complete_sentence("Hello world")

    def test_long_text_counts_as_complete(self):
        text = "this caption keeps going without any punctuation at the end"
        assert len(text) > 50
        assert should_translate(text)

    def test_short_unfinished_text_waits(self):
        assert not should_translate("Hello there")


def test_translates_after_debounce(coordinator, translator, wait_until):
    results = []
    coordinator.request_translation("Hello world.", "Spanish", results.append)
    assert results == []
    assert coordinator.has_pending

    assert wait_until(lambda: results)
    assert results == ["[Spanish] Hello world."]
    assert coordinator.dispatch_count == 1
    assert coordinator.cached("Hello world.", "Spanish") == "[Spanish] Hello world."


def test_cache_hit_is_synchronous(coordinator, translator, wait_until):
    results = []
    coordinator.request_translation("Hello world.", "Spanish", results.append)
    assert wait_until(lambda: results)

    coordinator.request_translation("Hello world.", "Spanish", results.append)
    assert results == ["[Spanish] Hello world."] * 2
    assert coordinator.dispatch_count == 1


def test_cache_is_keyed_by_language(coordinator, translator, wait_until):
    results = []
    coordinator.request_translation("Hello world.", "Spanish", results.append)
    assert wait_until(lambda: len(results) == 1)
    coordinator.request_translation("Hello world.", "French", results.append)
    assert wait_until(lambda: len(results) == 2)
    assert results[1] == "[French] Hello world."
    assert coordinator.dispatch_count == 2


def test_newest_request_wins(coordinator, translator, wait_until):
    results = []
    coordinator.request_translation("First sentence.", "Spanish", results.append)
    coordinator.request_translation("Second sentence.", "Spanish", results.append)

    assert wait_until(lambda: results)
    QTest.qWait(DEBOUNCE_MS * 3)
    assert results == ["[Spanish] Second sentence."]
    assert translator.calls == [("Second sentence.", "Spanish")]


def test_cache_hit_cancels_waiting_request(coordinator, translator, wait_until):
    shown = []
    coordinator.request_translation("Hello world.", "Spanish", shown.append)
    assert wait_until(lambda: shown)

    coordinator.request_translation("Goodbye now.", "Spanish", shown.append)
    coordinator.request_translation("Hello world.", "Spanish", shown.append)
    assert not coordinator.has_pending

    QTest.qWait(DEBOUNCE_MS * 4)
    assert shown == ["[Spanish] Hello world."] * 2
    assert translator.calls == [("Hello world.", "Spanish")]


def test_repeated_request_in_window_dispatches_once(coordinator, translator, wait_until):
    results = []
    for _ in range(3):
        coordinator.request_translation("Hello world.", "Spanish", results.append)
        QTest.qWait(DEBOUNCE_MS // 5)

    assert wait_until(lambda: results)
    QTest.qWait(DEBOUNCE_MS * 3)
    assert coordinator.dispatch_count == 1


def test_filler_is_never_dispatched(coordinator, translator):
    results = []
    coordinator.request_translation("the", "Spanish", results.append)
    QTest.qWait(DEBOUNCE_MS * 4)
    assert translator.calls == []
    assert results == []
    assert not coordinator.has_pending


def test_failure_is_not_cached(coordinator, translator, wait_until):
    translator.fail = True
    results = []
    coordinator.request_translation("Hello world.", "Spanish", results.append)
    assert wait_until(lambda: coordinator.dispatch_count == 1)
    QTest.qWait(DEBOUNCE_MS * 3)
    assert results == []
    assert coordinator.cached("Hello world.", "Spanish") is None

    translator.fail = False
    coordinator.request_translation("Hello world.", "Spanish", results.append)
    assert wait_until(lambda: results)
    assert coordinator.dispatch_count == 2


def test_in_flight_request_is_not_sent_twice(coordinator, translator, wait_until):
    translator.gate = threading.Event()
    first, second = [], []
    coordinator.request_translation("Hello world.", "Spanish", first.append)
    assert wait_until(lambda: translator.calls)

    coordinator.request_translation("Hello world.", "Spanish", second.append)
    QTest.qWait(DEBOUNCE_MS * 3)
    assert coordinator.dispatch_count == 1

    translator.gate.set()
    assert wait_until(lambda: second)
    assert wait_until(lambda: first)
    assert first == second == ["[Spanish] Hello world."]


def test_same_callback_in_flight_runs_once(coordinator, translator, wait_until):
    translator.gate = threading.Event()
    results = []
    coordinator.request_translation("Hello world.", "Spanish", results.append)
    assert wait_until(lambda: translator.calls)

    coordinator.request_translation("Hello world.", "Spanish", results.append)
    translator.gate.set()
    assert wait_until(lambda: results)
    QTest.qWait(DEBOUNCE_MS)
    assert results == ["[Spanish] Hello world."]


def test_remember_fills_cache(coordinator, translator):
    coordinator.remember("Hola.", "English", "Hello.")
    results = []
    coordinator.request_translation("Hola.", "English", results.append)
    assert results == ["Hello."]
    assert coordinator.dispatch_count == 0


def test_cancel_pending_drops_request(coordinator, translator):
    results = []
    coordinator.request_translation("Hello world.", "Spanish", results.append)
    coordinator.cancel_pending()
    QTest.qWait(DEBOUNCE_MS * 4)
    assert translator.calls == []
    assert results == []


def test_teardown_clears_cache(coordinator, translator, wait_until):
    results = []
    coordinator.request_translation("Hello world.", "Spanish", results.append)
    assert wait_until(lambda: results)
    coordinator.teardown()
    assert coordinator.cached("Hello world.", "Spanish") is None


def test_debounce_can_be_changed(coordinator):
    assert coordinator.debounce_ms == DEBOUNCE_MS
    coordinator.set_debounce_ms(1500)
    assert coordinator.debounce_ms == 1500
