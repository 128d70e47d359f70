import pytest
from PyQt6.QtGui import QColor, QImage, QPainter

from region_translator.overlay_renderer import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    FloatingTranslationWindow,
    OverlayRenderer,
    layout_lines,
    max_visible_lines,
    render_translation,
    wrap_words,
)
from region_translator.region_mapper import Rect, Region


def char_width(text):
    """Every character is 10px wide."""
    return len(text) * 10


class TestWrap:
    def test_fits_on_one_line(self):
        assert wrap_words(["Hello", "world"], char_width, 360) == ["Hello world"]

    def test_breaks_when_too_wide(self):
        assert wrap_words(["aaaa", "bbbb", "cccc"], char_width, 100) == ["aaaa bbbb", "cccc"]

    def test_long_word_gets_own_line(self):
        words = ["hi", "x" * 50, "there"]
        assert wrap_words(words, char_width, 100) == ["hi", "x" * 50, "there"]

    def test_empty(self):
        assert wrap_words([], char_width, 100) == []


def test_canvas_holds_six_lines():
    assert max_visible_lines() == 6
    assert max_visible_lines(30) == 0


def test_overflowing_lines_are_dropped():
    text = " ".join(["word"] * 200)
    lines = layout_lines(text, char_width)
    assert len(lines) == 6
    assert all(char_width(line) <= CANVAS_WIDTH - 40 for line in lines)


def test_render_translation_size(qapp):
    image = render_translation("Hola mundo")
    assert (image.width(), image.height()) == (CANVAS_WIDTH, CANVAS_HEIGHT)
    assert image.pixelColor(0, 0).alpha() == 204


@pytest.fixture
def window(qapp):
    w = FloatingTranslationWindow()
    yield w
    w.close()


class TestOverlayRenderer:
    def test_regenerates_only_on_change(self, qapp):
        renderer = OverlayRenderer()
        renderer.set_translation("Hola mundo")
        renderer.set_translation("Hola mundo")
        assert renderer.render_count == 1
        renderer.set_translation("Adiós")
        assert renderer.render_count == 2
        assert renderer.text == "Adiós"

    def test_empty_text_keeps_last_rendering(self, qapp):
        renderer = OverlayRenderer()
        renderer.set_translation("Hola mundo")
        image = renderer.image
        renderer.set_translation("")
        assert renderer.image is image
        assert renderer.text == "Hola mundo"

    def test_floating_needs_a_translation(self, window):
        renderer = OverlayRenderer(window)
        assert not renderer.show_floating()
        assert not renderer.floating_active

    def test_show_and_close_floating(self, window):
        events = []
        window.active_changed.connect(events.append)
        renderer = OverlayRenderer(window)
        renderer.set_translation("Hola mundo")

        assert renderer.show_floating()
        assert renderer.floating_active
        renderer.close_floating()
        assert not renderer.floating_active
        assert events == [True, False]

    def test_selection_rect_maps_region_to_display(self, qapp):
        renderer = OverlayRenderer()
        rect = renderer.selection_rect(Region(100, 100, 200, 100), Rect(0, 0, 320, 240), (640, 480))
        assert rect == Rect(50, 50, 100, 50)
        assert renderer.selection_rect(None, Rect(0, 0, 320, 240), (640, 480)) is None

    def test_paint_selection_draws_on_image(self, qapp):
        image = QImage(320, 240, QImage.Format.Format_ARGB32)
        image.fill(QColor(128, 128, 128))
        painter = QPainter(image)
        OverlayRenderer().paint_selection(
            painter, Region(100, 100, 200, 100), Rect(0, 0, 320, 240), (640, 480),
        )
        painter.end()
        assert image.pixelColor(50, 50).getRgb()[:3] != (128, 128, 128)
