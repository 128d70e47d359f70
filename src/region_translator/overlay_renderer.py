"""Selection box drawing and the floating translation display.

The floating window shows a fixed-size rendering of the current
translation. The rendering is regenerated from scratch whenever the text
changes; nothing is patched incrementally.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from PyQt6.QtCore import QPoint, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QColor, QFont, QFontMetrics, QImage, QPainter, QPen, QPixmap
from PyQt6.QtWidgets import QLabel, QVBoxLayout, QWidget

from region_translator.region_mapper import Rect, Region, to_display_space

logger = logging.getLogger(__name__)

# Floating canvas layout
CANVAS_WIDTH = 400
CANVAS_HEIGHT = 200
FONT_PIXEL_SIZE = 18
FONT_FAMILY = "Arial"
LINE_HEIGHT = 24
FIRST_LINE_Y = 40      # center of the first line
WRAP_MARGIN = 40       # total horizontal margin
BOTTOM_MARGIN = 20

_BACKGROUND = QColor(0, 0, 0, 204)
_TEXT_COLOR = QColor(255, 255, 255)

# Selection box style
_SELECTION_FILL = QColor(0, 0, 0, 77)
_SELECTION_OUTER = QColor(255, 255, 255)
_SELECTION_INNER = QColor(0, 0, 0)


# ---------------------------------------------------------------------------
# Word wrap
# ---------------------------------------------------------------------------

def wrap_words(
    words: Sequence[str], measure: Callable[[str], float], max_width: float,
) -> list[str]:
    """Greedily pack words onto lines no wider than ``max_width``.

    A word that does not fit starts a new line; a single word wider than
    the limit still gets a line of its own.
    """
    lines: list[str] = []
    line = ""
    for i, word in enumerate(words):
        candidate = f"{line}{word} "
        if i > 0 and line and measure(candidate) > max_width:
            lines.append(line.rstrip())
            line = f"{word} "
        else:
            line = candidate
    if line.strip():
        lines.append(line.rstrip())
    return lines


def max_visible_lines(height: int = CANVAS_HEIGHT) -> int:
    last_y = height - BOTTOM_MARGIN
    if last_y < FIRST_LINE_Y:
        return 0
    return (last_y - FIRST_LINE_Y) // LINE_HEIGHT + 1


def layout_lines(
    text: str,
    measure: Callable[[str], float],
    width: int = CANVAS_WIDTH,
    height: int = CANVAS_HEIGHT,
) -> list[str]:
    """Wrapped lines that fit on the canvas; overflow is dropped."""
    lines = wrap_words(text.split(), measure, width - WRAP_MARGIN)
    return lines[:max_visible_lines(height)]


def _translation_font() -> QFont:
    font = QFont(FONT_FAMILY)
    font.setPixelSize(FONT_PIXEL_SIZE)
    return font


def render_translation(
    text: str, width: int = CANVAS_WIDTH, height: int = CANVAS_HEIGHT,
) -> QImage:
    """Draw ``text`` word-wrapped and centered on a dark translucent canvas."""
    image = QImage(width, height, QImage.Format.Format_ARGB32_Premultiplied)
    image.fill(_BACKGROUND)

    font = _translation_font()
    metrics = QFontMetrics(font)
    lines = layout_lines(text, metrics.horizontalAdvance, width, height)

    painter = QPainter(image)
    painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
    painter.setFont(font)
    painter.setPen(_TEXT_COLOR)
    for index, line in enumerate(lines):
        center_y = FIRST_LINE_Y + index * LINE_HEIGHT
        painter.drawText(
            QRectF(0, center_y - LINE_HEIGHT / 2, width, LINE_HEIGHT),
            Qt.AlignmentFlag.AlignCenter,
            line,
        )
    painter.end()
    return image


# ---------------------------------------------------------------------------
# Selection box
# ---------------------------------------------------------------------------

def draw_selection(painter: QPainter, rect: Rect) -> None:
    """Darkened box with a white outer and black inner border."""
    if rect.is_empty:
        return
    box = QRectF(rect.x, rect.y, rect.width, rect.height)
    painter.save()
    painter.fillRect(box, _SELECTION_FILL)
    painter.setBrush(Qt.BrushStyle.NoBrush)
    painter.setPen(QPen(_SELECTION_OUTER, 2))
    painter.drawRect(box)
    painter.setPen(QPen(_SELECTION_INNER, 1))
    painter.drawRect(box.adjusted(2, 2, -2, -2))
    painter.restore()


# ---------------------------------------------------------------------------
# Floating window
# ---------------------------------------------------------------------------

class FloatingTranslationWindow(QWidget):
    """Frameless always-on-top window showing the rendered translation.

    Drag with the left mouse button to move, double-click to close.
    """

    active_changed = pyqtSignal(bool)

    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Translation")
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.WindowStaysOnTopHint
            | Qt.WindowType.Tool
        )
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)
        self.setFixedSize(CANVAS_WIDTH, CANVAS_HEIGHT)

        self._label = QLabel(self)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._label)

        self._drag_offset: QPoint | None = None

    def set_image(self, image: QImage) -> None:
        self._label.setPixmap(QPixmap.fromImage(image))

    def showEvent(self, event) -> None:
        super().showEvent(event)
        self.active_changed.emit(True)

    def hideEvent(self, event) -> None:
        super().hideEvent(event)
        self.active_changed.emit(False)

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self._drag_offset = (
                event.globalPosition().toPoint() - self.frameGeometry().topLeft()
            )

    def mouseMoveEvent(self, event) -> None:
        if self._drag_offset is not None:
            self.move(event.globalPosition().toPoint() - self._drag_offset)

    def mouseReleaseEvent(self, event) -> None:
        self._drag_offset = None

    def mouseDoubleClickEvent(self, event) -> None:
        self.hide()


class OverlayRenderer:
    """Keeps the floating display in sync with the current translation."""

    def __init__(self, window: FloatingTranslationWindow | None = None) -> None:
        self._window = window
        self._text = ""
        self._image: QImage | None = None
        self.render_count = 0

    @property
    def text(self) -> str:
        return self._text

    @property
    def image(self) -> QImage | None:
        return self._image

    @property
    def floating_active(self) -> bool:
        return self._window is not None and self._window.isVisible()

    def selection_rect(
        self, region: Region | None, display_rect: Rect, source_size: tuple[int, int],
    ) -> Rect | None:
        if region is None:
            return None
        return to_display_space(region, display_rect, source_size)

    def paint_selection(
        self,
        painter: QPainter,
        region: Region | None,
        display_rect: Rect,
        source_size: tuple[int, int],
    ) -> None:
        rect = self.selection_rect(region, display_rect, source_size)
        if rect is not None:
            draw_selection(painter, rect)

    def set_translation(self, text: str) -> None:
        """Regenerate the floating canvas if the text changed.

        Empty text (pipeline stopped) leaves the last rendering in place so
        an open floating window does not go blank.
        """
        if not text or text == self._text:
            return
        self._text = text
        self._image = render_translation(text)
        self.render_count += 1
        if self._window is not None:
            self._window.set_image(self._image)

    def show_floating(self) -> bool:
        """Open the floating window; only possible once there is a translation."""
        if self._window is None or self._image is None:
            return False
        self._window.set_image(self._image)
        self._window.show()
        self._window.raise_()
        logger.info("Floating display opened")
        return True

    def close_floating(self) -> None:
        if self._window is not None and self._window.isVisible():
            self._window.hide()
            logger.info("Floating display closed")
