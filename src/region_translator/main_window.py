from __future__ import annotations

import numpy as np
from PyQt6.QtCore import QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QColor, QImage, QPainter
from PyQt6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSizePolicy,
    QStatusBar,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from region_translator.overlay_renderer import OverlayRenderer, draw_selection
from region_translator.pipeline import PipelineState
from region_translator.region_mapper import (
    Point,
    Rect,
    Region,
    fit_rect,
    region_from_drag,
    to_display_space,
    to_source_space,
)
from region_translator.settings import BACKEND_COMBINED, BACKEND_OCR, TARGET_LANGUAGES, AppSettings

# Shared style constants
_COMBO_STYLE = "QComboBox { min-height: 14px; font-size: 13px; }"
_FORM_LABEL_STYLE = "font-size: 13px;"
_BUTTON_STYLE = "QPushButton { font-size: 13px; font-weight: bold; }"

_VIDEO_FILTER = "Video files (*.mp4 *.mkv *.avi *.mov *.webm);;All files (*)"

_STATE_LABELS = {
    PipelineState.IDLE: ("Idle", "#888"),
    PipelineState.ARMED: ("Ready", "#3377cc"),
    PipelineState.RUNNING: ("Translating...", "#33aa33"),
}


class VideoView(QWidget):
    """Paints the live frame aspect-fit and lets the user drag a region.

    Drags are mapped to source-frame pixels before being emitted, so the
    rest of the app never sees widget coordinates.
    """

    region_drawn = pyqtSignal(object)   # Region, source-frame pixels

    def __init__(self, renderer: OverlayRenderer) -> None:
        super().__init__()
        self._renderer = renderer
        self._image: QImage | None = None
        self._source_size: tuple[int, int] = (0, 0)
        self._region: Region | None = None
        self._drag_start: Point | None = None
        self._drag_end: Point | None = None
        self.selection_enabled = False

        self.setMinimumSize(480, 270)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setCursor(Qt.CursorShape.CrossCursor)

    @property
    def source_size(self) -> tuple[int, int]:
        return self._source_size

    def display_rect(self) -> Rect:
        return fit_rect(self._source_size, self.width(), self.height())

    def set_frame(self, frame: np.ndarray) -> None:
        h, w = frame.shape[:2]
        rgb = np.ascontiguousarray(frame)
        # QImage does not own the buffer; copy so the array can be released
        self._image = QImage(rgb.data, w, h, w * 3, QImage.Format.Format_RGB888).copy()
        self._source_size = (w, h)
        self.update()

    def clear_frame(self) -> None:
        self._image = None
        self._source_size = (0, 0)
        self._drag_start = self._drag_end = None
        self.update()

    def set_region(self, region: Region | None) -> None:
        self._region = region
        self.update()

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(0, 0, 0))

        if self._image is None:
            painter.setPen(QColor(150, 150, 150))
            painter.drawText(
                self.rect(), Qt.AlignmentFlag.AlignCenter,
                "Choose a webcam, screen or video file",
            )
            painter.end()
            return

        target = self.display_rect()
        painter.drawImage(QRectF(target.x, target.y, target.width, target.height), self._image)

        if self._drag_start is not None and self._drag_end is not None:
            left = min(self._drag_start.x, self._drag_end.x)
            top = min(self._drag_start.y, self._drag_end.y)
            drag = Region(
                round(left), round(top),
                round(abs(self._drag_end.x - self._drag_start.x)),
                round(abs(self._drag_end.y - self._drag_start.y)),
            )
            draw_selection(painter, to_display_space(drag, target, self._source_size))
        else:
            self._renderer.paint_selection(painter, self._region, target, self._source_size)
        painter.end()

    def _to_source(self, event) -> Point:
        pos = event.position()
        return to_source_space(Point(pos.x(), pos.y()), self.display_rect(), self._source_size)

    def mousePressEvent(self, event) -> None:
        if (
            event.button() != Qt.MouseButton.LeftButton
            or not self.selection_enabled
            or self._image is None
        ):
            return
        self._drag_start = self._drag_end = self._to_source(event)
        self.update()

    def mouseMoveEvent(self, event) -> None:
        if self._drag_start is not None:
            self._drag_end = self._to_source(event)
            self.update()

    def mouseReleaseEvent(self, event) -> None:
        if event.button() != Qt.MouseButton.LeftButton or self._drag_start is None:
            return
        region = region_from_drag(self._drag_start, self._to_source(event))
        self._drag_start = self._drag_end = None
        self.update()
        if region is not None:
            self.region_drawn.emit(region)


class MainWindow(QMainWindow):
    webcam_requested = pyqtSignal()
    screen_requested = pyqtSignal()
    video_file_requested = pyqtSignal(str)
    region_drawn = pyqtSignal(object)
    clear_region_requested = pyqtSignal()
    toggle_requested = pyqtSignal()
    floating_requested = pyqtSignal()
    target_language_changed = pyqtSignal(str)
    backend_changed = pyqtSignal(str)

    def __init__(self, settings: AppSettings, renderer: OverlayRenderer) -> None:
        super().__init__()
        self.settings = settings
        self._state = PipelineState.IDLE
        self._has_source = False

        self.setWindowTitle("RegionTranslator")
        self.setMinimumSize(720, 640)

        central = QWidget()
        self.setCentralWidget(central)
        root_layout = QVBoxLayout(central)
        root_layout.setSpacing(6)
        root_layout.setContentsMargins(6, 6, 6, 6)

        self._build_source_bar(root_layout)

        self._view = VideoView(renderer)
        self._view.region_drawn.connect(self.region_drawn.emit)
        root_layout.addWidget(self._view, stretch=1)

        self._build_control_bar(root_layout)
        self._build_settings_group(root_layout, settings)
        self._build_text_group(root_layout)

        # --- Status bar ---
        self._status_bar = QStatusBar()
        self.setStatusBar(self._status_bar)
        self._status_bar.showMessage("Ready")

        self._refresh_controls()

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _build_source_bar(self, parent_layout: QVBoxLayout) -> None:
        row = QHBoxLayout()
        row.setSpacing(8)

        self._btn_webcam = QPushButton("Use Webcam")
        self._btn_webcam.clicked.connect(self.webcam_requested.emit)
        row.addWidget(self._btn_webcam)

        self._btn_screen = QPushButton("Share Screen")
        self._btn_screen.clicked.connect(self.screen_requested.emit)
        row.addWidget(self._btn_screen)

        self._btn_video = QPushButton("Open Video...")
        self._btn_video.clicked.connect(self._on_open_video)
        row.addWidget(self._btn_video)

        self._lbl_source = QLabel("No source")
        self._lbl_source.setStyleSheet("QLabel { color: #888; font-size: 12px; }")
        row.addWidget(self._lbl_source, stretch=1)

        parent_layout.addLayout(row)

    def _build_control_bar(self, parent_layout: QVBoxLayout) -> None:
        row = QHBoxLayout()
        row.setSpacing(8)

        self._lbl_region = QLabel("Drag on the video to select a region")
        self._lbl_region.setStyleSheet("QLabel { color: #888; font-size: 12px; }")
        row.addWidget(self._lbl_region, stretch=1)

        self._btn_clear = QPushButton("Clear Selection")
        self._btn_clear.clicked.connect(self.clear_region_requested.emit)
        row.addWidget(self._btn_clear)

        self._btn_toggle = QPushButton("Start Translating")
        self._btn_toggle.setMinimumHeight(36)
        self._btn_toggle.setMinimumWidth(150)
        self._btn_toggle.setStyleSheet(_BUTTON_STYLE)
        self._btn_toggle.clicked.connect(self.toggle_requested.emit)
        row.addWidget(self._btn_toggle)

        self._btn_floating = QPushButton("Floating Window")
        self._btn_floating.setEnabled(False)
        self._btn_floating.clicked.connect(self.floating_requested.emit)
        row.addWidget(self._btn_floating)

        self._lbl_state = QLabel()
        self._lbl_state.setFixedWidth(100)
        self._lbl_state.setAlignment(Qt.AlignmentFlag.AlignCenter)
        row.addWidget(self._lbl_state)

        parent_layout.addLayout(row)

    def _build_settings_group(self, parent_layout: QVBoxLayout, settings: AppSettings) -> None:
        group = QGroupBox("Translation")
        form = QFormLayout(group)
        form.setSpacing(8)
        form.setContentsMargins(10, 14, 10, 10)
        form.setFieldGrowthPolicy(QFormLayout.FieldGrowthPolicy.ExpandingFieldsGrow)
        form.setLabelAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)

        # Target language
        self._combo_lang = QComboBox()
        self._combo_lang.setStyleSheet(_COMBO_STYLE)
        for code, label in TARGET_LANGUAGES:
            self._combo_lang.addItem(label, code)
        _select_data(self._combo_lang, settings.target_language)
        self._combo_lang.currentIndexChanged.connect(self._on_lang_changed)
        lbl = QLabel("Target language:")
        lbl.setStyleSheet(_FORM_LABEL_STYLE)
        form.addRow(lbl, self._combo_lang)

        # Backend
        self._combo_backend = QComboBox()
        self._combo_backend.setStyleSheet(_COMBO_STYLE)
        self._combo_backend.addItem("Vision model (read + translate)", BACKEND_COMBINED)
        self._combo_backend.addItem("Tesseract OCR + translation model", BACKEND_OCR)
        _select_data(self._combo_backend, settings.backend)
        self._combo_backend.currentIndexChanged.connect(self._on_backend_changed)
        lbl = QLabel("Backend:")
        lbl.setStyleSheet(_FORM_LABEL_STYLE)
        form.addRow(lbl, self._combo_backend)

        parent_layout.addWidget(group)

    def _build_text_group(self, parent_layout: QVBoxLayout) -> None:
        group = QGroupBox("Text")
        vbox = QVBoxLayout(group)
        vbox.setContentsMargins(10, 14, 10, 10)

        vbox.addWidget(QLabel("Translation:"))
        self._translation_display = QTextEdit()
        self._translation_display.setReadOnly(True)
        self._translation_display.setMaximumHeight(90)
        self._translation_display.setStyleSheet("QTextEdit { font-size: 16px; }")
        vbox.addWidget(self._translation_display)

        vbox.addWidget(QLabel("Extracted:"))
        self._extracted_display = QTextEdit()
        self._extracted_display.setReadOnly(True)
        self._extracted_display.setMaximumHeight(60)
        self._extracted_display.setStyleSheet("QTextEdit { color: #666; }")
        vbox.addWidget(self._extracted_display)

        parent_layout.addWidget(group)

    # ==================================================================
    # Slots
    # ==================================================================

    def _on_open_video(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Video", self.settings.last_video_dir, _VIDEO_FILTER,
        )
        if path:
            self.video_file_requested.emit(path)

    def _on_lang_changed(self, index: int) -> None:
        lang = self._combo_lang.itemData(index)
        self.settings.target_language = lang
        self.target_language_changed.emit(lang)

    def _on_backend_changed(self, index: int) -> None:
        backend = self._combo_backend.itemData(index)
        self.settings.backend = backend
        self.backend_changed.emit(backend)

    def _refresh_controls(self) -> None:
        running = self._state is PipelineState.RUNNING
        self._view.selection_enabled = self._has_source and self._state is PipelineState.IDLE
        self._btn_clear.setEnabled(self._state is PipelineState.ARMED)
        self._btn_toggle.setEnabled(running or self._state is PipelineState.ARMED)

        text, color = _STATE_LABELS[self._state]
        self._lbl_state.setText(text)
        weight = " font-weight: bold;" if running else ""
        self._lbl_state.setStyleSheet(f"QLabel {{ font-size: 12px; color: {color};{weight} }}")

        if running:
            self._btn_toggle.setText("Stop Translating")
            self._btn_toggle.setStyleSheet(
                "QPushButton { font-size: 13px; font-weight: bold; "
                "background-color: #cc3333; color: white; }"
            )
        else:
            self._btn_toggle.setText("Start Translating")
            self._btn_toggle.setStyleSheet(_BUTTON_STYLE)

    # ==================================================================
    # Public methods (called by app.py)
    # ==================================================================

    @property
    def view(self) -> VideoView:
        return self._view

    def set_source_name(self, name: str | None) -> None:
        self._has_source = name is not None
        self._lbl_source.setText(name or "No source")
        if name is None:
            self._view.clear_frame()
        self._refresh_controls()

    def set_frame(self, frame: np.ndarray) -> None:
        self._view.set_frame(frame)

    def set_state(self, state: PipelineState) -> None:
        self._state = state
        self._refresh_controls()

    def set_region(self, region: Region | None) -> None:
        self._view.set_region(region)
        if region is None:
            self._lbl_region.setText("Drag on the video to select a region")
        else:
            x, y, w, h = region.as_tuple()
            self._lbl_region.setText(f"Region ({x}, {y}) {w}×{h}")

    def set_floating_available(self, available: bool) -> None:
        self._btn_floating.setEnabled(available)

    def update_translation(self, text: str) -> None:
        self._translation_display.setPlainText(text)

    def update_extracted_text(self, text: str) -> None:
        self._extracted_display.setPlainText(text)

    def show_status(self, message: str) -> None:
        self._status_bar.showMessage(message)

    def show_error(self, message: str) -> None:
        self._status_bar.showMessage(f"Error: {message}")

    def show_source_error(self, kind: str, message: str) -> None:
        self.show_error(message)
        QMessageBox.warning(
            self,
            "Video Source Unavailable",
            f"Could not open the <b>{kind}</b>.\n\nError: {message}",
        )


def _select_data(combo: QComboBox, value: str) -> None:
    for i in range(combo.count()):
        if combo.itemData(i) == value:
            combo.setCurrentIndex(i)
            break
