from __future__ import annotations

import logging
import os
import sys
from typing import Callable

from PyQt6.QtCore import QThreadPool, QTimer
from PyQt6.QtWidgets import QApplication

from region_translator.api import ChatClient, LlmTranslator
from region_translator.debug_service import DebugService, is_debug_enabled
from region_translator.extraction_client import (
    CombinedExtractionClient,
    ExtractionClient,
    OcrExtractionClient,
)
from region_translator.frame_sampler import FrameSampler, PollInterval
from region_translator.logging_config import setup_logging
from region_translator.main_window import MainWindow
from region_translator.overlay_renderer import FloatingTranslationWindow, OverlayRenderer
from region_translator.pipeline import PipelineController, PipelineState
from region_translator.region_mapper import Region
from region_translator.settings import BACKEND_OCR, AppSettings, api_key_from_env
from region_translator.translation_coordinator import TranslationCoordinator
from region_translator.video_source import (
    CameraSource,
    ScreenSource,
    VideoFileSource,
    VideoSource,
    VideoSourceError,
)

logger = logging.getLogger(__name__)

PREVIEW_INTERVAL_MS = 33


class App:
    def __init__(self) -> None:
        self._qt_app = QApplication(sys.argv)
        self._qt_app.setApplicationName("RegionTranslator")
        self._qt_app.setOrganizationName("RegionTranslator")

        self._settings = AppSettings.load()
        s = self._settings

        self._debug: DebugService | None = None
        if is_debug_enabled():
            self._debug = DebugService()

        api_key = api_key_from_env()
        if not api_key:
            logger.warning("No API key set; translation requests will be rejected")
        self._chat = ChatClient(s.api_base_url, api_key)

        # Pipeline
        self._coordinator = TranslationCoordinator(
            LlmTranslator(self._chat, s.translation_model), debounce_ms=s.debounce_ms,
        )
        sampler = FrameSampler(PollInterval(s.base_interval_ms, s.max_interval_ms))
        self._pipeline = PipelineController(
            self._make_extraction_client(s.backend),
            self._coordinator,
            target_language=s.target_language,
            sampler=sampler,
        )

        # UI
        self._renderer = OverlayRenderer(FloatingTranslationWindow())
        self._window = MainWindow(s, self._renderer)

        self._preview_timer = QTimer()
        self._preview_timer.setInterval(PREVIEW_INTERVAL_MS)
        self._preview_timer.timeout.connect(self._on_preview_tick)

        self._connect_signals()

    def _make_extraction_client(self, backend: str) -> ExtractionClient:
        if backend == BACKEND_OCR:
            return OcrExtractionClient(self._settings.ocr_language)
        return CombinedExtractionClient(self._chat, self._settings.vision_model)

    def _connect_signals(self) -> None:
        w = self._window
        p = self._pipeline

        # Sources
        w.webcam_requested.connect(
            lambda: self._open_source("webcam", lambda: CameraSource(self._settings.camera_index))
        )
        w.screen_requested.connect(lambda: self._open_source("screen", ScreenSource))
        w.video_file_requested.connect(self._on_video_file)

        # Region + start/stop
        w.region_drawn.connect(self._on_region_drawn)
        w.clear_region_requested.connect(p.clear_region)
        w.toggle_requested.connect(self._on_toggle)

        # Pipeline -> UI
        p.state_changed.connect(self._on_state_changed)
        p.region_changed.connect(w.set_region)
        p.extracted_text_changed.connect(w.update_extracted_text)
        p.translation_changed.connect(self._on_translation_changed)

        # Floating display
        w.floating_requested.connect(self._on_floating_requested)

        # Settings changes
        w.target_language_changed.connect(p.set_target_language)
        w.backend_changed.connect(self._on_backend_changed)

        # Debug: per-text artifact saving
        if self._debug:
            p.sampler.sample_ready.connect(self._debug.cache_sample)
            p.text_accepted.connect(self._debug.save_text)
            p.translation_changed.connect(self._debug.save_translation)

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def _open_source(self, kind: str, factory: Callable[[], VideoSource]) -> None:
        # The old source goes first so a webcam can be reopened
        self._preview_timer.stop()
        self._pipeline.set_source(None)
        self._window.set_source_name(None)
        try:
            source = factory()
        except VideoSourceError as exc:
            logger.error("Failed to open %s: %s", kind, exc)
            self._window.show_source_error(kind, str(exc))
            return

        self._pipeline.set_source(source)
        self._window.set_source_name(source.name)
        self._window.show_status(f"Using {source.name}. Drag on the video to select a region.")
        self._preview_timer.start()

    def _on_video_file(self, path: str) -> None:
        self._settings.last_video_dir = os.path.dirname(path)
        self._open_source("video file", lambda: VideoFileSource(path))

    def _on_preview_tick(self) -> None:
        source = self._pipeline.source
        if source is None:
            self._preview_timer.stop()
            return
        try:
            frame = source.read_frame()
        except VideoSourceError as exc:
            self._window.show_error(str(exc))
            return
        if frame is not None:
            self._window.set_frame(frame)

    # ------------------------------------------------------------------
    # Pipeline control
    # ------------------------------------------------------------------

    def _on_region_drawn(self, region: Region) -> None:
        if self._pipeline.select_region(region):
            self._window.show_status("Region selected. Press Start to translate.")

    def _on_toggle(self) -> None:
        if not self._pipeline.toggle():
            self._window.show_status("Select a region first")

    def _on_state_changed(self, state: PipelineState) -> None:
        self._window.set_state(state)
        if state is PipelineState.RUNNING:
            self._window.show_status(f"Translating to {self._pipeline.target_language}...")
        elif state is PipelineState.IDLE and self._pipeline.source is not None:
            self._window.show_status("Stopped")

    def _on_translation_changed(self, text: str) -> None:
        self._window.update_translation(text)
        self._renderer.set_translation(text)
        self._window.set_floating_available(self._renderer.image is not None)

    def _on_floating_requested(self) -> None:
        if self._renderer.floating_active:
            self._renderer.close_floating()
        elif not self._renderer.show_floating():
            self._window.show_status("No translation to show yet")

    def _on_backend_changed(self, backend: str) -> None:
        self._pipeline.set_extraction_client(self._make_extraction_client(backend))
        if self._pipeline.is_running:
            self._window.show_status("Backend change applies on next start")

    def run(self) -> int:
        self._window.show()
        exit_code = self._qt_app.exec()

        # Cleanup
        self._preview_timer.stop()
        self._pipeline.teardown()
        self._renderer.close_floating()
        QThreadPool.globalInstance().waitForDone(2000)
        self._settings.save()

        if self._debug:
            self._debug.shutdown()

        return exit_code


def main() -> None:
    setup_logging()
    app = App()
    sys.exit(app.run())


if __name__ == "__main__":
    main()
