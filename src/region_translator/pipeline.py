"""Start/stop state machine wiring sampler, extraction, filter and translation.

    Idle --select_region--> Armed --start--> Running --stop--> Idle
      ^                       |
      +------clear_region-----+

Switching the video source while running stops first. Stopping clears the
region, the accepted text and the displayed texts; the translation cache
lives on in the coordinator until teardown().
"""

from __future__ import annotations

import logging
from enum import Enum

from PyQt6.QtCore import QObject, QThreadPool, pyqtSignal

from region_translator.extraction_client import ExtractionClient, ExtractionResult
from region_translator.frame_sampler import FrameSample, FrameSampler
from region_translator.region_mapper import Region
from region_translator.text_quality import TextQualityFilter
from region_translator.translation_coordinator import TranslationCoordinator
from region_translator.video_source import VideoSource
from region_translator.workers import BackgroundCall

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "idle"
    ARMED = "armed"
    RUNNING = "running"


class PipelineController(QObject):
    """Signals:
    - state_changed(PipelineState)
    - region_changed(Region | None)
    - extracted_text_changed(str): latest accepted source text ('' on reset)
    - translation_changed(str): latest translation ('' on reset)
    - text_accepted(str): a new text passed the filter (debug hook)
    """

    state_changed = pyqtSignal(object)
    region_changed = pyqtSignal(object)
    extracted_text_changed = pyqtSignal(str)
    translation_changed = pyqtSignal(str)
    text_accepted = pyqtSignal(str)

    def __init__(
        self,
        extraction_client: ExtractionClient,
        coordinator: TranslationCoordinator,
        target_language: str = "Spanish",
        sampler: FrameSampler | None = None,
        text_filter: TextQualityFilter | None = None,
        thread_pool: QThreadPool | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._client = extraction_client
        self._next_client: ExtractionClient | None = None
        self._coordinator = coordinator
        self._target_language = target_language
        self._sampler = sampler or FrameSampler(parent=self)
        self._filter = text_filter or TextQualityFilter()
        self._pool = thread_pool or QThreadPool.globalInstance()

        self._state = PipelineState.IDLE
        self._source: VideoSource | None = None
        self._region: Region | None = None
        self._extracted_text = ""
        self._translated_text = ""
        self._calls: set[BackgroundCall] = set()

        self._sampler.sample_ready.connect(self._on_sample)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is PipelineState.RUNNING

    @property
    def source(self) -> VideoSource | None:
        return self._source

    @property
    def region(self) -> Region | None:
        return self._region

    @property
    def sampler(self) -> FrameSampler:
        return self._sampler

    @property
    def coordinator(self) -> TranslationCoordinator:
        return self._coordinator

    @property
    def extraction_client(self) -> ExtractionClient:
        return self._next_client or self._client

    @property
    def target_language(self) -> str:
        return self._target_language

    @property
    def accepted_text(self) -> str:
        return self._filter.accepted_text

    @property
    def extracted_text(self) -> str:
        return self._extracted_text

    @property
    def translated_text(self) -> str:
        return self._translated_text

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_target_language(self, language: str) -> None:
        if language == self._target_language:
            return
        self._target_language = language
        # Text already on screen has to be read again to be shown in the new language
        self._filter.reset()

    def set_extraction_client(self, client: ExtractionClient) -> None:
        """Swap the backend; takes effect on the next start()."""
        if self.is_running:
            self._next_client = client
        else:
            self._client = client
            self._next_client = None

    def set_source(self, source: VideoSource | None) -> None:
        """Replace the video source. Stops a running pipeline and drops the region."""
        if self.is_running:
            self.stop()
        if self._source is not None and self._source is not source:
            self._source.close()
        self._source = source
        self._reset_transient()
        self._set_region(None)
        self._set_state(PipelineState.IDLE)
        logger.info("Video source: %s", source.name if source else "none")

    # ------------------------------------------------------------------
    # Region
    # ------------------------------------------------------------------

    def select_region(self, region: Region | None) -> bool:
        """Record a new region; only allowed while idle without a region."""
        if self._state is not PipelineState.IDLE or region is None:
            return False
        self._set_region(region)
        self._set_state(PipelineState.ARMED)
        return True

    def clear_region(self) -> None:
        if self.is_running:
            return
        self._set_region(None)
        self._set_state(PipelineState.IDLE)

    # ------------------------------------------------------------------
    # Start / stop
    # ------------------------------------------------------------------

    def start(self) -> bool:
        if self._state is not PipelineState.ARMED or self._source is None:
            return False
        if self._next_client is not None:
            self._client = self._next_client
            self._next_client = None
        self._filter.reset()
        self._sampler.poll_interval.reset()
        self._set_state(PipelineState.RUNNING)
        self._sampler.start(self._source, self._region)
        logger.info(
            "Pipeline running: backend=%s, target=%s", self._client.name, self._target_language,
        )
        return True

    def stop(self) -> None:
        if not self.is_running:
            return
        self._sampler.stop()
        self._coordinator.cancel_pending()
        self._reset_transient()
        self._set_region(None)
        self._set_state(PipelineState.IDLE)
        logger.info("Pipeline stopped")

    def toggle(self) -> bool:
        if self.is_running:
            self.stop()
            return True
        return self.start()

    def teardown(self) -> None:
        """Stop everything and release the source and the translation cache."""
        self.stop()
        self._coordinator.teardown()
        if self._source is not None:
            self._source.close()
            self._source = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _set_state(self, state: PipelineState) -> None:
        if state is self._state:
            return
        logger.debug("State %s -> %s", self._state.value, state.value)
        self._state = state
        self.state_changed.emit(state)

    def _set_region(self, region: Region | None) -> None:
        if region == self._region:
            return
        self._region = region
        self.region_changed.emit(region)

    def _reset_transient(self) -> None:
        self._filter.reset()
        self._sampler.poll_interval.reset()
        if self._extracted_text:
            self._extracted_text = ""
            self.extracted_text_changed.emit("")
        if self._translated_text:
            self._translated_text = ""
            self.translation_changed.emit("")

    def _is_current(self, generation: int) -> bool:
        return self.is_running and generation == self._sampler.generation

    def _on_sample(self, sample: FrameSample) -> None:
        # The tag carries the language asked for so a late reply is never filed under another one
        tag = (sample.generation, self._target_language)
        call = BackgroundCall(tag, self._client.extract, sample.image, self._target_language)
        call.signals.finished.connect(self._on_extraction_finished)
        call.signals.failed.connect(self._on_extraction_failed)
        self._calls.add(call)
        self._pool.start(call)

    def _forget_call(self, tag: tuple[int, str]) -> None:
        self._calls = {c for c in self._calls if c.tag != tag}

    def _on_extraction_finished(self, tag: tuple[int, str], result: object) -> None:
        self._forget_call(tag)
        generation, language = tag
        try:
            if not self._is_current(generation):
                logger.debug("Discarding result of stopped run %d", generation)
                return
            if not isinstance(result, ExtractionResult):
                result = ExtractionResult.empty()
            if result.translated_text is not None and language != self._target_language:
                logger.debug("Discarding %s translation, target is now %s", language, self._target_language)
                return
            poll = self._sampler.poll_interval
            if self._apply_result(result, generation, language):
                poll.reset()
            else:
                poll.backoff()
        finally:
            self._sampler.complete()

    def _on_extraction_failed(self, tag: tuple[int, str], message: str) -> None:
        self._forget_call(tag)
        generation, _ = tag
        logger.warning("Extraction call failed: %s", message)
        if self._is_current(generation):
            self._sampler.poll_interval.backoff()
        self._sampler.complete()

    def _apply_result(self, result: ExtractionResult, generation: int, language: str) -> bool:
        """Act on one extraction. Returns True if the cycle was productive."""
        if result.translated_text is not None:
            # Combined backend: the translation came with the text
            if not (result.extracted_text and result.translated_text):
                return False
            if self._filter.accept(result.extracted_text):
                self._coordinator.remember(
                    result.extracted_text, language, result.translated_text,
                )
                self._set_extracted(result.extracted_text)
                self._set_translation(result.translated_text)
            return True

        text = self._filter.get_new_text(result.extracted_text, result.confidence)
        if text is None:
            return False
        self._set_extracted(text)
        # OCR text does not depend on the language, so translate into the current one
        target = self._target_language
        self._coordinator.request_translation(
            text,
            target,
            lambda translation, g=generation, lang=target: self._on_translation(g, lang, translation),
        )
        return True

    def _on_translation(self, generation: int, language: str, translation: str) -> None:
        if not self._is_current(generation) or language != self._target_language:
            return
        self._set_translation(translation)

    def _set_extracted(self, text: str) -> None:
        self._extracted_text = text
        self.extracted_text_changed.emit(text)
        self.text_accepted.emit(text)

    def _set_translation(self, text: str) -> None:
        if text == self._translated_text:
            return
        self._translated_text = text
        self.translation_changed.emit(text)
