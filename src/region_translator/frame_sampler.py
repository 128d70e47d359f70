"""Sampling loop: one cropped frame per tick, never two in flight.

The loop is driven by a single-shot QTimer on the GUI thread. A tick emits
``sample_ready`` and marks the sampler busy; the consumer calls
``complete()`` once extraction has finished (successfully or not), which
schedules the next tick after the current poll interval. A tick that finds
the sampler still busy is skipped. This busy flag is the only thing that
keeps a slow recognition service from being flooded with requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from region_translator.region_mapper import Region
from region_translator.video_source import VideoSource, crop_frame

logger = logging.getLogger(__name__)

DEFAULT_BASE_INTERVAL_MS = 1000
DEFAULT_MAX_INTERVAL_MS = 5000
BACKOFF_FACTOR = 2


@dataclass
class FrameSample:
    """Still image cut from the video for one tick."""

    image: np.ndarray
    bounds: Region
    generation: int


class PollInterval:
    """Delay between ticks, widened while cycles produce nothing."""

    def __init__(
        self,
        base_ms: int = DEFAULT_BASE_INTERVAL_MS,
        max_ms: int = DEFAULT_MAX_INTERVAL_MS,
    ) -> None:
        self.base_ms = base_ms
        self.max_ms = max(max_ms, base_ms)
        self._value = base_ms

    @property
    def value(self) -> int:
        return self._value

    def backoff(self) -> int:
        self._value = min(self._value * BACKOFF_FACTOR, self.max_ms)
        return self._value

    def reset(self) -> int:
        self._value = self.base_ms
        return self._value

    def configure(self, base_ms: int, max_ms: int) -> None:
        self.base_ms = base_ms
        self.max_ms = max(max_ms, base_ms)
        self._value = min(max(self._value, self.base_ms), self.max_ms)


class FrameSampler(QObject):
    """Signals:
    - sample_ready(FrameSample): a frame was cropped and must be extracted
    """

    sample_ready = pyqtSignal(object)

    def __init__(self, poll_interval: PollInterval | None = None, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._poll = poll_interval or PollInterval()
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._tick)

        self._source: VideoSource | None = None
        self._region: Region | None = None
        self._running = False
        self._busy = False
        self._generation = 0
        self._skipped = 0

    @property
    def poll_interval(self) -> PollInterval:
        return self._poll

    @property
    def running(self) -> bool:
        return self._running

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def generation(self) -> int:
        """Incremented on every start(); samples carry the value they were cut in."""
        return self._generation

    def start(self, source: VideoSource, region: Region | None = None) -> None:
        self._source = source
        self._region = region
        self._running = True
        self._generation += 1
        self._skipped = 0
        logger.info(
            "Sampler started (run %d, source=%s, region=%s)",
            self._generation, source.name,
            region.as_tuple() if region else "full frame",
        )
        self._timer.start(0)

    def stop(self) -> None:
        """Cancel future ticks. An extraction already in flight keeps the busy flag."""
        if not self._running:
            return
        self._running = False
        self._timer.stop()
        self._source = None
        self._region = None
        logger.info("Sampler stopped (run %d)", self._generation)

    def complete(self) -> None:
        """Extraction of the last sample is over; schedule the next tick."""
        self._busy = False
        if self._running:
            self._schedule()

    def _schedule(self) -> None:
        self._timer.start(self._poll.value)

    def _tick(self) -> None:
        if not self._running or self._source is None:
            return

        if self._busy:
            self._skipped += 1
            logger.debug("Tick skipped: extraction still in flight (%d)", self._skipped)
            self._schedule()
            return

        try:
            frame = self._source.read_frame()
        except Exception as e:
            logger.warning("Frame read failed on %s: %s", self._source.name, e)
            frame = None

        if frame is None:
            self._schedule()
            return

        cropped = crop_frame(frame, self._region)
        if cropped is None:
            logger.debug("Region outside frame %s", frame.shape)
            self._schedule()
            return

        image, bounds = cropped
        self._busy = True
        self.sample_ready.emit(FrameSample(image, bounds, self._generation))
