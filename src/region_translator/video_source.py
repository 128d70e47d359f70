"""Video sources: camera, video file, and screen capture.

Every source hands out the current frame as an RGB uint8 array on demand.
Frames are read on the GUI thread only (mss and most capture backends are
not safe to share across threads); workers receive copies.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

import cv2
import numpy as np
from mss import mss
from mss.exception import ScreenShotError

from region_translator.region_mapper import Region

logger = logging.getLogger(__name__)

# Requested camera resolution; the driver may pick something else.
CAMERA_WIDTH = 1280
CAMERA_HEIGHT = 720


class VideoSourceError(RuntimeError):
    """A camera, file, or screen could not be opened."""


class VideoSource(Protocol):
    """Anything that can hand out the frame currently on screen."""

    name: str

    def frame_size(self) -> tuple[int, int]:
        """(width, height) of frames, (0, 0) while unknown."""
        ...

    def read_frame(self) -> np.ndarray | None:
        """Current frame as RGB array, or None if no frame is available."""
        ...

    def close(self) -> None:
        ...


# ---------------------------------------------------------------------------
# OpenCV-backed sources
# ---------------------------------------------------------------------------

class _CaptureSource:
    """Shared cv2.VideoCapture handling for cameras and files."""

    def __init__(self, target: int | str, name: str) -> None:
        self.name = name
        self._cap = cv2.VideoCapture(target)
        if not self._cap.isOpened():
            self._cap.release()
            raise VideoSourceError(f"Cannot open {name}")
        self._size = (
            int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        logger.info("Opened %s (%dx%d)", name, *self._size)

    def frame_size(self) -> tuple[int, int]:
        return self._size

    def _grab(self) -> np.ndarray | None:
        if self._cap is None:
            return None
        ok, bgr = self._cap.read()
        if not ok or bgr is None:
            return None
        rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
        self._size = (rgb.shape[1], rgb.shape[0])
        return rgb

    def read_frame(self) -> np.ndarray | None:
        return self._grab()

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Closed %s", self.name)


class CameraSource(_CaptureSource):
    def __init__(self, index: int = 0) -> None:
        super().__init__(index, f"camera {index}")
        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, CAMERA_WIDTH)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, CAMERA_HEIGHT)


class VideoFileSource(_CaptureSource):
    """Plays a file in real time, looping at the end.

    The position is derived from the wall clock rather than advanced per
    read, so a slow sampler and a fast preview see the same moment.
    """

    def __init__(self, path: str) -> None:
        super().__init__(path, path)
        self._fps = self._cap.get(cv2.CAP_PROP_FPS) or 25.0
        frames = self._cap.get(cv2.CAP_PROP_FRAME_COUNT)
        self._duration_ms = frames / self._fps * 1000 if frames > 0 else 0.0
        self._started = time.monotonic()
        self._last_index = -1
        self._last_frame: np.ndarray | None = None

    def read_frame(self) -> np.ndarray | None:
        if self._cap is None:
            return None
        elapsed_ms = (time.monotonic() - self._started) * 1000
        if self._duration_ms > 0:
            elapsed_ms %= self._duration_ms
        index = int(elapsed_ms / 1000 * self._fps)
        if index == self._last_index and self._last_frame is not None:
            return self._last_frame
        if index != self._last_index + 1:
            self._cap.set(cv2.CAP_PROP_POS_MSEC, elapsed_ms)
        frame = self._grab()
        if frame is not None:
            self._last_index = index
            self._last_frame = frame
        return frame


# ---------------------------------------------------------------------------
# Screen capture
# ---------------------------------------------------------------------------

class ScreenSource:
    """Whole monitor grabbed with mss (index 1 = primary monitor)."""

    def __init__(self, monitor_index: int = 1) -> None:
        self.name = f"screen {monitor_index}"
        try:
            self._sct = mss()
            monitors = self._sct.monitors
        except ScreenShotError as e:
            raise VideoSourceError(f"Screen capture unavailable: {e}") from e
        if monitor_index >= len(monitors):
            self._sct.close()
            raise VideoSourceError(f"No monitor {monitor_index}")
        self._monitor = monitors[monitor_index]
        logger.info(
            "Capturing %s (%dx%d)",
            self.name, self._monitor["width"], self._monitor["height"],
        )

    def frame_size(self) -> tuple[int, int]:
        return self._monitor["width"], self._monitor["height"]

    def read_frame(self) -> np.ndarray | None:
        if self._sct is None:
            return None
        try:
            screenshot = self._sct.grab(self._monitor)
        except ScreenShotError as e:
            raise VideoSourceError(f"Screen grab failed: {e}") from e
        img_array = np.array(screenshot, dtype=np.uint8)
        # BGRA -> RGB
        return img_array[:, :, :3][:, :, ::-1].copy()

    def close(self) -> None:
        if self._sct is not None:
            self._sct.close()
            self._sct = None


# ---------------------------------------------------------------------------
# Cropping
# ---------------------------------------------------------------------------

def crop_frame(frame: np.ndarray, region: Region | None) -> tuple[np.ndarray, Region] | None:
    """Cut ``region`` out of ``frame``; the whole frame when region is None.

    Returns the (copied) pixels and the bounds actually used, or None when
    the region lies entirely outside the frame.
    """
    height, width = frame.shape[:2]
    if region is None:
        return frame.copy(), Region(0, 0, width, height)
    bounds = region.clamped(width, height)
    if bounds is None:
        return None
    crop = frame[bounds.y:bounds.y + bounds.height, bounds.x:bounds.x + bounds.width]
    return crop.copy(), bounds
