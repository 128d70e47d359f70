"""Debug service: per-text artifact saving and pipeline logging.

When ``RT_DEBUG=1`` is set, DebugService creates a session directory under
``.tests/debug/`` and records what the pipeline saw and accepted.

Each accepted text gets its own numbered folder::

    .tests/debug/session_YYYYMMDD_HHMMSS/
        pipeline.log
        001/
            text.txt          # accepted source text
            translation.txt   # translation, once it arrives
            frame.png         # the crop the text was read from
        002/ ...
"""

from __future__ import annotations

import os
from datetime import datetime

import numpy as np
from PIL import Image

from region_translator.frame_sampler import FrameSample

DEBUG_ENV = "RT_DEBUG"

_DEBUG_ROOT = os.path.join(os.path.dirname(__file__), "..", "..", ".tests", "debug")


def is_debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV, "0") == "1"


class DebugService:
    def __init__(self, root: str = _DEBUG_ROOT) -> None:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.session_dir = os.path.join(root, f"session_{ts}")
        os.makedirs(self.session_dir, exist_ok=True)

        log_path = os.path.join(self.session_dir, "pipeline.log")
        self._log_file = open(log_path, "w", encoding="utf-8")  # noqa: SIM115
        self._text_count = 0
        self._current_folder: str | None = None
        self._cached_frame: np.ndarray | None = None

        self.log("SESSION", f"started at {ts}")

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def cache_sample(self, sample: FrameSample) -> None:
        self._cached_frame = sample.image
        self.log("SAMPLE", f"run {sample.generation} bounds={sample.bounds.as_tuple()}")

    def save_text(self, text: str) -> None:
        self._text_count += 1
        folder = os.path.join(self.session_dir, f"{self._text_count:03d}")
        os.makedirs(folder, exist_ok=True)
        self._current_folder = folder

        with open(os.path.join(folder, "text.txt"), "w", encoding="utf-8") as f:
            f.write(text)
        if self._cached_frame is not None:
            Image.fromarray(self._cached_frame).save(os.path.join(folder, "frame.png"))

        self.log("ACCEPTED", f"{self._text_count:03d} {text!r}")

    def save_translation(self, translation: str) -> None:
        if not translation or self._current_folder is None:
            return
        path = os.path.join(self._current_folder, "translation.txt")
        with open(path, "w", encoding="utf-8") as f:
            f.write(translation)
        self.log("TRANSLATED", repr(translation))

    # ------------------------------------------------------------------
    # Pipeline logging
    # ------------------------------------------------------------------

    def log(self, tag: str, text: str) -> None:
        ts = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        self._log_file.write(f"{ts}  [{tag}]  {text}\n")
        self._log_file.flush()

    def shutdown(self) -> None:
        self.log("SESSION", "ended")
        self._log_file.close()
