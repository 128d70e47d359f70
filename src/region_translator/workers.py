"""Background calls on QThreadPool with results delivered on the GUI thread.

The callable runs on a pool thread. ``finished``/``failed`` are emitted
from there and, because the receivers live on the GUI thread, Qt queues
them so every slot runs on the GUI thread.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from PyQt6.QtCore import QObject, QRunnable, pyqtSignal

logger = logging.getLogger(__name__)


class CallSignals(QObject):
    finished = pyqtSignal(object, object)  # tag, result
    failed = pyqtSignal(object, str)       # tag, error message


class BackgroundCall(QRunnable):
    """Run ``fn(*args)`` once on a pool thread.

    ``tag`` is passed back untouched with the result so the receiver can
    tell which request finished (run generation, cache key, ...).
    """

    def __init__(self, tag: Any, fn: Callable[..., Any], *args: Any) -> None:
        super().__init__()
        self.tag = tag
        self.signals = CallSignals()
        self._fn = fn
        self._args = args

    def run(self) -> None:
        try:
            result = self._fn(*self._args)
        except Exception as e:
            logger.debug("Background call %r failed", self.tag, exc_info=True)
            self.signals.failed.emit(self.tag, str(e))
            return
        self.signals.finished.emit(self.tag, result)
