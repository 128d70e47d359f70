import os
import time

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import numpy as np  # noqa: E402
import pytest  # noqa: E402
from PyQt6.QtTest import QTest  # noqa: E402
from PyQt6.QtWidgets import QApplication  # noqa: E402


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def wait_until(qapp):
    """Pump the Qt event loop until ``predicate()`` is true or time runs out."""

    def _wait(predicate, timeout_ms=3000):
        deadline = time.monotonic() + timeout_ms / 1000
        while not predicate():
            if time.monotonic() > deadline:
                return False
            QTest.qWait(10)
        return True

    return _wait


class FakeSource:
    """In-memory video source returning the same frame every time."""

    def __init__(self, width=320, height=240, name="fake"):
        self.name = name
        self.frame = np.full((height, width, 3), 128, dtype=np.uint8)
        self.reads = 0
        self.closed = False

    def frame_size(self):
        h, w = self.frame.shape[:2]
        return w, h

    def read_frame(self):
        self.reads += 1
        return self.frame

    def close(self):
        self.closed = True


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def make_source():
    return FakeSource
