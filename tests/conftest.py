import os
import tempfile

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("MIXRADIO_HOME", tempfile.mkdtemp(prefix="mixradio-test-"))

import numpy as np
import pytest
from PySide6.QtWidgets import QApplication
from PySide6.QtCore import QObject, Signal

from mixradio.errors import StartFailed


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


class FakeSource(QObject):
    """Stands in for the Qt stream: records calls, emits notifications on demand."""
    buffering = Signal()
    stalled = Signal()
    playing = Signal()
    canResume = Signal()
    failed = Signal(str)

    def __init__(self, url="", parent=None, fail=False, machine=None):
        super().__init__(parent)
        self.url = url
        self.fail = fail
        self.machine = machine
        self.calls = []
        self.state_at_start = None
        self.chain = None
        self.volume = None

    def start(self):
        self.calls.append("start")
        if self.machine is not None:
            self.state_at_start = self.machine.state
        if self.fail:
            raise StartFailed("resource unavailable")

    def stop(self):
        self.calls.append("stop")

    def attach_chain(self, chain):
        self.chain = chain

    def set_volume(self, v):
        self.volume = v

    def set_url(self, url):
        self.url = url


@pytest.fixture
def fake_source():
    return FakeSource()


def tone(freq=1000.0, n=512, sr=44100, amp=0.5):
    t = np.arange(n) / float(sr)
    return (amp * np.sin(2 * np.pi * freq * t)).astype(np.float32)
