from __future__ import annotations

from PySide6.QtCore import QObject, Signal

from mixradio.errors import StartFailed, TransientStall
from mixradio.logs import get_logger

log = get_logger("Playback")

IDLE = 'idle'
LOADING = 'loading'
PLAYING = 'playing'
BUFFERING = 'buffering'
ERROR = 'error'
STALLED = 'stalled'

STATES = (IDLE, LOADING, PLAYING, BUFFERING, ERROR, STALLED)
ACTIVE = (LOADING, PLAYING, BUFFERING, STALLED)


class PlaybackStateMachine(QObject):
    """Connection lifecycle of the stream.

    Driven only by explicit start/stop requests and by notifications from the
    media subsystem (``on_*``). ``source`` is anything with ``start()`` and
    ``stop()``; ``start()`` may raise StartFailed.
    """
    stateChanged = Signal(str)
    startFailed = Signal(str, str)  # origin, reason

    def __init__(self, source=None, parent=None):
        super().__init__(parent)
        self.source = source
        self._state = IDLE
        # set while the stream is interrupted but expected to come back
        self.interruption = None

    @property
    def state(self) -> str:
        return self._state

    def is_playing(self) -> bool:
        return self._state in ACTIVE

    def _set(self, state: str) -> None:
        if state == self._state:
            return
        log.info("state %s -> %s", self._state, state)
        self._state = state
        if state not in (BUFFERING, STALLED):
            self.interruption = None
        self.stateChanged.emit(state)

    # ---------------- requests ----------------

    def request_start(self, origin: str = 'user') -> None:
        if self.is_playing():
            return
        self._set(LOADING)
        try:
            if self.source is None:
                raise StartFailed("no media source attached")
            self.source.start()
        except StartFailed as e:
            log.warning("start failed (%s): %s", origin, e)
            self._set(ERROR)
            self.startFailed.emit(origin, str(e))

    def request_stop(self, origin: str = 'user') -> None:
        if self._state == IDLE:
            return
        if self.source is not None:
            self.source.stop()
        log.debug("stop requested by %s", origin)
        self._set(IDLE)

    # ---------------- media notifications ----------------

    def on_buffering(self) -> None:
        if self.is_playing():
            self._interrupt(BUFFERING)

    def on_stalled(self) -> None:
        if self.is_playing():
            self._interrupt(STALLED)

    def _interrupt(self, state: str) -> None:
        self.interruption = TransientStall(f"media {state}")
        log.debug("%s", self.interruption)
        self._set(state)

    def on_playing(self) -> None:
        if self.is_playing():
            self._set(PLAYING)

    def on_can_resume(self) -> None:
        if self._state in (BUFFERING, STALLED, LOADING):
            self._set(PLAYING)

    def on_failed(self, reason: str = '') -> None:
        if self._state == IDLE:
            log.debug("media error while idle ignored: %s", reason)
            return
        log.error("media failure: %s", reason or 'unknown')
        self._set(ERROR)
