from __future__ import annotations

from typing import Optional

import numpy as np
from PySide6.QtCore import QObject, QUrl, Signal

from mixradio.errors import NotReady, StartFailed
from mixradio.logs import get_logger
from mixradio.settings import SAMPLE_RATE, CHANNELS

# Optional Qt multimedia backend
try:
    from PySide6.QtMultimedia import (
        QAudioBufferOutput, QAudioFormat, QAudioSink, QMediaDevices, QMediaPlayer,
    )
    HAVE_MULTIMEDIA = True
except ImportError:
    QAudioBufferOutput = QAudioFormat = QAudioSink = QMediaDevices = QMediaPlayer = None  # type: ignore
    HAVE_MULTIMEDIA = False

log = get_logger("Media")

# QMediaPlayer.MediaStatus name -> notification
_STATUS_EVENTS = {
    'BufferingMedia': 'buffering',
    'StalledMedia': 'stalled',
    'BufferedMedia': 'can_resume',
    'EndOfMedia': 'stalled',
    'InvalidMedia': 'failed',
}


def _status_name(st) -> str:
    return getattr(st, 'name', None) or str(st).rsplit('.', 1)[-1]


def media_event(status) -> Optional[str]:
    """Translate a media status into a playback notification name (or None)."""
    return _STATUS_EVENTS.get(_status_name(status))


def buffer_to_frames(data, channels: int) -> np.ndarray:
    """Raw interleaved float32 bytes -> (frames, channels) array."""
    ch = max(1, int(channels))
    raw = np.frombuffer(bytes(data), dtype=np.float32)
    usable = (raw.size // ch) * ch
    return raw[:usable].reshape(-1, ch)


def _buffer_bytes(buf):
    # PySide6 exposes the payload as constData() on newer builds, data() on older ones
    getter = getattr(buf, 'constData', None) or getattr(buf, 'data')
    return memoryview(getter())


class StreamSource(QObject):
    """Internet stream -> decoded float buffers -> FilterChain -> audio sink.

    The player only decodes; what you hear is what came out of the filter
    chain, so the tap at its end sees exactly the audible signal.
    """
    buffering = Signal()
    stalled = Signal()
    playing = Signal()
    canResume = Signal()
    failed = Signal(str)

    def __init__(self, url: str, parent=None, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS):
        super().__init__(parent)
        self.url = url
        self.sample_rate = sample_rate
        self.channels = channels
        self.chain = None
        self._volume = 0.8
        self._player = None
        self._decoder = None
        self._sink = None
        self._sink_dev = None
        self._flowing = False

    def attach_chain(self, chain) -> None:
        self.chain = chain

    def _format(self):
        fmt = QAudioFormat()
        fmt.setSampleRate(self.sample_rate)
        fmt.setChannelCount(self.channels)
        fmt.setSampleFormat(QAudioFormat.Float)
        return fmt

    def _ensure_player(self):
        if self._player is not None:
            return
        fmt = self._format()
        self._player = QMediaPlayer(self)
        self._decoder = QAudioBufferOutput(fmt, self)
        self._player.setAudioBufferOutput(self._decoder)
        self._decoder.audioBufferReceived.connect(self._on_buffer)
        self._player.mediaStatusChanged.connect(self._on_status)
        self._player.errorOccurred.connect(self._on_error)

    def start(self) -> None:
        if not HAVE_MULTIMEDIA:
            raise StartFailed("Qt Multimedia is not available")
        if not self.url:
            raise StartFailed("no stream URL configured")
        if self.chain is None:
            raise NotReady("filter chain not attached")
        device = QMediaDevices.defaultAudioOutput()
        if device.isNull():
            raise StartFailed("no audio output device")
        self._ensure_player()
        self._release_sink()
        self._sink = QAudioSink(device, self._format(), self)
        self._sink.setVolume(self._volume)
        self._sink_dev = self._sink.start()
        if self._sink_dev is None:
            self._release_sink()
            raise StartFailed("audio sink refused to open")
        self._flowing = False
        log.info("connecting to %s", self.url)
        self._player.setSource(QUrl(self.url))
        self._player.play()

    def stop(self) -> None:
        self._flowing = False
        if self._player is not None:
            self._player.stop()
        self._release_sink()

    def _release_sink(self) -> None:
        if self._sink is not None:
            self._sink.stop()
            self._sink.deleteLater()
        self._sink = None
        self._sink_dev = None

    def set_volume(self, volume: float) -> None:
        self._volume = max(0.0, min(1.0, float(volume)))
        if self._sink is not None:
            self._sink.setVolume(self._volume)

    def set_url(self, url: str) -> None:
        self.url = url

    def _on_buffer(self, buf):
        if self._sink_dev is None or self.chain is None:
            return
        fmt = buf.format()
        frames = buffer_to_frames(_buffer_bytes(buf), fmt.channelCount())
        if frames.size == 0:
            return
        out = self.chain.process(frames)
        self._sink_dev.write(np.ascontiguousarray(out, dtype=np.float32).tobytes())
        if not self._flowing:
            self._flowing = True
            self.playing.emit()

    def _on_status(self, status):
        ev = media_event(status)
        log.debug("media status %s -> %s", _status_name(status), ev)
        if ev == 'buffering':
            self.buffering.emit()
        elif ev == 'stalled':
            self.stalled.emit()
        elif ev == 'can_resume':
            self.canResume.emit()
        elif ev == 'failed':
            self.failed.emit(f"invalid media: {self.url}")

    def _on_error(self, error, message=''):
        log.error("player error %s: %s", _status_name(error), message)
        self.failed.emit(message or _status_name(error))
