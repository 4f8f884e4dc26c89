from __future__ import annotations

from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal
from PySide6.QtGui import QImage

from mixradio import playback as pb
from mixradio.analysis import Analyser
from mixradio.equalizer import FilterGraphController
from mixradio.logs import get_logger
from mixradio.media import StreamSource
from mixradio.playback import PlaybackStateMachine
from mixradio.scheduler import ScheduleWatchdog
from mixradio.settings import (
    FFT_SIZE, QUALITY_KBPS, QUALITY_SETTLE_MS, VISUAL_FPS, load_settings, save_settings,
)
from mixradio.visuals import VisualEngine

log = get_logger("Runtime")


class RadioRuntime(QObject):
    """One listening session: stream, EQ chain, analysis tap, visuals, scheduler.

    This is the surface the UI talks to. The media source is created on the
    first start request; the filter chain is built right after it.
    """
    connectionStateChanged = Signal(str)
    frameReady = Signal(QImage)

    def __init__(self, parent=None, source_factory: Optional[Callable] = None,
                 settings: Optional[dict] = None, persist: bool = True, clock=None):
        super().__init__(parent)
        self.settings = settings if settings is not None else load_settings()
        self._persist = persist
        self._source_factory = source_factory or (lambda url, parent: StreamSource(url, parent))

        self.analyser = Analyser(fft_size=FFT_SIZE)
        self.eq = FilterGraphController(tap=self.analyser)
        self.eq.restore(self.settings.get('eq_preset', 'flat'), self.settings.get('eq_bands', {}))

        self.source = None
        self.playback = PlaybackStateMachine(parent=self)
        self.playback.stateChanged.connect(self._on_state)
        self.playback.startFailed.connect(self._on_start_failed)

        self.visual = VisualEngine(self)
        self.visual.create()
        self.visual.frameReady.connect(self.frameReady)
        try:
            self.visual.set_mode(self.settings.get('visual_preset', 'spectrum'))
        except ValueError:
            log.warning("stored visual preset %r unknown; using spectrum", self.settings.get('visual_preset'))

        if clock is not None:
            self.watchdog = ScheduleWatchdog(self, clock=clock, parent=self)
        else:
            self.watchdog = ScheduleWatchdog(self, parent=self)

        self._settle = QTimer(self)
        self._settle.setSingleShot(True)
        self._settle.timeout.connect(self._quality_settled)
        self.last_start_failure = None

    # ---------------- session ----------------

    @property
    def state(self) -> str:
        return self.playback.state

    def _ensure_source(self):
        if self.source is not None:
            return self.source
        src = self._source_factory(self.settings.get('url', ''), self)
        self.source = src
        for sig, slot in (('buffering', self.playback.on_buffering),
                          ('stalled', self.playback.on_stalled),
                          ('playing', self.playback.on_playing),
                          ('canResume', self.playback.on_can_resume),
                          ('failed', self.playback.on_failed)):
            s = getattr(src, sig, None)
            if s is not None:
                s.connect(slot)
        if hasattr(src, 'set_volume'):
            src.set_volume(self.settings.get('volume', 0.8))
        self.playback.source = src
        return src

    def _ensure_graph(self):
        src = self._ensure_source()
        chain = self.eq.initialize(src)
        if hasattr(src, 'attach_chain'):
            src.attach_chain(chain)
        self.visual.set_analyser(self.analyser)
        return chain

    def is_playing(self) -> bool:
        return self.playback.is_playing()

    def request_start(self, origin: str = 'user'):
        if self.playback.is_playing():
            return
        self._ensure_graph()
        self.playback.request_start(origin)

    def request_stop(self, origin: str = 'user'):
        self.visual.set_live(False)
        self._settle.stop()
        self.playback.request_stop(origin)

    def toggle(self):
        if self.playback.is_playing():
            self.request_stop()
        else:
            self.request_start()

    def teardown(self):
        self.request_stop('teardown')
        self.watchdog.timer.stop()
        self.visual.teardown()
        self.eq.teardown()
        self.analyser.reset()
        if isinstance(self.source, QObject):
            self.source.deleteLater()
        self.source = None
        self.playback.source = None

    # ---------------- EQ ----------------

    def set_band_gain(self, band: str, value: float):
        self.eq.set_band_gain(band, value)
        self._persist_state()

    def apply_eq_preset(self, name: str):
        self.eq.apply_preset(name)
        self._persist_state()

    def eq_gains(self) -> dict:
        return self.eq.gains()

    # ---------------- visuals ----------------

    def select_visual_preset(self, tag: str):
        self.visual.set_mode(tag)
        self._persist_state()

    def render_frame(self, width: int, height: int) -> QImage:
        return self.visual.render_frame(width, height)

    def start_visuals(self, fps: int = VISUAL_FPS):
        self.visual.start(fps)

    # ---------------- schedule ----------------

    def set_schedule_target(self, kind: str, instant):
        self.watchdog.set_target(kind, instant)

    # ---------------- misc controls ----------------

    def set_volume(self, volume: float):
        v = max(0.0, min(1.0, float(volume)))
        self.settings['volume'] = v
        if self.source is not None and hasattr(self.source, 'set_volume'):
            self.source.set_volume(v)
        self._persist_state()

    def set_url(self, url: str):
        """New stream URL; takes effect on the next start."""
        self.settings['url'] = url
        if self.source is not None and hasattr(self.source, 'set_url'):
            self.source.set_url(url)
        self._persist_state()

    def set_quality(self, quality: str):
        if quality not in QUALITY_KBPS:
            raise ValueError(f"unknown quality {quality!r}")
        self.settings['quality'] = quality
        self._persist_state()
        if self.playback.state in (pb.PLAYING, pb.BUFFERING):
            self.playback.on_buffering()
            self._settle.start(QUALITY_SETTLE_MS)

    def bitrate(self) -> float:
        """Nominal kbps of the selected quality while audio flows, else 0."""
        if self.playback.state != pb.PLAYING:
            return 0.0
        return float(QUALITY_KBPS.get(self.settings.get('quality'), 0))

    def _quality_settled(self):
        if self.playback.is_playing():
            self.playback.on_can_resume()

    # ---------------- internals ----------------

    def _on_state(self, state: str):
        # audio-reactive drawing only while audio actually flows
        self.visual.set_live(state == pb.PLAYING)
        self.connectionStateChanged.emit(state)

    def _on_start_failed(self, origin: str, reason: str):
        self.last_start_failure = (origin, reason)

    def _persist_state(self):
        self.settings['visual_preset'] = self.visual.mode
        self.settings['eq_preset'] = self.eq.active_preset
        self.settings['eq_bands'] = self.eq.gains()
        if self._persist:
            save_settings(self.settings)
