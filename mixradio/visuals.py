from __future__ import annotations

import importlib
import time as _time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from PySide6.QtCore import QTimer, QRectF, QSize, QObject, Signal
from PySide6.QtGui import QImage, QPainter, QColor, QFont

from mixradio.logs import get_logger
from mixradio.settings import VISUAL_FPS

log = get_logger("Visuals")

BACKGROUND = QColor(5, 5, 5)
ENGINE_TAG = 'ENGINE: L-SYNCH V5'

# ---------------- Visual plugin API ----------------

class BaseVisualizer:
    """Subclass this and implement paint(painter, rect, snapshot, t:seconds).

    ``background`` is the idle layer: it runs every frame, with ``snap=None``
    when there is no live audio. ``paint`` only runs with a real snapshot.
    Instances live for the whole session, so per-preset state (peaks,
    particles) goes on ``self``.
    """
    key = ''
    display_name = 'Custom Visual'
    order = 100

    def background(self, p: QPainter, r: QRectF, snap, t: float):
        pass

    def paint(self, p: QPainter, r: QRectF, snap, t: float):
        pass


_VISUAL_REGISTRY: List[Tuple[str, type]] = []


def register_visualizer(cls):
    key = getattr(cls, 'key', None) or cls.__name__.lower()
    for i, (k, _) in enumerate(_VISUAL_REGISTRY):
        if k == key:
            _VISUAL_REGISTRY[i] = (key, cls)
            return cls
    _VISUAL_REGISTRY.append((key, cls))
    return cls


_PLUGINS_LOADED = False


def _load_visual_plugins():
    global _PLUGINS_LOADED
    if _PLUGINS_LOADED:
        return
    base = Path(__file__).resolve().parent / 'viz'
    for py in sorted(base.glob('*.py')):
        if py.stem.startswith('_'):
            continue
        try:
            importlib.import_module(f'mixradio.viz.{py.stem}')
        except Exception:
            log.exception("visual plugin %s failed to load", py.name)
    _PLUGINS_LOADED = True


def visual_registry() -> Dict[str, type]:
    _load_visual_plugins()
    return dict(_VISUAL_REGISTRY)


# ---------------- Engine ----------------

class VisualEngine(QObject):
    """Frame loop: pulls one snapshot per frame and runs the selected preset."""
    frameReady = Signal(QImage)

    def __init__(self, parent: Optional[QObject] = None, analyser=None):
        super().__init__(parent)
        self.timer = QTimer(self)
        self.timer.timeout.connect(self._tick)
        self.target_size = QSize(800, 450)
        self.start_time = _time.time()
        self.mode = 'spectrum'
        self.live = False
        self.analyser = analyser
        self._plugins: Dict[str, object] = {}
        self._faults = 0
        _load_visual_plugins()

    # lifecycle
    def create(self):
        self._plugins = {}
        self._faults = 0
        self.start_time = _time.time()

    def teardown(self):
        self.stop()
        self._plugins = {}
        self.analyser = None
        self.live = False

    def available_modes(self) -> List[str]:
        ranked = sorted(_VISUAL_REGISTRY, key=lambda kv: getattr(kv[1], 'order', 100))
        return [k for k, _ in ranked]

    def display_name(self, mode: Optional[str] = None) -> str:
        cls = dict(_VISUAL_REGISTRY).get(mode or self.mode)
        return getattr(cls, 'display_name', mode or self.mode)

    def set_mode(self, mode: str):
        if mode not in dict(_VISUAL_REGISTRY):
            raise ValueError(f"unknown visual preset {mode!r}")
        self.mode = mode

    def set_live(self, live: bool):
        self.live = bool(live)

    def set_analyser(self, analyser):
        self.analyser = analyser

    def set_target(self, size: QSize):
        self.target_size = size

    def start(self, fps: int = VISUAL_FPS):
        self.timer.start(int(1000 / max(1, fps)))

    def stop(self):
        self.timer.stop()

    def plugin(self, mode: Optional[str] = None):
        """Per-preset instance, created on first use."""
        mode = mode or self.mode
        inst = self._plugins.get(mode)
        if inst is None:
            cls = dict(_VISUAL_REGISTRY)[mode]
            inst = cls()
            self._plugins[mode] = inst
        return inst

    def _snapshot(self):
        if self.analyser is None or not self.live:
            return None
        try:
            snap = self.analyser.snapshot()
        except Exception:
            log.exception("analysis snapshot failed")
            return None
        if snap is None or len(snap) == 0:
            return None
        return snap

    def _tick(self):
        w = max(64, self.target_size.width())
        h = max(64, self.target_size.height())
        self.frameReady.emit(self.render_frame(w, h))

    def render_frame(self, width: int, height: int) -> QImage:
        w = max(1, int(width))
        h = max(1, int(height))
        img = QImage(w, h, QImage.Format_RGB32)
        img.fill(BACKGROUND)
        t = _time.time() - self.start_time
        rect = QRectF(0, 0, w, h)
        snap = self._snapshot()
        p = QPainter(img)
        try:
            p.setRenderHint(QPainter.Antialiasing, True)
            try:
                plugin = self.plugin()
                plugin.background(p, rect, snap, t)
                if snap is not None:
                    plugin.paint(p, rect, snap, t)
                    self._draw_osd(p, w, h, snap)
            except Exception:
                self._faults += 1
                if self._faults <= 5 or self._faults % 300 == 0:
                    log.exception("preset %s failed (fault #%d); background only", self.mode, self._faults)
                self._fallback(p, rect, t)
        finally:
            p.end()
        return img

    def _fallback(self, p: QPainter, rect: QRectF, t: float):
        """Redraw the frame as the preset's idle layer, flat if that fails too."""
        p.setCompositionMode(QPainter.CompositionMode_SourceOver)
        p.setOpacity(1.0)
        p.fillRect(rect, BACKGROUND)
        try:
            self.plugin().background(p, rect, None, t)
        except Exception:
            log.debug("idle layer of %s failed too", self.mode)
            p.setCompositionMode(QPainter.CompositionMode_SourceOver)
            p.setOpacity(1.0)
            p.fillRect(rect, BACKGROUND)

    def _draw_osd(self, p: QPainter, w: int, h: int, snap):
        p.setCompositionMode(QPainter.CompositionMode_SourceOver)
        p.setOpacity(1.0)
        f = QFont()
        f.setPixelSize(7)
        f.setBold(True)
        p.setFont(f)
        p.setPen(QColor(255, 255, 255, 51))
        lines = [
            ENGINE_TAG,
            f'PRESET: {self.mode.upper()}',
            f'B-SYNC: {round(snap.bass * 100)}%',
        ]
        for i, line in enumerate(lines):
            p.drawText(20, 25 + i * 10, line)
        p.drawText(w - 80, 25, _time.strftime('%H:%M:%S'))
