from __future__ import annotations

import argparse
import sys

from PySide6.QtCore import Qt, QSize
from PySide6.QtGui import QImage, QKeySequence, QPixmap, QShortcut
from PySide6.QtWidgets import QApplication, QLabel, QVBoxLayout, QWidget

from mixradio.equalizer import EQ_PRESETS
from mixradio.logs import get_logger, log_path, set_debug
from mixradio.runtime import RadioRuntime
from mixradio.scheduler import CONNECT_AT, DISCONNECT_AT, to_instant
from mixradio.visuals import visual_registry

log = get_logger("App")

STATUS_TEXT = {
    'playing': 'LIVE BROADCAST',
    'buffering': 'SYNCHRONIZING',
    'loading': 'SYNCHRONIZING',
    'stalled': 'SIGNAL STALLED',
    'error': 'LINK FAILURE',
    'idle': 'STATION STANDBY',
}


class RadioWindow(QWidget):
    """Bare host: status line plus the visual surface, keyboard driven."""

    def __init__(self, runtime: RadioRuntime, parent=None):
        super().__init__(parent)
        self.rt = runtime
        self.setWindowTitle('Mix Radio')
        self.resize(720, 420)
        self.status = QLabel(STATUS_TEXT['idle'], self)
        self.status.setAlignment(Qt.AlignCenter)
        self.canvas = QLabel(self)
        self.canvas.setMinimumSize(QSize(320, 180))
        lay = QVBoxLayout(self)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.addWidget(self.status)
        lay.addWidget(self.canvas, 1)

        self.rt.frameReady.connect(self._on_frame)
        self.rt.connectionStateChanged.connect(self._on_state)
        self.rt.watchdog.targetsChanged.connect(self._on_schedule)
        self._on_schedule()

        QShortcut(QKeySequence(Qt.Key_Space), self, activated=self.rt.toggle)
        QShortcut(QKeySequence(Qt.Key_Right), self, activated=lambda: self._cycle_visual(+1))
        QShortcut(QKeySequence(Qt.Key_Left), self, activated=lambda: self._cycle_visual(-1))
        for i, name in enumerate(EQ_PRESETS, start=1):
            QShortcut(QKeySequence(str(i)), self, activated=lambda n=name: self.rt.apply_eq_preset(n))

    def _cycle_visual(self, delta: int):
        modes = self.rt.visual.available_modes()
        if not modes:
            return
        idx = modes.index(self.rt.visual.mode) if self.rt.visual.mode in modes else 0
        self.rt.select_visual_preset(modes[(idx + delta) % len(modes)])

    def _on_frame(self, img: QImage):
        self.canvas.setPixmap(QPixmap.fromImage(img))

    def _on_state(self, state: str):
        text = STATUS_TEXT.get(state, state.upper())
        kbps = self.rt.bitrate()
        if kbps:
            text = f'{text}  {kbps:.1f} kbps'
        self.status.setText(text)

    def _on_schedule(self):
        parts = [f'{kind.split("_")[0]} {when:%H:%M:%S}'
                 for kind, when in self.rt.watchdog.targets().items() if when is not None]
        title = 'Mix Radio'
        if parts:
            title += ' [' + ', '.join(parts) + ']'
        self.setWindowTitle(title)

    def resizeEvent(self, e):
        super().resizeEvent(e)
        self.rt.visual.set_target(self.canvas.size())

    def closeEvent(self, e):
        self.rt.teardown()
        super().closeEvent(e)


def _iso_time(value):
    try:
        return to_instant(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid ISO time: {value!r}")


def parse_args(argv=None):
    ap = argparse.ArgumentParser(prog='mixradio', description='Internet radio with live visuals')
    ap.add_argument('--url', help='stream URL (stored for next time)')
    ap.add_argument('--preset', choices=sorted(visual_registry()), help='visual preset tag')
    ap.add_argument('--eq', choices=sorted(EQ_PRESETS), help='EQ preset')
    ap.add_argument('--connect-at', type=_iso_time, help='ISO time to start playback')
    ap.add_argument('--disconnect-at', type=_iso_time, help='ISO time to stop playback')
    ap.add_argument('--debug', action='store_true')
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    set_debug(args.debug)
    app = QApplication.instance() or QApplication(sys.argv[:1])
    rt = RadioRuntime()
    if args.url:
        rt.set_url(args.url)
    if args.preset:
        rt.select_visual_preset(args.preset)
    if args.eq:
        rt.apply_eq_preset(args.eq)
    if args.connect_at:
        rt.set_schedule_target(CONNECT_AT, args.connect_at)
    if args.disconnect_at:
        rt.set_schedule_target(DISCONNECT_AT, args.disconnect_at)
    win = RadioWindow(rt)
    win.show()
    rt.visual.set_target(win.canvas.size())
    rt.start_visuals()
    log.info("window up; preset=%s eq=%s log=%s", rt.visual.mode, rt.eq.active_preset, log_path())
    return app.exec()


if __name__ == '__main__':
    sys.exit(main())
