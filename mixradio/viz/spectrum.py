from math import sin, cos
from PySide6.QtGui import QPainter, QColor, QBrush, QLinearGradient
from PySide6.QtCore import QRectF, QPointF, Qt
from mixradio.visuals import register_visualizer, BaseVisualizer

PEAK_DECAY = 1.5  # byte units per frame
RED = (211, 47, 47)


def update_peaks(peaks, values, count, decay=PEAK_DECAY):
    """Instant rise, fixed per-frame fall, floored at 0. Mutates ``peaks``."""
    for i in range(min(count, len(peaks), len(values))):
        v = float(values[i])
        if v > peaks[i]:
            peaks[i] = v
        else:
            peaks[i] = max(0.0, peaks[i] - decay)
    return peaks


class PeakBars(BaseVisualizer):
    bar_count = 48

    def __init__(self):
        super().__init__()
        self.peaks = []

    def _ensure_peaks(self, n):
        if len(self.peaks) != n:
            self.peaks = [0.0] * n

    def background(self, p: QPainter, r, snap, t):
        if snap is None and self.peaks:
            # silent frames: markers keep falling instead of freezing
            self._draw(p, r, [0] * len(self.peaks))

    def paint(self, p: QPainter, r, snap, t):
        self._draw(p, r, snap.frequency)

    def _draw(self, p: QPainter, r, data):
        w, h = float(r.width()), float(r.height())
        if w <= 0 or h <= 0:
            return
        self._ensure_peaks(len(data))
        update_peaks(self.peaks, data, self.bar_count)

        bw = w / self.bar_count
        p.setPen(Qt.NoPen)
        for i in range(min(self.bar_count, len(data))):
            val = int(data[i])
            bar_h = (val / 255.0) * h * 0.75
            x = i * bw
            peak_y = h - (self.peaks[i] / 255.0) * h * 0.75 - 10
            self.draw_bar(p, i, x, bw, bar_h, peak_y, h)

    def draw_bar(self, p, i, x, bw, bar_h, peak_y, h):
        pass


@register_visualizer
class Spectrum(PeakBars):
    key = 'spectrum'
    display_name = 'Digital Bar'
    order = 0
    bar_count = 48

    def draw_bar(self, p, i, x, bw, bar_h, peak_y, h):
        if bar_h > 0:
            g = QLinearGradient(QPointF(0, h), QPointF(0, h - bar_h))
            g.setColorAt(0.0, QColor(*RED, 102))
            g.setColorAt(1.0, QColor(*RED, 255))
            p.setBrush(QBrush(g))
            p.drawRect(QRectF(x + 1, h - bar_h - 10, bw - 2, bar_h))
        p.setBrush(QColor(255, 255, 255, 51))
        p.drawRect(QRectF(x + 1, peak_y, bw - 2, 1))


@register_visualizer
class Hyper(PeakBars):
    key = 'hyper'
    display_name = 'Hyper Edit'
    order = 1
    bar_count = 64

    def background(self, p: QPainter, r, snap, t):
        if snap is None:
            super().background(p, r, snap, t)
            return
        w, h = float(r.width()), float(r.height())
        bass, mid = snap.bass, snap.mid
        p.save()
        p.setOpacity(0.3 * mid)
        p.setPen(Qt.NoPen)
        rad = 40 + bass * 60
        for i in range(10):
            bx = (sin(t * 0.1 + i) * 0.5 + 0.5) * w
            by = (cos(t * 0.08 + i * 2) * 0.5 + 0.5) * h
            p.setBrush(QColor.fromHslF((i * 36 % 360) / 360.0, 0.7, 0.5, 0.2))
            p.drawEllipse(QPointF(bx, by), rad, rad)
        p.restore()

    def draw_bar(self, p, i, x, bw, bar_h, peak_y, h):
        if bar_h > 0:
            p.setBrush(QColor.fromHslF(i / float(self.bar_count), 0.8, 0.5, 0.8))
            p.drawRect(QRectF(x + 2, h - bar_h - 10, bw - 4, bar_h))
        p.setBrush(QColor(255, 255, 255, 153))
        p.drawRect(QRectF(x + 2, peak_y, bw - 4, 2))
