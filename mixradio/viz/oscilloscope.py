from PySide6.QtGui import QPainter, QPen, QColor, QPainterPath
from PySide6.QtCore import QPointF, Qt
from mixradio.visuals import register_visualizer, BaseVisualizer

RED = QColor(211, 47, 47)


def wave_points(samples, w, h):
    """Map unsigned 8-bit samples to a polyline; 128 sits on the centre line."""
    n = len(samples)
    if n == 0:
        return []
    step = w / n
    pts = []
    for i in range(n):
        v = int(samples[i]) / 128.0
        pts.append(QPointF(i * step, h / 2 + (v - 1) * (h / 2) * 0.95))
    return pts


@register_visualizer
class Oscilloscope(BaseVisualizer):
    key = 'oscilloscope'
    display_name = 'Wave Link'
    order = 5

    def background(self, p: QPainter, r, snap, t):
        if snap is not None:
            return
        # flat trace while silent
        h = float(r.height())
        idle = QColor(RED)
        idle.setAlpha(90)
        p.setPen(QPen(idle, 1.5))
        p.drawLine(QPointF(0, h / 2), QPointF(float(r.width()), h / 2))

    def paint(self, p: QPainter, r, snap, t):
        w, h = float(r.width()), float(r.height())
        pts = wave_points(snap.waveform, w, h)
        if len(pts) < 2:
            return
        path = QPainterPath(pts[0])
        for pt in pts[1:]:
            path.lineTo(pt)
        p.setBrush(Qt.NoBrush)
        # soft glow under the trace
        glow = QColor(RED)
        glow.setAlpha(50)
        p.setPen(QPen(glow, 8))
        p.drawPath(path)
        pen = QPen(RED, 2.5)
        pen.setJoinStyle(Qt.RoundJoin)
        p.setPen(pen)
        p.drawPath(path)
