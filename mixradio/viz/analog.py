from math import cos, sin, pi, degrees
from PySide6.QtGui import QPainter, QPen, QColor, QBrush, QRadialGradient, QPainterPath, QFont
from PySide6.QtCore import QRectF, QPointF, Qt
from mixradio.visuals import register_visualizer, BaseVisualizer

ARC_START = pi * 1.1
ARC_SPAN = pi * 0.8
DANGER = 0.85
VU_BINS = (2, 6, 10)


def vu_level(snap) -> float:
    lvl = sum(snap.bin(i) for i in VU_BINS) / 765.0
    return max(0.0, min(1.0, lvl))


def needle_angle(level: float) -> float:
    return ARC_START + ARC_SPAN * max(0.0, min(1.0, level))


def _qt_deg(rad):
    # canvas angles run clockwise from +x, Qt arcs counter-clockwise in 1/16 deg
    return int(round(-degrees(rad) * 16))


@register_visualizer
class AnalogVU(BaseVisualizer):
    key = 'analog'
    display_name = 'Legacy VU'
    order = 4

    def background(self, p: QPainter, r, snap, t):
        w, h = float(r.width()), float(r.height())
        g = QRadialGradient(QPointF(w / 2, h / 2), h)
        g.setColorAt(0.0, QColor(26, 26, 26))
        g.setColorAt(1.0, QColor(8, 8, 8))
        p.fillRect(r, QBrush(g))
        cx, cy, radius = w / 2, h * 0.85, h * 0.7
        box = QRectF(cx - radius, cy - radius, radius * 2, radius * 2)
        pen = QPen(QColor(34, 34, 34), 12)
        pen.setCapStyle(Qt.RoundCap)
        p.setPen(pen)
        p.setBrush(Qt.NoBrush)
        p.drawArc(box, _qt_deg(ARC_START), _qt_deg(ARC_SPAN))

    def paint(self, p: QPainter, r, snap, t):
        w, h = float(r.width()), float(r.height())
        if w <= 0 or h <= 0:
            return
        level = vu_level(snap)
        cx, cy, radius = w / 2, h * 0.85, h * 0.7
        end = needle_angle(level)
        box = QRectF(cx - radius, cy - radius, radius * 2, radius * 2)

        pen = QPen(QColor(255, 0, 0) if level > DANGER else QColor(211, 47, 47), 12)
        pen.setCapStyle(Qt.RoundCap)
        p.setPen(pen)
        p.setBrush(Qt.NoBrush)
        if level > 0:
            p.drawArc(box, _qt_deg(ARC_START), _qt_deg(end - ARC_START))

        tip = QPointF(cx + cos(end) * radius * 1.05, cy + sin(end) * radius * 1.05)
        nx, ny = -sin(end) * 3, cos(end) * 3
        needle = QPainterPath(QPointF(cx - nx, cy - ny))
        needle.lineTo(QPointF(cx + nx, cy + ny))
        needle.lineTo(tip)
        needle.closeSubpath()
        p.setPen(Qt.NoPen)
        p.setBrush(QColor(238, 238, 238))
        p.drawPath(needle)

        f = QFont()
        f.setPixelSize(18)
        f.setBold(True)
        p.setFont(f)
        p.setPen(QColor(255, 255, 255, 13))
        p.drawText(QRectF(cx - 150, cy - 80, 300, 24), Qt.AlignCenter, 'PEAK LEVEL VU')
