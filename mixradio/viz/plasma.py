from math import sin, cos
from PySide6.QtGui import QPainter, QColor, QBrush, QRadialGradient
from PySide6.QtCore import QPointF, Qt
from mixradio.visuals import register_visualizer, BaseVisualizer

AURA = [
    (211, 47, 47, 0.15),
    (100, 0, 255, 0.10),
    (0, 200, 255, 0.10),
]


def _glow(p, cx, cy, radius, rgb, alpha):
    g = QRadialGradient(QPointF(cx, cy), max(1.0, radius))
    g.setColorAt(0.0, QColor(rgb[0], rgb[1], rgb[2], int(255 * max(0.0, min(1.0, alpha)))))
    g.setColorAt(1.0, QColor(0, 0, 0, 0))
    p.setBrush(QBrush(g))
    p.drawEllipse(QPointF(cx, cy), radius, radius)


@register_visualizer
class Plasma(BaseVisualizer):
    key = 'plasma'
    display_name = 'Liquid Aura'
    order = 3

    def background(self, p: QPainter, r, snap, t):
        w, h = float(r.width()), float(r.height())
        bass = snap.bass if snap is not None else 0.0
        p.setPen(Qt.NoPen)
        for i, (cr, cg, cb, a) in enumerate(AURA):
            px = (sin(t * 0.2 + i) * 0.4 + 0.5) * w
            py = (cos(t * 0.15 + i * 1.5) * 0.4 + 0.5) * h
            _glow(p, px, py, 150 + bass * 200, (cr, cg, cb), a)

    def paint(self, p: QPainter, r, snap, t):
        w, h = float(r.width()), float(r.height())
        if w <= 0 or h <= 0:
            return
        bass, mid = snap.bass, snap.mid
        p.setPen(Qt.NoPen)
        p.setCompositionMode(QPainter.CompositionMode_Plus)
        for i in range(4):
            x = (sin(t * 0.4 + i * 2) * 0.3 + 0.5) * w
            y = (cos(t * 0.5 + i) * 0.3 + 0.5) * h
            radius = (80 + bass * 120) * (i + 1)
            _glow(p, x, y, radius, (211, 47, 47), 0.6 * mid)
        p.setCompositionMode(QPainter.CompositionMode_SourceOver)
