from math import sin, cos, pi
from PySide6.QtGui import QPainter, QPen, QColor
from PySide6.QtCore import QPointF, Qt
from mixradio.visuals import register_visualizer, BaseVisualizer

SPOKES = 90


@register_visualizer
class Radial(BaseVisualizer):
    key = 'radial'
    display_name = 'Core Pulse'
    order = 6

    def background(self, p: QPainter, r, snap, t):
        if snap is not None:
            return
        w, h = float(r.width()), float(r.height())
        p.setPen(QPen(QColor(211, 47, 47, 102), 2))
        p.setBrush(Qt.NoBrush)
        p.drawEllipse(QPointF(w / 2, h / 2), h * 0.3, h * 0.3)

    def paint(self, p: QPainter, r, snap, t):
        w, h = float(r.width()), float(r.height())
        cx, cy = w / 2, h / 2
        radius = h * 0.3
        for i in range(SPOKES):
            val = snap.bin(i * 2)
            length = (val / 255.0) * radius * 1.2
            ang = (i / float(SPOKES)) * pi * 2
            alpha = min(1.0, 0.4 + val / 400.0)
            p.setPen(QPen(QColor(211, 47, 47, int(255 * alpha)), 4))
            p.drawLine(QPointF(cx + cos(ang) * radius, cy + sin(ang) * radius),
                       QPointF(cx + cos(ang) * (radius + length), cy + sin(ang) * (radius + length)))
