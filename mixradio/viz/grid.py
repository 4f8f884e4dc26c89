from PySide6.QtGui import QPainter, QPen, QColor, QBrush, QLinearGradient
from PySide6.QtCore import QRectF, QPointF, Qt
from mixradio.visuals import register_visualizer, BaseVisualizer

SPACING = 40
GRID_BIN = 8


def scroll_offset(t: float) -> float:
    # 0.05 px per ms
    return (t * 1000.0 * 0.05) % SPACING


@register_visualizer
class Grid(BaseVisualizer):
    key = 'grid'
    display_name = 'Cyber Net'
    order = 7

    def background(self, p: QPainter, r, snap, t):
        w, h = float(r.width()), float(r.height())
        if snap is not None:
            horiz = h * 0.7
            hg = QLinearGradient(QPointF(0, horiz - 100), QPointF(0, horiz))
            hg.setColorAt(0.0, QColor(0, 0, 0, 0))
            hg.setColorAt(1.0, QColor(211, 47, 47, int(255 * 0.2 * snap.bass)))
            p.fillRect(QRectF(0, 0, w, horiz), QBrush(hg))

        # the net keeps scrolling when silent, just dimmer
        g = snap.level(GRID_BIN) if snap is not None else 0.0
        p.setPen(QPen(QColor(211, 47, 47, int(255 * (0.1 + g * 0.4))), 1.2))
        off = scroll_offset(t)
        x = -SPACING
        while x < w + SPACING:
            p.drawLine(QPointF(x + off, 0), QPointF(x + off, h))
            x += SPACING
        y = -SPACING
        while y < h + SPACING:
            p.drawLine(QPointF(0, y + off), QPointF(w, y + off))
            y += SPACING

    def paint(self, p: QPainter, r, snap, t):
        w, h = float(r.width()), float(r.height())
        g = snap.level(GRID_BIN)
        radius = 50 + g * 100
        p.setPen(Qt.NoPen)
        p.setBrush(QColor(211, 47, 47, int(255 * 0.05 * g)))
        p.drawEllipse(QPointF(w / 2, h / 2), radius, radius)
