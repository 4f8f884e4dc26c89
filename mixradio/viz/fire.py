import random
from PySide6.QtGui import QPainter, QColor, QBrush, QLinearGradient, QRadialGradient
from PySide6.QtCore import QRectF, QPointF, Qt
from mixradio.visuals import register_visualizer, BaseVisualizer

PARTICLES = 60
BARS = 40


class Particle:
    __slots__ = ('x', 'y', 'size', 'speed', 'alpha', 'age')

    def __init__(self, rng):
        self.x = rng.random()
        self.y = rng.random()
        self.size = rng.random() * 15 + 5
        self.speed = rng.random() * 2 + 0.5
        self.alpha = rng.random()
        self.age = 0


@register_visualizer
class Fire(BaseVisualizer):
    key = 'fire'
    display_name = 'Pyrotechnic'
    order = 2

    def __init__(self, rng=None):
        super().__init__()
        self.rng = rng or random.Random()
        self.particles = [Particle(self.rng) for _ in range(PARTICLES)]

    def step(self, bass, h):
        """Advance every particle one frame; positions are in unit space, speed in px."""
        lift = 0.4 + bass * 2.5
        for pt in self.particles:
            pt.y -= pt.speed * lift / max(1.0, h)
            pt.age += 1
            if pt.y < -0.1:
                pt.y = 1.1
                pt.x = self.rng.random()
                pt.age = 0

    def background(self, p: QPainter, r, snap, t):
        w, h = float(r.width()), float(r.height())
        bass = snap.bass if snap is not None else 0.0
        g = QRadialGradient(QPointF(w / 2, h), h * 1.2)
        g.setColorAt(0.0, QColor(120, 20, 0, int(255 * 0.4 * bass)))
        g.setColorAt(1.0, QColor(5, 5, 5))
        p.fillRect(r, QBrush(g))

    def paint(self, p: QPainter, r, snap, t):
        w, h = float(r.width()), float(r.height())
        if w <= 0 or h <= 0:
            return
        bass = snap.bass
        self.step(bass, h)

        p.setPen(Qt.NoPen)
        for pt in self.particles:
            px, py = pt.x * w, pt.y * h
            size = pt.size * (1 + bass)
            g = QRadialGradient(QPointF(px, py), size)
            g.setColorAt(0.0, QColor(255, int(120 + bass * 135), 0, int(255 * pt.alpha * bass)))
            g.setColorAt(1.0, QColor(0, 0, 0, 0))
            p.setBrush(QBrush(g))
            p.drawEllipse(QPointF(px, py), size, size)

        bw = w / BARS
        p.save()
        p.setOpacity(0.5)
        for i in range(BARS):
            v = snap.level(i * 2)
            bh = v * h * 0.85
            if bh <= 0:
                continue
            g = QLinearGradient(QPointF(0, h), QPointF(0, h - bh))
            g.setColorAt(0.0, QColor(255, 17, 0))
            g.setColorAt(1.0, QColor(255, 255, 0))
            p.setBrush(QBrush(g))
            p.drawRect(QRectF(i * bw, h - bh - 5, bw - 2, bh))
        p.restore()
