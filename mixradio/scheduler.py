from __future__ import annotations

from datetime import datetime
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

from mixradio.logs import get_logger
from mixradio.settings import SCHEDULE_TICK_MS

log = get_logger("Scheduler")

CONNECT_AT = 'connect_at'
DISCONNECT_AT = 'disconnect_at'
KINDS = (CONNECT_AT, DISCONNECT_AT)


def to_instant(value) -> Optional[datetime]:
    """datetime / ISO string / None -> naive local datetime or None."""
    if value is None or value == '':
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    if not isinstance(value, datetime):
        raise TypeError(f"expected datetime or ISO string, got {type(value).__name__}")
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


class ScheduleWatchdog(QObject):
    """1 Hz check of the connect-at / disconnect-at targets.

    A due target issues its request (if needed) and is cleared in the same
    tick whether or not the request works out. The timer only runs while a
    target is pending.
    """
    fired = Signal(str)
    targetsChanged = Signal()

    def __init__(self, playback, clock=datetime.now, parent=None):
        super().__init__(parent)
        self.playback = playback
        self.clock = clock
        self._targets = {CONNECT_AT: None, DISCONNECT_AT: None}
        self.timer = QTimer(self)
        self.timer.setInterval(SCHEDULE_TICK_MS)
        self.timer.timeout.connect(self.tick)

    def targets(self) -> dict:
        return dict(self._targets)

    def target(self, kind: str) -> Optional[datetime]:
        return self._targets[kind]

    def set_target(self, kind: str, instant) -> None:
        if kind not in KINDS:
            raise ValueError(f"unknown schedule kind {kind!r}")
        self._targets[kind] = to_instant(instant)
        log.info("%s -> %s", kind, self._targets[kind])
        self._sync_timer()
        self.targetsChanged.emit()

    def clear(self) -> None:
        self._targets = {CONNECT_AT: None, DISCONNECT_AT: None}
        self._sync_timer()
        self.targetsChanged.emit()

    def is_polling(self) -> bool:
        return self.timer.isActive()

    def _sync_timer(self) -> None:
        pending = any(v is not None for v in self._targets.values())
        if pending and not self.timer.isActive():
            self.timer.start()
        elif not pending and self.timer.isActive():
            self.timer.stop()

    def tick(self, now: Optional[datetime] = None) -> None:
        now = now or self.clock()
        changed = False

        on = self._targets[CONNECT_AT]
        if on is not None and now >= on:
            self._targets[CONNECT_AT] = None
            changed = True
            if not self.playback.is_playing():
                log.info("scheduled connect due (%s)", on)
                self.playback.request_start('schedule')
            self.fired.emit(CONNECT_AT)

        off = self._targets[DISCONNECT_AT]
        if off is not None and now >= off:
            self._targets[DISCONNECT_AT] = None
            changed = True
            if self.playback.is_playing():
                log.info("scheduled disconnect due (%s)", off)
                self.playback.request_stop('schedule')
            self.fired.emit(DISCONNECT_AT)

        if changed:
            self._sync_timer()
            self.targetsChanged.emit()
