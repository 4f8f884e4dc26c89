from datetime import datetime, timedelta, timezone

import pytest

from mixradio.playback import PlaybackStateMachine
from mixradio.scheduler import ScheduleWatchdog, CONNECT_AT, DISCONNECT_AT, to_instant
from conftest import FakeSource

NOW = datetime(2026, 3, 1, 20, 0, 0)


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def _rig(fail=False):
    sm = PlaybackStateMachine()
    src = FakeSource(fail=fail, machine=sm)
    sm.source = src
    clock = Clock(NOW)
    dog = ScheduleWatchdog(sm, clock=clock)
    fired = []
    dog.fired.connect(fired.append)
    return sm, src, dog, clock, fired


def test_past_connect_fires_once_and_clears():
    sm, src, dog, _, fired = _rig()
    dog.set_target(CONNECT_AT, NOW - timedelta(minutes=5))
    dog.tick()
    assert src.calls == ["start"]
    assert dog.target(CONNECT_AT) is None
    assert fired == [CONNECT_AT]
    dog.tick()
    dog.tick()
    assert src.calls == ["start"]
    assert fired == [CONNECT_AT]


def test_future_target_waits_then_fires():
    sm, src, dog, clock, fired = _rig()
    dog.set_target(CONNECT_AT, NOW + timedelta(seconds=30))
    dog.tick()
    assert src.calls == []
    assert dog.target(CONNECT_AT) is not None
    clock.now = NOW + timedelta(seconds=30)
    dog.tick()
    assert src.calls == ["start"]
    assert fired == [CONNECT_AT]


def test_connect_due_while_playing_just_clears():
    sm, src, dog, _, fired = _rig()
    sm.request_start()
    sm.on_playing()
    dog.set_target(CONNECT_AT, NOW)
    dog.tick()
    assert src.calls == ["start"]
    assert dog.target(CONNECT_AT) is None
    assert fired == [CONNECT_AT]


def test_disconnect_stops_playback():
    sm, src, dog, _, fired = _rig()
    sm.request_start()
    sm.on_playing()
    dog.set_target(DISCONNECT_AT, NOW - timedelta(seconds=1))
    dog.tick()
    assert sm.state == 'idle'
    assert src.calls == ["start", "stop"]
    assert dog.target(DISCONNECT_AT) is None


def test_disconnect_while_idle_clears_without_stop():
    sm, src, dog, _, fired = _rig()
    dog.set_target(DISCONNECT_AT, NOW)
    dog.tick()
    assert src.calls == []
    assert dog.target(DISCONNECT_AT) is None
    assert fired == [DISCONNECT_AT]


def test_both_due_in_one_tick_start_then_stop():
    sm, src, dog, _, fired = _rig()
    dog.set_target(CONNECT_AT, NOW - timedelta(minutes=2))
    dog.set_target(DISCONNECT_AT, NOW - timedelta(minutes=1))
    dog.tick()
    assert src.calls == ["start", "stop"]
    assert sm.state == 'idle'
    assert fired == [CONNECT_AT, DISCONNECT_AT]
    assert dog.targets() == {CONNECT_AT: None, DISCONNECT_AT: None}


def test_failed_scheduled_start_still_clears_target():
    sm, src, dog, _, fired = _rig(fail=True)
    failures = []
    sm.startFailed.connect(lambda origin, reason: failures.append(origin))
    dog.set_target(CONNECT_AT, NOW)
    dog.tick()
    assert sm.state == 'error'
    assert failures == ['schedule']
    assert dog.target(CONNECT_AT) is None
    dog.tick()
    assert src.calls == ["start"]


def test_timer_runs_only_while_pending():
    _, _, dog, _, _ = _rig()
    assert not dog.is_polling()
    dog.set_target(CONNECT_AT, NOW + timedelta(hours=1))
    assert dog.is_polling()
    dog.set_target(DISCONNECT_AT, NOW + timedelta(hours=2))
    dog.set_target(CONNECT_AT, None)
    assert dog.is_polling()
    dog.clear()
    assert not dog.is_polling()


def test_timer_stops_after_last_target_fires():
    _, _, dog, _, _ = _rig()
    dog.set_target(DISCONNECT_AT, NOW)
    assert dog.is_polling()
    dog.tick()
    assert not dog.is_polling()


def test_unknown_kind_rejected():
    _, _, dog, _, _ = _rig()
    with pytest.raises(ValueError):
        dog.set_target('snooze_at', NOW)


def test_to_instant_inputs():
    assert to_instant(None) is None
    assert to_instant('') is None
    assert to_instant('2026-03-01T21:30') == datetime(2026, 3, 1, 21, 30)
    aware = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    local = to_instant(aware)
    assert local.tzinfo is None
    assert local == aware.astimezone().replace(tzinfo=None)
    with pytest.raises(TypeError):
        to_instant(1234)
    with pytest.raises(ValueError):
        to_instant('tomorrow-ish')
