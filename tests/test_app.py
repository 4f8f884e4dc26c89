import copy
from datetime import datetime, timedelta

import pytest

from mixradio.app import RadioWindow, STATUS_TEXT, parse_args
from mixradio.runtime import RadioRuntime
from mixradio.scheduler import CONNECT_AT
from mixradio.settings import DEFAULTS
from conftest import FakeSource


@pytest.fixture
def window():
    rt = RadioRuntime(source_factory=lambda url, parent: FakeSource(url, parent),
                      settings=copy.deepcopy(DEFAULTS), persist=False)
    win = RadioWindow(rt)
    yield win
    rt.teardown()
    win.deleteLater()


def test_cli_accepts_known_tags():
    args = parse_args(['--preset', 'grid', '--eq', 'rock', '--connect-at', '2026-03-01T21:30'])
    assert args.preset == 'grid'
    assert args.eq == 'rock'
    assert args.connect_at == datetime(2026, 3, 1, 21, 30)


@pytest.mark.parametrize("argv", [
    ['--preset', 'lava'],
    ['--eq', 'jazz'],
    ['--disconnect-at', 'soon'],
])
def test_cli_rejects_bad_values(argv, capsys):
    with pytest.raises(SystemExit) as exc:
        parse_args(argv)
    assert exc.value.code == 2
    assert 'invalid' in capsys.readouterr().err


def test_status_shows_bitrate_only_while_playing(window):
    rt = window.rt
    rt.request_start()
    assert window.status.text() == STATUS_TEXT['loading']
    rt.source.playing.emit()
    assert window.status.text() == STATUS_TEXT['playing'] + '  320.0 kbps'
    rt.request_stop()
    assert window.status.text() == STATUS_TEXT['idle']
    assert rt.bitrate() == 0.0


def test_title_lists_pending_schedule(window):
    when = datetime.now() + timedelta(hours=1)
    window.rt.set_schedule_target(CONNECT_AT, when)
    assert f"connect {when:%H:%M:%S}" in window.windowTitle()
    window.rt.watchdog.clear()
    assert window.windowTitle() == 'Mix Radio'


def test_log_file_lives_in_state_dir():
    import os
    from mixradio.logs import log_path

    path = log_path()
    assert path is not None
    assert path.name == 'radio_debug.log'
    assert str(path.parent) == os.environ['MIXRADIO_HOME']
