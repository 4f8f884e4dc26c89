import numpy as np
import pytest

from mixradio.errors import NotReady, StartFailed
from mixradio.media import StreamSource, buffer_to_frames, media_event


class _Status:
    def __init__(self, name):
        self.name = name


@pytest.mark.parametrize("name,event", [
    ('BufferingMedia', 'buffering'),
    ('StalledMedia', 'stalled'),
    ('BufferedMedia', 'can_resume'),
    ('EndOfMedia', 'stalled'),
    ('InvalidMedia', 'failed'),
    ('LoadedMedia', None),
    ('NoMedia', None),
])
def test_media_status_mapping(name, event):
    assert media_event(_Status(name)) == event


def test_buffer_to_frames_interleaved():
    raw = np.arange(7, dtype=np.float32).tobytes()
    frames = buffer_to_frames(raw, 2)
    assert frames.shape == (3, 2)
    assert frames[1].tolist() == [2.0, 3.0]
    assert buffer_to_frames(b"", 2).shape == (0, 2)


def test_start_needs_url():
    src = StreamSource("")
    with pytest.raises((StartFailed, NotReady)) as exc:
        src.start()
    assert isinstance(exc.value, StartFailed)


def test_start_needs_chain():
    src = StreamSource("http://127.0.0.1:9/none")
    with pytest.raises((StartFailed, NotReady)):
        src.start()


def test_status_signals_forwarded():
    src = StreamSource("http://127.0.0.1:9/none")
    got = []
    src.buffering.connect(lambda: got.append('buffering'))
    src.canResume.connect(lambda: got.append('can_resume'))
    src.failed.connect(lambda reason: got.append('failed'))
    src._on_status(_Status('BufferingMedia'))
    src._on_status(_Status('BufferedMedia'))
    src._on_status(_Status('LoadedMedia'))
    src._on_status(_Status('InvalidMedia'))
    assert got == ['buffering', 'can_resume', 'failed']


def test_volume_clamped():
    src = StreamSource("x")
    src.set_volume(-1)
    assert src._volume == 0.0
    src.set_volume(0.4)
    assert src._volume == 0.4


class _Device:
    def isNull(self):
        return False


class _Devices:
    @staticmethod
    def defaultAudioOutput():
        return _Device()


class _Player:
    def setSource(self, url):
        pass

    def play(self):
        pass

    def stop(self):
        pass


def _sink_class(opens=True):
    made = []

    class Sink:
        def __init__(self, device, fmt, parent):
            self.stopped = False
            self.deleted = False
            made.append(self)

        def setVolume(self, v):
            pass

        def start(self):
            return object() if opens else None

        def stop(self):
            self.stopped = True

        def deleteLater(self):
            self.deleted = True

    return Sink, made


def _wired_source(monkeypatch, opens=True):
    import mixradio.media as media
    Sink, made = _sink_class(opens)
    monkeypatch.setattr(media, "HAVE_MULTIMEDIA", True)
    monkeypatch.setattr(media, "QMediaDevices", _Devices)
    monkeypatch.setattr(media, "QAudioSink", Sink)
    src = StreamSource("http://127.0.0.1:9/none")
    monkeypatch.setattr(src, "_format", lambda: None)
    src._player = _Player()
    src.attach_chain(object())
    return src, made


def test_sinks_released_across_start_stop_cycles(monkeypatch):
    src, made = _wired_source(monkeypatch)
    for _ in range(5):
        src.start()
        src.stop()
    assert len(made) == 5
    assert all(s.stopped and s.deleted for s in made)
    assert src._sink is None


def test_restart_without_stop_drops_previous_sink(monkeypatch):
    src, made = _wired_source(monkeypatch)
    src.start()
    src.start()
    assert made[0].deleted
    assert not made[1].deleted
    assert src._sink is made[1]


def test_sink_refusing_to_open_is_released(monkeypatch):
    src, made = _wired_source(monkeypatch, opens=False)
    with pytest.raises(StartFailed):
        src.start()
    assert made[0].stopped and made[0].deleted
    assert src._sink is None
