import numpy as np
import pytest

from mixradio.analysis import Analyser, AnalysisSnapshot, silent_snapshot
from conftest import tone


def test_silence_gives_zero_bins_and_flat_wave():
    an = Analyser()
    freq = an.sample_frequency()
    wave = an.sample_waveform()
    assert len(freq) == 256 and len(wave) == 256
    assert freq.dtype == np.uint8 and wave.dtype == np.uint8
    assert not freq.any()
    assert (wave == 128).all()


def test_tone_peaks_at_its_bin():
    an = Analyser()
    an.push(tone(1000.0, n=512))
    freq = an.sample_frequency()
    expected = 1000.0 / (44100 / 512)
    assert abs(int(np.argmax(freq)) - expected) <= 2
    assert freq.max() > 0


def test_push_keeps_only_latest_window():
    an = Analyser(fft_size=64)
    an.push(np.zeros(100, dtype=np.float32))
    an.push(np.full(10, 0.5, dtype=np.float32))
    wave = an.sample_waveform()
    assert len(wave) == 32
    assert (wave[-10:] == 192).all()
    assert (wave[:-10] == 128).all()
    an.push(np.full(500, -0.5, dtype=np.float32))
    assert (an.sample_waveform() == 64).all()


def test_waveform_is_clipped_to_byte_range():
    an = Analyser(fft_size=64)
    an.push(np.full(64, 3.0, dtype=np.float32))
    assert (an.sample_waveform() == 255).all()
    an.push(np.full(64, -3.0, dtype=np.float32))
    assert (an.sample_waveform() == 0).all()


def test_snapshot_is_read_only_copy():
    an = Analyser()
    an.push(tone(500.0))
    snap = an.snapshot()
    assert isinstance(snap, AnalysisSnapshot)
    with pytest.raises(ValueError):
        snap.frequency[0] = 1
    an.push(np.zeros(512, dtype=np.float32))
    assert snap.waveform.max() > 128


def test_snapshot_helpers():
    snap = silent_snapshot(16)
    assert len(snap) == 16
    assert snap.bin(99) == 0
    assert snap.bass == 0.0


def test_reset_clears_window():
    an = Analyser()
    an.push(tone())
    an.reset()
    assert (an.sample_waveform() == 128).all()


def test_fft_size_must_be_power_of_two():
    with pytest.raises(ValueError):
        Analyser(fft_size=500)
