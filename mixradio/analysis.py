from __future__ import annotations

import threading
import time as _time
from dataclasses import dataclass, field

import numpy as np

from mixradio.settings import FFT_SIZE, SMOOTHING, MIN_DB, MAX_DB


@dataclass(frozen=True)
class AnalysisSnapshot:
    """Point-in-time copy of one frame's analysis data. Arrays are read-only."""
    frequency: np.ndarray
    waveform: np.ndarray
    timestamp: float = field(default_factory=_time.time)

    def __post_init__(self):
        for arr in (self.frequency, self.waveform):
            arr.setflags(write=False)

    def __len__(self):
        return len(self.frequency)

    def bin(self, i: int) -> int:
        """Frequency byte at i, 0 when out of range."""
        if 0 <= i < len(self.frequency):
            return int(self.frequency[i])
        return 0

    def level(self, i: int) -> float:
        return self.bin(i) / 255.0

    @property
    def bass(self) -> float:
        return self.level(2)

    @property
    def mid(self) -> float:
        return self.level(20)


def silent_snapshot(bins: int = FFT_SIZE // 2) -> AnalysisSnapshot:
    return AnalysisSnapshot(np.zeros(bins, dtype=np.uint8), np.full(bins, 128, dtype=np.uint8))


class Analyser:
    """Spectral/temporal tap at the end of the filter chain.

    ``push`` keeps only the newest ``fft_size`` samples; readers always see
    the latest window and nothing queues up behind it.
    """

    def __init__(self, fft_size: int = FFT_SIZE, smoothing: float = SMOOTHING,
                 min_db: float = MIN_DB, max_db: float = MAX_DB):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError("fft_size must be a power of two >= 32")
        self.fft_size = int(fft_size)
        self.smoothing = float(smoothing)
        self.min_db = float(min_db)
        self.max_db = float(max_db)
        self._lock = threading.Lock()
        self._buf = np.zeros(self.fft_size, dtype=np.float32)
        self._smooth = np.zeros(self.bin_count, dtype=np.float64)
        self._window = np.blackman(self.fft_size)

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def push(self, samples) -> None:
        x = np.asarray(samples, dtype=np.float32).reshape(-1)
        if x.size == 0:
            return
        n = self.fft_size
        with self._lock:
            if x.size >= n:
                self._buf[:] = x[-n:]
            else:
                self._buf[:-x.size] = self._buf[x.size:]
                self._buf[-x.size:] = x

    def reset(self) -> None:
        with self._lock:
            self._buf.fill(0.0)
            self._smooth.fill(0.0)

    def _window_copy(self) -> np.ndarray:
        with self._lock:
            return self._buf.copy()

    def sample_frequency(self) -> np.ndarray:
        x = self._window_copy().astype(np.float64)
        spec = np.abs(np.fft.rfft(x * self._window))[: self.bin_count] / self.fft_size
        with self._lock:
            self._smooth = self.smoothing * self._smooth + (1.0 - self.smoothing) * spec
            mag = self._smooth.copy()
        db = 20.0 * np.log10(np.maximum(mag, 1e-12))
        scaled = 255.0 * (db - self.min_db) / (self.max_db - self.min_db)
        return np.clip(np.floor(scaled), 0, 255).astype(np.uint8)

    def sample_waveform(self) -> np.ndarray:
        x = self._window_copy()[-self.bin_count:]
        return np.clip(np.floor(128.0 * (1.0 + x)), 0, 255).astype(np.uint8)

    def snapshot(self) -> AnalysisSnapshot:
        return AnalysisSnapshot(self.sample_frequency(), self.sample_waveform())
