from __future__ import annotations

import math
import threading
from dataclasses import dataclass, replace
from typing import Optional, Union

import numpy as np
from scipy.signal import sosfilt

from mixradio.errors import NotReady
from mixradio.logs import get_logger
from mixradio.settings import SAMPLE_RATE, CHANNELS

log = get_logger("Equalizer")

BANDS = ('low', 'mid', 'high')
GAIN_MIN = -12.0
GAIN_MAX = 12.0

# Shelf slope S=1 is the same as Q=1/sqrt(2)
SHELF_Q = 1.0 / math.sqrt(2.0)

EQ_PRESETS = {
    'flat':   (0.0, 0.0, 0.0),
    'bass':   (8.0, 0.0, -2.0),
    'vocal':  (-2.0, 6.0, 2.0),
    'bright': (-4.0, 0.0, 8.0),
    'rock':   (5.0, -2.0, 5.0),
}
CUSTOM = 'custom'


def clamp_gain(value) -> float:
    return max(GAIN_MIN, min(GAIN_MAX, float(value)))


# ---------------- EQ state ----------------

@dataclass(frozen=True)
class PresetEq:
    name: str

    @property
    def gains(self):
        return EQ_PRESETS[self.name]

    @property
    def marker(self) -> str:
        return self.name


@dataclass(frozen=True)
class CustomEq:
    low: float
    mid: float
    high: float

    @property
    def gains(self):
        return (self.low, self.mid, self.high)

    @property
    def marker(self) -> str:
        return CUSTOM


EqState = Union[PresetEq, CustomEq]


def with_band(state: EqState, band: str, value) -> CustomEq:
    """Manual edit: always lands in CustomEq, other bands carried over."""
    if band not in BANDS:
        raise ValueError(f"unknown band {band!r}")
    gains = list(state.gains)
    gains[BANDS.index(band)] = clamp_gain(value)
    return CustomEq(*gains)


def preset_state(name: str) -> PresetEq:
    if name not in EQ_PRESETS:
        raise ValueError(f"unknown EQ preset {name!r}")
    return PresetEq(name)


# ---------------- Filter stages ----------------

@dataclass(frozen=True)
class FilterStage:
    kind: str            # 'lowshelf' | 'peaking' | 'highshelf'
    frequency: float
    gain_db: float = 0.0
    q: float = 1.0

    def coefficients(self, sample_rate: int):
        """Biquad (b0, b1, b2, a1, a2) normalized by a0, Audio EQ Cookbook."""
        A = 10.0 ** (self.gain_db / 40.0)
        nyquist = sample_rate / 2.0
        f0 = min(max(self.frequency, 1.0), nyquist * 0.99)
        w0 = 2.0 * math.pi * f0 / float(sample_rate)
        cos_w0 = math.cos(w0)
        sin_w0 = math.sin(w0)
        alpha = sin_w0 / (2.0 * max(self.q, 1e-3))

        if self.kind == 'peaking':
            b0 = 1.0 + alpha * A
            b1 = -2.0 * cos_w0
            b2 = 1.0 - alpha * A
            a0 = 1.0 + alpha / A
            a1 = -2.0 * cos_w0
            a2 = 1.0 - alpha / A
        elif self.kind == 'lowshelf':
            k = 2.0 * math.sqrt(A) * alpha
            b0 = A * ((A + 1) - (A - 1) * cos_w0 + k)
            b1 = 2 * A * ((A - 1) - (A + 1) * cos_w0)
            b2 = A * ((A + 1) - (A - 1) * cos_w0 - k)
            a0 = (A + 1) + (A - 1) * cos_w0 + k
            a1 = -2 * ((A - 1) + (A + 1) * cos_w0)
            a2 = (A + 1) + (A - 1) * cos_w0 - k
        elif self.kind == 'highshelf':
            k = 2.0 * math.sqrt(A) * alpha
            b0 = A * ((A + 1) + (A - 1) * cos_w0 + k)
            b1 = -2 * A * ((A - 1) + (A + 1) * cos_w0)
            b2 = A * ((A + 1) + (A - 1) * cos_w0 - k)
            a0 = (A + 1) - (A - 1) * cos_w0 + k
            a1 = 2 * ((A - 1) - (A + 1) * cos_w0)
            a2 = (A + 1) - (A - 1) * cos_w0 - k
        else:
            raise ValueError(f"unknown filter kind {self.kind!r}")

        return b0 / a0, b1 / a0, b2 / a0, a1 / a0, a2 / a0


def default_stages(gains=(0.0, 0.0, 0.0)):
    lo, mid, hi = gains
    return [
        FilterStage('lowshelf', 320.0, lo, SHELF_Q),
        FilterStage('peaking', 1000.0, mid, 1.0),
        FilterStage('highshelf', 3200.0, hi, SHELF_Q),
    ]


class FilterChain:
    """source -> low -> mid -> high -> tap -> output, always all three stages."""

    def __init__(self, stages, tap=None, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS):
        if len(stages) != 3:
            raise ValueError("FilterChain needs exactly three stages")
        self.sr = int(sample_rate)
        self.ch = int(channels)
        self.tap = tap
        self._lock = threading.Lock()
        self._stages = list(stages)
        self._sos = self._build_sos()
        self._zi = np.zeros((3, self.ch, 2), dtype=np.float64)

    def _build_sos(self) -> np.ndarray:
        rows = []
        for st in self._stages:
            b0, b1, b2, a1, a2 = st.coefficients(self.sr)
            rows.append((b0, b1, b2, 1.0, a1, a2))
        return np.array(rows, dtype=np.float64)

    @property
    def stages(self):
        return tuple(self._stages)

    def gain(self, band: str) -> float:
        return self._stages[BANDS.index(band)].gain_db

    def set_gain(self, band: str, gain_db: float) -> None:
        idx = BANDS.index(band)
        with self._lock:
            if self._stages[idx].gain_db == gain_db:
                return
            self._stages[idx] = replace(self._stages[idx], gain_db=gain_db)
            b0, b1, b2, a1, a2 = self._stages[idx].coefficients(self.sr)
            sos = self._sos.copy()
            sos[idx] = (b0, b1, b2, 1.0, a1, a2)
            self._sos = sos

    def process(self, block: np.ndarray) -> np.ndarray:
        """Filter a float32 (frames, channels) block; feeds the tap with the post-EQ mono mix."""
        x = np.asarray(block, dtype=np.float32)
        if x.ndim == 1:
            x = x.reshape(-1, 1)
        if x.size == 0:
            return x
        ch = min(x.shape[1], self.ch)
        y = np.array(x, dtype=np.float64, copy=True)
        with self._lock:
            sos = self._sos
            for c in range(ch):
                y[:, c], self._zi[:, c, :] = sosfilt(sos, y[:, c], zi=self._zi[:, c, :])
        out = y.astype(np.float32)
        if self.tap is not None:
            self.tap.push(out[:, :ch].mean(axis=1))
        return out

    def reset(self) -> None:
        with self._lock:
            self._zi.fill(0.0)


# ---------------- Controller ----------------

class FilterGraphController:
    """Owns the session's FilterChain and the EQ state shown to the settings surface."""

    def __init__(self, tap=None, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS):
        self.tap = tap
        self.sample_rate = sample_rate
        self.channels = channels
        self._state: EqState = PresetEq('flat')
        self._chain: Optional[FilterChain] = None

    @property
    def chain(self) -> Optional[FilterChain]:
        return self._chain

    @property
    def state(self) -> EqState:
        return self._state

    @property
    def active_preset(self) -> str:
        return self._state.marker

    def initialize(self, source) -> FilterChain:
        if source is None:
            raise NotReady("no media source yet; create the source before the filter graph")
        if self._chain is not None:
            return self._chain
        self._chain = FilterChain(default_stages(self._state.gains), tap=self.tap,
                                  sample_rate=self.sample_rate, channels=self.channels)
        log.debug("filter chain built: gains=%s", self.gains())
        return self._chain

    def teardown(self) -> None:
        if self._chain is not None:
            log.debug("filter chain released")
        self._chain = None

    def gains(self) -> dict:
        return dict(zip(BANDS, self._state.gains))

    def set_band_gain(self, band: str, value) -> None:
        self._state = with_band(self._state, band, value)
        if self._chain is not None:
            self._chain.set_gain(band, getattr(self._state, band))

    def apply_preset(self, name: str) -> None:
        self._state = preset_state(name)
        self._push_all()
        log.info("EQ preset -> %s", name)

    def restore(self, preset: str, bands: dict) -> None:
        """Load persisted EQ: a known preset name wins, otherwise the raw gains."""
        if preset in EQ_PRESETS:
            self._state = PresetEq(preset)
        else:
            self._state = CustomEq(*(clamp_gain(bands.get(b, 0.0)) for b in BANDS))
        self._push_all()

    def _push_all(self) -> None:
        if self._chain is None:
            return
        for band, g in zip(BANDS, self._state.gains):
            self._chain.set_gain(band, g)
