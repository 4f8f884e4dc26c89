from __future__ import annotations

import json
import math
import os
from pathlib import Path

STREAM_URL = 'http://link.zeno.fm:80/sn4w5hvfppiuv'

# Analysis tap: 512-sample window -> 256 bins
FFT_SIZE = 512
SMOOTHING = 0.8
MIN_DB = -100.0
MAX_DB = -30.0

SAMPLE_RATE = 44100
CHANNELS = 2

VISUAL_FPS = 60
SCHEDULE_TICK_MS = 1000
QUALITY_SETTLE_MS = 1500

QUALITY_KBPS = {'high': 320, 'medium': 128, 'low': 64}

DEFAULTS = {
    'url': STREAM_URL,
    'volume': 0.8,
    'quality': 'high',
    'visual_preset': 'spectrum',
    'eq_preset': 'flat',
    'eq_bands': {'low': 0.0, 'mid': 0.0, 'high': 0.0},
}


def state_dir() -> Path:
    base = os.environ.get('MIXRADIO_HOME')
    root = Path(base) if base else Path('.').resolve() / 'output' / '_temp'
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass
    return root


def state_path() -> Path:
    return state_dir() / 'radio_state.json'


# ---------------- State helpers ----------------

def _number(v):
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    v = float(v)
    return v if math.isfinite(v) else None


def _clean(key, value):
    """Stored value if it has the right shape for ``key``, else None."""
    if key == 'volume':
        v = _number(value)
        return None if v is None else max(0.0, min(1.0, v))
    if key == 'quality':
        return value if isinstance(value, str) and value in QUALITY_KBPS else None
    if key in ('url', 'visual_preset', 'eq_preset'):
        return value if isinstance(value, str) else None
    return None


def load_settings(path: Path | None = None) -> dict:
    """Stored settings merged over DEFAULTS. Never raises.

    Values of the wrong type are dropped one by one, so a hand-edited file
    keeps whatever is still usable.
    """
    out = json.loads(json.dumps(DEFAULTS))
    p = Path(path) if path else state_path()
    try:
        if p.exists():
            data = json.loads(p.read_text(encoding='utf-8'))
            if isinstance(data, dict):
                for k, v in data.items():
                    if k == 'eq_bands' or k not in DEFAULTS:
                        continue
                    v = _clean(k, v)
                    if v is not None:
                        out[k] = v
                bands = data.get('eq_bands')
                if isinstance(bands, dict):
                    for k in ('low', 'mid', 'high'):
                        g = _number(bands.get(k, 0.0))
                        if g is not None:
                            out['eq_bands'][k] = g
    except (OSError, ValueError):
        pass
    return out


def save_settings(d: dict, path: Path | None = None) -> bool:
    p = Path(path) if path else state_path()
    try:
        p.write_text(json.dumps(d, indent=2), encoding='utf-8')
        return True
    except (OSError, TypeError, ValueError):
        return False
