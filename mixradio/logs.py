from __future__ import annotations

import logging
import sys

from mixradio.settings import state_dir

APP_NAME = "MixRadio"

_FILE_HANDLER = None
_CONSOLE_HANDLER = None
_LOG_PATH = None


def _resolve_log_path():
    return state_dir() / "radio_debug.log"


def _root():
    global _FILE_HANDLER, _LOG_PATH
    lg = logging.getLogger(APP_NAME)
    if _FILE_HANDLER is None:
        try:
            _LOG_PATH = _resolve_log_path()
            fh = logging.FileHandler(_LOG_PATH, encoding="utf-8")
            fh.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
            lg.addHandler(fh)
            _FILE_HANDLER = fh
        except OSError:
            # read-only working dir: keep going without a log file
            _FILE_HANDLER = False
        lg.setLevel(logging.DEBUG)
    return lg


def get_logger(area: str) -> logging.Logger:
    """Return the ``MixRadio.<area>`` logger, attaching the shared file handler once."""
    _root()
    return logging.getLogger(f"{APP_NAME}.{area}")


def set_debug(enabled: bool) -> None:
    """Mirror log records to stderr (CLI ``--debug``)."""
    global _CONSOLE_HANDLER
    lg = _root()
    if enabled and _CONSOLE_HANDLER is None:
        ch = logging.StreamHandler(sys.stderr)
        ch.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
        lg.addHandler(ch)
        _CONSOLE_HANDLER = ch
    elif not enabled and _CONSOLE_HANDLER is not None:
        lg.removeHandler(_CONSOLE_HANDLER)
        _CONSOLE_HANDLER = None


def log_path():
    return _LOG_PATH
