"""
=============================================================================
LEVELED LOGGING
=============================================================================

A bitmask switchboard on top of the standard logging module.

Each log level is one bit. Levels can be turned on and off individually
at runtime, and new ones can be registered next to the built-in four:

    ┌──────────────┬──────┬──────────────┬──────────────────────────────┐
    │ Mask         │ Bit  │ Default      │ stdlib level                 │
    ├──────────────┼──────┼──────────────┼──────────────────────────────┤
    │ LOG_ERROR    │  1   │ on           │ ERROR                        │
    │ LOG_WARNING  │  2   │ on           │ WARNING                      │
    │ LOG_INFO     │  4   │ off (-v on)  │ INFO                         │
    │ LOG_OUTPUT   │  8   │ on           │ OUTPUT (25, custom)          │
    │ registered   │ 16.. │ caller picks │ caller picks (INFO default)  │
    └──────────────┴──────┴──────────────┴──────────────────────────────┘

Two ways to log:

    log_message(LOG_OUTPUT, "port = %d", 8080)     # by mask
    logger.info("Filename = %s", filename)          # ordinary module logger

Both go through the handler installed by setup_logging(), whose
LevelMaskFilter drops records whose level bit is switched off. A
module's logger.info() is therefore silent until LOG_INFO is enabled,
exactly like log_message(LOG_INFO, ...).

=============================================================================
"""

import sys
import logging
import threading
from typing import Dict, List, Optional, TextIO


LOGGER_NAME = "tinyweb"

OUTPUT = 25
logging.addLevelName(OUTPUT, "OUTPUT")

MAX_LOG_LEVEL = 32

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _LevelTable:
    """Registered level descriptors and the current enable mask."""

    def __init__(self):
        self._lock = threading.Lock()
        self.descriptors: List[str] = []
        self.stdlib_levels: Dict[int, int] = {}
        self.mask = 0

    def register(self, name: str, enable: bool, stdlib_level: int) -> int:
        with self._lock:
            if len(self.descriptors) >= MAX_LOG_LEVEL:
                raise ValueError(f"Too many log levels, cannot register {name!r}")
            bit = 1 << len(self.descriptors)
            self.descriptors.append(name)
            self.stdlib_levels[bit] = stdlib_level
            if enable:
                self.mask |= bit
            return bit

    def reset(self):
        with self._lock:
            self.descriptors = []
            self.stdlib_levels = {}
            self.mask = 0


_levels = _LevelTable()


def register_level(name: str, enable: bool = False, stdlib_level: int = logging.INFO) -> int:
    """
    Register a new log level.

    Args:
        name: Descriptor shown for the level.
        enable: Switch it on right away.
        stdlib_level: Level its messages are emitted at.

    Returns:
        The level's mask bit.

    Raises:
        ValueError: All MAX_LOG_LEVEL bits are taken.
    """
    return _levels.register(name, enable, stdlib_level)


def _register_defaults():
    global LOG_ERROR, LOG_WARNING, LOG_INFO, LOG_OUTPUT
    LOG_ERROR = register_level("ERROR", True, logging.ERROR)
    LOG_WARNING = register_level("WARNING", True, logging.WARNING)
    LOG_INFO = register_level("INFO", False, logging.INFO)
    LOG_OUTPUT = register_level("OUTPUT", True, OUTPUT)


LOG_ERROR = LOG_WARNING = LOG_INFO = LOG_OUTPUT = 0
_register_defaults()

DEFAULT_LOG_LEVELS = LOG_ERROR | LOG_WARNING | LOG_OUTPUT


def reset_levels():
    """Forget registered levels and restore the four defaults."""
    _levels.reset()
    _register_defaults()


def enable_levels(mask: int):
    with _levels._lock:
        _levels.mask |= mask


def disable_levels(mask: int):
    with _levels._lock:
        _levels.mask &= ~mask


def level_enabled(mask: int) -> bool:
    """True if any level in mask is on."""
    return (_levels.mask & mask) != 0


def level_names(mask: int) -> List[str]:
    """Descriptors of the levels in mask, lowest bit first."""
    return [name for i, name in enumerate(_levels.descriptors) if mask & (1 << i)]


def _stdlib_level_for(mask: int) -> int:
    levels = [lvl for bit, lvl in _levels.stdlib_levels.items() if mask & bit]
    return max(levels) if levels else logging.INFO


def _mask_for(levelno: int) -> int:
    if levelno >= logging.ERROR:
        return LOG_ERROR
    if levelno >= logging.WARNING:
        return LOG_WARNING
    if levelno == OUTPUT:
        return LOG_OUTPUT
    return LOG_INFO


def log_message(mask: int, fmt: str, *args) -> bool:
    """
    Log a printf-style message on the levels in mask.

    Returns:
        True if at least one of the levels is enabled and the message
        was emitted, False if it was suppressed.
    """
    if not level_enabled(mask):
        return False

    logging.getLogger(LOGGER_NAME).log(
        _stdlib_level_for(mask), fmt, *args, extra={"log_mask": mask}
    )
    return True


class LevelMaskFilter(logging.Filter):
    """
    Drop records whose level bit is switched off.

    Records from log_message() carry their own mask. Everything else is
    mapped by stdlib level: ERROR and above to LOG_ERROR, WARNING to
    LOG_WARNING, OUTPUT to LOG_OUTPUT, INFO and DEBUG to LOG_INFO.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        mask = getattr(record, "log_mask", None)
        if mask is None:
            mask = _mask_for(record.levelno)
        return level_enabled(mask)


def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """
    Configure logging for the process.

    Restores the default levels, adds LOG_INFO when verbose, and installs
    one handler (log_file if given, else stream, else stderr) on the root
    logger.

    Returns:
        The installed handler.
    """
    reset_levels()
    if verbose:
        enable_levels(LOG_INFO)

    if log_file:
        handler: logging.Handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(LevelMaskFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[handler],
        force=True,
    )
    return handler
