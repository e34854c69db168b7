"""
Logging configuration — one setup call per process.

Called once by the CLI. Every module logs through
``logger = logging.getLogger(__name__)`` and inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  ENVBOOT_LOG_LEVEL env var  >  WARNING (default)

Run narration (RunReport events, logger ``envboot.narration``) is
already printed by the CLI, so the console handler only shows it at
DEBUG. A log file, when configured via ENVBOOT_LOG_FILE /
ENVBOOT_LOG_FILE_LEVEL, always receives it: that file is the full
record of what a run did.
"""

from __future__ import annotations

import logging
import sys

NARRATION_LOGGER = "envboot.narration"

_FMT_CONSOLE = "%(levelname)s: %(message)s"
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_SHORT = "%H:%M:%S"

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# Libraries that log chatter we never want at INFO
_NOISY_LOGGERS = ("urllib3", "charset_normalizer")


class _HideNarration(logging.Filter):
    """Drop narration records (the CLI prints those itself)."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith(NARRATION_LOGGER)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure logging for the whole process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to an append-mode log file.
        log_file_level: Level for the file; defaults to INFO so the file
            records every step even when the console is quiet.
        quiet_third_party: Keep noisy third-party loggers at WARNING.
    """
    console_level = _parse_level(level)

    if console_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_SHORT
    elif console_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_SHORT
    else:
        fmt, datefmt = _FMT_CONSOLE, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    if console_level > logging.DEBUG:
        console.addFilter(_HideNarration())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective = console_level

    if log_file:
        file_level = _parse_level(log_file_level, default=logging.INFO)
        effective = min(effective, file_level)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(file_level)
        handler.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(handler)

    root.setLevel(effective)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None, default: int = logging.WARNING) -> int:
    """Convert a level name to its numeric value (unknown names → default)."""
    if not level:
        return default
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return default
    return numeric
