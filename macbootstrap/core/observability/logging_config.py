"""
Logging configuration — set up once by the CLI.

Every module does ``logger = logging.getLogger(__name__)`` and inherits
this config. Log records are diagnostics and go to stderr; the run log
(timestamped progress lines) is the reporter's job and goes to stdout.

Level precedence:
    --debug  >  --verbose  >  --quiet  >  MBS_LOG_LEVEL  >  WARNING

Optional file output via MBS_LOG_FILE / MBS_LOG_FILE_LEVEL. A log file
is useful on a fresh machine, where the terminal may be restarted
halfway through (shell change, Xcode dialog).
"""

from __future__ import annotations

import logging
import os
import sys

LEVEL_ENV_VAR = "MBS_LOG_LEVEL"
FILE_ENV_VAR = "MBS_LOG_FILE"
FILE_LEVEL_ENV_VAR = "MBS_LOG_FILE_LEVEL"

# ── Format strings ──────────────────────────────────────────────

# WARNING and above: the message is enough
_FMT_CONSOLE = "%(levelname)s: %(message)s"

# INFO: which adapter or service said it
_FMT_VERBOSE = "%(asctime)s %(name)s: %(message)s"

# DEBUG and the log file: source location too
_FMT_DETAILED = "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d %(message)s"

_DATEFMT_CONSOLE = "%H:%M:%S"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_PACKAGE_LOGGER = "macbootstrap"


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LEVEL_ENV_VAR, "WARNING")


def _console_format(numeric_level: int) -> str:
    if numeric_level <= logging.DEBUG:
        return _FMT_DETAILED
    if numeric_level <= logging.INFO:
        return _FMT_VERBOSE
    return _FMT_CONSOLE


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure logging for the whole process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file (default: $MBS_LOG_FILE).
        log_file_level: Level for the file (default: $MBS_LOG_FILE_LEVEL,
            then DEBUG, since a file is only asked for when digging).
    """
    console_level = _parse_level(level)
    log_file = log_file or os.environ.get(FILE_ENV_VAR)
    log_file_level = log_file_level or os.environ.get(FILE_LEVEL_ENV_VAR)

    handlers: list[logging.Handler] = []

    to_stderr = logging.StreamHandler(sys.stderr)
    to_stderr.setLevel(console_level)
    to_stderr.setFormatter(
        logging.Formatter(_console_format(console_level), datefmt=_DATEFMT_CONSOLE)
    )
    handlers.append(to_stderr)

    if log_file:
        to_file = logging.FileHandler(os.path.expanduser(log_file), encoding="utf-8")
        to_file.setLevel(_parse_level(log_file_level, default=logging.DEBUG))
        to_file.setFormatter(logging.Formatter(_FMT_DETAILED, datefmt=_DATEFMT_FILE))
        handlers.append(to_file)

    # The most verbose handler decides what the loggers let through.
    lowest = min(h.level for h in handlers)
    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(lowest)
    logging.getLogger(_PACKAGE_LOGGER).setLevel(lowest)

    logging.raiseExceptions = False


def _parse_level(level: str | None, default: int = logging.WARNING) -> int:
    """Level name to its numeric value; unknown names give ``default``."""
    if not level:
        return default
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else default
