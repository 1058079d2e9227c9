"""Logging for geminibridge.

Everything logs under the ``geminibridge`` logger. Stdout belongs to the MCP
protocol, so records go to a file (``logging.file`` or GB_LOG) or to stderr.

Verbosity (``logging.verbose``) runs from 0 (errors) to 4 (trace) and beats
``logging.level`` when both are set.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from geminibridge.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("geminibridge")

_configured = False

_NAMED_LEVELS: dict[str, int] = {
    "TRACE": TRACE,
    "VERBOSE": VERBOSE,
    "WARN": logging.WARNING,
    **{
        name: getattr(logging, name)
        for name in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    },
}

# Index = verbosity
_VERBOSITY_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_DATE_FORMAT = "%H:%M:%S"


class _LowercaseLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Effective level for ``config``; INFO when unset or unrecognised."""
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        index = min(max(config.verbose, 0), len(_VERBOSITY_LEVELS) - 1)
        return _VERBOSITY_LEVELS[index]
    if config.level:
        return _NAMED_LEVELS.get(config.level.upper(), logging.INFO)
    return logging.INFO


def _open_handler(log_path: str | None) -> logging.Handler:
    if log_path:
        try:
            return logging.FileHandler(
                os.path.expanduser(log_path), mode="a", encoding="utf-8"
            )
        except OSError as e:
            print(f"[geminibridge] cannot open log file {log_path}: {e}", file=sys.stderr)
    return logging.StreamHandler(sys.stderr)


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Attach the single geminibridge handler. Only the first call has effect."""
    global _configured
    if _configured:
        return
    _configured = True

    level = resolve_level(config)
    log_path = (config.file if config else None) or os.environ.get("GB_LOG")

    handler = _open_handler(log_path)
    handler.setLevel(level)
    handler.setFormatter(_LowercaseLevelFormatter(_FORMAT, datefmt=_DATE_FORMAT))

    logger.setLevel(level)
    logger.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """The package logger, or its child ``geminibridge.<name>``."""
    return logger.getChild(name) if name else logger
