"""Logging configuration for lsp-proxy.

Uses Python's standard logging module with support for:
- File logging via config or LSP_PROXY_LOG environment variable
- Verbosity levels: error(0), warning(1), info(2), verbose(3), trace(4)
- Stderr fallback when no log file is configured

stdout carries protocol traffic to the editor and is never used for logs.
"""

from __future__ import annotations

import logging
import os
import sys

# Custom log levels
TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

LOG_ENV_VAR = "LSP_PROXY_LOG"

# Module-level logger
logger = logging.getLogger("lsp_proxy")

_initialized = False

# Map --verbose=N to log levels (0=errors only, 4=everything)
_VERBOSITY_MAP = {
    0: logging.ERROR,
    1: logging.WARNING,
    2: logging.INFO,
    3: VERBOSE,
    4: TRACE,
}


class _LowercaseLevelFormatter(logging.Formatter):
    """Formatter that emits lowercase level names."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def verbosity_to_level(verbose: int) -> int:
    """Translate a -v count into a logging level."""
    if verbose < 0:
        return logging.ERROR
    return _VERBOSITY_MAP.get(verbose, TRACE)


def setup_logging(verbose: int = 2, log_file: str | None = None) -> None:
    """Initialize logging. Subsequent calls are no-ops.

    Args:
        verbose: Verbosity level, 0 (errors only) to 4 (trace).
        log_file: Log file path. Falls back to $LSP_PROXY_LOG.
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    log_level = verbosity_to_level(verbose)
    logger.setLevel(log_level)

    # Format: HH:MM:SS level: message
    formatter = _LowercaseLevelFormatter(
        "%(asctime)s %(levelname)s [%(name)s]: %(message)s", datefmt="%H:%M:%S"
    )

    log_path = log_file or os.environ.get(LOG_ENV_VAR)

    if log_path:
        log_path = os.path.expanduser(log_path)
        try:
            file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            if sys.stderr.isatty():
                print(f"[lsp-proxy] Failed to open log file: {e}", file=sys.stderr)
                _add_stderr_handler(formatter, log_level)
    elif sys.stderr.isatty():
        # Only log to stderr if it's a real console; the editor reads our
        # stderr as the language server's own output otherwise.
        _add_stderr_handler(formatter, log_level)


def _add_stderr_handler(formatter: logging.Formatter, level: int = logging.DEBUG) -> None:
    """Add a stderr handler to the logger."""
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Optional name for a child logger (e.g., "router", "bridge").
              If None, returns the root lsp_proxy logger.
    """
    if name:
        return logger.getChild(name)
    return logger
