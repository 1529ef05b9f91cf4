"""Centralized logging configuration for the figmadl application.

All output goes to stderr (and optionally a rotating log file): stdout is
reserved for command output and, under ``figma-dl serve``, for the MCP
protocol stream.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional, TextIO

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3

# httpx/httpcore log every request at INFO, which would leak signed URLs
NOISY_LOGGERS = ("httpx", "httpcore")


def resolve_log_level(name: Optional[str], verbose: bool = False) -> int:
    """Maps a level name such as ``"warning"`` to its numeric value; verbose wins."""
    if verbose:
        return logging.DEBUG
    level = logging.getLevelName(str(name or "").upper())
    return level if isinstance(level, int) else DEFAULT_LOG_LEVEL


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Configures the root logger, replacing any handlers already installed.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG, logging.INFO).
        log_format: The format string for log messages.
        log_file: Optional path of a size-rotated log file.
        stream: Console stream, stderr when omitted.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)
    handlers = [logging.StreamHandler(stream or sys.stderr)]

    file_error = None
    if log_file:
        try:
            handlers.append(RotatingFileHandler(
                log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding='utf-8',
            ))
        except OSError as e:
            file_error = e

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    if file_error is not None:
        logging.error(f"Failed to set up file logging to {log_file}: {file_error}")
    logging.debug(f"Logging configured. Level={logging.getLevelName(log_level)}, file={log_file or '-'}")
