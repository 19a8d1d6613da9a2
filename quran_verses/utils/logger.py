"""
Logging system with colored output and rotation.

Console output is colorized with colorlog; when a log directory is
configured, records are also written to a rotating file so the widget
process and the app process leave a shared trail.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
License: MIT
"""

import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional

import colorlog

CONSOLE_FORMAT = '%(log_color)s%(levelname)-8s%(reset)s %(blue)s%(name)s%(reset)s: %(message)s'
FILE_FORMAT = '%(asctime)s - %(process)d - %(name)s - %(levelname)s - %(message)s'
LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}

# Loggers created through get_logger, by name
_loggers = {}


def get_logger(
    name: str,
    level: int = logging.INFO,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Get or create a configured logger instance.

    Console output goes to stderr; stdout is left to command output.

    Args:
        name: Logger name (typically __name__)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Optional directory for log files

    Returns:
        Configured Logger instance
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    if not logger.handlers:
        console_handler = colorlog.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            colorlog.ColoredFormatter(fmt=CONSOLE_FORMAT, log_colors=LOG_COLORS)
        )
        logger.addHandler(console_handler)

        if log_dir:
            _add_file_handler(logger, Path(log_dir), name)

    _loggers[name] = logger
    return logger


def _add_file_handler(logger: logging.Logger, log_dir: Path, name: str) -> None:
    """Attach a rotating file handler writing to ``log_dir``."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{name.replace('.', '_')}.log"

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding='utf-8',
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(file_handler)


def configure_logging(level: str = "INFO", log_dir: Optional[Path] = None) -> None:
    """
    Apply a level and optional file output to every package logger.

    Loggers are created at import time with defaults, so the entry point
    calls this once the configuration has been loaded.

    Args:
        level: Level name such as "DEBUG" or "INFO"
        log_dir: Directory for rotating log files
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    for name, logger in _loggers.items():
        logger.setLevel(numeric_level)
        for handler in logger.handlers:
            if not isinstance(handler, RotatingFileHandler):
                handler.setLevel(numeric_level)
        has_file = any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
        if log_dir and not has_file:
            _add_file_handler(logger, Path(log_dir), name)
