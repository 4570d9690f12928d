"""
Centralized logging configuration for bucket-audit.

Console output goes to stderr so that JSON written to stdout by the CLI stays
machine-readable. An optional file handler always records DEBUG detail.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "bucket_audit"

_logger: Optional[logging.Logger] = None


class ColoredFormatter(logging.Formatter):
    """
    Formatter that prefixes records with a coloured level tag.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if self.use_colors:
            record.level_tag = f"{self.COLORS.get(level, '')}{level.lower()}:{self.RESET}"
        else:
            record.level_tag = f"{level.lower()}:"
        return super().format(record)


def _effective_level(level: str, verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
        verbose: Force DEBUG level
        quiet: Raise level to WARNING and drop the console handler
        propagate: Let records reach the root logger (used by tests)

    Returns:
        Configured logger instance
    """
    global _logger

    effective = _effective_level(level, verbose, quiet)

    logger = logging.getLogger(LOGGER_NAME)
    # File output records DEBUG regardless of the console level
    logger.setLevel(logging.DEBUG if log_file else effective)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if not quiet:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(effective)
        console.setFormatter(
            ColoredFormatter("%(level_tag)s %(message)s", use_colors=sys.stderr.isatty())
        )
        logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(file_handler)

    logger.propagate = propagate
    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """
    Get the configured package logger, initialising defaults on first use.
    """
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger
