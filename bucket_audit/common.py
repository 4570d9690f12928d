"""
Common utilities shared across bucket_audit modules.
"""

from __future__ import annotations

import os
import sys

DEBUG_ENV_VAR = "BUCKET_AUDIT_DEBUG"


def debug_enabled() -> bool:
    """Check whether debug output was requested through the environment."""
    return os.environ.get(DEBUG_ENV_VAR, "0") == "1"


def is_windows() -> bool:
    """Check if running on Windows, where install roots use drive paths."""
    return sys.platform == "win32"


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log a verbose message through the package logger.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or debug_enabled():
        from .logging_config import get_logger
        get_logger().info(msg)
