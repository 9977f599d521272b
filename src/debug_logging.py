"""
Unified Logging Utility for the zpool import parser

Provides a small prefix logger that:
- Writes every message to stderr as "PREFIX [LEVEL]: message"
- Filters DEBUG-level messages unless debug mode is enabled
- Falls back to the `debug_logging` config setting when debug mode was never set

Usage:
    from debug_logging import log, log_debug, set_debug_mode

Modules call:
    log("ZPOOL_GRAMMAR", "message")                  # INFO level (always logged)
    log("ZPOOL_GRAMMAR", "verbose details", "DEBUG") # Only logged in debug mode
    log("ZPOOL_BUILDER", "error occurred", "ERROR")  # Always logged
"""

import sys
from typing import Optional

import config_manager
import constants

# Global state. None means "not set explicitly, ask the config file".
_debug_enabled: Optional[bool] = None


def set_debug_mode(enabled: Optional[bool]) -> None:
    """Enable or disable debug logging globally. None restores the config default."""
    global _debug_enabled
    _debug_enabled = enabled


def is_debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    if _debug_enabled is not None:
        return _debug_enabled
    return bool(config_manager.get_setting("debug_logging", constants.DEFAULT_DEBUG_LOGGING))


def log(prefix: str, message: str, level: str = "INFO") -> None:
    """
    Log a message with the specified level.

    Args:
        prefix: Module prefix (e.g., "ZPOOL_GRAMMAR", "ZPOOL_BUILDER")
        message: The log message
        level: Log level - DEBUG, INFO, WARNING, ERROR
               DEBUG messages are only shown when debug mode is enabled.
    """
    if level == "DEBUG" and not is_debug_enabled():
        return

    txt = f"{prefix} [{level}]: {message}" if prefix else f"[{level}]: {message}"
    print(txt, file=sys.stderr)

# Convenience aliases for cleaner code
def log_debug(prefix: str, message: str) -> None:
    """Shortcut for DEBUG level logging."""
    log(prefix, message, "DEBUG")

def log_info(prefix: str, message: str) -> None:
    """Shortcut for INFO level logging."""
    log(prefix, message, "INFO")

def log_warning(prefix: str, message: str) -> None:
    """Shortcut for WARNING level logging."""
    log(prefix, message, "WARNING")

def log_error(prefix: str, message: str) -> None:
    """Shortcut for ERROR level logging."""
    log(prefix, message, "ERROR")
