"""
Logging configuration utilities for playwright-remote-control

Logs go to a file and to the console. The HTTP control surface does not use
stdout for anything else, so the console handler is safe to keep enabled.
"""

import logging
import sys
from pathlib import Path
from typing import Any

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    log_file: str | Path | None = "logs/playwright-remote-control.log",
    level: int = logging.INFO,
    format_string: str | None = None,
    console: bool = True,
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        log_file: Path to the log file (relative or absolute), or None to skip file logging
        level: Logging level (default: logging.INFO)
        format_string: Custom format string (default: timestamp - name - level - message)
        console: Also log to stderr

    Returns:
        The root logger instance
    """
    if format_string is None:
        format_string = DEFAULT_FORMAT

    handlers: list[logging.Handler] = []

    log_path: Path | None = None
    if log_file is not None:
        log_path = Path(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path))
        except OSError as e:
            # Fall back to console-only logging, the server is still usable
            print(f"Could not open log file {log_path}: {e}", file=sys.stderr)
            log_path = None

    if console or not handlers:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=level,
        format=format_string,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    logger = logging.getLogger()
    logger.info(
        f"Logging configured: file={log_path or 'none'}, level={logging.getLevelName(level)}"
    )

    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger, typically get_logger(__name__)"""
    return logging.getLogger(name)


# Config keys containing any of these are never written to the log
_SENSITIVE_KEY_PARTS = ("token", "password", "secret", "key")


def log_dict(
    logger: logging.Logger, message: str, data: dict[str, Any], level: int = logging.INFO
) -> None:
    """
    Log a heading followed by one indented "key: value" line per entry.

    Values whose key looks sensitive are replaced with ***REDACTED***.
    """
    logger.log(level, message)
    for key, value in data.items():
        if any(part in key.lower() for part in _SENSITIVE_KEY_PARTS):
            value = "***REDACTED***"
        logger.log(level, "  %s: %s", key, value)
