"""Utility modules for the Playwright Remote Control server."""

from .logging_config import get_logger, log_dict, setup_logging

__all__ = ["get_logger", "log_dict", "setup_logging"]
