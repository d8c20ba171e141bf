"""
Browser Package

Configuration loading and the single CDP-backed browser session that the
remote control server drives.
"""

from .config import (
    RemoteControlConfig,
    ViewportSize,
    get_log_level,
    load_remote_control_config,
    parse_viewport_size,
)
from .session import BrowserSession, SessionState

__all__ = [
    "RemoteControlConfig",
    "ViewportSize",
    "get_log_level",
    "load_remote_control_config",
    "parse_viewport_size",
    "BrowserSession",
    "SessionState",
]
