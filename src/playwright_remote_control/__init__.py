"""
Playwright Remote Control

HTTP control surface for a single Playwright-managed browser tab, driven
over the Chrome DevTools Protocol.
"""

__version__ = "1.0.0"

from .browser import BrowserSession, SessionState, load_remote_control_config
from .exceptions import (
    ElementNotFoundError,
    InvalidPayloadError,
    PageScriptError,
    RemoteControlError,
    SessionNotReadyError,
)

__all__ = [
    "BrowserSession",
    "SessionState",
    "load_remote_control_config",
    # Exceptions
    "RemoteControlError",
    "SessionNotReadyError",
    "InvalidPayloadError",
    "ElementNotFoundError",
    "PageScriptError",
]
