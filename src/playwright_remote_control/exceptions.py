"""Custom exceptions for playwright-remote-control."""


class RemoteControlError(Exception):
    """Base exception for playwright-remote-control."""

    status = 500


class SessionNotReadyError(RemoteControlError):
    """The browser session is still starting, failed to start, or was closed."""

    status = 503


class InvalidPayloadError(RemoteControlError):
    """Request body has the wrong shape for the endpoint."""

    pass


class ElementNotFoundError(RemoteControlError):
    """No element matched the requested selector."""

    def __init__(self, selector: str):
        self.selector = selector
        super().__init__(f"No element matches selector: {selector}")


class PageScriptError(RemoteControlError):
    """A page-side function threw while acting on an element."""

    def __init__(self, message: str, selector: str | None = None):
        self.message = message
        self.selector = selector
        super().__init__(f"{message} (selector {selector})" if selector else message)
