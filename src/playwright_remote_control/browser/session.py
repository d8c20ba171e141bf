"""
Browser session for Playwright Remote Control

Owns the one browser, context, page and CDP session of the process, tracks
whether that session is usable, and exposes the protocol commands the HTTP
handlers are built from.
"""

import asyncio
import base64
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator

from playwright.async_api import (
    Browser,
    BrowserContext,
    CDPSession,
    Page,
    Playwright,
    async_playwright,
)

from ..exceptions import ElementNotFoundError, PageScriptError, SessionNotReadyError
from ..utils.logging_config import get_logger
from .config import DEFAULT_READY_TIMEOUT, RemoteControlConfig, parse_viewport_size

logger = get_logger(__name__)

# Page-side functions run with `this` bound to the document and the selector
# passed as a call argument, never spliced into script text.
_FOCUS_FUNCTION = """function (selector) {
    const element = this.querySelector(selector);
    if (!element) {
        return false;
    }
    element.focus();
    return true;
}"""

_CLICK_FUNCTION = """function (selector) {
    const element = this.querySelector(selector);
    if (!element) {
        return false;
    }
    element.click();
    return true;
}"""


class SessionState(str, Enum):
    """Lifecycle of the browser session"""

    STARTING = "starting"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


class BrowserSession:
    """
    The single CDP session bound to one browser page.

    Created once per process and handed to the HTTP application. Handlers
    call ``wait_ready()`` before issuing commands, so a request that arrives
    while the browser is still launching waits (up to ``ready_timeout``)
    instead of failing on a missing session.
    """

    def __init__(self, config: RemoteControlConfig | None = None) -> None:
        self.config: RemoteControlConfig = config or {}
        self.state = SessionState.STARTING
        self.page: Page | None = None
        self.cdp: CDPSession | None = None
        self.startup_error: Exception | None = None

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._started = False
        self._ready_event = asyncio.Event()
        self._command_lock = asyncio.Lock()

    @property
    def is_started(self) -> bool:
        """Check if bootstrap has been attempted (or a session attached)"""
        return self._started

    @property
    def is_ready(self) -> bool:
        """Check if commands can be sent"""
        return self.state is SessionState.READY

    @property
    def ready_timeout(self) -> float:
        return self.config.get("ready_timeout", DEFAULT_READY_TIMEOUT)

    async def start(self) -> None:
        """
        Launch the browser and attach a CDP session to a fresh page.

        Runs once. A failure is logged and recorded on the session instead of
        being raised, so the HTTP listener keeps running and reports the
        startup error on every request.
        """
        if self._started:
            logger.warning("Browser session already started")
            return
        self._started = True

        logger.info("Launching browser...")

        try:
            self._playwright = await async_playwright().start()

            launch_kwargs: dict[str, Any] = {"headless": self.config.get("headless", False)}
            if self.config.get("browser_channel"):
                launch_kwargs["channel"] = self.config["browser_channel"]
            self._browser = await self._playwright.chromium.launch(**launch_kwargs)
            logger.info(f"Browser launched (version {self._browser.version})")

            context_kwargs: dict[str, Any] = {}
            if self.config.get("viewport_size"):
                context_kwargs["viewport"] = parse_viewport_size(self.config["viewport_size"])  # type: ignore[arg-type]
            self._context = await self._browser.new_context(**context_kwargs)

            page = await self._context.new_page()
            cdp = await self._context.new_cdp_session(page)
            await cdp.send("Page.enable")

        except Exception as e:
            logger.error(f"Failed to start browser session: {e}", exc_info=True)
            self.startup_error = e
            self.state = SessionState.FAILED
            self._ready_event.set()
            await self._release_resources()
            return

        self.page = page
        self.cdp = cdp
        self.state = SessionState.READY
        self._ready_event.set()
        logger.info("Playwright browser ready with CDP access")

    def attach(self, cdp: CDPSession, page: Page | None = None) -> None:
        """
        Mark the session ready around an existing CDP session.

        The caller keeps ownership of the browser behind it; ``stop()`` will
        not close it.

        Args:
            cdp: Attached CDP session
            page: Page the session is bound to, if known
        """
        self._started = True
        self.cdp = cdp
        self.page = page
        self.state = SessionState.READY
        self._ready_event.set()

    async def wait_ready(self) -> CDPSession:
        """
        Wait for bootstrap to finish and return the CDP session.

        Raises:
            SessionNotReadyError: If bootstrap does not finish within the
                ready timeout, failed, or the session was closed
        """
        if self.state is SessionState.STARTING:
            try:
                await asyncio.wait_for(self._ready_event.wait(), timeout=self.ready_timeout)
            except asyncio.TimeoutError:
                raise SessionNotReadyError("Browser session is not ready yet") from None

        if self.state is SessionState.FAILED:
            raise SessionNotReadyError(f"Browser session failed to start: {self.startup_error}")
        if self.state is SessionState.CLOSED or self.cdp is None:
            raise SessionNotReadyError("Browser session is closed")

        return self.cdp

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        """
        Hold the command lock for a whole command sequence.

        A no-op when ``serialize_commands`` is disabled, in which case
        concurrent sequences may interleave on the page.
        """
        if not self.config.get("serialize_commands", True):
            yield
            return

        async with self._command_lock:
            yield

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Send one protocol command and return its result.

        Args:
            method: Protocol method, e.g. "Page.navigate"
            params: Method parameters

        Returns:
            The protocol result object
        """
        cdp = await self.wait_ready()
        logger.debug(f"CDP -> {method} {params or {}}")
        return await cdp.send(method, params)

    async def navigate(self, url: str) -> dict[str, Any]:
        """
        Ask the page to load a URL.

        Returns as soon as the navigation is acknowledged, not when the page
        finishes loading.
        """
        result = await self.send("Page.navigate", {"url": url})
        if result and result.get("errorText"):
            logger.warning(f"Navigation to {url} reported: {result['errorText']}")
        return result

    async def focus(self, selector: str) -> None:
        """Focus the first element matching selector"""
        await self._call_on_selector(selector, _FOCUS_FUNCTION)

    async def click_selector(self, selector: str) -> None:
        """Invoke click() on the first element matching selector"""
        await self._call_on_selector(selector, _CLICK_FUNCTION)

    async def type_text(self, text: str) -> int:
        """
        Type text into the focused element, one key down/up pair per character.

        Each character is fully dispatched before the next one starts.

        Returns:
            Number of key events dispatched
        """
        dispatched = 0
        for char in text:
            await self.send("Input.dispatchKeyEvent", {"type": "keyDown", "text": char})
            await self.send("Input.dispatchKeyEvent", {"type": "keyUp", "text": char})
            dispatched += 2
        return dispatched

    async def click_at(self, x: float, y: float) -> None:
        """Press and release the left mouse button at viewport coordinates"""
        for event_type in ("mousePressed", "mouseReleased"):
            await self.send(
                "Input.dispatchMouseEvent",
                {
                    "type": event_type,
                    "x": x,
                    "y": y,
                    "button": "left",
                    "clickCount": 1,
                },
            )

    async def capture_screenshot(self) -> bytes:
        """
        Capture the current viewport as PNG.

        Returns:
            Raw PNG bytes
        """
        result = await self.send("Page.captureScreenshot", {"format": "png"})
        return base64.b64decode(result["data"])

    async def _call_on_selector(self, selector: str, function_declaration: str) -> None:
        """
        Run a page-side function against the document with selector as its argument.

        Raises:
            ElementNotFoundError: If nothing matches selector
            PageScriptError: If the document could not be resolved or the
                function threw (e.g. invalid selector syntax)
        """
        document = await self.send("Runtime.evaluate", {"expression": "document"})
        if details := document.get("exceptionDetails"):
            raise PageScriptError(_describe_exception(details), selector)
        object_id = document.get("result", {}).get("objectId")
        if not object_id:
            raise PageScriptError("Page document is not available", selector)

        try:
            response = await self.send(
                "Runtime.callFunctionOn",
                {
                    "objectId": object_id,
                    "functionDeclaration": function_declaration,
                    "arguments": [{"value": selector}],
                    "returnByValue": True,
                },
            )
        finally:
            await self._release_object(object_id)

        if details := response.get("exceptionDetails"):
            raise PageScriptError(_describe_exception(details), selector)

        if response.get("result", {}).get("value") is not True:
            raise ElementNotFoundError(selector)

    async def _release_object(self, object_id: str) -> None:
        # A navigation may already have dropped the handle
        try:
            await self.send("Runtime.releaseObject", {"objectId": object_id})
        except Exception as e:
            logger.warning(f"Error releasing page object {object_id}: {e}")

    async def stop(self) -> None:
        """Close the CDP session and the browser this session launched"""
        if self.state is SessionState.CLOSED:
            return

        logger.info("Closing browser session...")
        self.state = SessionState.CLOSED
        self._ready_event.set()
        await self._release_resources()
        logger.info("Browser session closed")

    async def _release_resources(self) -> None:
        """Tear down whatever bootstrap created, logging failures"""
        # Attached sessions belong to the caller
        owns_cdp = self._context is not None

        if self.cdp is not None and owns_cdp:
            try:
                await self.cdp.detach()
            except Exception as e:
                logger.error(f"Error detaching CDP session: {e}")
        self.cdp = None
        self.page = None

        if self._context is not None:
            try:
                await self._context.close()
            except Exception as e:
                logger.error(f"Error closing browser context: {e}")
            finally:
                self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.error(f"Error closing browser: {e}")
            finally:
                self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.error(f"Error stopping Playwright: {e}")
            finally:
                self._playwright = None


def _describe_exception(details: dict[str, Any]) -> str:
    """Best human-readable message from a protocol exceptionDetails object"""
    return details.get("exception", {}).get("description") or details.get(
        "text", "Page script error"
    )
