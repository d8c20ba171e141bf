"""
Playwright Remote Control Server

An HTTP server that forwards navigation, typing, clicking and screenshot
commands to a single Playwright-managed browser tab over a CDP session.

Endpoints:
    POST /navigate    {"url": "https://example.com"}
    POST /type        {"text": "hello", "selector": "input"}
    POST /click       {"selector": "button"} or {"x": 100, "y": 200}
    GET  /screenshot  PNG of the current page

Usage:
    playwright-remote-control
    curl -X POST http://localhost:3001/navigate -d '{"url":"https://google.com"}'
    curl http://localhost:3001/screenshot > screenshot.png
"""

import asyncio
import json
import sys
from typing import Any, AsyncIterator

from aiohttp import web

from .browser import (
    BrowserSession,
    RemoteControlConfig,
    get_log_level,
    load_remote_control_config,
)
from .exceptions import InvalidPayloadError, RemoteControlError
from .types import (
    ClickPointResponse,
    ClickSelectorResponse,
    ErrorResponse,
    NavigateResponse,
    TypeResponse,
)
from .utils.logging_config import get_logger, log_dict, setup_logging

logger = get_logger(__name__)

SESSION_KEY = web.AppKey("session", BrowserSession)

# Larger bodies are answered with a JSON 500
MAX_BODY_SIZE = 1024**2

USAGE_EXAMPLES = [
    'POST /navigate with {"url": "https://example.com"}',
    'POST /type with {"text": "hello", "selector": "input"}',
    'POST /click with {"selector": "button"} or {"x": 100, "y": 200}',
    "GET /screenshot to capture current page",
]


# =============================================================================
# HELPERS
# =============================================================================


def _error_response(message: str, status: int = 500) -> web.Response:
    body: ErrorResponse = {"error": message}
    return web.json_response(body, status=status)


async def _read_json_body(request: web.Request) -> dict[str, Any]:
    """
    Read the whole request body and decode it as a JSON object.

    Raises:
        json.JSONDecodeError: If the body is not valid JSON
        InvalidPayloadError: If the body is valid JSON but not an object
    """
    raw = await request.read()
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise InvalidPayloadError("Request body must be a JSON object")
    return payload


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# =============================================================================
# MIDDLEWARE
# =============================================================================


@web.middleware
async def not_found_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Answer every unrouted method/path combination with a plain 404."""
    try:
        return await handler(request)
    except (web.HTTPNotFound, web.HTTPMethodNotAllowed):
        logger.info(f"No route for {request.method} {request.path}")
        return web.Response(status=404, text="Not found")


@web.middleware
async def error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Turn any failure inside a handler into a JSON error response."""
    try:
        return await handler(request)
    except web.HTTPRequestEntityTooLarge as e:
        logger.error(f"{request.method} {request.path} failed: {e.text}")
        return _error_response(e.text or str(e))
    except web.HTTPException:
        raise
    except RemoteControlError as e:
        logger.error(f"{request.method} {request.path} failed: {e}")
        return _error_response(str(e), status=e.status)
    except Exception as e:
        logger.error(f"{request.method} {request.path} failed: {e}", exc_info=True)
        return _error_response(str(e))


# =============================================================================
# HANDLERS
# =============================================================================


async def navigate(request: web.Request) -> web.Response:
    """Load a URL in the page. Does not wait for the load to finish."""
    session = request.app[SESSION_KEY]
    body = await _read_json_body(request)
    url = body.get("url")

    await session.wait_ready()
    async with session.exclusive():
        await session.navigate(url)  # type: ignore[arg-type]

    logger.info(f"Navigated to: {url}")
    response: NavigateResponse = {"success": True, "navigated_to": url}  # type: ignore[typeddict-item]
    return web.json_response(response)


async def type_text(request: web.Request) -> web.Response:
    """Optionally focus a selector, then type text one key at a time."""
    session = request.app[SESSION_KEY]
    body = await _read_json_body(request)
    text = body.get("text")
    selector = body.get("selector")

    if not isinstance(text, str):
        raise InvalidPayloadError("'text' must be a string")

    await session.wait_ready()
    async with session.exclusive():
        if selector:
            await session.focus(selector)
        await session.type_text(text)

    logger.info(f"Typed: {text}")
    response: TypeResponse = {"success": True, "typed": text}
    return web.json_response(response)


async def click(request: web.Request) -> web.Response:
    """
    Click an element by selector, or the viewport at x/y.

    A selector takes priority over coordinates. Coordinates must both be
    present; zero is a valid coordinate.
    """
    session = request.app[SESSION_KEY]
    body = await _read_json_body(request)
    selector = body.get("selector")

    if selector:
        await session.wait_ready()
        async with session.exclusive():
            await session.click_selector(selector)

        logger.info(f"Clicked element: {selector}")
        selector_response: ClickSelectorResponse = {"success": True, "clicked": selector}
        return web.json_response(selector_response)

    x, y = body.get("x"), body.get("y")
    if x is None or y is None:
        raise InvalidPayloadError("click requires a selector or both x and y coordinates")
    if not (_is_number(x) and _is_number(y)):
        raise InvalidPayloadError("'x' and 'y' must be numbers")

    await session.wait_ready()
    async with session.exclusive():
        await session.click_at(x, y)

    logger.info(f"Clicked at coordinates: {x}, {y}")
    point_response: ClickPointResponse = {"success": True, "clicked_at": {"x": x, "y": y}}
    return web.json_response(point_response)


async def screenshot(request: web.Request) -> web.Response:
    """Return a PNG of the current page."""
    session = request.app[SESSION_KEY]

    await session.wait_ready()
    async with session.exclusive():
        image = await session.capture_screenshot()

    logger.info("Screenshot captured")
    return web.Response(body=image, content_type="image/png")


# =============================================================================
# APPLICATION
# =============================================================================


async def _session_lifecycle(app: web.Application) -> AsyncIterator[None]:
    """
    Launch the browser in the background and close it on shutdown.

    The listener does not wait for the launch; handlers wait on the
    session's readiness instead.
    """
    session = app[SESSION_KEY]
    bootstrap: asyncio.Task | None = None
    if not session.is_started:
        bootstrap = asyncio.create_task(session.start())

    yield

    if bootstrap is not None and not bootstrap.done():
        bootstrap.cancel()
        try:
            await bootstrap
        except asyncio.CancelledError:
            logger.info("Browser launch cancelled during shutdown")
    await session.stop()


def create_app(session: BrowserSession) -> web.Application:
    """
    Build the HTTP application around a browser session.

    Args:
        session: The process-wide browser session (started on app startup
            unless already started or attached)

    Returns:
        Configured aiohttp application
    """
    app = web.Application(
        middlewares=[not_found_middleware, error_middleware],
        client_max_size=MAX_BODY_SIZE,
    )
    app[SESSION_KEY] = session

    app.router.add_post("/navigate", navigate)
    app.router.add_post("/type", type_text)
    app.router.add_post("/click", click)
    app.router.add_get("/screenshot", screenshot, allow_head=False)

    app.cleanup_ctx.append(_session_lifecycle)
    return app


def _log_usage(port: int) -> None:
    logger.info(f"Playwright remote control server running on http://localhost:{port}")
    for example in USAGE_EXAMPLES:
        logger.info(example)


async def serve(config: RemoteControlConfig) -> None:
    """
    Run the server until cancelled.

    Args:
        config: Server configuration
    """
    session = BrowserSession(config)
    app = create_app(session)

    runner = web.AppRunner(app)
    await runner.setup()
    try:
        site = web.TCPSite(runner, config["host"], config["port"])
        await site.start()
        _log_usage(config["port"])

        await asyncio.Event().wait()
    finally:
        logger.info("Shutting down Playwright remote control server...")
        await runner.cleanup()


def main() -> None:
    """Console entry point."""
    config = load_remote_control_config()
    setup_logging(log_file=config["log_file"], level=get_log_level(config))

    logger.info(f"Python interpreter: {sys.executable}")
    logger.info(f"Python version: {sys.version}")
    log_dict(logger, "Remote control configuration:", dict(config))

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
