"""
Type Definitions

Define TypedDict classes for the JSON bodies exchanged over the HTTP control surface.
"""

from typing import TypedDict


class ClickPoint(TypedDict):
    """Viewport coordinates of a synthetic click."""

    x: float
    y: float


class NavigateResponse(TypedDict):
    success: bool
    navigated_to: str


class TypeResponse(TypedDict):
    success: bool
    typed: str


class ClickSelectorResponse(TypedDict):
    success: bool
    clicked: str


class ClickPointResponse(TypedDict):
    success: bool
    clicked_at: ClickPoint


class ErrorResponse(TypedDict):
    """Body of every 500/503 response."""

    error: str
