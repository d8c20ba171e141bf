"""
Pytest Configuration and Fixtures

This module provides shared fixtures for all tests.
"""

import logging

import pytest

# Import CDP fixtures to make them available to all tests
from tests.fixtures.cdp_fixture import (  # noqa: F401
    attached_session,
    cdp_responses,
    client,
    mock_cdp_session,
    session_config,
)


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way it was after tests that reconfigure it."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
