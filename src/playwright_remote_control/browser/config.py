"""
Configuration management for Playwright Remote Control

Loads configuration from environment variables (optionally via a .env file)
with sensible defaults for the HTTP listener, the controlled browser and
logging.
"""

import logging
import os
import re
from pathlib import Path
from typing import Callable, TypedDict, TypeVar

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "PW_REMOTE_CONTROL_"

# First match wins; variables already set in the process are not overridden
_ENV_FILE_CANDIDATES = (
    Path.cwd() / ".env",
    Path(__file__).resolve().parents[3] / ".env",
    Path.home() / ".env",
)


def _load_env_file() -> Path | None:
    for candidate in _ENV_FILE_CANDIDATES:
        if candidate.is_file():
            logger.debug(f"Reading settings from {candidate}")
            load_dotenv(candidate)
            return candidate
    logger.debug("No .env file, settings come from the process environment")
    return None


_load_env_file()


DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3001
DEFAULT_READY_TIMEOUT = 30.0
DEFAULT_LOG_FILE = "logs/playwright-remote-control.log"
DEFAULT_LOG_LEVEL = "INFO"

_VIEWPORT_PATTERN = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")


class ViewportSize(TypedDict):
    """Browser viewport dimensions in CSS pixels"""

    width: int
    height: int


class RemoteControlConfig(TypedDict, total=False):
    """Configuration for the remote control server and its browser"""

    # HTTP listener
    host: str
    port: int

    # Browser settings
    browser_channel: str | None
    headless: bool
    viewport_size: str | None

    # Session behaviour
    ready_timeout: float
    serialize_commands: bool

    # Logging
    log_file: str
    log_level: str


_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})

_N = TypeVar("_N", int, float)


def _get_bool_env(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_STRINGS


def _get_number_env(key: str, default: _N, cast: Callable[[str], _N]) -> _N:
    """Parse a numeric variable, keeping the default when unset or malformed"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return cast(value)
    except ValueError:
        logger.warning(f"Ignoring {key}={value!r}, expected a number")
        return default


def _get_int_env(key: str, default: int) -> int:
    return _get_number_env(key, default, int)


def _get_float_env(key: str, default: float) -> float:
    return _get_number_env(key, default, float)


# Configuration key mappings for _apply_config_overrides
# Each tuple: (env_suffix, config_key, value_type)
_CONFIG_KEY_MAPPINGS: list[tuple[str, str, str]] = [
    # HTTP listener
    ("HOST", "host", "str"),
    ("PORT", "port", "int"),
    # Browser settings
    ("BROWSER_CHANNEL", "browser_channel", "str"),
    ("HEADLESS", "headless", "bool"),
    ("VIEWPORT_SIZE", "viewport_size", "str"),
    # Session behaviour
    ("READY_TIMEOUT", "ready_timeout", "float"),
    ("SERIALIZE_COMMANDS", "serialize_commands", "bool"),
    # Logging
    ("LOG_FILE", "log_file", "str"),
    ("LOG_LEVEL", "log_level", "str"),
]

_DEFAULTS: RemoteControlConfig = {
    "host": DEFAULT_HOST,
    "port": DEFAULT_PORT,
    "browser_channel": None,
    "headless": False,
    "viewport_size": None,
    "ready_timeout": DEFAULT_READY_TIMEOUT,
    "serialize_commands": True,
    "log_file": DEFAULT_LOG_FILE,
    "log_level": DEFAULT_LOG_LEVEL,
}


def _apply_config_overrides(config: RemoteControlConfig, prefix: str) -> None:
    """
    Apply configuration overrides from environment variables with given prefix.

    Unset or empty variables leave the existing value alone. Unparsable
    numbers fall back to the value already in the config.

    Args:
        config: Config dict to update in-place
        prefix: Environment variable prefix (e.g., "PW_REMOTE_CONTROL_")
    """
    for env_suffix, config_key, value_type in _CONFIG_KEY_MAPPINGS:
        env_var = f"{prefix}{env_suffix}"
        if os.getenv(env_var) is None:
            continue

        current = config.get(config_key)  # type: ignore[misc]
        if value_type == "str":
            config[config_key] = os.getenv(env_var) or current  # type: ignore[literal-required]
        elif value_type == "bool":
            config[config_key] = _get_bool_env(env_var, False)  # type: ignore[literal-required]
        elif value_type == "int":
            config[config_key] = _get_int_env(env_var, current)  # type: ignore[literal-required]
        elif value_type == "float":
            config[config_key] = _get_float_env(env_var, current)  # type: ignore[literal-required]


def parse_viewport_size(value: str) -> ViewportSize:
    """
    Parse a "WIDTHxHEIGHT" viewport string.

    Raises:
        ValueError: If the value is malformed or has a zero dimension
    """
    match = _VIEWPORT_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid viewport size '{value}' (expected WIDTHxHEIGHT, e.g. 1280x720)")

    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid viewport size '{value}' (dimensions must be positive)")

    return {"width": width, "height": height}


def _validate_config(config: RemoteControlConfig) -> None:
    """
    Validate a fully populated configuration.

    Raises:
        ValueError: If any setting is out of range
    """
    port = config["port"]
    if not 1 <= port <= 65535:
        raise ValueError(f"{ENV_PREFIX}PORT must be between 1 and 65535, got {port}")

    if config["ready_timeout"] < 0:
        raise ValueError(
            f"{ENV_PREFIX}READY_TIMEOUT must not be negative, got {config['ready_timeout']}"
        )

    if config.get("viewport_size"):
        parse_viewport_size(config["viewport_size"])  # type: ignore[arg-type]

    level = config["log_level"].upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level '{config['log_level']}'")
    config["log_level"] = level


def load_remote_control_config() -> RemoteControlConfig:
    """
    Load the server configuration from environment variables.

    Returns:
        RemoteControlConfig with defaults applied

    Raises:
        ValueError: If configuration is invalid
    """
    config: RemoteControlConfig = _DEFAULTS.copy()
    _apply_config_overrides(config, ENV_PREFIX)
    _validate_config(config)

    logger.debug(f"Remote control config keys: {list(config.keys())}")
    return config


def get_log_level(config: RemoteControlConfig) -> int:
    """Translate the configured level name into a logging constant"""
    level = logging.getLevelName(config.get("log_level", DEFAULT_LOG_LEVEL).upper())
    return level if isinstance(level, int) else logging.INFO
