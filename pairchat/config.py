"""Configuration management for the pairchat client."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from .utils import expand_path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".pairchat"
DEFAULT_CONFIG_FILE = "config.json"
MAX_CONFIG_FILE_SIZE = 1024 * 1024


def get_default_config() -> dict[str, Any]:
    """Get default configuration values.

    Returns:
        Default configuration dictionary
    """
    return {
        "relay_url": "ws://localhost:8765/ws",
        "rest_url": "http://localhost:8765",
        "origin": "http://localhost:8080",
        "server_host": "localhost",
        "server_port": 8080,
        "share_enabled": True,
        "copy_enabled": True,
        "window_width": 1024,
        "tick_interval_ms": 25,
        "allowed_origins": ["http://localhost:8080"],
        "open_browser": True,
    }


def get_config_path() -> str:
    """Get the configuration file path.

    Returns:
        Absolute path to config file
    """
    env_path = os.environ.get("PAIRCHAT_CONFIG")
    if env_path:
        return expand_path(env_path)

    return str(DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE)


def load_config() -> dict[str, Any]:
    """Load configuration from file.

    Returns:
        Configuration dictionary
    """
    config_path = Path(get_config_path())

    if not config_path.is_file():
        logger.info("Config file not found, creating default at %s", config_path)
        config = get_default_config()
        save_config(config)
        return config

    try:
        file_size = config_path.stat().st_size
        if file_size > MAX_CONFIG_FILE_SIZE:
            logger.error(
                "Config file too large: %d bytes (max %d)",
                file_size,
                MAX_CONFIG_FILE_SIZE,
            )
            return get_default_config()

        with open(config_path, encoding="utf-8") as f:
            config = json.load(f)
        if not isinstance(config, dict):
            logger.error("Config file %s does not hold a JSON object", config_path)
            return get_default_config()
        logger.info("Loaded config from %s", config_path)

        return _fill_and_check(config)
    except (OSError, ValueError) as e:
        logger.exception("Failed to load config from %s: %s", config_path, e)
        return get_default_config()


def _fill_and_check(config: dict[str, Any]) -> dict[str, Any]:
    """Fill missing keys and replace values of the wrong type with defaults."""
    for key, default in get_default_config().items():
        if key not in config:
            config[key] = default
            continue

        value = config[key]
        expected = type(default)
        if isinstance(value, bool) and expected is not bool:
            valid = False
        else:
            valid = isinstance(value, expected)
        if valid and expected is int and value < 0:
            valid = False

        if not valid:
            logger.warning(
                "Config key %s has invalid value %r, using default %r", key, value, default
            )
            config[key] = default

    return config


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to file.

    Args:
        config: Configuration dictionary to save
    """
    config_path = Path(get_config_path())

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        logger.info("Saved config to %s", config_path)
    except OSError as e:
        logger.exception("Failed to save config to %s: %s", config_path, e)
