"""Utility functions for the pairchat client."""

from __future__ import annotations

import time
from pathlib import Path

from .constants import MAX_MESSAGE_LENGTH


def now_ms() -> int:
    """Get current time in milliseconds.

    Returns:
        Current time as milliseconds since epoch
    """
    return int(time.time() * 1000)


def expand_path(p: str) -> str:
    """Expand ~ and environment variables in path.

    Args:
        p: Path string to expand

    Returns:
        Expanded absolute path
    """
    return str(Path(p).expanduser().resolve())


def sanitize_text_input(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> str | None:
    """Sanitize a chat message before it is encrypted.

    Args:
        text: Text to sanitize
        max_length: Maximum allowed size in UTF-8 bytes

    Returns:
        Sanitized text, or None if invalid
    """
    if not isinstance(text, str):
        return None

    sanitized = text.strip()
    if not sanitized:
        return None

    if len(sanitized.encode("utf-8")) > max_length:
        return None

    for char in sanitized:
        code = ord(char)
        if code < 32 and code not in (9, 10, 13):
            return None
        if code == 0xFFFE or code == 0xFFFF:
            return None

    return sanitized


def normalize_chat_id(chat_id: str | None) -> str | None:
    """Normalize a chat id taken from a shared link or path.

    Args:
        chat_id: Raw chat id, possibly with surrounding slashes or whitespace

    Returns:
        Normalized chat id, or None if empty
    """
    if not isinstance(chat_id, str):
        return None

    normalized = chat_id.strip().strip("/")
    if not normalized or "/" in normalized:
        return None

    return normalized
