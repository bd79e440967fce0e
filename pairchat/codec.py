"""JSON codec for relay frames."""

from __future__ import annotations

import json
from typing import Any

from .constants import MAX_FRAME_SIZE


class DecodeError(ValueError):
    """Raised when relay or host UI data cannot be decoded."""

    pass


def dumps(obj: dict) -> str:
    """Encode a frame to JSON text.

    Args:
        obj: Frame dictionary to encode

    Returns:
        Compact JSON text
    """
    return json.dumps(obj, separators=(",", ":"))


def loads(text: str | bytes) -> dict[str, Any]:
    """Decode JSON text to a frame dictionary.

    Args:
        text: JSON text

    Returns:
        Decoded dictionary

    Raises:
        DecodeError: If text is too large, not JSON, or not a JSON object
    """
    if len(text) > MAX_FRAME_SIZE:
        raise DecodeError(f"frame too large: {len(text)} chars (max {MAX_FRAME_SIZE})")
    try:
        obj = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"invalid JSON: {e}") from e
    if not isinstance(obj, dict):
        raise DecodeError(f"frame must be a JSON object (got {type(obj).__name__})")
    return obj
