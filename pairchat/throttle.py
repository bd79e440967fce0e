"""Rate limit for outbound typing notifications."""

from __future__ import annotations

from dataclasses import replace

from .constants import TYPING_PING_INTERVAL_MS
from .events import Effect
from .handshake import typing_frame
from .state import Model


def should_ping(last_ping: int | None, now: int, interval_ms: int = TYPING_PING_INTERVAL_MS) -> bool:
    """Check whether a new typing ping is due.

    Args:
        last_ping: Time of the last ping sent, or None if none was sent yet
        now: Current time in milliseconds
        interval_ms: Minimum spacing between pings

    Returns:
        True if more than ``interval_ms`` passed since the last ping
    """
    return last_ping is None or now - last_ping > interval_ms


def on_input(model: Model, text: str) -> tuple[Model, list[Effect]]:
    """Record a change of the input buffer, pinging the peer when due.

    Args:
        model: Current model
        text: New content of the input buffer

    Returns:
        Tuple of (updated model, effects)
    """
    model = replace(model, input=text, last_input_time=model.time)

    frame = typing_frame(model.status)
    if frame is None or not should_ping(model.last_typing_ping, model.time):
        return model, []

    return replace(model, last_typing_ping=model.time), [frame]
