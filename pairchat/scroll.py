"""Scroll tracking that settles bursts of scroll events into one signal.

The host UI reports every scroll event. While the view is moving, events
closer together than ``SCROLL_SETTLE_MS`` do not move the sampling point,
but the arrow flag always follows the latest event. The next event after
the window re-samples the position and either keeps moving or, when the
position has not changed, settles back to ``Static``.
"""

from __future__ import annotations

from .constants import NEAR_BOTTOM_SLACK_PX, SCROLL_SETTLE_MS
from .envelope import ScrollEvent
from .state import Moving, ScrollStatus, Static


def is_near_bottom(event: ScrollEvent) -> bool:
    return (event.scroll_height - event.scroll_top) < (event.client_height + NEAR_BOTTOM_SLACK_PX)


def track(status: ScrollStatus, event: ScrollEvent, now: int) -> tuple[ScrollStatus, bool]:
    """Feed one scroll event into the tracker.

    Args:
        status: Current scroll status
        event: Scroll measurements
        now: Current time in milliseconds

    Returns:
        Tuple of (next status, new value of the scroll-to-bottom arrow flag)
    """
    show_arrow = not is_near_bottom(event)

    if isinstance(status, Static):
        return Moving(now, event.scroll_top), show_arrow

    if now - status.last_event_time <= SCROLL_SETTLE_MS:
        return status, show_arrow

    if event.scroll_top == status.last_scroll_top:
        return Static(), show_arrow
    return Moving(now, event.scroll_top), show_arrow
