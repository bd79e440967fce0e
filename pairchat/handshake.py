"""Handshake state machine.

``step`` maps the current status and one event to the next status and the
effects to run. Creator (A) path::

    Start -> Joining(A) -> WaitingForAId -> WaitingForBKey -> Importing -> Ready

Joiner (B) path::

    Start -> Joining(B) -> WaitingForAKey -> Importing -> Ready

Any event the current status does not expect leaves the status untouched
and yields a single ``Log("oops", ...)``. Relay and peer can be out of sync
(stale frames after a reload, crypto completions that outlive a reset), so
a mismatch is never an error.
"""

from __future__ import annotations

from .constants import P_TYPING, ROOT_PATH
from .envelope import (
    Error,
    Key,
    ReceiveAId,
    ReceiveMessage,
    RoomUnavailable,
    Typing,
    Waiting,
    make_frame,
    make_join,
)
from .events import (
    CreateChat,
    Decrypted,
    Effect,
    JoinChat,
    KeyExported,
    KeyImported,
    Log,
    Navigate,
    RelayClosed,
    RequestDecrypt,
    RequestKeyExport,
    RequestKeyImport,
    ResetAnimation,
    ScrollToBottom,
    SendFrame,
)
from .state import (
    Importing,
    IsTyping,
    Joining,
    NotTyping,
    Ready,
    Role,
    Start,
    Status,
    WaitingForAId,
    WaitingForAKey,
    WaitingForBKey,
)


Transition = tuple[Status, list[Effect]]


def oops(status: Status, event: object) -> Transition:
    """Leave the status as is and log the mismatch."""
    return status, [Log("oops", f"{type(event).__name__} while {type(status).__name__}")]


def _key_frame(conn_id: str, key: dict) -> SendFrame:
    return SendFrame(make_frame(conn_id, Key(key).body))


def step(status: Status, event: object, now: int) -> Transition:
    """Advance the handshake by one event.

    Args:
        status: Current status
        event: User intent, decoded relay message or crypto completion
        now: Current model time in milliseconds

    Returns:
        Tuple of (next status, effects)
    """
    if isinstance(event, CreateChat):
        if isinstance(status, Start):
            return Joining(Role.CREATOR), [RequestKeyExport()]
        return oops(status, event)

    if isinstance(event, JoinChat):
        if isinstance(status, Start) and event.chat_id:
            return Joining(Role.JOINER, chat_id=event.chat_id), [RequestKeyExport()]
        return oops(status, event)

    if isinstance(event, KeyExported):
        if isinstance(status, Joining) and status.my_key is None:
            if status.role is Role.CREATOR:
                return WaitingForAId(event.key), []
            if status.chat_id:
                return (
                    Joining(Role.JOINER, chat_id=status.chat_id, my_key=event.key),
                    [SendFrame(make_join(status.chat_id))],
                )
        return oops(status, event)

    if isinstance(event, ReceiveAId):
        if (
            isinstance(status, Joining)
            and status.role is Role.JOINER
            and status.my_key is not None
        ):
            return WaitingForAKey(event.conn_id), [_key_frame(event.conn_id, status.my_key)]
        return oops(status, event)

    if isinstance(event, Waiting):
        if isinstance(status, WaitingForAId):
            return WaitingForBKey(status.my_key, event.peer_conn_id, event.chat_id), []
        return oops(status, event)

    if isinstance(event, Key):
        if isinstance(status, WaitingForBKey):
            return Importing(status.peer_conn_id), [
                _key_frame(status.peer_conn_id, status.my_key),
                RequestKeyImport(event.key),
            ]
        if isinstance(status, WaitingForAKey):
            return Importing(status.peer_conn_id), [
                RequestKeyImport(event.key),
                ResetAnimation(),
            ]
        return oops(status, event)

    if isinstance(event, KeyImported):
        if isinstance(status, Importing):
            return Ready(status.peer_conn_id, NotTyping()), [Navigate(ROOT_PATH)]
        return oops(status, event)

    if isinstance(event, RoomUnavailable):
        if isinstance(status, Joining):
            return Start(), [
                ResetAnimation(),
                Log("room-unavailable", status.chat_id),
                Navigate(ROOT_PATH),
            ]
        return oops(status, event)

    if isinstance(event, Typing):
        if isinstance(status, Ready):
            return Ready(status.peer_conn_id, IsTyping(now)), []
        return oops(status, event)

    if isinstance(event, ReceiveMessage):
        return status, [RequestDecrypt(event.ciphertext)]

    if isinstance(event, Decrypted):
        if isinstance(status, Ready):
            return Ready(status.peer_conn_id, NotTyping()), [ScrollToBottom()]
        return oops(status, event)

    if isinstance(event, Error):
        return status, [Log("relay-error", event.message)]

    if isinstance(event, RelayClosed):
        return Start(), [
            ResetAnimation(),
            Log("connection-closed", event.reason),
            Navigate(ROOT_PATH),
        ]

    return oops(status, event)


def typing_frame(status: Status) -> SendFrame | None:
    """TYPING frame for the peer, or None before the handshake is done."""
    if isinstance(status, Ready):
        return SendFrame(make_frame(status.peer_conn_id, P_TYPING))
    return None
