"""Relay frame creation and validation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .codec import DecodeError, dumps, loads
from .constants import (
    K_BODY,
    K_CHAT_ID,
    K_CONN_ID,
    K_MESSAGE,
    K_PEER_CONN_ID,
    K_TO,
    K_TYPE,
    P_KEY,
    P_MESSAGE,
    P_TYPING,
    T_A_ID,
    T_CONNECTED,
    T_ERROR,
    T_JOIN,
    T_ROOM_UNAVAILABLE,
    T_WAITING,
)

PublicKeyRecord = dict[str, Any]


@dataclass(frozen=True)
class Connected:
    """The relay assigned this socket its ConnId."""

    conn_id: str


@dataclass(frozen=True)
class Waiting:
    """A joiner is waiting in the creator's chat."""

    peer_conn_id: str
    chat_id: str


@dataclass(frozen=True)
class ReceiveAId:
    """The joiner learned the creator's ConnId."""

    conn_id: str


@dataclass(frozen=True)
class ReceiveMessage:
    ciphertext: str

    @property
    def body(self) -> dict[str, str]:
        return {P_MESSAGE: self.ciphertext}


@dataclass(frozen=True)
class Key:
    key: PublicKeyRecord

    @property
    def body(self) -> dict[str, PublicKeyRecord]:
        return {P_KEY: self.key}


@dataclass(frozen=True)
class Typing:
    @property
    def body(self) -> str:
        return P_TYPING


@dataclass(frozen=True)
class Error:
    message: str


@dataclass(frozen=True)
class RoomUnavailable:
    pass


SocketMessage = Union[
    Connected, Waiting, ReceiveAId, ReceiveMessage, Key, Typing, Error, RoomUnavailable
]


@dataclass(frozen=True)
class ScrollEvent:
    """Raw scroll measurements reported by the host UI."""

    scroll_height: float
    scroll_top: float
    client_height: float


def encode(conn_id: str, payload: Any) -> str:
    """Wrap a payload for routing to a peer.

    Args:
        conn_id: Target ConnId
        payload: ``"TYPING"``, ``{"message": ...}`` or ``{"key": ...}``

    Returns:
        JSON text of the outbound frame
    """
    return dumps(make_frame(conn_id, payload))


def make_frame(conn_id: str, payload: Any) -> dict[str, Any]:
    if not isinstance(conn_id, str) or not conn_id:
        raise ValueError("target ConnId must be a non-empty string")
    return {K_TO: conn_id, K_BODY: payload}


def make_join(chat_id: str) -> dict[str, str]:
    """Create the joiner's notify-waiting frame for the relay."""
    if not isinstance(chat_id, str) or not chat_id:
        raise ValueError("chat id must be a non-empty string")
    return {K_TYPE: T_JOIN, K_CHAT_ID: chat_id}


def _require_str(frame: dict, key: str) -> str:
    value = frame.get(key)
    if not isinstance(value, str):
        raise DecodeError(f"field {key!r} must be a string")
    if not value:
        raise DecodeError(f"field {key!r} cannot be empty")
    return value


def _decode_body(body: Any) -> SocketMessage:
    if body == P_TYPING:
        return Typing()

    if not isinstance(body, dict) or len(body) != 1:
        raise DecodeError("relayed body must be 'TYPING' or a single-key object")

    if P_MESSAGE in body:
        ciphertext = body[P_MESSAGE]
        if not isinstance(ciphertext, str):
            raise DecodeError("relayed message must be a string")
        return ReceiveMessage(ciphertext)

    if P_KEY in body:
        key = body[P_KEY]
        if not isinstance(key, dict):
            raise DecodeError("relayed key must be an object")
        return Key(key)

    raise DecodeError(f"unknown relayed body keys: {sorted(body)}")


def decode(text: str | bytes) -> SocketMessage:
    """Decode one relay text frame.

    Args:
        text: Raw frame text

    Returns:
        The decoded socket message

    Raises:
        DecodeError: If the frame is malformed
    """
    frame = loads(text)

    if K_BODY in frame:
        return _decode_body(frame[K_BODY])

    t = frame.get(K_TYPE)
    if not isinstance(t, str):
        raise DecodeError("frame has neither a 'type' nor a 'body'")

    if t == T_CONNECTED:
        return Connected(_require_str(frame, K_CONN_ID))
    if t == T_WAITING:
        return Waiting(_require_str(frame, K_PEER_CONN_ID), _require_str(frame, K_CHAT_ID))
    if t == T_A_ID:
        return ReceiveAId(_require_str(frame, K_CONN_ID))
    if t == T_ERROR:
        message = frame.get(K_MESSAGE, "")
        if not isinstance(message, str):
            raise DecodeError("error message must be a string")
        return Error(message)
    if t == T_ROOM_UNAVAILABLE:
        return RoomUnavailable()

    raise DecodeError(f"unknown frame type {t!r}")


def decode_scroll_event(data: Any) -> ScrollEvent:
    """Validate a scroll payload from the host UI.

    Args:
        data: Object with scrollHeight, scrollTop and clientHeight

    Returns:
        ScrollEvent

    Raises:
        DecodeError: If a field is missing, not a number, or negative
    """
    if not isinstance(data, dict):
        raise DecodeError("scroll event must be an object")

    values = []
    for key in ("scrollHeight", "scrollTop", "clientHeight"):
        value = data.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DecodeError(f"scroll field {key!r} must be a number")
        if value < 0:
            raise DecodeError(f"scroll field {key!r} must not be negative")
        values.append(value)

    return ScrollEvent(*values)
