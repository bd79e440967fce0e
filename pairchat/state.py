"""Session status variants and the observable session model."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass
from typing import Any, Union

from .constants import PHONE_MAX_WIDTH_PX
from .envelope import PublicKeyRecord


class Role(enum.Enum):
    CREATOR = "A"
    JOINER = "B"


# ============================================================================
# Typing indicator
# ============================================================================


@dataclass(frozen=True)
class NotTyping:
    pass


@dataclass(frozen=True)
class IsTyping:
    since: int


TypingStatus = Union[NotTyping, IsTyping]

# ============================================================================
# Handshake status
# ============================================================================


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class Joining:
    """Own public key requested; ``my_key`` is set once the export completes."""

    role: Role
    chat_id: str | None = None
    my_key: PublicKeyRecord | None = None


@dataclass(frozen=True)
class WaitingForAId:
    my_key: PublicKeyRecord


@dataclass(frozen=True)
class WaitingForBKey:
    my_key: PublicKeyRecord
    peer_conn_id: str
    chat_id: str


@dataclass(frozen=True)
class WaitingForAKey:
    peer_conn_id: str


@dataclass(frozen=True)
class Importing:
    """Peer key import in flight; becomes Ready when it completes."""

    peer_conn_id: str


@dataclass(frozen=True)
class Ready:
    peer_conn_id: str
    typing: TypingStatus = NotTyping()


Status = Union[Start, Joining, WaitingForAId, WaitingForBKey, WaitingForAKey, Importing, Ready]

# ============================================================================
# Scroll tracking
# ============================================================================


@dataclass(frozen=True)
class Static:
    pass


@dataclass(frozen=True)
class Moving:
    last_event_time: int
    last_scroll_top: float


ScrollStatus = Union[Static, Moving]

# ============================================================================
# Model
# ============================================================================


@dataclass(frozen=True)
class Message:
    mine: bool
    content: str


@dataclass(frozen=True)
class Flags:
    """Initialization flags, read once when the session is built."""

    chat_id: str | None = None
    origin: str = "http://localhost:8080"
    relay_url: str = "ws://localhost:8765/ws"
    rest_url: str = "http://localhost:8765"
    share_enabled: bool = True
    copy_enabled: bool = True
    window_width: int = 1024

    @classmethod
    def from_config(cls, config: dict[str, Any], chat_id: str | None = None) -> Flags:
        """Build flags from a loaded configuration dictionary.

        Args:
            config: Configuration dictionary (see config.get_default_config)
            chat_id: Chat id from a shared link, if any

        Returns:
            Flags instance
        """
        defaults = cls()
        return cls(
            chat_id=chat_id or None,
            origin=str(config.get("origin", defaults.origin)).rstrip("/"),
            relay_url=str(config.get("relay_url", defaults.relay_url)),
            rest_url=str(config.get("rest_url", defaults.rest_url)),
            share_enabled=bool(config.get("share_enabled", defaults.share_enabled)),
            copy_enabled=bool(config.get("copy_enabled", defaults.copy_enabled)),
            window_width=int(config.get("window_width", defaults.window_width)),
        )


def classify_device(window_width: int) -> str:
    return "phone" if window_width < PHONE_MAX_WIDTH_PX else "desktop"


@dataclass(frozen=True)
class Model:
    flags: Flags
    device: str
    status: Status = Start()
    input: str = ""
    messages: tuple[Message, ...] = ()
    time: int = 0
    last_input_time: int | None = None
    last_typing_ping: int | None = None
    scroll: ScrollStatus = Static()
    show_scroll_arrow: bool = False
    own_conn_id: str | None = None
    connected: bool = True


def init_model(flags: Flags, now_ms: int = 0) -> Model:
    return Model(flags=flags, device=classify_device(flags.window_width), time=now_ms)


def share_url(model: Model) -> str | None:
    """Link the creator hands to the joiner, or None when there is nothing to share."""
    if not model.flags.share_enabled or not model.own_conn_id:
        return None
    if not isinstance(model.status, WaitingForAId):
        return None
    return f"{model.flags.origin}/{model.own_conn_id}"


def _status_snapshot(status: Status) -> dict[str, Any]:
    data: dict[str, Any] = {"name": type(status).__name__}
    for f in dataclasses.fields(status):
        if f.name == "my_key":
            continue
        value = getattr(status, f.name)
        if isinstance(value, Role):
            value = value.value
        elif f.name == "typing":
            value = isinstance(value, IsTyping)
        data[f.name] = value
    return data


def snapshot(model: Model) -> dict[str, Any]:
    """Render the observable model as JSON-safe data for the host UI."""
    return {
        "type": "state",
        "status": _status_snapshot(model.status),
        "connected": model.connected,
        "input": model.input,
        "messages": [{"self": m.mine, "content": m.content} for m in model.messages],
        "showScrollArrow": model.show_scroll_arrow,
        "device": model.device,
        "shareUrl": share_url(model),
        "copyEnabled": model.flags.copy_enabled,
        "ownConnId": model.own_conn_id,
    }
