"""Events consumed and effects produced by the session reducer.

Events arrive one at a time on the session queue: raw relay text, local
user intents, crypto completions and timer ticks. Effects are requests
for the runtime to act; any completion comes back later as a new event.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .envelope import PublicKeyRecord, ScrollEvent

# ============================================================================
# Relay
# ============================================================================


@dataclass(frozen=True)
class RelayText:
    text: str


@dataclass(frozen=True)
class RelayClosed:
    reason: str = ""


# ============================================================================
# User intents
# ============================================================================


@dataclass(frozen=True)
class CreateChat:
    pass


@dataclass(frozen=True)
class JoinChat:
    chat_id: str | None = None


@dataclass(frozen=True)
class InputChanged:
    text: str


@dataclass(frozen=True)
class SubmitMessage:
    pass


@dataclass(frozen=True)
class Scrolled:
    event: ScrollEvent


@dataclass(frozen=True)
class ScrollToBottomClicked:
    pass


# ============================================================================
# Crypto completions
# ============================================================================


@dataclass(frozen=True)
class KeyExported:
    key: PublicKeyRecord


@dataclass(frozen=True)
class KeyExportFailed:
    reason: str


@dataclass(frozen=True)
class KeyImported:
    pass


@dataclass(frozen=True)
class KeyImportFailed:
    reason: str


@dataclass(frozen=True)
class Encrypted:
    ciphertext: str


@dataclass(frozen=True)
class EncryptFailed:
    reason: str


@dataclass(frozen=True)
class Decrypted:
    plaintext: str


@dataclass(frozen=True)
class DecryptFailed:
    reason: str


# ============================================================================
# Timer
# ============================================================================


@dataclass(frozen=True)
class Tick:
    now_ms: int


Event = Union[
    RelayText,
    RelayClosed,
    CreateChat,
    JoinChat,
    InputChanged,
    SubmitMessage,
    Scrolled,
    ScrollToBottomClicked,
    KeyExported,
    KeyExportFailed,
    KeyImported,
    KeyImportFailed,
    Encrypted,
    EncryptFailed,
    Decrypted,
    DecryptFailed,
    Tick,
]

# ============================================================================
# Effects
# ============================================================================


@dataclass(frozen=True)
class SendFrame:
    """Send a frame dictionary to the relay."""

    frame: dict[str, Any]


@dataclass(frozen=True)
class RequestEncrypt:
    plaintext: str


@dataclass(frozen=True)
class RequestDecrypt:
    ciphertext: str


@dataclass(frozen=True)
class RequestKeyExport:
    pass


@dataclass(frozen=True)
class RequestKeyImport:
    key: PublicKeyRecord


@dataclass(frozen=True)
class Navigate:
    path: str


@dataclass(frozen=True)
class ResetAnimation:
    pass


@dataclass(frozen=True)
class ScrollToBottom:
    pass


@dataclass(frozen=True)
class Log:
    """Diagnostic record; tag ``oops`` marks an event the status did not expect."""

    tag: str
    value: Any = None


Effect = Union[
    SendFrame,
    RequestEncrypt,
    RequestDecrypt,
    RequestKeyExport,
    RequestKeyImport,
    Navigate,
    ResetAnimation,
    ScrollToBottom,
    Log,
]
