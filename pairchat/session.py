"""Session orchestrator.

``apply`` is the single entry point of the session: it takes one event and
the current model and returns the next model with the effects to run.
It never raises for bad input; decode failures, protocol mismatches and
crypto failures all come back as ``Log`` effects.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from . import handshake
from .codec import DecodeError
from .constants import P_MESSAGE
from .envelope import Connected, decode, make_frame
from .events import (
    CreateChat,
    Decrypted,
    DecryptFailed,
    Effect,
    Encrypted,
    EncryptFailed,
    Event,
    InputChanged,
    JoinChat,
    KeyExported,
    KeyExportFailed,
    KeyImported,
    KeyImportFailed,
    Log,
    RelayClosed,
    RelayText,
    RequestEncrypt,
    Scrolled,
    ScrollToBottom,
    ScrollToBottomClicked,
    SendFrame,
    SubmitMessage,
    Tick,
)
from .scroll import track
from .state import Message, Model, Ready
from .throttle import on_input
from .utils import sanitize_text_input

logger = logging.getLogger(__name__)

_FAILURE_TAGS = {
    KeyExportFailed: "key-export-failed",
    KeyImportFailed: "key-import-failed",
    EncryptFailed: "encrypt-failed",
    DecryptFailed: "decrypt-failed",
}


def _step(model: Model, event: object) -> tuple[Model, list[Effect]]:
    status, effects = handshake.step(model.status, event, model.time)
    return replace(model, status=status), effects


def _on_relay_text(model: Model, text: str) -> tuple[Model, list[Effect]]:
    try:
        message = decode(text)
    except DecodeError as e:
        return model, [Log("decode-error", str(e))]

    if isinstance(message, Connected):
        return replace(model, own_conn_id=message.conn_id), []

    return _step(model, message)


def _on_decrypted(model: Model, event: Decrypted) -> tuple[Model, list[Effect]]:
    was_ready = isinstance(model.status, Ready)
    model, effects = _step(model, event)
    if was_ready:
        model = replace(model, messages=model.messages + (Message(False, event.plaintext),))
    return model, effects


def _on_submit(model: Model, event: SubmitMessage) -> tuple[Model, list[Effect]]:
    if not isinstance(model.status, Ready):
        return model, handshake.oops(model.status, event)[1]

    text = sanitize_text_input(model.input)
    if text is None:
        return model, [Log("invalid-input", len(model.input))]

    model = replace(
        model,
        input="",
        messages=model.messages + (Message(True, text),),
    )
    return model, [RequestEncrypt(text), ScrollToBottom()]


def _on_encrypted(model: Model, event: Encrypted) -> tuple[Model, list[Effect]]:
    status = model.status
    if not isinstance(status, Ready):
        return model, handshake.oops(status, event)[1]
    return model, [SendFrame(make_frame(status.peer_conn_id, {P_MESSAGE: event.ciphertext}))]


def _on_scrolled(model: Model, event: Scrolled) -> tuple[Model, list[Effect]]:
    scroll, show_arrow = track(model.scroll, event.event, model.time)
    return replace(model, scroll=scroll, show_scroll_arrow=show_arrow), []


def apply(event: Event, model: Model) -> tuple[Model, list[Effect]]:
    """Apply one event to the model.

    Args:
        event: The event to process
        model: Current model

    Returns:
        Tuple of (next model, effects to run in order)
    """
    if isinstance(event, Tick):
        return replace(model, time=event.now_ms), []

    if isinstance(event, RelayText):
        return _on_relay_text(model, event.text)

    if isinstance(event, RelayClosed):
        model, effects = _step(model, event)
        return replace(model, connected=False), effects

    if isinstance(event, JoinChat):
        return _step(model, JoinChat(event.chat_id or model.flags.chat_id))

    if isinstance(event, (CreateChat, KeyExported, KeyImported)):
        return _step(model, event)

    if isinstance(event, Decrypted):
        return _on_decrypted(model, event)

    if isinstance(event, InputChanged):
        return on_input(model, event.text)

    if isinstance(event, SubmitMessage):
        return _on_submit(model, event)

    if isinstance(event, Encrypted):
        return _on_encrypted(model, event)

    if isinstance(event, Scrolled):
        return _on_scrolled(model, event)

    if isinstance(event, ScrollToBottomClicked):
        return replace(model, show_scroll_arrow=False), [ScrollToBottom()]

    tag = _FAILURE_TAGS.get(type(event))
    if tag is not None:
        return model, [Log(tag, getattr(event, "reason", ""))]

    logger.debug("Unhandled event type: %s", type(event).__name__)
    return model, handshake.oops(model.status, event)[1]
