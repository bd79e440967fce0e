"""Session runtime that connects the reducer to the relay, crypto and UI."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from .crypto import CryptoError, RsaOaepCrypto
from .events import (
    Decrypted,
    DecryptFailed,
    Effect,
    Encrypted,
    EncryptFailed,
    Event,
    KeyExported,
    KeyExportFailed,
    KeyImported,
    KeyImportFailed,
    Log,
    Navigate,
    RelayClosed,
    RelayText,
    RequestDecrypt,
    RequestEncrypt,
    RequestKeyExport,
    RequestKeyImport,
    ResetAnimation,
    ScrollToBottom,
    SendFrame,
    Tick,
)
from .relay import FrameTooLargeError, RelayConnection, RelayNotConnectedError
from .session import apply
from .state import Flags, Model, init_model, snapshot
from .utils import now_ms

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL_MS = 25


class SessionRuntime:
    """Event loop for one chat session.

    Concurrency:
        Everything runs on a single asyncio event loop. Relay frames, UI
        intents, crypto completions and timer ticks are all posted to one
        queue and applied to the model strictly one at a time.

        - Effects of an event are dispatched in order before the next event
          is taken from the queue
        - Crypto work runs in the default executor; its result is posted
          back to the queue as a new event
        - Nothing is cancelled on a status change; stale completions are
          left for the reducer to ignore
    """

    def __init__(
        self,
        flags: Flags,
        crypto: RsaOaepCrypto | None = None,
        *,
        relay: RelayConnection | None = None,
        tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the session runtime.

        Args:
            flags: Initialization flags
            crypto: Crypto collaborator (a fresh RsaOaepCrypto if omitted)
            relay: Relay connection (one to flags.relay_url if omitted)
            tick_interval_ms: Timer tick period; 0 disables the timer
            clock: Millisecond clock used for ticks
        """
        self.flags = flags
        self.crypto = crypto or RsaOaepCrypto()
        self.relay = relay or RelayConnection(flags.relay_url)
        self.tick_interval_ms = tick_interval_ms
        self._clock = clock

        self.model: Model = init_model(flags, clock())
        self.path: str = f"/{flags.chat_id}" if flags.chat_id else "/"
        self.queue: asyncio.Queue[Event] = asyncio.Queue()
        self.broadcast: Callable[[dict], Awaitable[None]] | None = None

        self._run_task: asyncio.Task | None = None
        self._tick_task: asyncio.Task | None = None
        self._crypto_tasks: set[asyncio.Task] = set()

        self.relay.on_text = lambda text: self.post(RelayText(text))
        self.relay.on_close = lambda reason: self.post(RelayClosed(reason))

    def post(self, event: Event) -> None:
        """Queue an event for processing."""
        self.queue.put_nowait(event)

    async def start(self) -> None:
        """Start processing events and connect to the relay."""
        self._run_task = asyncio.create_task(self._run_loop(), name="pairchat-session")
        if self.tick_interval_ms > 0:
            self._tick_task = asyncio.create_task(self._tick_loop(), name="pairchat-tick")

        try:
            await self.relay.connect()
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            logger.error("Could not connect to relay at %s: %s", self.relay.url, e)
            self.post(RelayClosed(f"connect failed: {e}"))

        logger.info("Session started")

    async def stop(self) -> None:
        """Stop the session and close the relay connection."""
        if self._tick_task:
            self._tick_task.cancel()
            self._tick_task = None

        await self.relay.close()

        for task in list(self._crypto_tasks):
            task.cancel()

        if self._run_task:
            self._run_task.cancel()
            try:
                await self._run_task
            except asyncio.CancelledError:
                pass
            self._run_task = None

        logger.info("Session stopped")

    async def _tick_loop(self) -> None:
        """Background task posting timer ticks."""
        try:
            while True:
                await asyncio.sleep(self.tick_interval_ms / 1000)
                self.post(Tick(self._clock()))
        except asyncio.CancelledError:
            logger.debug("Tick task cancelled")
            raise

    async def _run_loop(self) -> None:
        while True:
            event = await self.queue.get()
            try:
                await self.process(event)
            except Exception as e:
                logger.exception("Error processing %s: %s", type(event).__name__, e)
            finally:
                self.queue.task_done()

    async def process(self, event: Event) -> None:
        """Apply one event and dispatch its effects.

        Args:
            event: Event to apply
        """
        self.model, effects = apply(event, self.model)

        for effect in effects:
            await self._dispatch(effect)

        if not isinstance(event, Tick):
            await self._notify_ui(snapshot(self.model))

    async def _dispatch(self, effect: Effect) -> None:
        if isinstance(effect, SendFrame):
            try:
                await self.relay.send(effect.frame)
            except (RelayNotConnectedError, FrameTooLargeError) as e:
                logger.warning("Dropping outbound frame: %s", e)
            except (aiohttp.ClientError, ConnectionResetError) as e:
                logger.warning("Relay send failed: %s", e)
        elif isinstance(effect, RequestKeyExport):
            self._spawn_crypto(self.crypto.export_public_key, (), KeyExported, KeyExportFailed)
        elif isinstance(effect, RequestKeyImport):
            self._spawn_crypto(
                self.crypto.import_peer_key,
                (effect.key,),
                lambda _result: KeyImported(),
                KeyImportFailed,
            )
        elif isinstance(effect, RequestEncrypt):
            self._spawn_crypto(self.crypto.encrypt, (effect.plaintext,), Encrypted, EncryptFailed)
        elif isinstance(effect, RequestDecrypt):
            self._spawn_crypto(self.crypto.decrypt, (effect.ciphertext,), Decrypted, DecryptFailed)
        elif isinstance(effect, Navigate):
            self.path = effect.path
            await self._notify_ui({"type": "navigate", "path": effect.path})
        elif isinstance(effect, ResetAnimation):
            await self._notify_ui({"type": "reset_animation"})
        elif isinstance(effect, ScrollToBottom):
            await self._notify_ui({"type": "scroll_to_bottom"})
        elif isinstance(effect, Log):
            if effect.tag == "oops":
                logger.warning("Protocol violation: %s", effect.value)
            else:
                logger.info("%s: %s", effect.tag, effect.value)
        else:
            logger.warning("Unknown effect: %r", effect)

    def _spawn_crypto(
        self,
        fn: Callable[..., Any],
        args: tuple,
        on_success: Callable[[Any], Event],
        on_failure: Callable[[str], Event],
    ) -> None:
        task = asyncio.create_task(self._run_crypto(fn, args, on_success, on_failure))
        self._crypto_tasks.add(task)
        task.add_done_callback(self._crypto_tasks.discard)

    async def _run_crypto(
        self,
        fn: Callable[..., Any],
        args: tuple,
        on_success: Callable[[Any], Event],
        on_failure: Callable[[str], Event],
    ) -> None:
        try:
            result = await asyncio.get_running_loop().run_in_executor(None, fn, *args)
        except CryptoError as e:
            self.post(on_failure(str(e)))
            return
        except Exception as e:
            logger.exception("Unexpected error in crypto call %s: %s", fn.__name__, e)
            self.post(on_failure(str(e)))
            return

        self.post(on_success(result))

    async def _notify_ui(self, data: dict[str, Any]) -> None:
        if self.broadcast:
            try:
                await self.broadcast(data)
            except Exception as e:
                logger.error("Error broadcasting to UI: %s", e)
