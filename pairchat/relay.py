"""WebSocket connection to the signaling relay."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass

import aiohttp

from .codec import dumps
from .constants import MAX_FRAME_SIZE

logger = logging.getLogger(__name__)


class RelayNotConnectedError(RuntimeError):
    """Raised when sending without an open relay socket."""

    pass


class FrameTooLargeError(RuntimeError):
    """Raised when an outbound frame exceeds MAX_FRAME_SIZE."""

    pass


@dataclass(frozen=True)
class RelayConfig:
    """Configuration for the relay connection."""

    connect_timeout_s: float = 20.0
    heartbeat_s: float | None = 30.0
    max_frame_size: int = MAX_FRAME_SIZE


class RelayConnection:
    """Single WebSocket to the relay.

    Inbound text frames are handed to ``on_text`` as they arrive. When the
    socket ends for any reason ``on_close`` is called exactly once; the
    connection is not reopened.
    """

    def __init__(
        self,
        url: str,
        config: RelayConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize relay connection.

        Args:
            url: Relay WebSocket URL
            config: Optional relay configuration
            session: Optional shared aiohttp session (not closed by this object)
        """
        self.url = url
        self.config = config or RelayConfig()

        self._session = session
        self._owns_session = session is None
        self.ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task | None = None
        self._close_notified = False
        self._closing = False

        self.on_text: Callable[[str], None] | None = None
        self.on_close: Callable[[str], None] | None = None

    @property
    def connected(self) -> bool:
        return self.ws is not None and not self.ws.closed

    async def connect(self) -> None:
        """Open the WebSocket and start reading frames.

        Raises:
            aiohttp.ClientError: If the relay cannot be reached
            asyncio.TimeoutError: If the handshake takes too long
        """
        if self._session is None:
            self._session = aiohttp.ClientSession()

        logger.info("Connecting to relay at %s", self.url)
        self.ws = await asyncio.wait_for(
            self._session.ws_connect(
                self.url,
                heartbeat=self.config.heartbeat_s,
                max_msg_size=self.config.max_frame_size,
            ),
            timeout=self.config.connect_timeout_s,
        )
        logger.info("Connected to relay")

        self._reader = asyncio.create_task(self._read_loop(self.ws), name="pairchat-relay-reader")

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        reason = "closed by relay"
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    if self.on_text:
                        try:
                            self.on_text(msg.data)
                        except Exception as e:
                            logger.exception("Error in on_text callback: %s", e)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    logger.debug("Ignoring binary relay frame (%d bytes)", len(msg.data))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    reason = f"relay socket error: {ws.exception()}"
                    logger.error("Relay WebSocket error: %s", ws.exception())
        except asyncio.CancelledError:
            reason = "closed locally"
            raise
        except (aiohttp.ClientError, ConnectionResetError) as e:
            reason = f"relay connection lost: {e}"
            logger.warning("Relay connection lost: %s", e)
        finally:
            if self._closing:
                reason = "closed locally"
            if self.ws is ws:
                self.ws = None
            self._notify_closed(reason)

    def _notify_closed(self, reason: str) -> None:
        if self._close_notified:
            return
        self._close_notified = True
        logger.info("Relay connection ended: %s", reason)
        if self.on_close:
            try:
                self.on_close(reason)
            except Exception as e:
                logger.exception("Error in on_close callback: %s", e)

    async def send(self, frame: dict) -> None:
        """Send one frame to the relay.

        Args:
            frame: Frame dictionary

        Raises:
            RelayNotConnectedError: If the socket is not open
            FrameTooLargeError: If the encoded frame exceeds the size limit
        """
        ws = self.ws
        if ws is None or ws.closed:
            raise RelayNotConnectedError("Not connected to relay. Call connect() first.")

        text = dumps(frame)
        if len(text) > self.config.max_frame_size:
            raise FrameTooLargeError(
                f"Frame of {len(text)} chars exceeds limit of {self.config.max_frame_size}"
            )

        await ws.send_str(text)

    async def close(self) -> None:
        """Close the socket and, if owned, the HTTP session."""
        self._closing = True
        ws = self.ws
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.debug("Error closing relay socket: %s", e)

        if self._reader is not None:
            with contextlib.suppress(asyncio.CancelledError):
                try:
                    await asyncio.wait_for(self._reader, timeout=5.0)
                except asyncio.TimeoutError:
                    self._reader.cancel()
            self._reader = None

        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

        self._notify_closed("closed locally")
