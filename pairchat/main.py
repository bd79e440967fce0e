"""Main entry point for the pairchat client."""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
import webbrowser

from aiohttp import web

from .backend import DEFAULT_TICK_INTERVAL_MS, SessionRuntime
from .codec import DecodeError
from .config import load_config
from .envelope import decode_scroll_event
from .events import (
    CreateChat,
    InputChanged,
    JoinChat,
    Scrolled,
    ScrollToBottomClicked,
    SubmitMessage,
)
from .state import Flags, snapshot
from .utils import normalize_chat_id

logger = logging.getLogger(__name__)


MAX_WS_MESSAGE_SIZE = 1024 * 16
MAX_INPUT_LENGTH = 10000
ALLOWED_MESSAGE_TYPES = {
    "create_chat",
    "join_chat",
    "input",
    "submit",
    "scroll",
    "scroll_to_bottom",
    "get_state",
}


def ui_event(data: dict):
    """Translate a host UI message into a session event.

    Args:
        data: Decoded UI message with a ``type`` field

    Returns:
        Session event

    Raises:
        DecodeError: If the message fields are invalid
    """
    msg_type = data.get("type")

    if msg_type == "create_chat":
        return CreateChat()
    if msg_type == "join_chat":
        raw = data.get("chatId")
        if raw is None:
            return JoinChat()
        chat_id = normalize_chat_id(raw)
        if chat_id is None:
            raise DecodeError("Invalid chatId")
        return JoinChat(chat_id)
    if msg_type == "input":
        text = data.get("text")
        if not isinstance(text, str) or len(text) > MAX_INPUT_LENGTH:
            raise DecodeError("Invalid input text")
        return InputChanged(text)
    if msg_type == "submit":
        return SubmitMessage()
    if msg_type == "scroll":
        return Scrolled(decode_scroll_event(data))
    if msg_type == "scroll_to_bottom":
        return ScrollToBottomClicked()

    raise DecodeError(f"Unknown message type: {msg_type}")


class HTTPServer:
    """HTTP server exposing the session to the host UI."""

    MAX_WEBSOCKET_CONNECTIONS = 8

    def __init__(
        self,
        runtime: SessionRuntime,
        host: str = "localhost",
        port: int = 8080,
        config: dict | None = None,
    ):
        """Initialize HTTP server.

        Args:
            runtime: Session runtime instance
            host: Host to bind to
            port: Port to listen on
            config: Configuration dictionary
        """
        self.runtime = runtime
        self.host = host
        self.port = port
        self.config = config or {}
        self.app = web.Application()
        self.websockets: set[web.WebSocketResponse] = set()
        self.runner: web.AppRunner | None = None
        self.setup_routes()

    def setup_routes(self):
        """Set up HTTP routes."""
        self.app.router.add_get("/api/state", self.state_handler)
        self.app.router.add_get("/ws", self.websocket_handler)

    async def state_handler(self, _request: web.Request) -> web.Response:
        """Return the current session snapshot.

        Args:
            _request: HTTP request

        Returns:
            JSON response
        """
        return web.json_response(snapshot(self.runtime.model))

    def _origin_allowed(self, origin: str) -> bool:
        allowed_origins = set(self.config.get("allowed_origins", []))
        allowed_origins.update(
            {
                f"http://{self.host}:{self.port}",
                f"http://localhost:{self.port}",
                f"http://127.0.0.1:{self.port}",
            }
        )
        return origin in allowed_origins

    async def websocket_handler(self, request: web.Request) -> web.StreamResponse:
        """Handle WebSocket connections from the host UI.

        Args:
            request: WebSocket request

        Returns:
            WebSocket response
        """
        origin = request.headers.get("Origin")
        if origin and not self._origin_allowed(origin):
            logger.warning("WebSocket connection rejected: invalid origin %s", origin)
            return web.Response(status=403, text="Forbidden: Invalid origin")  # type: ignore[return-value]

        if len(self.websockets) >= self.MAX_WEBSOCKET_CONNECTIONS:
            logger.warning(
                "WebSocket connection rejected: limit of %d reached",
                self.MAX_WEBSOCKET_CONNECTIONS,
            )
            ws = web.WebSocketResponse()
            await ws.prepare(request)
            await ws.send_json(
                {
                    "type": "error",
                    "error": f"Server is at maximum capacity ({self.MAX_WEBSOCKET_CONNECTIONS} connections)",
                }
            )
            await ws.close()
            return ws

        ws = web.WebSocketResponse(max_msg_size=MAX_WS_MESSAGE_SIZE)
        await ws.prepare(request)

        self.websockets.add(ws)
        logger.info("UI client connected (total: %d)", len(self.websockets))

        try:
            await ws.send_json(snapshot(self.runtime.model))

            async for msg in ws:
                if msg.type == web.WSMsgType.TEXT:
                    try:
                        data = json.loads(msg.data)
                    except json.JSONDecodeError as e:
                        logger.warning("Invalid JSON from UI: %s", e)
                        await ws.send_json({"type": "error", "error": "Invalid JSON format"})
                        continue

                    if not isinstance(data, dict):
                        await ws.send_json(
                            {"type": "error", "error": "Message must be a JSON object"}
                        )
                        continue

                    msg_type = data.get("type")
                    if not isinstance(msg_type, str) or msg_type not in ALLOWED_MESSAGE_TYPES:
                        logger.warning("Invalid UI message type: %s", msg_type)
                        await ws.send_json({"type": "error", "error": "Invalid message type"})
                        continue

                    if msg_type == "get_state":
                        await ws.send_json(snapshot(self.runtime.model))
                        continue

                    try:
                        event = ui_event(data)
                    except DecodeError as e:
                        await ws.send_json({"type": "error", "error": str(e)})
                        continue

                    self.runtime.post(event)

                elif msg.type == web.WSMsgType.ERROR:
                    logger.error("UI WebSocket error: %s", ws.exception())

        except asyncio.CancelledError:
            logger.info("UI WebSocket handler cancelled")
            raise
        except ConnectionResetError:
            logger.info("UI WebSocket connection reset by client")
        finally:
            self.websockets.discard(ws)
            logger.info("UI client disconnected")

        return ws

    async def broadcast(self, data: dict):
        """Broadcast data to all connected UI clients.

        Args:
            data: Data to broadcast
        """
        message = json.dumps(data)

        disconnected = set()
        for ws in self.websockets:
            try:
                await ws.send_str(message)
            except Exception as e:
                logger.error("Error broadcasting to UI WebSocket: %s", e)
                disconnected.add(ws)

        self.websockets -= disconnected

    async def start(self):
        """Start the HTTP server."""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()

        logger.info("HTTP server started on http://%s:%d", self.host, self.port)

    async def stop(self):
        """Stop the HTTP server."""
        if self.runner:
            await self.runner.cleanup()
            self.runner = None


def setup_logging() -> None:
    """Configure root logging from PAIRCHAT_LOG_LEVEL."""
    log_level = os.environ.get("PAIRCHAT_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Two-party encrypted chat over a relay")
    parser.add_argument(
        "--join",
        metavar="CHAT_ID",
        default=None,
        help="Chat id from a shared link to join",
    )
    return parser.parse_args(argv)


async def main_async(config: dict, chat_id: str | None = None):
    """Main async entry point.

    Args:
        config: Loaded configuration
        chat_id: Chat id to join, if started from a shared link
    """
    port = int(os.environ.get("PAIRCHAT_PORT", config.get("server_port", 8080)))
    host = config.get("server_host", "localhost")

    flags = Flags.from_config(config, chat_id=chat_id)
    runtime = SessionRuntime(
        flags,
        tick_interval_ms=int(config.get("tick_interval_ms", DEFAULT_TICK_INTERVAL_MS)),
    )
    http_server = HTTPServer(runtime, host=host, port=port, config=config)

    runtime.broadcast = http_server.broadcast

    await runtime.start()
    await http_server.start()

    url = f"http://{host}:{port}"
    if config.get("open_browser", True):
        logger.info("Opening browser at %s", url)
        try:
            webbrowser.open(url)
        except Exception as e:
            logger.error("Could not open browser automatically: %s", e)
            print(f"\n>>> Please open this URL in your browser: {url} <<<\n")

    stop_event = asyncio.Event()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    logger.info("pairchat started. Press Ctrl+C to stop.")
    await stop_event.wait()

    logger.info("Shutting down...")
    await http_server.stop()
    await runtime.stop()


def main():
    """Main entry point."""
    setup_logging()
    args = parse_args()
    chat_id = normalize_chat_id(args.join) if args.join else None
    if args.join and chat_id is None:
        logger.error("Invalid chat id: %r", args.join)
        sys.exit(2)

    try:
        config = load_config()
        asyncio.run(main_async(config, chat_id))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
