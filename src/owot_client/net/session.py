"""Connection session - owns the websocket to one world.

The session frames outbound messages as JSON, parses inbound frames and
hands each one to the handlers registered for its ``kind``. It does not
reconnect: cached chunks and pending edits have no defined meaning across
a new connection, so losing the transport ends the process.

Usage:
    session = ConnectionSession("myworld", token)
    session.add_handler("write", on_write_ack)
    session.start()
    await session.ready
    await session.send({"kind": "chathistory"})
"""

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, AsyncIterator, Awaitable, Callable, Protocol

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from owot_client.codec.wire import Message, parse_message
from owot_client.config import ClientConfig
from owot_client.core.coords import to_chunk
from owot_client.errors import ConnectionClosedError, OwotError, ProtocolError, ServerError
from owot_client.events import EventHub

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """The subset of a websocket connection the session relies on."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...


Connector = Callable[[str, dict[str, str]], Awaitable[Transport]]
CloseHandler = Callable[[ConnectionClosedError], None]
Handler = Callable[[Message], Any]


async def websocket_connector(url: str, headers: dict[str, str]) -> Transport:
    """Open a websocket with the ``websockets`` library."""
    return await websockets.connect(url, additional_headers=headers, max_size=None)


def terminate_process(error: ConnectionClosedError) -> None:
    """Default close handler: the connection is gone, so is the process."""
    raise SystemExit(1)


class ConnectionSession:
    """
    One websocket connection to a named world.

    Events on :attr:`events`:
        open: handshake finished
        message: every inbound message (dict)
        outgoing_message: every outbound message (dict)
        server_error: a ServerError built from an inbound ``error`` message
        close: the ConnectionClosedError that ended the session

    Inbound ``cmd`` messages are also republished on :attr:`commands`
    under their command name.
    """

    def __init__(
        self,
        world: str = "",
        token: str | None = None,
        *,
        config: ClientConfig | None = None,
        connector: Connector | None = None,
        on_close: CloseHandler | None = None,
    ):
        self.world = world
        self.config = config or ClientConfig()
        self.url = self.config.world_url(world)
        self.events = EventHub()
        self.commands = EventHub()
        self._token = token
        self._connector = connector or websocket_connector
        self._on_close = on_close or terminate_process
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._transport: Transport | None = None
        self._opened: asyncio.Future | None = None
        self._reader: asyncio.Task | None = None
        self._closing = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Open the connection in the background. Await :attr:`ready` for the handshake."""
        if self._reader is not None:
            return
        self._opened = asyncio.get_running_loop().create_future()
        self._reader = asyncio.ensure_future(self._run())

    @property
    def ready(self) -> Awaitable[None]:
        """Awaitable that completes once the handshake succeeds."""
        if self._opened is None:
            raise OwotError("Session not started; call start() first")
        return asyncio.shield(self._opened)

    @property
    def is_ready(self) -> bool:
        return (
            self._opened is not None
            and self._opened.done()
            and not self._opened.cancelled()
            and self._opened.exception() is None
            and not self._closing
        )

    async def close(self) -> None:
        """Deliberately shut the connection down. Not treated as a failure."""
        self._closing = True
        if self._transport is not None:
            await self._transport.close()
        if self._reader is not None and not self._reader.done():
            self._reader.cancel()

    async def _run(self) -> None:
        headers = {"Cookie": f"token={self._token}"} if self._token else {}
        try:
            self._transport = await self._connector(self.url, headers)
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            logger.error("Could not connect to %s: %s", self.url, exc)
            self._opened.set_exception(exc)
            return

        logger.info("Connected to %s", self.url)
        self._opened.set_result(None)
        self.events.emit("open")

        code: int | None = None
        reason = ""
        try:
            async for frame in self._transport:
                try:
                    self.dispatch(frame)
                except ProtocolError:
                    logger.exception("Dropping malformed frame")
                except Exception:
                    # One bad frame or handler never ends the reader
                    logger.exception("Handler failed for frame %.80r", frame)
        except ConnectionClosed as exc:
            if exc.rcvd is not None:
                code, reason = exc.rcvd.code, exc.rcvd.reason
        else:
            code = getattr(self._transport, "close_code", None)
            reason = getattr(self._transport, "close_reason", None) or ""

        if self._closing:
            logger.info("Disconnected from %s", self.url)
            return
        self._connection_lost(ConnectionClosedError(code, reason))

    def _connection_lost(self, error: ConnectionClosedError) -> None:
        logger.critical("Lost connection to %s: %s", self.url, error)
        self.events.emit("close", error)
        self._on_close(error)

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    def add_handler(self, kind: str, handler: Handler) -> None:
        """Route inbound messages of ``kind`` to ``handler``."""
        self._handlers[kind].append(handler)

    def dispatch(self, frame: str | bytes) -> Message:
        """Parse one inbound frame and route it. Raises ProtocolError on bad frames."""
        message = parse_message(frame)
        self.events.emit("message", message)

        kind = message["kind"]
        if kind == "error":
            error = ServerError(str(message.get("code", "")), str(message.get("message", "")))
            logger.error("Server error %s", error)
            self.events.emit("server_error", error)
        elif kind == "cmd":
            self.commands.emit(str(message.get("data", "")), message)

        for handler in list(self._handlers.get(kind, [])):
            handler(message)
        return message

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    async def send(self, message: Message) -> None:
        """Serialize and send one message."""
        if self._transport is None or self._closing:
            raise OwotError("Session is not connected")
        self.events.emit("outgoing_message", message)
        await self._transport.send(json.dumps(message, ensure_ascii=False, separators=(",", ":")))

    async def subscribe_commands(self) -> None:
        """Ask the server to forward ``cmd`` messages to this client."""
        await self.send({"kind": "cmd_opt"})

    async def send_cmd(self, data: str, x: int = 0, y: int = 0, include_username: bool = False) -> None:
        cx, cy, lx, ly = to_chunk(x, y)
        await self.send({
            "kind": "cmd",
            "data": data,
            "include_username": include_username,
            "coords": [cy, cx, ly, lx],
        })

    async def send_chat(
        self,
        message: str,
        nickname: str = "",
        location: str = "page",
        color: str = "#000000",
    ) -> None:
        if location not in ("page", "global"):
            raise ValueError(f"location must be 'page' or 'global', got {location!r}")
        await self.send({
            "kind": "chat",
            "nickname": nickname,
            "location": location,
            "color": color,
            "message": message,
        })

    async def request_chat_history(self) -> None:
        await self.send({"kind": "chathistory"})

    async def set_cursor(self, x: int, y: int) -> None:
        cx, cy, lx, ly = to_chunk(x, y)
        await self.send({
            "kind": "cursor",
            "position": {"tileX": cx, "tileY": cy, "charX": lx, "charY": ly},
        })
