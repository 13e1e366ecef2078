"""Pytest configuration: an in-memory world server behind a fake transport."""

import asyncio
import json
import os
from typing import Any, Optional

import pytest
import pytest_asyncio

from owot_client import ClientConfig, ConnectionClosedError, WorldClient
from owot_client.core.constants import CHUNK_AREA


def make_tile(
    content: str = "",
    color: Optional[list[int]] = None,
    bgcolor: Optional[list[int]] = None,
    cell_props: Optional[dict] = None,
    writability: Optional[int] = None,
) -> dict[str, Any]:
    """Build a ``tiles`` entry the way the server sends it (content padded to a full chunk)."""
    properties: dict[str, Any] = {
        "color": color if color is not None else [0] * CHUNK_AREA,
        "writability": writability,
    }
    if bgcolor is not None:
        properties["bgcolor"] = bgcolor
    if cell_props is not None:
        properties["cell_props"] = cell_props
    return {"content": content.ljust(CHUNK_AREA), "properties": properties}


class FakeTransport:
    """
    Stands in for a websocket connection.

    Outbound frames are decoded and recorded in :attr:`sent`, then handed to
    ``responder`` whose replies are queued as inbound frames.
    """

    def __init__(self, responder=None) -> None:
        self.sent: list[dict] = []
        self.responder = responder
        self.inbox: asyncio.Queue = asyncio.Queue()
        self.closed = False
        self.close_code: Optional[int] = None
        self.close_reason = ""
        self.url: Optional[str] = None
        self.headers: dict[str, str] = {}

    async def send(self, message: str) -> None:
        decoded = json.loads(message)
        self.sent.append(decoded)
        if self.responder is not None:
            for reply in self.responder(decoded):
                self.feed(reply)

    async def close(self) -> None:
        self.closed = True
        self.inbox.put_nowait(None)

    def feed(self, message: dict | str) -> None:
        self.inbox.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def drop(self, code: int = 1006, reason: str = "") -> None:
        """Simulate the server going away."""
        self.close_code = code
        self.close_reason = reason
        self.inbox.put_nowait(None)

    def of_kind(self, kind: str) -> list[dict]:
        return [message for message in self.sent if message["kind"] == kind]

    def __aiter__(self) -> "FakeTransport":
        return self

    async def __anext__(self) -> str:
        frame = await self.inbox.get()
        if frame is None:
            raise StopAsyncIteration
        return frame


class FakeWorld:
    """
    Answers ``fetch`` and ``write`` messages from an in-memory tile map.

    ``tiles`` maps ``(chunk_x, chunk_y)`` to a tile dict; missing chunks are
    reported as empty. ``rejections`` holds reasons to reject the next
    writes with, one entry consumed per write message.
    """

    def __init__(self) -> None:
        self.tiles: dict[tuple[int, int], dict] = {}
        self.rejections: list[int] = []
        self.silent = False

    def __call__(self, message: dict) -> list[dict]:
        if self.silent:
            return []
        if message["kind"] == "fetch":
            [rect] = message["fetchRectangles"]
            tiles = {
                f"{y},{x}": self.tiles.get((x, y))
                for y in range(rect["minY"], rect["maxY"] + 1)
                for x in range(rect["minX"], rect["maxX"] + 1)
            }
            return [{"kind": "fetch", "tiles": tiles}]
        if message["kind"] == "write":
            ids = [edit[6] for edit in message["edits"]]
            if self.rejections:
                reason = self.rejections.pop(0)
                return [{"kind": "write", "accepted": [], "rejected": {str(i): reason for i in ids}}]
            return [{"kind": "write", "accepted": ids, "rejected": {}}]
        return []


@pytest.fixture
def world() -> FakeWorld:
    return FakeWorld()


@pytest.fixture
def transport(world: FakeWorld) -> FakeTransport:
    return FakeTransport(world)


@pytest.fixture
def config() -> ClientConfig:
    """Fast timings so retries and pagination do not slow the suite."""
    return ClientConfig(rate_limit_ms=0, region_pacing=0)


@pytest.fixture
def closes() -> list[ConnectionClosedError]:
    """Records unexpected connection losses instead of exiting the process."""
    return []


@pytest_asyncio.fixture
async def client(transport: FakeTransport, config: ClientConfig, closes: list) -> WorldClient:
    async def connector(url: str, headers: dict[str, str]) -> FakeTransport:
        transport.url = url
        transport.headers = headers
        return transport

    world_client = WorldClient("testworld", config=config, connector=connector, on_close=closes.append)
    await world_client.connect()
    yield world_client
    await world_client.close()


@pytest.fixture(scope="session")
def live_world() -> str:
    """
    World name for tests against a real server, skips if unset.

    Set OWOT_TEST_WORLD to a world you are allowed to write to.
    """
    name = os.environ.get("OWOT_TEST_WORLD")
    if not name:
        pytest.skip("Live server tests need OWOT_TEST_WORLD")
    return name
