"""Chunk cache and region fetcher.

Holds the last snapshot received for every chunk and turns read requests
into ``fetch`` messages. Reads suspend on a future per chunk coordinate;
whichever message delivers that chunk next (a fetch response or an
unsolicited ``tileUpdate``) resolves every waiter for it.
"""

import asyncio
import logging
import math
from collections import defaultdict
from typing import Awaitable, Callable, Iterator

from owot_client.codec.wire import Message, boundary_message, fetch_message, parse_tile_key
from owot_client.config import ClientConfig
from owot_client.core.cell import Cell
from owot_client.core.chunk import Chunk
from owot_client.core.coords import to_chunk
from owot_client.errors import ProtocolError, ReadTimeoutError

logger = logging.getLogger(__name__)

ChunkKey = tuple[int, int]
Sender = Callable[[Message], Awaitable[None]]


def split_region(
    min_x: int, min_y: int, max_x: int, max_y: int, max_area: int
) -> Iterator[tuple[int, int, int, int]]:
    """
    Partition an inclusive rectangle into sub-rectangles of at most ``max_area``.

    Sub-rectangles are at most ``isqrt(max_area)`` on a side and cover every
    coordinate of the input rectangle exactly once, row by row.
    """
    width = max_x - min_x + 1
    height = max_y - min_y + 1
    side = max(1, math.isqrt(max_area))
    cols = math.ceil(width / side)
    rows = math.ceil(height / side)

    for row in range(rows):
        sub_min_y = min_y + row * height // rows
        sub_max_y = min_y + (row + 1) * height // rows - 1
        for col in range(cols):
            sub_min_x = min_x + col * width // cols
            sub_max_x = min_x + (col + 1) * width // cols - 1
            yield sub_min_x, sub_min_y, sub_max_x, sub_max_y


class ChunkCache:
    """
    Cached chunk snapshots plus the reads still waiting on the server.

    ``send`` is the session's send coroutine; the cache never touches the
    transport directly.
    """

    def __init__(self, send: Sender, config: ClientConfig | None = None):
        self._send = send
        self.config = config or ClientConfig()
        self._chunks: dict[ChunkKey, Chunk] = {}
        self._pending: dict[ChunkKey, set[asyncio.Future]] = defaultdict(set)

    def __len__(self) -> int:
        return len(self._chunks)

    def __contains__(self, key: ChunkKey) -> bool:
        return key in self._chunks

    @property
    def pending_reads(self) -> int:
        """Number of chunk coordinates with at least one waiting read."""
        return sum(1 for waiters in self._pending.values() if waiters)

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    def handle_tiles(self, message: Message) -> None:
        """Store every chunk in a ``fetch`` or ``tileUpdate`` message and wake its readers."""
        tiles = message.get("tiles") or {}
        if not isinstance(tiles, dict):
            raise ProtocolError(f"Malformed tiles payload: {tiles!r:.80}")
        for key, data in tiles.items():
            try:
                chunk_x, chunk_y = parse_tile_key(key)
            except ProtocolError as exc:
                logger.error("Skipping tile: %s", exc)
                continue
            try:
                chunk = Chunk.from_wire(chunk_x, chunk_y, data)
            except ProtocolError as exc:
                # Readers of a chunk the server garbled get the error, not a hang
                logger.error("%s", exc)
                for waiter in self._pending.pop((chunk_x, chunk_y), ()):
                    if not waiter.done():
                        waiter.set_exception(exc)
                continue
            self._chunks[chunk_x, chunk_y] = chunk

            for waiter in self._pending.pop((chunk_x, chunk_y), ()):
                if not waiter.done():
                    waiter.set_result(chunk)

    def invalidate(self, chunk_x: int | None = None, chunk_y: int | None = None) -> None:
        """Forget one cached chunk, or all of them when called without arguments."""
        if chunk_x is None or chunk_y is None:
            self._chunks.clear()
        else:
            self._chunks.pop((chunk_x, chunk_y), None)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def try_get_chunk(self, chunk_x: int, chunk_y: int) -> Chunk | None:
        """Cached snapshot, or None if the chunk has not been fetched yet."""
        return self._chunks.get((chunk_x, chunk_y))

    async def get_chunk(self, chunk_x: int, chunk_y: int) -> Chunk:
        """Cached snapshot, fetching it first if needed."""
        cached = self._chunks.get((chunk_x, chunk_y))
        if cached is not None:
            return cached

        waiter = self._expect(chunk_x, chunk_y)
        await self._send(fetch_message(chunk_x, chunk_y, chunk_x, chunk_y))
        [chunk] = await self._wait([waiter])
        return chunk

    async def get_cell(self, x: int, y: int) -> Cell | None:
        """Normalized remote cell at world (x, y), or None if its chunk is empty."""
        chunk_x, chunk_y, local_x, local_y = to_chunk(x, y)
        chunk = await self.get_chunk(chunk_x, chunk_y)
        return chunk.cell(local_x, local_y)

    async def load_region(self, min_x: int, min_y: int, max_x: int, max_y: int) -> None:
        """
        Fetch every chunk in an inclusive chunk rectangle into the cache.

        Rectangles larger than the server's fetch limit are split and loaded
        one piece at a time, pausing between pieces.
        """
        min_x, max_x = sorted((min_x, max_x))
        min_y, max_y = sorted((min_y, max_y))
        width = max_x - min_x + 1
        height = max_y - min_y + 1

        if width * height > self.config.max_fetch_area:
            pieces = list(split_region(min_x, min_y, max_x, max_y, self.config.max_fetch_area))
            logger.info("load_region: %dx%d chunks too large; splitting into %d requests",
                        width, height, len(pieces))
            for index, piece in enumerate(pieces):
                if index:
                    await asyncio.sleep(self.config.region_pacing)
                await self.load_region(*piece)
            return

        waiters = [
            self._expect(x, y)
            for y in range(min_y, max_y + 1)
            for x in range(min_x, max_x + 1)
        ]
        await self._send(fetch_message(min_x, min_y, max_x, max_y))
        await self._wait(waiters)

    async def set_update_region(self, min_x: int, min_y: int, max_x: int, max_y: int) -> None:
        """Subscribe to ``tileUpdate`` notifications for a chunk rectangle."""
        await self._send(boundary_message(min_x, min_y, max_x, max_y))

    def _expect(self, chunk_x: int, chunk_y: int) -> asyncio.Future:
        waiter = asyncio.get_running_loop().create_future()
        self._pending[chunk_x, chunk_y].add(waiter)
        return waiter

    async def _wait(self, waiters: list[asyncio.Future]) -> list[Chunk]:
        timeout = self.config.read_timeout
        if timeout is None:
            return list(await asyncio.gather(*waiters))
        try:
            return list(await asyncio.wait_for(asyncio.gather(*waiters), timeout))
        except asyncio.TimeoutError:
            stalled = []
            for key, pending in list(self._pending.items()):
                if pending.intersection(waiters):
                    stalled.append(key)
                    pending.difference_update(waiters)
                    if not pending:
                        del self._pending[key]
            raise ReadTimeoutError(stalled, timeout) from None
